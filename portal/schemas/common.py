from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr

# Адрес хранится и ищется в нижнем регистре: вход и проверки дубликатов от регистра не зависят
NormalizedEmail = Annotated[EmailStr, AfterValidator(str.lower)]


class OperationResult(BaseModel):
    """Единый ответ операции: ошибки не пробрасываются вызывающей стороне"""
    success: bool
    message: str = ""
