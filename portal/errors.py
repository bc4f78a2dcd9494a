class PortalError(Exception):
    """Базовая ошибка операций портала. Текст исключения уходит в ответ как есть."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NotFoundError(PortalError):
    """Команда, пользователь, панель или приглашение не найдены"""


class AccountNotFoundError(NotFoundError):
    """Учетная запись отсутствует в сервисе идентификации"""


class ValidationError(PortalError):
    """Нарушено правило предметной области"""


class CapacityError(ValidationError):
    pass


class DuplicateNameError(ValidationError):
    pass


class TeamLockedError(ValidationError):
    pass


class PermissionDeniedError(PortalError):
    pass


class DuplicateIdentityError(PortalError):
    """Учетная запись с таким email уже существует"""

    def __init__(self, email: str, message: str = None):
        super().__init__(message or f'A user with email "{email}" already exists.')
        self.email = email


class DependencyUnavailableError(PortalError):
    """Хранилище или сервис идентификации не инициализированы"""


class ExternalServiceError(PortalError):
    """Сбой отправки уведомления"""
