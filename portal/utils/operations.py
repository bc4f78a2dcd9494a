import functools
import logging
from typing import Awaitable, Callable, Iterator, List, Sequence, Tuple, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from portal.errors import PortalError
from portal.schemas.common import OperationResult

logger = logging.getLogger(__name__)

# Ограничения хранилища: размер списка для IN и число записей в одном пакете
IN_QUERY_CHUNK_SIZE = 30
WRITE_BATCH_SIZE = 400

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Последовательные части списка размером не больше size"""
    items = list(items)
    for start in range(0, len(items), size):
        yield items[start:start + size]


def operation(action: str, result_model: Type[OperationResult] = OperationResult):
    """
    Граница публичной операции.

    Первый аргумент операции - сессия БД. Любое исключение откатывает
    незафиксированный пакет записи и превращается в result_model(success=False),
    поэтому вызывающая сторона никогда не получает исключение.

    :param action: описание действия для сообщения об ошибке ("create team")
    :param result_model: тип результата операции
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(session: AsyncSession, *args, **kwargs):
            logger.info(f"{func.__name__} started")
            try:
                return await func(session, *args, **kwargs)
            except PortalError as e:
                await session.rollback()
                logger.warning(f"{func.__name__} failed: {e}")
                return result_model(success=False, message=str(e))
            except Exception as e:
                await session.rollback()
                logger.exception(f"{func.__name__} failed with unexpected error")
                return result_model(success=False, message=f"Failed to {action}: {e}")
        return wrapper
    return decorator


class Compensation:
    """
    Стек отменяющих действий для многошаговых операций, которые создают
    ресурсы вне пакета записи (учетные записи, зафиксированные профили).

    Каждый успешный шаг добавляет свою отмену через push; при ошибке
    последующего шага run() выполняет отмены в обратном порядке. Ошибка
    отдельной отмены логируется и не останавливает остальные.
    """

    def __init__(self):
        self._undo: List[Tuple[str, Callable[[], Awaitable]]] = []

    def push(self, description: str, undo: Callable[[], Awaitable]) -> None:
        self._undo.append((description, undo))

    def clear(self) -> None:
        self._undo.clear()

    def __len__(self) -> int:
        return len(self._undo)

    async def run(self) -> int:
        """Выполняет отмены в обратном порядке и возвращает число успешных"""
        undone = 0
        while self._undo:
            description, undo = self._undo.pop()
            try:
                await undo()
                undone += 1
            except Exception as e:
                logger.error(f"Откат \"{description}\" не выполнен: {e}")
        return undone
