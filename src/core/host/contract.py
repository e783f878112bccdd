"""
Contract — базовый класс контракта на Chain

Состояние контракта целиком живёт в `self.storage` (dataclass).
Chain делает deepcopy storage перед транзакцией и восстанавливает его при
revert, поэтому в storage нельзя держать ссылки на Chain или другие
контракты: только адреса и значения.
"""

import copy
from typing import Any, Callable, TypeVar, TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.host.chain import Chain


F = TypeVar("F", bound=Callable[..., Any])


def external(fn: F) -> F:
    """Маркер точки входа транзакции (вызываемой через Chain)."""
    fn.__external__ = True  # type: ignore[attr-defined]
    return fn


def is_external(method: Callable[..., Any]) -> bool:
    return bool(getattr(method, "__external__", False))


class Contract:
    """Базовый контракт: адрес, ссылка на Chain и storage."""

    storage: Any = None

    def __init__(self, chain: "Chain", address: str):
        self.chain = chain
        self.address = address

    def capture_state(self) -> Any:
        """Снапшот storage для atomic revert."""
        return copy.deepcopy(self.storage)

    def restore_state(self, state: Any) -> None:
        self.storage = copy.deepcopy(state)

    # -------------------------------------------------------------------------
    # Helpers для подклассов
    # -------------------------------------------------------------------------

    @property
    def msg_sender(self) -> str:
        return self.chain.msg.sender

    @property
    def msg_value(self) -> int:
        return self.chain.msg.value

    def emit(self, name: str, **args: Any) -> None:
        self.chain.emit(self.address, name, **args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"
