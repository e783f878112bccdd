"""
TimeDelayedExecutor — очередь отложенного исполнения с ролями

State machine операции:
    unset → pending (queue) → ready (now >= eta) → done (execute)
                                    └→ expired (now >= eta + grace_period)

Роли — таблица capability (role, address) → bool:
- PROPOSER_ROLE: ставит операции в очередь (governor)
- EXECUTOR_ROLE: исполняет; выдача роли ZERO_ADDRESS открывает execute всем
- TIMELOCK_ADMIN_ROLE: управляет всеми ролями; есть у самого executor,
  deployer отказывается от неё в конце bootstrap

Операция помечается done ДО исполнения вызовов, поэтому повторный вход
в execute той же операции невозможен.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, Iterable, Optional, Union

from src.core.domain.crocodile import ZERO_ADDRESS
from src.core.errors import (
    InsufficientDelay,
    MissingRole,
    OperationAlreadyQueued,
    OperationExpired,
    OperationNotReady,
    PredecessorNotDone,
    Unauthorized,
)
from src.core.host.abi import hash_calls, normalize_address
from src.core.host.contract import Contract, external

logger = logging.getLogger(__name__)

# Метка исполненной операции в таблице timestamps
DONE_TIMESTAMP: Final[int] = 1


class Role(str, Enum):
    """Роли executor."""

    PROPOSER = "PROPOSER_ROLE"
    EXECUTOR = "EXECUTOR_ROLE"
    ADMIN = "TIMELOCK_ADMIN_ROLE"


RoleLike = Union[Role, str]


@dataclass(frozen=True)
class Operation:
    """
    Пакет вызовов, исполняемых атомарно.

    Attributes:
        targets: адреса контрактов
        values: msg.value каждого вызова (wei)
        payloads: закодированные вызовы (encode_function_call)
        predecessor: id операции, которая должна быть исполнена раньше ("" — нет)
        salt: различает операции с одинаковыми вызовами
    """

    targets: tuple[str, ...]
    values: tuple[int, ...]
    payloads: tuple[bytes, ...]
    predecessor: str = ""
    salt: str = ""

    def __post_init__(self) -> None:
        if not (len(self.targets) == len(self.values) == len(self.payloads)):
            raise ValueError(
                f"Operation length mismatch: targets={len(self.targets)} "
                f"values={len(self.values)} payloads={len(self.payloads)}"
            )

    @classmethod
    def build(
        cls,
        targets: Iterable[str],
        values: Iterable[int],
        payloads: Iterable[bytes],
        predecessor: str = "",
        salt: str = "",
    ) -> "Operation":
        return cls(
            targets=tuple(normalize_address(t) for t in targets),
            values=tuple(values),
            payloads=tuple(payloads),
            predecessor=predecessor,
            salt=salt,
        )

    @property
    def id(self) -> str:
        return hash_calls(self.targets, self.values, self.payloads, self.predecessor, self.salt)


@dataclass
class TimelockStorage:
    min_delay: int = 0
    grace_period: int = 0
    roles: dict[tuple[str, str], bool] = field(default_factory=dict)
    timestamps: dict[str, int] = field(default_factory=dict)


class TimeDelayedExecutor(Contract):
    """
    Timelock между успехом предложения и его эффектом.

    Args:
        chain: Chain
        address: адрес контракта
        min_delay: минимальная задержка (секунды)
        proposers: начальные держатели PROPOSER_ROLE
        executors: начальные держатели EXECUTOR_ROLE
        admin: опциональный внешний admin (deployer на время bootstrap)
        grace_period: окно исполнения после eta (секунды)
    """

    def __init__(
        self,
        chain,
        address: str,
        min_delay: int,
        proposers: Iterable[str] = (),
        executors: Iterable[str] = (),
        admin: Optional[str] = None,
        grace_period: Optional[int] = None,
    ):
        super().__init__(chain, address)
        if min_delay < 0:
            raise ValueError(f"min_delay must be non-negative, got {min_delay}")
        if grace_period is None:
            grace_period = chain.settings.timelock_grace_period_seconds
        self.storage = TimelockStorage(min_delay=min_delay, grace_period=grace_period)

        self._grant(Role.ADMIN, address)
        if admin is not None:
            self._grant(Role.ADMIN, admin)
        for proposer in proposers:
            self._grant(Role.PROPOSER, proposer)
        for executor in executors:
            self._grant(Role.EXECUTOR, executor)

        self.emit("MinDelayChange", old_duration=0, new_duration=min_delay)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def min_delay(self) -> int:
        return self.storage.min_delay

    def grace_period(self) -> int:
        return self.storage.grace_period

    def has_role(self, role: RoleLike, account: str) -> bool:
        return self.storage.roles.get((Role(role).value, normalize_address(account)), False)

    def hash_operation(self, operation: Operation) -> str:
        return operation.id

    def get_timestamp(self, operation_id: str) -> int:
        """eta операции; 0 — неизвестна, DONE_TIMESTAMP — исполнена."""
        return self.storage.timestamps.get(operation_id, 0)

    def is_operation(self, operation_id: str) -> bool:
        return self.get_timestamp(operation_id) > 0

    def is_operation_pending(self, operation_id: str) -> bool:
        return self.get_timestamp(operation_id) > DONE_TIMESTAMP

    def is_operation_ready(self, operation_id: str) -> bool:
        eta = self.get_timestamp(operation_id)
        return eta > DONE_TIMESTAMP and eta <= self.chain.timestamp < eta + self.storage.grace_period

    def is_operation_done(self, operation_id: str) -> bool:
        return self.get_timestamp(operation_id) == DONE_TIMESTAMP

    def is_operation_expired(self, operation_id: str) -> bool:
        eta = self.get_timestamp(operation_id)
        return eta > DONE_TIMESTAMP and self.chain.timestamp >= eta + self.storage.grace_period

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    @external
    def queue(self, operation: Operation, delay: Optional[int] = None) -> int:
        """
        Постановка операции в очередь.

        Returns:
            eta (timestamp, с которого операция исполнима)

        Raises:
            MissingRole: вызывающий не PROPOSER
            InsufficientDelay: delay < min_delay
            OperationAlreadyQueued: операция уже известна
        """
        self._check_role(Role.PROPOSER, self.msg_sender)
        delay = self.storage.min_delay if delay is None else delay
        if delay < self.storage.min_delay:
            raise InsufficientDelay(
                f"Delay {delay}s is below min delay {self.storage.min_delay}s",
                delay=delay,
                min_delay=self.storage.min_delay,
            )

        operation_id = operation.id
        if self.is_operation(operation_id):
            raise OperationAlreadyQueued(f"Operation {operation_id} already queued", id=operation_id)

        eta = self.chain.timestamp + delay
        self.storage.timestamps[operation_id] = eta
        for index, (target, value) in enumerate(zip(operation.targets, operation.values)):
            self.emit(
                "CallScheduled",
                id=operation_id,
                index=index,
                target=target,
                value=value,
                predecessor=operation.predecessor,
                delay=delay,
            )
        logger.info("Operation %s queued, eta=%d", operation_id, eta)
        return eta

    @external
    def execute(self, operation: Operation) -> list[Any]:
        """
        Исполнение готовой операции.

        Raises:
            MissingRole: вызывающий не EXECUTOR (и роль не открыта)
            OperationNotReady: операция не в очереди или eta не наступил
            OperationExpired: окно исполнения истекло
            PredecessorNotDone: predecessor не исполнен
        """
        if not self.has_role(Role.EXECUTOR, ZERO_ADDRESS):
            self._check_role(Role.EXECUTOR, self.msg_sender)

        operation_id = operation.id
        eta = self.get_timestamp(operation_id)
        now = self.chain.timestamp
        if eta <= DONE_TIMESTAMP or now < eta:
            raise OperationNotReady(f"Operation {operation_id} is not ready", id=operation_id, eta=eta)
        if now >= eta + self.storage.grace_period:
            raise OperationExpired(
                f"Operation {operation_id} expired at {eta + self.storage.grace_period}",
                id=operation_id,
            )
        if operation.predecessor and not self.is_operation_done(operation.predecessor):
            raise PredecessorNotDone(
                f"Predecessor {operation.predecessor} is not done", predecessor=operation.predecessor
            )

        self.storage.timestamps[operation_id] = DONE_TIMESTAMP

        results = []
        for index, (target, value, payload) in enumerate(
            zip(operation.targets, operation.values, operation.payloads)
        ):
            results.append(self.chain.call_encoded(self.address, target, value, payload))
            self.emit("CallExecuted", id=operation_id, index=index, target=target, value=value)
        logger.info("Operation %s executed (%d calls)", operation_id, len(results))
        return results

    # -------------------------------------------------------------------------
    # Roles
    # -------------------------------------------------------------------------

    @external
    def grant_role(self, role: RoleLike, account: str) -> None:
        self._check_role(Role.ADMIN, self.msg_sender)
        self._grant(Role(role), account)

    @external
    def revoke_role(self, role: RoleLike, account: str) -> None:
        self._check_role(Role.ADMIN, self.msg_sender)
        self._revoke(Role(role), account)

    @external
    def renounce_role(self, role: RoleLike, account: str) -> None:
        """Отказ от роли: только для собственного адреса."""
        if normalize_address(account) != self.msg_sender:
            raise Unauthorized("Can only renounce roles for self", caller=self.msg_sender)
        self._revoke(Role(role), account)

    @external
    def update_delay(self, new_delay: int) -> None:
        """Смена min_delay — только через собственную операцию."""
        if self.msg_sender != self.address:
            raise Unauthorized("Caller must be the executor itself", caller=self.msg_sender)
        if new_delay < 0:
            raise ValueError(f"min_delay must be non-negative, got {new_delay}")
        self.emit("MinDelayChange", old_duration=self.storage.min_delay, new_duration=new_delay)
        self.storage.min_delay = new_delay

    @external
    def receive(self) -> None:
        """Приём native currency (value для исполняемых вызовов)."""

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _check_role(self, role: Role, account: str) -> None:
        if not self.has_role(role, account):
            raise MissingRole(f"Account {account} is missing {role.value}", role=role.value, account=account)

    def _grant(self, role: Role, account: str) -> None:
        account = normalize_address(account)
        key = (role.value, account)
        if self.storage.roles.get(key):
            return
        self.storage.roles[key] = True
        sender = self.chain.msg.sender if self.chain.in_transaction else ZERO_ADDRESS
        self.emit("RoleGranted", role=role.value, account=account, sender=sender)
        logger.info("Role %s granted to %s", role.value, account)

    def _revoke(self, role: Role, account: str) -> None:
        account = normalize_address(account)
        key = (role.value, account)
        if not self.storage.roles.get(key):
            return
        self.storage.roles[key] = False
        sender = self.chain.msg.sender if self.chain.in_transaction else ZERO_ADDRESS
        self.emit("RoleRevoked", role=role.value, account=account, sender=sender)
        logger.info("Role %s revoked from %s", role.value, account)
