"""
Chain — среда исполнения контрактов

Хост, которого нет в Python: блоки и время, балансы native currency,
nonce аккаунтов, развёрнутые контракты, event log и стек вызовов
(msg.sender / msg.value).

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Исполнение сериализовано: одновременно активна максимум одна транзакция
2. Транзакция атомарна: любое исключение откатывает storage всех
   контрактов, балансы и event log, затем пробрасывается вызывающему
3. Время и блоки — guard-условия на момент вызова, а не таймеры
4. Каждая транзакция майнит новый блок (как automine в Hardhat)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from src.core.config import ProtocolSettings, get_settings
from src.core.contracts import validate_event_record
from src.core.domain.events import Event
from src.core.domain.units import validate_wei
from src.core.errors import (
    InsufficientBalance,
    NoActiveCall,
    UnknownContract,
    UnknownFunction,
    ValueTransferFailed,
)
from src.core.host.abi import (
    address_from_seed,
    contract_address,
    decode_function_call,
    normalize_address,
    sha3_hex,
)
from src.core.host.contract import Contract, is_external
from src.core.host.entropy import BlockEntropy, EntropySource

logger = logging.getLogger(__name__)

# Timestamp genesis блока (2023-11-14)
GENESIS_TIMESTAMP = 1_700_000_000


@dataclass(frozen=True)
class CallFrame:
    """Контекст вызова: msg.sender, адрес контракта, msg.value."""

    sender: str
    to: str
    value: int


@dataclass(frozen=True)
class Receipt:
    """Результат успешной транзакции."""

    sender: str
    to: str
    function: str
    block_number: int
    timestamp: int
    return_value: Any
    events: tuple[Event, ...]

    def events_named(self, name: str) -> list[Event]:
        return [e for e in self.events if e.name == name]


@dataclass(frozen=True)
class _WorldState:
    balances: dict[str, int]
    nonces: dict[str, int]
    contracts: dict[str, Contract]
    contract_states: dict[str, Any]
    event_count: int
    block_number: int
    timestamp: int
    block_hash: str
    parent_hash: str


class Chain:
    """
    Локальная цепочка с атомарными транзакциями.

    Args:
        settings: параметры протокола (block_time_seconds)
        entropy: источник псевдослучайности для контрактов
        genesis_timestamp: timestamp блока 0
    """

    def __init__(
        self,
        settings: Optional[ProtocolSettings] = None,
        entropy: Optional[EntropySource] = None,
        genesis_timestamp: int = GENESIS_TIMESTAMP,
    ):
        self.settings = settings or get_settings()
        self.entropy: EntropySource = entropy or BlockEntropy()

        self.block_number = 0
        self.timestamp = genesis_timestamp
        self.parent_hash = "0x" + "0" * 64
        self.block_hash = sha3_hex(f"genesis:{genesis_timestamp}".encode("utf-8"))

        self._balances: dict[str, int] = {}
        self._nonces: dict[str, int] = {}
        self._contracts: dict[str, Contract] = {}
        self._events: list[Event] = []
        self._frames: list[CallFrame] = []

        self._snapshots: dict[int, _WorldState] = {}
        self._next_snapshot_id = 1

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def create_account(self, label: str, balance: int = 0) -> str:
        """Детерминированный EOA-адрес по метке с начальным балансом."""
        address = address_from_seed(f"account:{label}")
        self.set_balance(address, balance)
        return address

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def set_balance(self, address: str, amount: int) -> None:
        """Прямая установка баланса (аналог hardhat_setBalance)."""
        validate_wei(amount)
        self._balances[normalize_address(address)] = amount

    def nonce_of(self, address: str) -> int:
        return self._nonces.get(normalize_address(address), 0)

    def compute_contract_address(self, deployer: str, nonce: Optional[int] = None) -> str:
        """Адрес будущего контракта (по умолчанию для текущего nonce)."""
        deployer = normalize_address(deployer)
        return contract_address(deployer, self.nonce_of(deployer) if nonce is None else nonce)

    def is_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    def get_contract(self, address: str) -> Contract:
        contract = self._contracts.get(normalize_address(address))
        if contract is None:
            raise UnknownContract(f"No contract deployed at {address}", address=address)
        return contract

    # =========================================================================
    # BLOCKS & TIME
    # =========================================================================

    def mine(self, blocks: int = 1) -> None:
        """Майнинг пустых блоков (аналог evm.advanceBlocks)."""
        if blocks < 0:
            raise ValueError(f"blocks must be non-negative, got {blocks}")
        for _ in range(blocks):
            self.parent_hash = self.block_hash
            self.block_number += 1
            self.timestamp += self.settings.block_time_seconds
            self.block_hash = sha3_hex(
                f"{self.parent_hash}:{self.block_number}:{self.timestamp}".encode("utf-8")
            )

    def advance_time(self, seconds: int) -> None:
        """Сдвиг времени и майнинг блока (аналог evm.advanceTimeAndBlock)."""
        if seconds < 0:
            raise ValueError(f"seconds must be non-negative, got {seconds}")
        self.timestamp += seconds
        self.mine()

    # =========================================================================
    # CALL CONTEXT
    # =========================================================================

    @property
    def msg(self) -> CallFrame:
        if not self._frames:
            raise NoActiveCall("msg is only available inside a call")
        return self._frames[-1]

    @property
    def in_transaction(self) -> bool:
        return bool(self._frames)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def deploy(self, deployer: str, factory: Callable[["Chain", str], Contract]) -> Contract:
        """
        Развёртывание контракта.

        Конструктор (factory) исполняется как транзакция от deployer:
        msg.sender == deployer, адрес = f(deployer, nonce).
        """
        self._ensure_idle()
        deployer = normalize_address(deployer)
        nonce = self.nonce_of(deployer)
        address = contract_address(deployer, nonce)

        self.mine()
        self._nonces[deployer] = nonce + 1
        state = self._capture()

        self._frames.append(CallFrame(deployer, address, 0))
        try:
            contract = factory(self, address)
            self._contracts[address] = contract
        except Exception:
            self._restore(state, keep_block=True)
            logger.info("Deployment from %s reverted", deployer)
            raise
        finally:
            self._frames.pop()

        logger.info("Deployed %s at %s", type(contract).__name__, address)
        return contract

    def transact(self, sender: str, method: Callable[..., Any], *args: Any, value: int = 0, **kwargs: Any) -> Receipt:
        """
        Top-level транзакция: всё или ничего.

        Args:
            sender: EOA-адрес отправителя
            method: bound external-метод контракта
            value: msg.value в wei

        Returns:
            Receipt с return value и событиями транзакции

        Raises:
            ContractRevert (или любое исключение метода) после полного отката
        """
        self._ensure_idle()
        sender = normalize_address(sender)
        target = self._resolve_target(method)

        self.mine()
        self._nonces[sender] = self._nonces.get(sender, 0) + 1
        state = self._capture()
        first_event = len(self._events)

        try:
            result = self._invoke(sender, target, method, args, kwargs, value)
        except Exception as e:
            self._restore(state, keep_block=True)
            logger.info(
                "Transaction %s.%s from %s reverted: %s",
                type(target).__name__, method.__name__, sender, e,
            )
            raise

        receipt = Receipt(
            sender=sender,
            to=target.address,
            function=method.__name__,
            block_number=self.block_number,
            timestamp=self.timestamp,
            return_value=result,
            events=tuple(self._events[first_event:]),
        )
        logger.debug(
            "Transaction %s.%s from %s mined in block %d",
            type(target).__name__, method.__name__, sender, self.block_number,
        )
        return receipt

    def call(self, sender: str, method: Callable[..., Any], *args: Any, value: int = 0, **kwargs: Any) -> Any:
        """Вложенный вызов из контракта (msg.sender = вызывающий контракт)."""
        if not self._frames:
            raise NoActiveCall("Nested calls require an active transaction")
        target = self._resolve_target(method)
        return self._invoke(normalize_address(sender), target, method, args, kwargs, value)

    def call_encoded(self, sender: str, target_address: str, value: int, payload: bytes) -> Any:
        """Вызов по закодированному payload (исполнение операций timelock)."""
        if not self._frames:
            raise NoActiveCall("Nested calls require an active transaction")
        function, args = decode_function_call(payload)
        target = self.get_contract(target_address)
        method = getattr(target, function, None)
        if method is None or not callable(method) or not is_external(method):
            raise UnknownFunction(
                f"{type(target).__name__} has no external function {function!r}",
                target=target.address,
                function=function,
            )
        return self._invoke(normalize_address(sender), target, method, tuple(args), {}, value)

    def send_value(self, sender: str, to: str, amount: int) -> None:
        """
        Перевод native currency.

        Если получатель — контракт, исполняется его receive(); контракт без
        receive() или с ошибкой в нём отклоняет перевод (ValueTransferFailed).
        """
        validate_wei(amount)
        sender = normalize_address(sender)
        to = normalize_address(to)
        self._move_value(sender, to, amount)

        recipient = self._contracts.get(to)
        if recipient is None:
            return

        receive = getattr(recipient, "receive", None)
        if receive is None or not is_external(receive):
            raise ValueTransferFailed("Recipient contract cannot receive value", to=to, amount=amount)

        self._frames.append(CallFrame(sender, to, amount))
        try:
            receive()
        except Exception as e:
            raise ValueTransferFailed(f"Recipient rejected transfer: {e}", to=to, amount=amount) from e
        finally:
            self._frames.pop()

    # =========================================================================
    # EVENTS
    # =========================================================================

    def emit(self, address: str, name: str, **args: Any) -> Event:
        event = Event(
            name=name,
            address=address,
            args=args,
            block_number=self.block_number,
            log_index=len(self._events),
        )
        validate_event_record(event.to_record())
        self._events.append(event)
        return event

    def get_events(self, name: Optional[str] = None, address: Optional[str] = None) -> list[Event]:
        return [
            e for e in self._events
            if (name is None or e.name == name) and (address is None or e.address == address)
        ]

    # =========================================================================
    # SNAPSHOTS (evm_snapshot / evm_revert)
    # =========================================================================

    def snapshot(self) -> int:
        self._ensure_idle()
        snapshot_id = self._next_snapshot_id
        self._next_snapshot_id += 1
        self._snapshots[snapshot_id] = self._capture()
        return snapshot_id

    def revert(self, snapshot_id: int) -> None:
        """Откат к снапшоту; снапшот и все более поздние становятся недействительны."""
        self._ensure_idle()
        state = self._snapshots.get(snapshot_id)
        if state is None:
            raise ValueError(f"Unknown snapshot id: {snapshot_id}")
        self._restore(state, keep_block=False)
        for sid in [s for s in self._snapshots if s >= snapshot_id]:
            del self._snapshots[sid]

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _ensure_idle(self) -> None:
        if self._frames:
            raise RuntimeError("A transaction is already in progress; use Chain.call for nested calls")

    def _resolve_target(self, method: Callable[..., Any]) -> Contract:
        owner = getattr(method, "__self__", None)
        address = getattr(owner, "address", None)
        if address is None:
            raise UnknownFunction(f"{method!r} is not a bound contract method")
        return self.get_contract(address)

    def _invoke(
        self,
        sender: str,
        target: Contract,
        method: Callable[..., Any],
        args: tuple,
        kwargs: dict,
        value: int,
    ) -> Any:
        if not is_external(method):
            raise UnknownFunction(
                f"{method.__name__!r} is not an external function",
                target=target.address,
                function=method.__name__,
            )
        validate_wei(value)

        self._frames.append(CallFrame(sender, target.address, value))
        try:
            if value:
                self._move_value(sender, target.address, value)
            return method(*args, **kwargs)
        finally:
            self._frames.pop()

    def _move_value(self, sender: str, to: str, amount: int) -> None:
        if amount == 0:
            return
        available = self._balances.get(sender, 0)
        if available < amount:
            raise InsufficientBalance(
                f"Balance {available} wei < {amount} wei",
                account=sender,
                required=amount,
            )
        self._balances[sender] = available - amount
        self._balances[to] = self._balances.get(to, 0) + amount

    def _capture(self) -> _WorldState:
        return _WorldState(
            balances=dict(self._balances),
            nonces=dict(self._nonces),
            contracts=dict(self._contracts),
            contract_states={a: c.capture_state() for a, c in self._contracts.items()},
            event_count=len(self._events),
            block_number=self.block_number,
            timestamp=self.timestamp,
            block_hash=self.block_hash,
            parent_hash=self.parent_hash,
        )

    def _restore(self, state: _WorldState, keep_block: bool) -> None:
        self._balances = dict(state.balances)
        self._nonces = dict(state.nonces)
        self._contracts = dict(state.contracts)
        for address, contract in self._contracts.items():
            contract.restore_state(state.contract_states[address])
        del self._events[state.event_count:]

        if not keep_block:
            self.block_number = state.block_number
            self.timestamp = state.timestamp
            self.block_hash = state.block_hash
            self.parent_hash = state.parent_hash
