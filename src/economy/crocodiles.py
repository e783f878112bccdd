"""
CrocodileEconomy — экономика яиц и крокодилов

State machine крокодила:
    absent → created (create) → {laying cycle} → burned (sell)

Правила:
- buy_eggs: payment >= price, mint floor(payment / price) яиц, весь платёж в treasury
- create: сжигает 1 яйцо, id = ++crocodiles_created (ids с 1, строго растут)
- sell: только владелец; сначала burn крокодила, ПОТОМ фиксированный refund
- lay_egg: только владелец; cooldown 600 s; 0..10 яиц из entropy source
- change_price / withdraw: только owner-capability (после setup — timelock)

Checks-effects-interactions: все изменения storage выполняются до
исходящего перевода value, поэтому повторный вход из receive() получателя
видит уже согласованное состояние.

Логика живёт за UpgradeableProxy; storage — append-only dataclass.
"""

import logging
from dataclasses import dataclass, field
from typing import Union

from src.core.domain.crocodile import ZERO_ADDRESS, Crocodile
from src.core.domain.units import bps_of, eggs_for_payment
from src.core.errors import (
    AlreadyInitialized,
    CooldownActive,
    FutureLookup,
    InsufficientFunds,
    InvalidPrice,
    InvalidRecipient,
    NoResource,
    NonexistentCrocodile,
    Unauthorized,
)
from src.core.host.abi import normalize_address
from src.core.host.contract import external
from src.economy.checkpoints import Checkpoints
from src.economy.egg_ledger import EggLedger
from src.economy.proxy import ProxiedLogic, register_implementation, resolve_implementation

logger = logging.getLogger(__name__)


# =============================================================================
# STORAGE (append-only: новые поля только в конец)
# =============================================================================


@dataclass
class CrocodileRecord:
    id: int
    owner: str
    created_at: int
    last_laid_at: int = 0


@dataclass
class CrocodileStorage:
    initialized: bool = False
    name: str = ""
    symbol: str = ""
    owner: str = ZERO_ADDRESS
    egg_price: int = 0
    eggs: str = ZERO_ADDRESS
    crocodiles_created: int = 0
    crocodiles: dict[int, CrocodileRecord] = field(default_factory=dict)
    balances: dict[str, int] = field(default_factory=dict)
    total_supply: int = 0
    vote_checkpoints: dict[str, Checkpoints] = field(default_factory=dict)
    supply_checkpoints: Checkpoints = field(default_factory=Checkpoints)
    sell_refund: int = 0
    lay_cooldown_seconds: int = 0
    max_eggs_per_lay: int = 0
    reserve_refunds_on_withdraw: bool = False
    delegates: dict[str, str] = field(default_factory=dict)


@dataclass
class CrocodileStorageV2(CrocodileStorage):
    eggs_laid_total: int = 0


# =============================================================================
# LOGIC V1
# =============================================================================


@register_implementation
class CrocodileEconomy(ProxiedLogic):
    """Логика экономики, ревизия 1.0.0."""

    VERSION = "1.0.0"
    STORAGE_LAYOUT = CrocodileStorage

    NAME = "Crypto Crocodiles"
    SYMBOL = "CROC"

    # -------------------------------------------------------------------------
    # Initialization & upgrades
    # -------------------------------------------------------------------------

    @external
    def initialize(self, egg_address: str) -> None:
        """
        Однократная инициализация storage (вместо конструктора).

        Args:
            egg_address: адрес EggLedger (может быть ещё не развёрнут)

        Raises:
            AlreadyInitialized: при повторном вызове
        """
        s = self.storage
        if s.initialized:
            raise AlreadyInitialized("Contract is already initialized")
        s.initialized = True

        settings = self.chain.settings
        s.name = self.NAME
        s.symbol = self.SYMBOL
        s.owner = self.msg_sender
        s.egg_price = settings.egg_price_wei
        s.eggs = normalize_address(egg_address)
        # Refund фиксируется от начальной цены и не зависит от change_price
        s.sell_refund = bps_of(settings.egg_price_wei, settings.sell_refund_bps)
        s.lay_cooldown_seconds = settings.lay_cooldown_seconds
        s.max_eggs_per_lay = settings.max_eggs_per_lay
        s.reserve_refunds_on_withdraw = settings.reserve_refunds_on_withdraw

        self.emit("OwnershipTransferred", previous_owner=ZERO_ADDRESS, new_owner=s.owner)
        self.emit("Initialized", version=1)

    @external
    def upgrade_to(self, implementation: Union[str, type]) -> None:
        """Смена ревизии логики (только owner)."""
        self._only_owner()
        self.proxy._upgrade_to(resolve_implementation(implementation))

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def name(self) -> str:
        return self.storage.name

    def symbol(self) -> str:
        return self.storage.symbol

    def owner(self) -> str:
        return self.storage.owner

    def egg_price(self) -> int:
        return self.storage.egg_price

    def eggs(self) -> str:
        return self.storage.eggs

    def sell_refund(self) -> int:
        return self.storage.sell_refund

    def crocodiles_created(self) -> int:
        return self.storage.crocodiles_created

    def total_supply(self) -> int:
        return self.storage.total_supply

    def balance_of(self, account: str) -> int:
        return self.storage.balances.get(normalize_address(account), 0)

    def owner_of(self, crocodile_id: int) -> str:
        return self._record(crocodile_id).owner

    def get_crocodile(self, crocodile_id: int) -> Crocodile:
        record = self._record(crocodile_id)
        return Crocodile(
            id=record.id,
            owner=record.owner,
            created_at=record.created_at,
            last_laid_at=record.last_laid_at,
        )

    def get_contract_balance(self) -> int:
        return self.chain.balance_of(self.address)

    def withdrawable_balance(self) -> int:
        """
        Сумма, которую выведет withdraw().

        При reserve_refunds_on_withdraw в treasury остаётся резерв
        total_supply * sell_refund под будущие продажи.
        """
        s = self.storage
        balance = self.get_contract_balance()
        if not s.reserve_refunds_on_withdraw:
            return balance
        return max(balance - s.total_supply * s.sell_refund, 0)

    # Voting power (snapshot source for governance)

    def delegates(self, account: str) -> str:
        """Кому передан голос аккаунта (по умолчанию самому себе)."""
        account = normalize_address(account)
        return self.storage.delegates.get(account, account)

    def get_votes(self, account: str) -> int:
        checkpoints = self.storage.vote_checkpoints.get(normalize_address(account))
        return checkpoints.latest() if checkpoints else 0

    def get_past_votes(self, account: str, block_number: int) -> int:
        """Голоса, делегированные аккаунту, на конец блока block_number."""
        self._require_past(block_number)
        checkpoints = self.storage.vote_checkpoints.get(normalize_address(account))
        return checkpoints.upper_lookup(block_number) if checkpoints else 0

    def get_past_total_supply(self, block_number: int) -> int:
        self._require_past(block_number)
        return self.storage.supply_checkpoints.upper_lookup(block_number)

    # -------------------------------------------------------------------------
    # Game
    # -------------------------------------------------------------------------

    @external
    def buy_eggs(self) -> int:
        """
        Покупка яиц за msg.value.

        Returns:
            Количество купленных яиц

        Raises:
            InsufficientFunds: если msg.value < egg_price
        """
        buyer = self.msg_sender
        payment = self.msg_value
        price = self.storage.egg_price
        if payment < price:
            raise InsufficientFunds(
                f"Payment {payment} wei is below egg price {price} wei",
                payment=payment,
                price=price,
            )

        count = eggs_for_payment(payment, price)
        self.chain.call(self.address, self._egg_ledger().mint, buyer, count)

        self.emit("EggsBought", buyer=buyer, count=count)
        logger.info("%s bought %d eggs for %d wei", buyer, count, payment)
        return count

    @external
    def create(self) -> int:
        """
        Создание крокодила из одного яйца.

        Returns:
            id нового крокодила

        Raises:
            NoResource: если у вызывающего нет яиц
        """
        creator = self.msg_sender
        ledger = self._egg_ledger()
        if ledger.balance_of(creator) < 1:
            raise NoResource("Caller has no eggs", account=creator)

        self.chain.call(self.address, ledger.burn, creator, 1)

        s = self.storage
        s.crocodiles_created += 1
        crocodile_id = s.crocodiles_created
        s.crocodiles[crocodile_id] = CrocodileRecord(
            id=crocodile_id,
            owner=creator,
            created_at=self.chain.timestamp,
        )
        self._add_crocodile(creator, crocodile_id)

        self.emit("CrocodileCreated", id=crocodile_id)
        logger.info("Crocodile %d created by %s", crocodile_id, creator)
        return crocodile_id

    @external
    def sell(self, crocodile_id: int) -> int:
        """
        Продажа крокодила: burn, затем фиксированный refund.

        Returns:
            Сумма refund в wei
        """
        seller = self.msg_sender
        self._require_crocodile_owner(crocodile_id)

        # Effects
        self._remove_crocodile(crocodile_id)
        refund = self.storage.sell_refund
        self.emit("CrocodileSold", id=crocodile_id, refund=refund)

        # Interaction
        self.chain.send_value(self.address, seller, refund)
        logger.info("Crocodile %d sold by %s for %d wei", crocodile_id, seller, refund)
        return refund

    @external
    def lay_egg(self, crocodile_id: int) -> int:
        """
        Кладка яиц: 0..max_eggs_per_lay яиц владельцу.

        Returns:
            Количество отложенных яиц

        Raises:
            Unauthorized: вызывающий не владелец
            CooldownActive: с прошлой кладки прошло меньше cooldown
        """
        owner = self.msg_sender
        record = self._require_crocodile_owner(crocodile_id)
        s = self.storage

        now = self.chain.timestamp
        next_laying_at = self.get_crocodile(crocodile_id).next_laying_at(s.lay_cooldown_seconds)
        if now < next_laying_at:
            raise CooldownActive(
                f"Crocodile {crocodile_id} can lay again at {next_laying_at}",
                crocodile_id=crocodile_id,
                next_laying_at=next_laying_at,
            )

        word = self.chain.entropy.random_word(self.chain, f"lay:{crocodile_id}")
        count = word % (s.max_eggs_per_lay + 1)

        record.last_laid_at = now
        self._after_lay(crocodile_id, count)

        if count:
            self.chain.call(self.address, self._egg_ledger().mint, owner, count)
        self.emit("EggsLaid", id=crocodile_id, count=count)
        return count

    @external
    def transfer(self, to: str, crocodile_id: int) -> None:
        """Передача крокодила (cooldown кладки переходит вместе с ним)."""
        sender = self.msg_sender
        record = self._require_crocodile_owner(crocodile_id)
        to = normalize_address(to)
        if to == ZERO_ADDRESS:
            raise InvalidRecipient("Cannot transfer a crocodile to the zero address")

        self._decrement_balance(sender)
        self._increment_balance(to)
        record.owner = to
        self.emit("Transfer", **{"from": sender, "to": to, "id": crocodile_id})

    # -------------------------------------------------------------------------
    # Owner-capability (governance)
    # -------------------------------------------------------------------------

    @external
    def change_price(self, new_price: int) -> None:
        self._only_owner()
        if new_price <= 0:
            raise InvalidPrice(f"Egg price must be positive, got {new_price}", price=new_price)

        s = self.storage
        old_price = s.egg_price
        s.egg_price = new_price
        self.emit("PriceChanged", old_price=old_price, new_price=new_price)
        logger.info("Egg price changed %d -> %d wei", old_price, new_price)

    @external
    def withdraw(self, to: str) -> int:
        """
        Вывод treasury на адрес `to`.

        Ошибка получателя откатывает весь вызов (частичного вывода нет).
        """
        self._only_owner()
        to = normalize_address(to)
        amount = self.withdrawable_balance()

        self.emit("Withdrawal", to=to, amount=amount)
        self.chain.send_value(self.address, to, amount)
        logger.info("Treasury withdrawal of %d wei to %s", amount, to)
        return amount

    @external
    def transfer_ownership(self, new_owner: str) -> None:
        self._only_owner()
        new_owner = normalize_address(new_owner)
        if new_owner == ZERO_ADDRESS:
            raise InvalidRecipient("New owner is the zero address")

        s = self.storage
        previous = s.owner
        s.owner = new_owner
        self.emit("OwnershipTransferred", previous_owner=previous, new_owner=new_owner)
        logger.info("Ownership transferred %s -> %s", previous, new_owner)

    @external
    def delegate(self, delegatee: str) -> None:
        """
        Передать голоса всех своих крокодилов delegatee.

        Делегирование самому себе возвращает поведение по умолчанию,
        делегирование нулевому адресу снимает голоса с учёта.
        """
        delegator = self.msg_sender
        delegatee = normalize_address(delegatee)
        previous = self.delegates(delegator)

        if delegatee == delegator:
            self.storage.delegates.pop(delegator, None)
        else:
            self.storage.delegates[delegator] = delegatee

        self.emit(
            "DelegateChanged",
            delegator=delegator,
            from_delegate=previous,
            to_delegate=delegatee,
        )
        self._move_votes(previous, delegatee, self.balance_of(delegator))
        logger.info("Votes of %s delegated %s -> %s", delegator, previous, delegatee)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _egg_ledger(self) -> EggLedger:
        return self.chain.get_contract(self.storage.eggs)

    def _only_owner(self) -> None:
        if self.msg_sender != self.storage.owner:
            raise Unauthorized("Caller is not the owner", caller=self.msg_sender)

    def _record(self, crocodile_id: int) -> CrocodileRecord:
        record = self.storage.crocodiles.get(crocodile_id)
        if record is None:
            raise NonexistentCrocodile(
                f"Crocodile {crocodile_id} does not exist", crocodile_id=crocodile_id
            )
        return record

    def _require_crocodile_owner(self, crocodile_id: int) -> CrocodileRecord:
        record = self.storage.crocodiles.get(crocodile_id)
        if record is None or record.owner != self.msg_sender:
            raise Unauthorized(
                f"Caller does not own crocodile {crocodile_id}",
                caller=self.msg_sender,
                crocodile_id=crocodile_id,
            )
        return record

    def _require_past(self, block_number: int) -> None:
        if block_number >= self.chain.block_number:
            raise FutureLookup(
                f"Block {block_number} is not yet finalized (current {self.chain.block_number})",
                block_number=block_number,
            )

    def _add_crocodile(self, to: str, crocodile_id: int) -> None:
        self._increment_balance(to)
        s = self.storage
        s.total_supply += 1
        s.supply_checkpoints.push(self.chain.block_number, s.total_supply)
        self.emit("Transfer", **{"from": ZERO_ADDRESS, "to": to, "id": crocodile_id})

    def _remove_crocodile(self, crocodile_id: int) -> None:
        s = self.storage
        record = s.crocodiles.pop(crocodile_id)
        self._decrement_balance(record.owner)
        s.total_supply -= 1
        s.supply_checkpoints.push(self.chain.block_number, s.total_supply)
        self.emit("Transfer", **{"from": record.owner, "to": ZERO_ADDRESS, "id": crocodile_id})

    def _increment_balance(self, account: str) -> None:
        s = self.storage
        s.balances[account] = s.balances.get(account, 0) + 1
        self._move_votes(ZERO_ADDRESS, self.delegates(account), 1)

    def _decrement_balance(self, account: str) -> None:
        s = self.storage
        s.balances[account] -= 1
        self._move_votes(self.delegates(account), ZERO_ADDRESS, 1)

    def _move_votes(self, source: str, destination: str, amount: int) -> None:
        """Перенос голосов между делегатами; нулевой адрес голосов не хранит."""
        if source == destination or amount == 0:
            return
        if source != ZERO_ADDRESS:
            self._push_votes(source, -amount)
        if destination != ZERO_ADDRESS:
            self._push_votes(destination, amount)

    def _push_votes(self, delegate: str, delta: int) -> None:
        checkpoints = self.storage.vote_checkpoints.setdefault(delegate, Checkpoints())
        previous = checkpoints.latest()
        checkpoints.push(self.chain.block_number, previous + delta)
        self.emit(
            "DelegateVotesChanged",
            delegate=delegate,
            previous_votes=previous,
            new_votes=previous + delta,
        )

    def _after_lay(self, crocodile_id: int, count: int) -> None:
        """Hook для следующих ревизий."""


# =============================================================================
# LOGIC V2
# =============================================================================


@register_implementation
class CrocodileEconomyV2(CrocodileEconomy):
    """Ревизия 2.0.0: счётчик всех отложенных яиц (новое поле storage)."""

    VERSION = "2.0.0"
    STORAGE_LAYOUT = CrocodileStorageV2

    def test_upgrade(self) -> str:
        """Контрольный view ревизии 2 (testUpgrade): отвечает только после upgrade_to."""
        return "version 2 works"

    def eggs_laid_total(self) -> int:
        return self.storage.eggs_laid_total

    def _after_lay(self, crocodile_id: int, count: int) -> None:
        self.storage.eggs_laid_total += count
