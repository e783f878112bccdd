"""
EggLedger — fungible ledger яиц

Mint и burn разрешены только контракту экономики, адрес которого
фиксируется в конструкторе. Балансы — неотрицательные int, отрицательный
баланс непредставим (проверка до изменения).
"""

import logging
from dataclasses import dataclass, field

from src.core.domain.crocodile import ZERO_ADDRESS
from src.core.errors import InsufficientBalance, MintRestricted, Unauthorized
from src.core.host.abi import normalize_address
from src.core.host.contract import Contract, external

logger = logging.getLogger(__name__)


@dataclass
class EggStorage:
    crocodiles: str = ZERO_ADDRESS
    total_supply: int = 0
    balances: dict[str, int] = field(default_factory=dict)


class EggLedger(Contract):
    """Ledger яиц (ERC20-подобный, decimals = 0)."""

    NAME = "Egg"
    SYMBOL = "EGG"
    DECIMALS = 0

    def __init__(self, chain, address: str, crocodiles: str):
        super().__init__(chain, address)
        self.storage = EggStorage(crocodiles=normalize_address(crocodiles))

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def name(self) -> str:
        return self.NAME

    def symbol(self) -> str:
        return self.SYMBOL

    def decimals(self) -> int:
        return self.DECIMALS

    def crocodiles(self) -> str:
        """Адрес экономики — единственного минтера."""
        return self.storage.crocodiles

    def total_supply(self) -> int:
        return self.storage.total_supply

    def balance_of(self, account: str) -> int:
        return self.storage.balances.get(normalize_address(account), 0)

    # -------------------------------------------------------------------------
    # External
    # -------------------------------------------------------------------------

    @external
    def mint(self, to: str, amount: int) -> None:
        if self.msg_sender != self.storage.crocodiles:
            raise MintRestricted("Only the crocodiles contract can mint eggs", caller=self.msg_sender)
        if amount < 0:
            raise ValueError(f"Amount cannot be negative: {amount}")
        to = normalize_address(to)
        self.storage.balances[to] = self.balance_of(to) + amount
        self.storage.total_supply += amount
        self.emit("Transfer", **{"from": ZERO_ADDRESS, "to": to, "value": amount})
        logger.debug("Minted %d eggs to %s", amount, to)

    @external
    def burn(self, account: str, amount: int) -> None:
        if self.msg_sender != self.storage.crocodiles:
            raise Unauthorized("Only the crocodiles contract can burn eggs", caller=self.msg_sender)
        account = normalize_address(account)
        self._debit(account, amount)
        self.storage.total_supply -= amount
        self.emit("Transfer", **{"from": account, "to": ZERO_ADDRESS, "value": amount})

    @external
    def transfer(self, to: str, amount: int) -> bool:
        sender = self.msg_sender
        to = normalize_address(to)
        self._debit(sender, amount)
        self.storage.balances[to] = self.balance_of(to) + amount
        self.emit("Transfer", **{"from": sender, "to": to, "value": amount})
        return True

    def _debit(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Amount cannot be negative: {amount}")
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalance(
                f"Egg balance {balance} < {amount}", account=account, required=amount
            )
        self.storage.balances[account] = balance - amount
