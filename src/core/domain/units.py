"""
Units — Централизованный модуль денежных единиц

Все суммы native currency хранятся как целые wei (1 ether = 10**18 wei).
Float для денег ЗАПРЕЩЁН: только int (wei) и Decimal (ether) на границах.

Единственный допустимый способ преобразований между:
- wei (int, хранение и арифметика)
- ether (Decimal, ввод/вывод)
- basis points (доли в 1/10000)
"""

from decimal import Decimal, InvalidOperation
from typing import Final, Union


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

WEI_PER_ETHER: Final[int] = 10**18

# Знаменатель basis points (10000 bps = 100%)
BPS_DENOMINATOR: Final[int] = 10_000

# Знаменатель процентов для quorum
PERCENT_DENOMINATOR: Final[int] = 100

# Начальная цена яйца: 0.01 ether
DEFAULT_EGG_PRICE_WEI: Final[int] = 10**16

# Refund при продаже крокодила: 40% начальной цены (0.004 ether)
DEFAULT_SELL_REFUND_BPS: Final[int] = 4_000


EtherAmount = Union[Decimal, int, str]


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def to_wei(amount_ether: EtherAmount) -> int:
    """
    Конверсия: ether → wei (аналог ethers.utils.parseEther).

    Args:
        amount_ether: Сумма в ether (Decimal, int или строка, например '0.01')

    Returns:
        Сумма в wei

    Raises:
        ValueError: Если сумма отрицательная, не число или дробнее 1 wei
    """
    try:
        value = Decimal(str(amount_ether))
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {amount_ether!r}") from e

    if value < 0:
        raise ValueError(f"Amount cannot be negative: {amount_ether}")

    wei = value.scaleb(18)
    if wei != wei.to_integral_value():
        raise ValueError(f"Amount {amount_ether} has more than 18 decimals")

    return int(wei)


def from_wei(amount_wei: int) -> Decimal:
    """
    Конверсия: wei → ether.

    Args:
        amount_wei: Сумма в wei

    Returns:
        Сумма в ether (точный Decimal)
    """
    validate_wei(amount_wei)
    return Decimal(amount_wei).scaleb(-18)


def format_ether(amount_wei: int) -> str:
    """
    Строковое представление в ether (аналог ethers.utils.formatEther).

    Examples:
        >>> format_ether(4 * 10**15)
        '0.004'
        >>> format_ether(10**18)
        '1.0'
    """
    text = format(from_wei(amount_wei).normalize(), "f")
    if "." not in text:
        text += ".0"
    return text


def bps_of(amount_wei: int, bps: int) -> int:
    """
    Доля суммы в basis points (округление вниз).

    Args:
        amount_wei: Базовая сумма в wei
        bps: Доля в basis points (0..10000)

    Returns:
        floor(amount_wei * bps / 10000)
    """
    validate_wei(amount_wei)
    if not 0 <= bps <= BPS_DENOMINATOR:
        raise ValueError(f"bps must be within [0, {BPS_DENOMINATOR}], got {bps}")
    return amount_wei * bps // BPS_DENOMINATOR


def eggs_for_payment(payment_wei: int, price_wei: int) -> int:
    """Количество яиц за платёж: floor(payment / price)."""
    validate_wei(payment_wei)
    if price_wei <= 0:
        raise ValueError(f"Egg price must be positive, got {price_wei}")
    return payment_wei // price_wei


def quorum_votes(total_supply: int, quorum_percentage: int) -> int:
    """
    Quorum в голосах: floor(total_supply * pct / 100).

    Целочисленное округление вниз: при supply=4 и 4% quorum равен 0.
    """
    if total_supply < 0:
        raise ValueError(f"Total supply cannot be negative: {total_supply}")
    if not 0 <= quorum_percentage <= PERCENT_DENOMINATOR:
        raise ValueError(f"Quorum percentage must be within [0, 100], got {quorum_percentage}")
    return total_supply * quorum_percentage // PERCENT_DENOMINATOR


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_wei(amount_wei: int) -> None:
    """
    Проверка, что сумма — неотрицательное целое число wei.

    Raises:
        ValueError: Если сумма не int или отрицательная
    """
    if isinstance(amount_wei, bool) or not isinstance(amount_wei, int):
        raise ValueError(f"Wei amount must be an int, got {type(amount_wei).__name__}")
    if amount_wei < 0:
        raise ValueError(f"Wei amount cannot be negative: {amount_wei}")
