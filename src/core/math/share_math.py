"""
Share Math — конверсия assets <-> shares и расчёт performance fee

Единственный допустимый способ преобразований между:
- assets (целые единицы base asset)
- shares (целые единицы доли владения)
- profit -> fee

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Только целочисленная арифметика (int), никаких float
2. Округление всегда в пользу протокола (floor): меньше shares при депозите,
   меньше assets при выводе, меньше fee при harvest
3. Bootstrap 1:1 — единственный путь, где курс не выводится из отношения
   total_supply / total_value
4. assets_for_shares(shares_for_deposit(x)) <= x

ФОРМУЛЫ:
    shares = assets_in                                  если total_supply == 0
    shares = floor(assets_in * total_supply / total_value)   иначе
    assets = floor(shares_in * total_value / total_supply)
    fee    = floor(profit * FEE_RATE_BPS / FEE_RATE_DENOMINATOR)
"""

from typing import Final

from src.core.errors import InvalidAmount, NoSharesOutstanding, ZeroManagedValue

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Performance fee: 1000 / 10000 = 10% от прибыли.
# Фиксируется при деплое, в runtime не изменяется.
FEE_RATE_BPS: Final[int] = 1000
FEE_RATE_DENOMINATOR: Final[int] = 10_000

# Точность price-per-share (ray, 27 знаков)
RAY: Final[int] = 10**27


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_amount(value: int, name: str) -> None:
    """
    Проверка, что сумма — неотрицательный int.

    bool отклоняется явно (bool — подкласс int в Python).

    Raises:
        InvalidAmount: Если value не int или отрицательное
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an int, got {type(value).__name__}: {value!r}")

    if value < 0:
        raise InvalidAmount(f"{name} must be non-negative, got {value}")


def validate_positive_amount(value: int, name: str) -> None:
    """
    Проверка, что сумма — положительный int.

    Raises:
        InvalidAmount: Если value не int или value <= 0
    """
    validate_amount(value, name)

    if value == 0:
        raise InvalidAmount(f"{name} must be positive, got 0")


# =============================================================================
# КОНВЕРСИЯ
# =============================================================================


def shares_for_deposit(assets_in: int, total_supply: int, total_value: int) -> int:
    """
    Количество shares, выпускаемых за депозит assets_in.

    Курс берётся из снапшота ДО поступления новых средств, иначе
    депозитор размывал бы сам себя.

    Args:
        assets_in: Сумма депозита (base asset units, > 0)
        total_supply: Текущий total supply shares
        total_value: Текущий total managed value (до депозита)

    Returns:
        Количество shares (floor)

    Raises:
        InvalidAmount: Если assets_in == 0 или аргументы невалидны
        ZeroManagedValue: Если total_supply > 0, а total_value == 0

    Examples:
        >>> shares_for_deposit(100, 0, 0)
        100
        >>> shares_for_deposit(100, 1000, 1100)
        90
    """
    validate_positive_amount(assets_in, "assets_in")
    validate_amount(total_supply, "total_supply")
    validate_amount(total_value, "total_value")

    if total_supply == 0:
        # Bootstrap: первый депозитор задаёт курс 1:1
        return assets_in

    if total_value == 0:
        raise ZeroManagedValue(
            f"Cannot price deposit: total_supply={total_supply} but total_value=0"
        )

    return assets_in * total_supply // total_value


def assets_for_shares(shares_in: int, total_supply: int, total_value: int) -> int:
    """
    Количество assets, выплачиваемых за погашение shares_in.

    Args:
        shares_in: Количество погашаемых shares
        total_supply: Текущий total supply shares (до burn)
        total_value: Текущий total managed value

    Returns:
        Сумма в base asset units (floor)

    Raises:
        NoSharesOutstanding: Если total_supply == 0
        InvalidAmount: Если аргументы невалидны

    Examples:
        >>> assets_for_shares(90, 1090, 1200)
        99
    """
    validate_amount(shares_in, "shares_in")
    validate_amount(total_supply, "total_supply")
    validate_amount(total_value, "total_value")

    if total_supply == 0:
        raise NoSharesOutstanding("Cannot convert shares to assets: total_supply is 0")

    return shares_in * total_value // total_supply


def price_per_share_ray(total_supply: int, total_value: int) -> int:
    """
    Стоимость одной share в base asset units, масштаб RAY.

    При total_supply == 0 возвращает RAY (bootstrap курс 1:1).
    """
    validate_amount(total_supply, "total_supply")
    validate_amount(total_value, "total_value")

    if total_supply == 0:
        return RAY

    return total_value * RAY // total_supply


# =============================================================================
# PERFORMANCE FEE
# =============================================================================


def performance_fee(profit: int) -> int:
    """
    Performance fee с прибыли: floor(profit * 1000 / 10000).

    Examples:
        >>> performance_fee(100)
        10
        >>> performance_fee(9)
        0
    """
    validate_amount(profit, "profit")
    return profit * FEE_RATE_BPS // FEE_RATE_DENOMINATOR
