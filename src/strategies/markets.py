"""
Markets — in-memory симуляции внешних lending-рынков

Реальные интеграции вне ядра; здесь смоделирована только их семантика
вызовов, достаточная для адаптеров StrategyPort:

RebasingLendingPool (Aave-подобный):
    balance = scaled_balance * liquidity_index / RAY
    Доходность поднимает liquidity_index, баланс receipt-токена растёт сам.
    Ошибки — исключения (revert).

ExchangeRateMarket (Compound-подобный):
    underlying = units * exchange_rate_mantissa / 1e18
    Число receipt-units фиксировано, растёт exchange rate.
    Ошибки мутирующих вызовов — ненулевые коды MarketErrorCode.
    Накопленная доходность попадает в exchange rate только после
    accrue_interest().

Общее:
    accrue_yield(amount) — доходность, фондируемая эмиссией base asset в рынок
    borrow(borrower, amount) — вывод ликвидности заёмщиком (неликвидность)
    checkpoint()/restore() — для транзакционного отката vault
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Final, Optional

from src.core.asset import InMemoryAsset
from src.core.math.share_math import RAY, validate_amount

# Масштаб exchange rate mantissa (Compound)
EXP_SCALE: Final[int] = 10**18

# Начальный exchange rate ExchangeRateMarket: 1 unit = 0.2 underlying
INITIAL_EXCHANGE_RATE_MANTISSA: Final[int] = 2 * 10**17


# =============================================================================
# ОШИБКИ
# =============================================================================


class MarketError(Exception):
    """Revert внешнего рынка."""
    pass


class InsufficientLiquidity(MarketError):
    """В рынке недостаточно свободной ликвидности для вывода."""
    pass


class MarketErrorCode(IntEnum):
    """Коды ошибок ExchangeRateMarket (нумерация Compound V2)."""

    NO_ERROR = 0
    UNAUTHORIZED = 1
    COMPTROLLER_REJECTION = 3
    MATH_ERROR = 9
    MARKET_NOT_FRESH = 10
    TOKEN_INSUFFICIENT_ALLOWANCE = 12
    TOKEN_INSUFFICIENT_BALANCE = 13
    TOKEN_INSUFFICIENT_CASH = 14
    TOKEN_TRANSFER_IN_FAILED = 15
    TOKEN_TRANSFER_OUT_FAILED = 16


# Ray-арифметика pool округляет в его пользу: сумма балансов поставщиков
# не превышает средств pool.


def _ray_div_floor(a: int, b: int) -> int:
    return a * RAY // b


def _ray_div_ceil(a: int, b: int) -> int:
    return -(-a * RAY // b)


def _ray_mul_floor(a: int, b: int) -> int:
    return a * b // RAY


# =============================================================================
# VARIANT A: REBASING LENDING POOL
# =============================================================================


@dataclass(frozen=True)
class PoolCheckpoint:
    liquidity_index: int
    scaled_balances: dict[str, int]
    borrowed: dict[str, int]


class RebasingLendingPool:
    """Lending pool с непрерывно начисляемым receipt-токеном."""

    def __init__(self, asset: InMemoryAsset, address: str = "rebasing-pool"):
        self.asset = asset
        self.address = address
        self.liquidity_index: int = RAY
        self._scaled: dict[str, int] = {}
        self._borrowed: dict[str, int] = {}

    def balance_of(self, account: str) -> int:
        """Баланс receipt-токена = underlying 1:1."""
        return _ray_mul_floor(self._scaled.get(account, 0), self.liquidity_index)

    def total_scaled(self) -> int:
        return sum(self._scaled.values())

    def total_supplied(self) -> int:
        return _ray_mul_floor(self.total_scaled(), self.liquidity_index)

    def available_liquidity(self) -> int:
        return self.asset.balance_of(self.address)

    def supply(self, account: str, amount: int) -> None:
        """
        Размещение amount (pool забирает через transfer_from).

        Raises:
            MarketError: Если перевод отклонён или amount == 0
        """
        validate_amount(amount, "amount")
        if amount == 0:
            raise MarketError("supply amount is zero")

        if not self.asset.transfer_from(self.address, account, self.address, amount):
            raise MarketError(f"supply transfer from {account} failed")

        self._scaled[account] = self._scaled.get(account, 0) + _ray_div_floor(amount, self.liquidity_index)

    def withdraw(self, account: str, amount: int, to: str) -> int:
        """
        Вывод amount underlying на адрес to.

        Raises:
            MarketError: Если amount превышает баланс account
            InsufficientLiquidity: Если свободной ликвидности меньше amount
        """
        validate_amount(amount, "amount")
        balance = self.balance_of(account)

        if amount > balance:
            raise MarketError(f"withdraw {amount} exceeds balance {balance} of {account}")

        if amount > self.available_liquidity():
            raise InsufficientLiquidity(
                f"withdraw {amount} exceeds available liquidity {self.available_liquidity()}"
            )

        if amount == balance:
            self._scaled.pop(account, None)
        else:
            # balance >= amount гарантирует scaled >= ceil(amount / index)
            self._scaled[account] -= _ray_div_ceil(amount, self.liquidity_index)

        if not self.asset.transfer(self.address, to, amount):
            raise MarketError(f"withdraw transfer to {to} failed")
        return amount

    def accrue_yield(self, amount: int) -> None:
        """
        Начисление доходности amount всем поставщикам пропорционально.

        Raises:
            MarketError: Если в pool нет поставщиков
        """
        validate_amount(amount, "amount")
        total_scaled = self.total_scaled()
        if total_scaled == 0:
            raise MarketError("cannot accrue yield on an empty pool")

        self.asset.mint(self.address, amount)
        # Прирост index на единицу scaled balance, floor: реальная стоимость
        # scaled-балансов растёт не больше чем на amount
        self.liquidity_index += _ray_div_floor(amount, total_scaled)

    def borrow(self, borrower: str, amount: int) -> None:
        if amount > self.available_liquidity():
            raise InsufficientLiquidity(f"borrow {amount} exceeds available liquidity")
        self._borrowed[borrower] = self._borrowed.get(borrower, 0) + amount
        self.asset.transfer(self.address, borrower, amount)

    def repay(self, borrower: str, amount: int) -> None:
        if amount > self._borrowed.get(borrower, 0):
            raise MarketError(f"repay {amount} exceeds debt of {borrower}")
        if not self.asset.transfer(borrower, self.address, amount):
            raise MarketError(f"repay transfer from {borrower} failed")
        self._borrowed[borrower] -= amount

    def checkpoint(self) -> PoolCheckpoint:
        return PoolCheckpoint(
            liquidity_index=self.liquidity_index,
            scaled_balances=dict(self._scaled),
            borrowed=dict(self._borrowed),
        )

    def restore(self, checkpoint: PoolCheckpoint) -> None:
        self.liquidity_index = checkpoint.liquidity_index
        self._scaled = dict(checkpoint.scaled_balances)
        self._borrowed = dict(checkpoint.borrowed)


# =============================================================================
# VARIANT B: EXCHANGE RATE MARKET
# =============================================================================


@dataclass(frozen=True)
class MarketCheckpoint:
    exchange_rate_mantissa: int
    units: dict[str, int]
    pending_yield: int
    borrowed: dict[str, int]
    failure: Optional[MarketErrorCode]


class ExchangeRateMarket:
    """Рынок с receipt-units фиксированного количества и внешним exchange rate."""

    def __init__(
        self,
        asset: InMemoryAsset,
        address: str = "exchange-rate-market",
        initial_exchange_rate_mantissa: int = INITIAL_EXCHANGE_RATE_MANTISSA,
    ):
        self.asset = asset
        self.address = address
        self._exchange_rate = initial_exchange_rate_mantissa
        self._units: dict[str, int] = {}
        self._pending_yield: int = 0
        self._borrowed: dict[str, int] = {}
        self._failure: Optional[MarketErrorCode] = None

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        """Количество receipt-units (не underlying)."""
        return self._units.get(account, 0)

    def total_units(self) -> int:
        return sum(self._units.values())

    def get_cash(self) -> int:
        return self.asset.balance_of(self.address)

    def exchange_rate_stored(self) -> int:
        """
        Последний сохранённый exchange rate (mantissa, 1e18).

        Raises:
            MarketError: Если рынок в состоянии отказа
        """
        if self._failure is not None:
            raise MarketError(f"exchange rate unavailable: {self._failure.name}")
        return self._exchange_rate

    # -------------------------------------------------------------------------
    # Мутирующие вызовы (коды ошибок)
    # -------------------------------------------------------------------------

    def mint(self, account: str, amount: int) -> int:
        """Размещение amount underlying. Returns: код ошибки."""
        if self._failure is not None:
            return self._failure

        if not self.asset.transfer_from(self.address, account, self.address, amount):
            return MarketErrorCode.TOKEN_TRANSFER_IN_FAILED

        self._units[account] = self._units.get(account, 0) + amount * EXP_SCALE // self._exchange_rate
        return MarketErrorCode.NO_ERROR

    def redeem_underlying(self, account: str, amount: int) -> int:
        """Вывод ровно amount underlying на account. Returns: код ошибки."""
        if self._failure is not None:
            return self._failure

        # Ceil: units списываются в пользу рынка
        units = -(-amount * EXP_SCALE // self._exchange_rate)
        return self._redeem(account, units, amount)

    def redeem(self, account: str, units: int) -> int:
        """Погашение units receipt-токенов. Returns: код ошибки."""
        if self._failure is not None:
            return self._failure

        amount = units * self._exchange_rate // EXP_SCALE
        return self._redeem(account, units, amount)

    def accrue_interest(self) -> int:
        """Перенос накопленной доходности в exchange rate. Returns: код ошибки."""
        if self._failure is not None:
            return self._failure

        total = self.total_units()
        if self._pending_yield and total:
            underlying = total * self._exchange_rate // EXP_SCALE
            self._exchange_rate = (underlying + self._pending_yield) * EXP_SCALE // total
            self._pending_yield = 0
        return MarketErrorCode.NO_ERROR

    # -------------------------------------------------------------------------
    # Симуляция
    # -------------------------------------------------------------------------

    def accrue_yield(self, amount: int) -> None:
        """Доходность amount, видимая в exchange rate после accrue_interest()."""
        validate_amount(amount, "amount")
        self.asset.mint(self.address, amount)
        self._pending_yield += amount

    def borrow(self, borrower: str, amount: int) -> None:
        if amount > self.get_cash():
            raise InsufficientLiquidity(f"borrow {amount} exceeds cash {self.get_cash()}")
        self._borrowed[borrower] = self._borrowed.get(borrower, 0) + amount
        self.asset.transfer(self.address, borrower, amount)

    def inject_failure(self, code: MarketErrorCode) -> None:
        """Все последующие вызовы отказывают с code до clear_failure()."""
        self._failure = code

    def clear_failure(self) -> None:
        self._failure = None

    def checkpoint(self) -> MarketCheckpoint:
        return MarketCheckpoint(
            exchange_rate_mantissa=self._exchange_rate,
            units=dict(self._units),
            pending_yield=self._pending_yield,
            borrowed=dict(self._borrowed),
            failure=self._failure,
        )

    def restore(self, checkpoint: MarketCheckpoint) -> None:
        self._exchange_rate = checkpoint.exchange_rate_mantissa
        self._units = dict(checkpoint.units)
        self._pending_yield = checkpoint.pending_yield
        self._borrowed = dict(checkpoint.borrowed)
        self._failure = checkpoint.failure

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _redeem(self, account: str, units: int, amount: int) -> int:
        if units > self.balance_of(account):
            return MarketErrorCode.TOKEN_INSUFFICIENT_BALANCE

        if amount > self.get_cash():
            return MarketErrorCode.TOKEN_INSUFFICIENT_CASH

        if not self.asset.transfer(self.address, account, amount):
            return MarketErrorCode.TOKEN_TRANSFER_OUT_FAILED

        remaining = self.balance_of(account) - units
        if remaining == 0:
            self._units.pop(account, None)
        else:
            self._units[account] = remaining
        return MarketErrorCode.NO_ERROR
