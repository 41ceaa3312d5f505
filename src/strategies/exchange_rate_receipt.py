"""
ExchangeRateReceiptStrategy — адаптер для receipt-токена с внешним exchange rate

Variant B (Compound-подобный рынок):
- balance_of() = units * exchange_rate_mantissa // 1e18
- Fail closed: если exchange rate прочитать нельзя -> StrategyOperationFailed
  (трактовать баланс как 0 НЕДОПУСТИМО — это обесценило бы shares)
- Ненулевой код mint/redeem -> StrategyOperationFailed
- TOKEN_INSUFFICIENT_CASH -> InsufficientStrategyFunds
- harvest() -> accrue_interest(); ненулевой код пробрасывается
"""

import logging
from dataclasses import dataclass
from typing import Any

from src.core.asset import InMemoryAsset, require_transfer
from src.core.errors import InsufficientStrategyFunds, StrategyOperationFailed
from src.core.math.share_math import validate_positive_amount
from src.strategies.base import StrategyPort
from src.strategies.markets import (
    EXP_SCALE,
    ExchangeRateMarket,
    MarketCheckpoint,
    MarketError,
    MarketErrorCode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeRateStrategyCheckpoint:
    market: MarketCheckpoint


class ExchangeRateReceiptStrategy(StrategyPort):
    """Стратегия поверх ExchangeRateMarket."""

    name = "exchange-rate-receipt"

    def __init__(self, asset: InMemoryAsset, market: ExchangeRateMarket, address: str = "exchange-rate-strategy"):
        super().__init__(asset, address)
        self.market = market

    def exchange_rate(self) -> int:
        """
        Текущий exchange rate рынка.

        Raises:
            StrategyOperationFailed: Если рынок не отдаёт курс
        """
        try:
            return self.market.exchange_rate_stored()
        except MarketError as e:
            raise StrategyOperationFailed(f"{self.name}: exchange rate read failed: {e}") from e

    def balance_of(self) -> int:
        units = self.market.balance_of(self.address)
        if units == 0:
            return 0
        return units * self.exchange_rate() // EXP_SCALE

    def _deposit(self, vault: Any, amount: int) -> None:
        validate_positive_amount(amount, "amount")

        require_transfer(
            self.asset.transfer_from(self.address, vault.address, self.address, amount),
            f"transfer_from vault to strategy {self.address}",
        )
        require_transfer(
            self.asset.approve(self.address, self.market.address, amount),
            f"approve market {self.market.address}",
        )

        self._check(self.market.mint(self.address, amount), f"mint({amount})")
        logger.debug("%s minted receipt units for %d", self.name, amount)

    def _withdraw(self, vault: Any, amount: int) -> None:
        validate_positive_amount(amount, "amount")

        balance = self.balance_of()
        if amount > balance:
            raise InsufficientStrategyFunds(
                f"{self.name}: requested {amount}, strategy holds {balance}"
            )

        self._check(self.market.redeem_underlying(self.address, amount), f"redeem_underlying({amount})")
        self._forward_to_vault(vault, amount)

    def _withdraw_all(self, vault: Any) -> int:
        units = self.market.balance_of(self.address)
        if units == 0:
            return 0

        before = self.asset.balance_of(self.address)
        self._check(self.market.redeem(self.address, units), f"redeem({units})")
        returned = self.asset.balance_of(self.address) - before

        self._forward_to_vault(vault, returned)
        return returned

    def _harvest(self, vault: Any) -> None:
        self._check(self.market.accrue_interest(), "accrue_interest()")

    def checkpoint(self) -> ExchangeRateStrategyCheckpoint:
        return ExchangeRateStrategyCheckpoint(market=self.market.checkpoint())

    def restore(self, checkpoint: ExchangeRateStrategyCheckpoint) -> None:
        self.market.restore(checkpoint.market)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _forward_to_vault(self, vault: Any, amount: int) -> None:
        if amount == 0:
            return
        require_transfer(
            self.asset.transfer(self.address, vault.address, amount),
            f"transfer from strategy {self.address} to vault",
        )
        logger.debug("%s returned %d to vault", self.name, amount)

    def _check(self, code: int, call: str) -> None:
        if code == MarketErrorCode.NO_ERROR:
            return

        if code == MarketErrorCode.TOKEN_INSUFFICIENT_CASH:
            raise InsufficientStrategyFunds(
                f"{self.name}: {call} failed, market cash {self.market.get_cash()}"
            )

        raise StrategyOperationFailed(
            f"{self.name}: {call} failed with code {MarketErrorCode(code).name}",
            error_code=int(code),
        )
