"""
RebasingReceiptStrategy — адаптер для непрерывно начисляемого receipt-токена

Variant A (Aave-подобный рынок):
- balance_of() — баланс receipt-токена адаптера, 1:1 с underlying
- Доходность поднимает курс погашения на стороне рынка автоматически
- harvest() — no-op
- Нехватка ликвидности рынка -> InsufficientStrategyFunds (без усечения)
"""

import logging
from dataclasses import dataclass
from typing import Any

from src.core.asset import InMemoryAsset, require_transfer
from src.core.errors import InsufficientStrategyFunds, StrategyOperationFailed
from src.core.math.share_math import validate_positive_amount
from src.strategies.base import StrategyPort
from src.strategies.markets import (
    InsufficientLiquidity,
    MarketError,
    PoolCheckpoint,
    RebasingLendingPool,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RebasingStrategyCheckpoint:
    pool: PoolCheckpoint


class RebasingReceiptStrategy(StrategyPort):
    """Стратегия поверх RebasingLendingPool."""

    name = "rebasing-receipt"

    def __init__(self, asset: InMemoryAsset, pool: RebasingLendingPool, address: str = "rebasing-strategy"):
        super().__init__(asset, address)
        self.pool = pool

    def balance_of(self) -> int:
        return self.pool.balance_of(self.address)

    def _deposit(self, vault: Any, amount: int) -> None:
        validate_positive_amount(amount, "amount")

        require_transfer(
            self.asset.transfer_from(self.address, vault.address, self.address, amount),
            f"transfer_from vault to strategy {self.address}",
        )
        require_transfer(
            self.asset.approve(self.address, self.pool.address, amount),
            f"approve pool {self.pool.address}",
        )

        try:
            self.pool.supply(self.address, amount)
        except MarketError as e:
            raise StrategyOperationFailed(f"{self.name}: supply of {amount} failed: {e}") from e

        logger.debug("%s supplied %d to %s", self.name, amount, self.pool.address)

    def _withdraw(self, vault: Any, amount: int) -> None:
        validate_positive_amount(amount, "amount")

        balance = self.balance_of()
        if amount > balance:
            raise InsufficientStrategyFunds(
                f"{self.name}: requested {amount}, strategy holds {balance}"
            )

        try:
            self.pool.withdraw(self.address, amount, to=vault.address)
        except InsufficientLiquidity as e:
            raise InsufficientStrategyFunds(
                f"{self.name}: requested {amount}, pool liquidity {self.pool.available_liquidity()}"
            ) from e
        except MarketError as e:
            raise StrategyOperationFailed(f"{self.name}: withdraw of {amount} failed: {e}") from e

        logger.debug("%s returned %d to vault", self.name, amount)

    def _withdraw_all(self, vault: Any) -> int:
        balance = self.balance_of()
        if balance == 0:
            return 0
        self._withdraw(vault, balance)
        return balance

    def _harvest(self, vault: Any) -> None:
        # Доходность уже отражена в liquidity index
        pass

    def checkpoint(self) -> RebasingStrategyCheckpoint:
        return RebasingStrategyCheckpoint(pool=self.pool.checkpoint())

    def restore(self, checkpoint: RebasingStrategyCheckpoint) -> None:
        self.pool.restore(checkpoint.pool)
