"""ValueOracle — чтение total managed value vault.

total_managed_value = idle_balance + strategy.balance_of() (0 без стратегии).
Значение перечитывается при каждом вызове и никогда не кэшируется:
внешний баланс стратегии может измениться между вызовами.
"""

from typing import Callable, Optional

from src.core.asset import BaseAsset
from src.strategies.base import StrategyPort


class ValueOracle:
    """Источник ValueSnapshot для одного vault."""

    def __init__(
        self,
        asset: BaseAsset,
        vault_address: str,
        strategy_provider: Callable[[], Optional[StrategyPort]],
    ):
        self._asset = asset
        self._vault_address = vault_address
        self._strategy_provider = strategy_provider

    def idle_balance(self) -> int:
        return self._asset.balance_of(self._vault_address)

    def strategy_balance(self) -> int:
        strategy = self._strategy_provider()
        if strategy is None:
            return 0
        return strategy.balance_of()

    def total_managed_value(self) -> int:
        return self.idle_balance() + self.strategy_balance()
