"""Strategies — адаптеры источников доходности за интерфейсом StrategyPort.

- RebasingReceiptStrategy: receipt-токен 1:1 с underlying (Variant A)
- ExchangeRateReceiptStrategy: receipt-units x exchange rate (Variant B)
"""

from .base import StrategyPort
from .exchange_rate_receipt import ExchangeRateReceiptStrategy
from .markets import (
    ExchangeRateMarket,
    InsufficientLiquidity,
    MarketError,
    MarketErrorCode,
    RebasingLendingPool,
)
from .rebasing_receipt import RebasingReceiptStrategy

__all__ = [
    "StrategyPort",
    "RebasingReceiptStrategy",
    "ExchangeRateReceiptStrategy",
    "RebasingLendingPool",
    "ExchangeRateMarket",
    "MarketError",
    "MarketErrorCode",
    "InsufficientLiquidity",
]
