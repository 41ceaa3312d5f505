"""Vault configuration."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional


class FeeShortfallPolicy(str, Enum):
    """
    Что делать, если idle balance меньше начисленной fee.

    Случай возникает, когда прибыль целиком образовалась внутри стратегии.

    - IDLE_ONLY: платить min(fee, idle) без отзыва средств из стратегии
      (недоплата фиксируется в логе, событие Harvested несёт фактическую fee)
    - RECALL_FROM_STRATEGY: отозвать недостающее из стратегии; отказ
      стратегии прерывает harvest целиком
    """

    IDLE_ONLY = "IDLE_ONLY"
    RECALL_FROM_STRATEGY = "RECALL_FROM_STRATEGY"


def utc_now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class VaultConfig:
    """
    Конфигурация vault.

    Ставка performance fee сюда не входит: она фиксирована
    (FEE_RATE_BPS в src.core.math.share_math).
    """

    fee_shortfall_policy: FeeShortfallPolicy = FeeShortfallPolicy.IDLE_ONLY
    clock: Callable[[], int] = field(default=utc_now_ms)  # UTC, миллисекунды
    validate_events: bool = True  # JSON Schema проверка событий перед публикацией

    # Vault.events: in-memory audit log. None хранит все события,
    # N хранит последние N (полный поток доступен подписчикам)
    event_log_size: Optional[int] = None
