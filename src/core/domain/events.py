"""
Vault Events — модели событий аудита vault

Immutable Pydantic модели событий, которые vault эмитит ровно один раз
на каждую успешную операцию, ПОСЛЕ коммита всех изменений состояния.
Полная совместимость с JSON Schema (contracts/schema/vault_event.json).

События — единственный внешне наблюдаемый audit trail:
- Deposited(account, assets_in, shares_out)
- Withdrawn(account, assets_out, shares_in)
- Harvested(profit, fee)
- StrategyUpdated(strategy_name)
"""

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class VaultEventType(str, Enum):
    """Тип события vault."""

    DEPOSITED = "Deposited"
    WITHDRAWN = "Withdrawn"
    HARVESTED = "Harvested"
    STRATEGY_UPDATED = "StrategyUpdated"


# =============================================================================
# EVENT MODELS
# =============================================================================


class VaultEvent(BaseModel):
    """
    Общие поля всех событий.

    seq — монотонный номер события в рамках одного vault (с 0).
    """

    schema_version: str = Field(
        "1", pattern="^1$", description="Версия схемы для tracking совместимости"
    )
    seq: int = Field(..., ge=0, description="Порядковый номер события в vault")
    ts_utc_ms: int = Field(..., ge=0, description="Время коммита операции (UTC, миллисекунды)")

    model_config = {"frozen": True}


class Deposited(VaultEvent):
    """Депозит base asset и выпуск shares."""

    event_type: Literal[VaultEventType.DEPOSITED] = VaultEventType.DEPOSITED
    account: str = Field(..., min_length=1, description="Депозитор")
    assets_in: int = Field(..., gt=0, description="Внесено base asset units")
    shares_out: int = Field(..., gt=0, description="Выпущено shares")


class Withdrawn(VaultEvent):
    """Погашение shares и выплата base asset."""

    event_type: Literal[VaultEventType.WITHDRAWN] = VaultEventType.WITHDRAWN
    account: str = Field(..., min_length=1, description="Получатель выплаты")
    assets_out: int = Field(..., gt=0, description="Выплачено base asset units")
    shares_in: int = Field(..., gt=0, description="Погашено shares")


class Harvested(VaultEvent):
    """Результат harvest: прибыль и фактически выплаченная fee."""

    event_type: Literal[VaultEventType.HARVESTED] = VaultEventType.HARVESTED
    profit: int = Field(..., ge=0, description="Прирост total managed value за harvest")
    fee: int = Field(..., ge=0, description="Фактически выплаченная performance fee")

    @model_validator(mode="after")
    def validate_fee_within_profit(self) -> "Harvested":
        """Fee не может превышать прибыль."""
        if self.fee > self.profit:
            raise ValueError(f"fee {self.fee} exceeds profit {self.profit}")
        return self


class StrategyUpdated(VaultEvent):
    """Замена привязки стратегии (None — стратегия отвязана)."""

    event_type: Literal[VaultEventType.STRATEGY_UPDATED] = VaultEventType.STRATEGY_UPDATED
    strategy_name: str | None = Field(None, description="Имя новой стратегии или null")


AnyVaultEvent = Union[Deposited, Withdrawn, Harvested, StrategyUpdated]
