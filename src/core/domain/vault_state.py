"""
VaultStateSnapshot — снапшот публичной поверхности чтения vault

Immutable Pydantic модель. Собирается заново при каждом вызове
Vault.snapshot() и никогда не кэшируется: внешние балансы стратегии
могут измениться между вызовами.

Полная совместимость с JSON Schema (contracts/schema/vault_state.json).
"""

from pydantic import BaseModel, Field, model_validator


class VaultStateSnapshot(BaseModel):
    """
    Снапшот состояния vault.

    Инвариант: total_managed_value == idle_balance + strategy_balance.
    """

    # Метаданные
    schema_version: str = Field(
        "1", pattern="^1$", description="Версия схемы для tracking совместимости"
    )
    ts_utc_ms: int = Field(..., ge=0, description="Timestamp снапшота (UTC, миллисекунды)")
    asset_symbol: str = Field(..., min_length=1, description="Символ base asset")

    # Стоимость
    idle_balance: int = Field(..., ge=0, description="Base asset на балансе vault")
    strategy_balance: int = Field(..., ge=0, description="Баланс, заявленный стратегией")
    total_managed_value: int = Field(..., ge=0, description="idle + strategy")

    # Shares
    total_supply: int = Field(..., ge=0, description="Total supply shares")
    price_per_share_ray: int = Field(..., gt=0, description="Стоимость share, масштаб 1e27")

    # Учёт
    total_deposited_principal: int = Field(
        ..., ge=0, description="Чистая сумма депозитов (информационно)"
    )
    last_harvest_ts_utc_ms: int | None = Field(
        None, description="Время последнего прибыльного harvest (nullable)"
    )
    strategy_name: str | None = Field(None, description="Имя привязанной стратегии (nullable)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_value_sum(self) -> "VaultStateSnapshot":
        if self.total_managed_value != self.idle_balance + self.strategy_balance:
            raise ValueError(
                f"total_managed_value {self.total_managed_value} != "
                f"idle {self.idle_balance} + strategy {self.strategy_balance}"
            )
        return self
