"""
Contract Validation Module

Модуль для валидации JSON контрактов vault (события и снапшоты состояния).
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    VaultEventValidator,
    VaultStateValidator,
    validate_vault_event,
    validate_vault_state,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "VaultEventValidator",
    "VaultStateValidator",
    # Functions
    "validate_vault_event",
    "validate_vault_state",
]
