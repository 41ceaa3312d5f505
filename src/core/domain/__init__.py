"""
Domain models and value objects.

Contains vault events, state snapshots and the owner capability.
"""

from src.core.domain.capability import OwnerCapability
from src.core.domain.events import (
    AnyVaultEvent,
    Deposited,
    Harvested,
    StrategyUpdated,
    VaultEvent,
    VaultEventType,
    Withdrawn,
)
from src.core.domain.vault_state import VaultStateSnapshot

__all__ = [
    # Capability
    "OwnerCapability",
    # Events
    "AnyVaultEvent",
    "VaultEvent",
    "VaultEventType",
    "Deposited",
    "Withdrawn",
    "Harvested",
    "StrategyUpdated",
    # State
    "VaultStateSnapshot",
]
