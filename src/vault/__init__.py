"""Vault — share accounting и маршрутизация средств в стратегию.

- ShareLedger: shares держателей и total supply
- ValueOracle: total managed value = idle + strategy
- FeeAccrual: performance fee при harvest
- Vault: deposit / withdraw / harvest / rebind_strategy под guard
"""

from .config import FeeShortfallPolicy, VaultConfig
from .core import HarvestResult, Vault
from .fees import FeeAccrual, FeeAssessment
from .guard import ReentrancyGuard
from .oracle import ValueOracle
from .share_ledger import ShareLedger

__all__ = [
    "Vault",
    "HarvestResult",
    "VaultConfig",
    "FeeShortfallPolicy",
    "FeeAccrual",
    "FeeAssessment",
    "ReentrancyGuard",
    "ValueOracle",
    "ShareLedger",
]
