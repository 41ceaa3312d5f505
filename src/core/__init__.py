"""
Core domain models, share math, contracts and invariants.

This module contains the foundational building blocks that are independent
of the vault orchestration and of any concrete yield source.
"""
