"""
Test suite for blue-vault

Contains:
- tests/unit/          : Unit tests for individual modules and vault operations
"""
