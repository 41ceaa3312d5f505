"""
ShareLedger — учёт shares держателей и total supply

- Отображение holder -> share balance и total supply
- mint/burn — чистый учёт (без перемещения активов)
- Конверсия assets <-> shares через src.core.math.share_math

Инвариант: sum(balances) == total_supply в любой момент.
Запись держателя создаётся первым mint и удаляется, когда баланс
доходит до нуля.
"""

from dataclasses import dataclass

from src.core.errors import InsufficientBalance
from src.core.math import share_math


@dataclass(frozen=True)
class LedgerCheckpoint:
    balances: dict[str, int]
    total_supply: int


class ShareLedger:
    """Реестр shares одного vault."""

    def __init__(self):
        self._balances: dict[str, int] = {}
        self._total_supply: int = 0

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def holders(self) -> dict[str, int]:
        """Копия всех ненулевых балансов."""
        return dict(self._balances)

    # -------------------------------------------------------------------------
    # Конверсия
    # -------------------------------------------------------------------------

    def shares_for_deposit(self, assets_in: int, total_value: int) -> int:
        return share_math.shares_for_deposit(assets_in, self._total_supply, total_value)

    def assets_for_shares(self, shares_in: int, total_value: int) -> int:
        return share_math.assets_for_shares(shares_in, self._total_supply, total_value)

    # -------------------------------------------------------------------------
    # Учёт
    # -------------------------------------------------------------------------

    def mint(self, holder: str, shares: int) -> None:
        share_math.validate_positive_amount(shares, "shares")
        self._balances[holder] = self.balance_of(holder) + shares
        self._total_supply += shares

    def burn(self, holder: str, shares: int) -> None:
        """
        Raises:
            InsufficientBalance: Если shares больше баланса holder
        """
        share_math.validate_positive_amount(shares, "shares")
        balance = self.balance_of(holder)

        if shares > balance:
            raise InsufficientBalance(f"Cannot burn {shares} shares of {holder}: balance {balance}")

        if shares == balance:
            del self._balances[holder]
        else:
            self._balances[holder] = balance - shares
        self._total_supply -= shares

    # -------------------------------------------------------------------------
    # Транзакционный откат
    # -------------------------------------------------------------------------

    def checkpoint(self) -> LedgerCheckpoint:
        return LedgerCheckpoint(balances=dict(self._balances), total_supply=self._total_supply)

    def restore(self, checkpoint: LedgerCheckpoint) -> None:
        self._balances = dict(checkpoint.balances)
        self._total_supply = checkpoint.total_supply
