"""
FeeAccrual — расчёт и изъятие performance fee при harvest

Fee строго привязана к прибыли:
- after > before: profit = after - before, fee = floor(profit * 10%)
- after <= before: fee = 0, убыток молча распределяется на всех
  держателей через меньший total_managed_value

Fee выплачивается owner из idle balance vault. Если idle меньше fee,
поведение задаёт FeeShortfallPolicy (см. src.vault.config).
"""

import logging
from dataclasses import dataclass
from typing import Callable

from src.core.asset import BaseAsset, require_transfer
from src.core.math.share_math import performance_fee
from src.vault.config import FeeShortfallPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeAssessment:
    """Результат оценки harvest."""

    value_before: int
    value_after: int
    profit: int
    fee_due: int

    @property
    def profitable(self) -> bool:
        return self.profit > 0


class FeeAccrual:
    """Performance fee одного vault."""

    def __init__(
        self,
        asset: BaseAsset,
        vault_address: str,
        policy: FeeShortfallPolicy = FeeShortfallPolicy.IDLE_ONLY,
    ):
        self._asset = asset
        self._vault_address = vault_address
        self.policy = policy

    def assess(self, value_before: int, value_after: int) -> FeeAssessment:
        profit = max(value_after - value_before, 0)
        return FeeAssessment(
            value_before=value_before,
            value_after=value_after,
            profit=profit,
            fee_due=performance_fee(profit),
        )

    def collect(
        self,
        assessment: FeeAssessment,
        recipient: str,
        recall: Callable[[int], None],
    ) -> int:
        """
        Выплата fee получателю.

        Args:
            assessment: результат assess()
            recipient: получатель fee (owner)
            recall: отзыв недостающей суммы из стратегии (для RECALL_FROM_STRATEGY)

        Returns:
            Фактически выплаченная fee

        Raises:
            AssetTransferFailed: Если base asset отклонил перевод
            InsufficientStrategyFunds: Если отзыв из стратегии не удался
        """
        fee_due = assessment.fee_due
        if fee_due == 0:
            return 0

        idle = self._asset.balance_of(self._vault_address)

        if idle < fee_due:
            if self.policy == FeeShortfallPolicy.RECALL_FROM_STRATEGY:
                recall(fee_due - idle)
                idle = self._asset.balance_of(self._vault_address)
            else:
                logger.warning(
                    "Fee shortfall: due %d, idle balance %d, paying %d",
                    fee_due,
                    idle,
                    idle,
                )

        fee_paid = min(fee_due, idle)
        if fee_paid > 0:
            require_transfer(
                self._asset.transfer(self._vault_address, recipient, fee_paid),
                f"fee transfer of {fee_paid} to {recipient}",
            )
        return fee_paid
