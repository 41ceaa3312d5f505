"""
Vault — оркестрация deposit / withdraw / harvest / rebind_strategy

Единственная точка входа, отвечающая за контракт согласованности:
- Каждая мутирующая операция выполняется под ReentrancyGuard
- Каждая мутирующая операция транзакционна: checkpoint vault, base asset и
  затронутых стратегий на входе, restore при любом исключении
- Total managed value читается заново в каждой точке, где он нужен
- Событие фиксируется последним шагом операции, подписчики уведомляются
  после освобождения guard

Порядок шагов deposit:
    1. assets_in == 0 -> InvalidAmount
    2. снапшот total_value / total_supply ДО поступления средств
    3. расчёт shares
    4. transfer_from депозитора в vault
    5. mint shares, principal += assets_in
    6. передача assets_in в стратегию (если привязана)
    7. Deposited

Порядок шагов withdraw:
    1. shares_in == 0 -> InvalidAmount, баланс < shares_in -> InsufficientShares
    2. снапшот total_value / total_supply ДО burn
    3. расчёт assets_out
    4. нехватка idle -> strategy.withdraw(shortfall), отказ = отказ операции
    5. burn shares, principal -= assets_out (не ниже 0)
    6. transfer assets_out получателю
    7. Withdrawn
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence

from src.core.asset import BaseAsset, require_transfer
from src.core.contracts.validators import validate_vault_event
from src.core.domain.capability import OwnerCapability
from src.core.domain.events import (
    AnyVaultEvent,
    Deposited,
    Harvested,
    StrategyUpdated,
    Withdrawn,
)
from src.core.domain.vault_state import VaultStateSnapshot
from src.core.errors import (
    InsufficientBalance,
    InsufficientShares,
    InsufficientStrategyFunds,
    InvalidAmount,
    NoStrategyBound,
    Unauthorized,
)
from src.core.math import share_math
from src.strategies.base import StrategyPort
from src.vault.config import VaultConfig
from src.vault.fees import FeeAccrual
from src.vault.guard import ReentrancyGuard
from src.vault.oracle import ValueOracle
from src.vault.share_ledger import LedgerCheckpoint, ShareLedger

logger = logging.getLogger(__name__)


# =============================================================================
# РЕЗУЛЬТАТЫ И CHECKPOINTS
# =============================================================================


@dataclass(frozen=True)
class HarvestResult:
    """Результат harvest."""

    value_before: int
    value_after: int
    profit: int
    fee_due: int
    fee_paid: int

    # None, если harvest был без прибыли (timestamp не обновляется)
    harvested_at_ts_utc_ms: Optional[int]


@dataclass(frozen=True)
class _StrategyCheckpoint:
    strategy: StrategyPort
    state: object
    bound_to_vault: bool


@dataclass(frozen=True)
class _VaultCheckpoint:
    ledger: LedgerCheckpoint
    asset: object
    strategy: Optional[StrategyPort]
    total_deposited_principal: int
    last_harvest_ts_utc_ms: Optional[int]
    strategies: tuple[_StrategyCheckpoint, ...]


# =============================================================================
# VAULT
# =============================================================================


class Vault:
    """
    Pooled-deposit yield vault.

    Создаётся через Vault.deploy(), который возвращает vault и единственный
    OwnerCapability для owner-only операций.
    """

    def __init__(
        self,
        asset: BaseAsset,
        owner_capability: OwnerCapability,
        address: str = "vault",
        config: Optional[VaultConfig] = None,
    ):
        self._asset = asset
        self._owner_capability = owner_capability
        self.address = address
        self.config = config or VaultConfig()

        self._ledger = ShareLedger()
        self._strategy: Optional[StrategyPort] = None
        self.total_deposited_principal: int = 0
        self.last_harvest_ts_utc_ms: Optional[int] = None

        self._guard = ReentrancyGuard()
        self._oracle = ValueOracle(asset, address, lambda: self._strategy)
        self._fees = FeeAccrual(asset, address, self.config.fee_shortfall_policy)

        # In-memory audit log, ограничен config.event_log_size.
        # seq сквозной и не зависит от усечения лога
        self.events: list[AnyVaultEvent] = []
        self._next_seq: int = 0
        self._subscribers: list[Callable[[AnyVaultEvent], None]] = []

    @classmethod
    def deploy(
        cls,
        asset: BaseAsset,
        owner: str,
        address: str = "vault",
        config: Optional[VaultConfig] = None,
    ) -> tuple["Vault", OwnerCapability]:
        """Создание vault и выпуск credential владельца."""
        capability = OwnerCapability(owner=owner)
        vault = cls(asset, capability, address=address, config=config)
        logger.info("Deployed vault %s for %s, owner %s", address, asset.symbol, owner)
        return vault, capability

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    @property
    def asset(self) -> BaseAsset:
        return self._asset

    @property
    def owner(self) -> str:
        return self._owner_capability.owner

    @property
    def strategy(self) -> Optional[StrategyPort]:
        return self._strategy

    def total_managed_value(self) -> int:
        return self._oracle.total_managed_value()

    def idle_balance(self) -> int:
        return self._oracle.idle_balance()

    def total_supply(self) -> int:
        return self._ledger.total_supply

    def balance_of(self, holder: str) -> int:
        return self._ledger.balance_of(holder)

    def price_per_share_ray(self) -> int:
        return share_math.price_per_share_ray(self._ledger.total_supply, self.total_managed_value())

    def preview_deposit(self, assets_in: int) -> int:
        """
        Оценка shares за депозит по свежему снапшоту.

        Не гарантирует совпадение с последующим deposit(), если состояние
        изменится между вызовами.
        """
        return self._ledger.shares_for_deposit(assets_in, self.total_managed_value())

    def preview_withdraw(self, shares_in: int) -> int:
        """Оценка assets за погашение shares по свежему снапшоту."""
        share_math.validate_positive_amount(shares_in, "shares_in")
        return self._ledger.assets_for_shares(shares_in, self.total_managed_value())

    def snapshot(self) -> VaultStateSnapshot:
        idle = self._oracle.idle_balance()
        strategy_balance = self._oracle.strategy_balance()
        total_value = idle + strategy_balance
        return VaultStateSnapshot(
            ts_utc_ms=self.config.clock(),
            asset_symbol=self._asset.symbol,
            idle_balance=idle,
            strategy_balance=strategy_balance,
            total_managed_value=total_value,
            total_supply=self._ledger.total_supply,
            price_per_share_ray=share_math.price_per_share_ray(self._ledger.total_supply, total_value),
            total_deposited_principal=self.total_deposited_principal,
            last_harvest_ts_utc_ms=self.last_harvest_ts_utc_ms,
            strategy_name=self._strategy.name if self._strategy is not None else None,
        )

    # =========================================================================
    # ПОДПИСКИ
    # =========================================================================

    def subscribe(self, callback: Callable[[AnyVaultEvent], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[AnyVaultEvent], None]) -> None:
        self._subscribers.remove(callback)

    # =========================================================================
    # ОПЕРАЦИИ
    # =========================================================================

    def deposit(self, account: str, assets_in: int) -> int:
        """
        Депозит assets_in от account.

        Returns:
            Выпущенные shares

        Raises:
            InvalidAmount: assets_in == 0, либо депозит даёт 0 shares
            ZeroManagedValue: total_supply > 0 при total_value == 0
            AssetTransferFailed: base asset отклонил transfer_from
            ReentrancyViolation: другая операция в процессе
        """
        share_math.validate_positive_amount(assets_in, "assets_in")

        with self._transaction("deposit"):
            total_value = self._oracle.total_managed_value()
            shares = self._ledger.shares_for_deposit(assets_in, total_value)

            if shares == 0:
                raise InvalidAmount(
                    f"Deposit of {assets_in} mints zero shares "
                    f"(total_supply={self._ledger.total_supply}, total_value={total_value})"
                )

            require_transfer(
                self._asset.transfer_from(self.address, account, self.address, assets_in),
                f"transfer_from {account} of {assets_in}",
            )

            self._ledger.mint(account, shares)
            self.total_deposited_principal += assets_in

            if self._strategy is not None:
                self._deploy(assets_in)

            event = self._record(Deposited, account=account, assets_in=assets_in, shares_out=shares)

        logger.info("Deposit: %s put %d, minted %d shares", account, assets_in, shares)
        self._notify(event)
        return shares

    def withdraw(self, account: str, shares_in: int) -> int:
        """
        Погашение shares_in держателя account.

        Returns:
            Выплаченные assets

        Raises:
            InvalidAmount: shares_in == 0, либо выплата равна 0
            InsufficientShares: баланс account < shares_in
            InsufficientStrategyFunds: стратегия не вернула недостающее
            ReentrancyViolation: другая операция в процессе
        """
        share_math.validate_positive_amount(shares_in, "shares_in")

        with self._transaction("withdraw"):
            balance = self._ledger.balance_of(account)
            if balance < shares_in:
                raise InsufficientShares(f"{account} holds {balance} shares, requested {shares_in}")

            total_value = self._oracle.total_managed_value()
            assets_out = self._ledger.assets_for_shares(shares_in, total_value)

            if assets_out == 0:
                raise InvalidAmount(f"Redeeming {shares_in} shares pays out zero assets")

            self._ensure_idle(assets_out)

            self._ledger.burn(account, shares_in)
            self.total_deposited_principal = max(self.total_deposited_principal - assets_out, 0)

            require_transfer(
                self._asset.transfer(self.address, account, assets_out),
                f"transfer of {assets_out} to {account}",
            )

            event = self._record(Withdrawn, account=account, assets_out=assets_out, shares_in=shares_in)

        logger.info("Withdraw: %s burned %d shares, received %d", account, shares_in, assets_out)
        self._notify(event)
        return assets_out

    def harvest(self) -> HarvestResult:
        """
        Реализация доходности стратегии и изъятие performance fee.

        Raises:
            NoStrategyBound: стратегия не привязана
            StrategyOperationFailed: стратегия сигнализировала жёсткий отказ
            ReentrancyViolation: другая операция в процессе
        """
        with self._transaction("harvest"):
            strategy = self._require_strategy()

            value_before = self._oracle.total_managed_value()
            strategy.harvest(caller=self)
            value_after = self._oracle.total_managed_value()

            assessment = self._fees.assess(value_before, value_after)
            fee_paid = 0
            harvested_at = None

            if assessment.profitable:
                fee_paid = self._fees.collect(assessment, self.owner, recall=self._recall)
                harvested_at = self.config.clock()
                self.last_harvest_ts_utc_ms = harvested_at

            event = self._record(Harvested, profit=assessment.profit, fee=fee_paid)

        logger.info(
            "Harvest: value %d -> %d, profit %d, fee due %d, fee paid %d",
            value_before,
            value_after,
            assessment.profit,
            assessment.fee_due,
            fee_paid,
        )
        self._notify(event)
        return HarvestResult(
            value_before=value_before,
            value_after=value_after,
            profit=assessment.profit,
            fee_due=assessment.fee_due,
            fee_paid=fee_paid,
            harvested_at_ts_utc_ms=harvested_at,
        )

    def rebind_strategy(
        self,
        capability: OwnerCapability,
        new_strategy: Optional[StrategyPort],
    ) -> None:
        """
        Замена стратегии (owner-only).

        Старая стратегия полностью сворачивается (withdraw_all) до установки
        новой; новой передаётся весь idle balance.

        Raises:
            Unauthorized: capability не выпущен этим vault
            StrategyAlreadyBound: новая стратегия привязана к другому vault
            InsufficientStrategyFunds / StrategyOperationFailed: отказ стратегии
        """
        participants = [s for s in (self._strategy, new_strategy) if s is not None]

        with self._transaction("rebind_strategy", participants):
            if not self._owner_capability.matches(capability):
                raise Unauthorized(f"rebind_strategy requires the owner capability of vault {self.address}")

            old_strategy = self._strategy
            if old_strategy is not None:
                recalled = old_strategy.withdraw_all(caller=self)
                old_strategy.release(self)
                self._strategy = None
                logger.info("Recalled %d from %s", recalled, old_strategy.name)

            if new_strategy is not None:
                new_strategy.bind(self)
                self._strategy = new_strategy

                idle = self._oracle.idle_balance()
                if idle > 0:
                    self._deploy(idle)

            strategy_name = new_strategy.name if new_strategy is not None else None
            event = self._record(StrategyUpdated, strategy_name=strategy_name)

        logger.info("Strategy updated: %s", strategy_name)
        self._notify(event)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    @contextmanager
    def _transaction(
        self,
        operation: str,
        strategies: Optional[Sequence[StrategyPort]] = None,
    ) -> Iterator[None]:
        """Guard + all-or-nothing откат для одной операции."""
        with self._guard.hold(operation):
            if strategies is None:
                strategies = [self._strategy] if self._strategy is not None else []

            checkpoint = self._checkpoint(strategies)
            try:
                yield
            except Exception as e:
                logger.warning("%s on vault %s aborted (%s), rolling back", operation, self.address, e)
                self._restore(checkpoint)
                raise

    def _checkpoint(self, strategies: Sequence[StrategyPort]) -> _VaultCheckpoint:
        return _VaultCheckpoint(
            ledger=self._ledger.checkpoint(),
            asset=self._asset.checkpoint(),
            strategy=self._strategy,
            total_deposited_principal=self.total_deposited_principal,
            last_harvest_ts_utc_ms=self.last_harvest_ts_utc_ms,
            strategies=tuple(
                _StrategyCheckpoint(
                    strategy=s,
                    state=s.checkpoint(),
                    bound_to_vault=s.vault is self,
                )
                for s in strategies
            ),
        )

    def _restore(self, checkpoint: _VaultCheckpoint) -> None:
        self._ledger.restore(checkpoint.ledger)
        self._asset.restore(checkpoint.asset)
        self._strategy = checkpoint.strategy
        self.total_deposited_principal = checkpoint.total_deposited_principal
        self.last_harvest_ts_utc_ms = checkpoint.last_harvest_ts_utc_ms

        for entry in checkpoint.strategies:
            entry.strategy.restore(entry.state)
            if entry.bound_to_vault:
                entry.strategy.bind(self)
            else:
                entry.strategy.release(self)

    def _require_strategy(self) -> StrategyPort:
        if self._strategy is None:
            raise NoStrategyBound(f"Vault {self.address} has no strategy bound")
        return self._strategy

    def _deploy(self, amount: int) -> None:
        strategy = self._require_strategy()
        require_transfer(
            self._asset.approve(self.address, strategy.address, amount),
            f"approve {strategy.address} for {amount}",
        )
        strategy.deposit(amount, caller=self)

    def _recall(self, amount: int) -> None:
        strategy = self._require_strategy()
        strategy.withdraw(amount, caller=self)

    def _ensure_idle(self, amount: int) -> None:
        """Добор idle balance до amount из стратегии; частичная выплата недопустима."""
        idle = self._oracle.idle_balance()
        if idle >= amount:
            return

        if self._strategy is None:
            raise InsufficientBalance(f"Vault idle balance {idle} below payout {amount}")

        shortfall = amount - idle
        self._recall(shortfall)

        idle = self._oracle.idle_balance()
        if idle < amount:
            raise InsufficientStrategyFunds(
                f"{self._strategy.name} returned too little: idle {idle}, payout {amount}"
            )

    def _record(self, event_cls: type, **fields) -> AnyVaultEvent:
        event = event_cls(seq=self._next_seq, ts_utc_ms=self.config.clock(), **fields)
        if self.config.validate_events:
            validate_vault_event(event.model_dump(mode="json"))

        self.events.append(event)
        self._next_seq += 1

        limit = self.config.event_log_size
        if limit is not None and len(self.events) > limit:
            del self.events[: len(self.events) - limit]
        return event

    def _notify(self, event: AnyVaultEvent) -> None:
        for callback in list(self._subscribers):
            callback(event)
