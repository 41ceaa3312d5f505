"""
Тесты для Vault: deposit / withdraw / preview

Coverage:
- Bootstrap 1:1 первого депозита
- Пропорциональность (supply=1000, value=1100, deposit=100 -> 90 shares)
- Снапшот total value ДО поступления средств
- Маршрутизация депозита в стратегию
- Withdraw shortfall: idle 50, payout 80, стратегия отдаёт 20 из 30 -> полный откат
- Отказ base asset -> AssetTransferFailed и откат
- Conservation: sum(holder shares) == total_supply
"""

import pytest

from src.core.asset import InMemoryAsset
from src.core.errors import (
    AssetTransferFailed,
    InsufficientShares,
    InsufficientStrategyFunds,
    InvalidAmount,
    NoSharesOutstanding,
    ZeroManagedValue,
)
from src.core.domain import Deposited, Withdrawn
from src.strategies import RebasingLendingPool, RebasingReceiptStrategy
from src.strategies.base import StrategyPort
from src.vault import Vault, VaultConfig

OWNER = "owner"
ALICE = "alice"
BOB = "bob"
NOW_MS = 1_700_000_000_000


class PartialReturnStrategy(StrategyPort):
    """Стратегия, которая молча возвращает меньше запрошенного."""

    name = "partial-return"

    def __init__(self, asset, max_return: int):
        super().__init__(asset, "partial-return-strategy")
        self.max_return = max_return

    def balance_of(self) -> int:
        return self.asset.balance_of(self.address)

    def _deposit(self, vault, amount):
        self.asset.transfer_from(self.address, vault.address, self.address, amount)

    def _withdraw(self, vault, amount):
        self.asset.transfer(self.address, vault.address, min(amount, self.max_return))

    def _withdraw_all(self, vault):
        balance = self.balance_of()
        self.asset.transfer(self.address, vault.address, balance)
        return balance

    def _harvest(self, vault):
        pass

    def checkpoint(self):
        return self.max_return

    def restore(self, checkpoint):
        self.max_return = checkpoint


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def asset():
    return InMemoryAsset(symbol="USDC")


@pytest.fixture
def deployed(asset):
    vault, capability = Vault.deploy(asset, owner=OWNER, config=VaultConfig(clock=lambda: NOW_MS))
    return vault, capability


@pytest.fixture
def vault(deployed):
    return deployed[0]


@pytest.fixture
def capability(deployed):
    return deployed[1]


def fund(asset, vault, account, amount):
    asset.mint(account, amount)
    asset.approve(account, vault.address, amount)


def holders_sum(vault, accounts):
    return sum(vault.balance_of(a) for a in accounts)


# =============================================================================
# ТЕСТЫ: Deposit
# =============================================================================


class TestDeposit:
    """Тесты Vault.deposit."""

    def test_first_deposit_bootstrap(self, asset, vault):
        """Первый депозит N при пустом vault выпускает ровно N shares."""
        fund(asset, vault, ALICE, 1000)

        assert vault.deposit(ALICE, 1000) == 1000
        assert vault.balance_of(ALICE) == 1000
        assert vault.total_supply() == 1000
        assert vault.total_managed_value() == 1000
        assert vault.total_deposited_principal == 1000
        assert asset.balance_of(ALICE) == 0

    def test_proportional_deposit(self, asset, vault):
        """supply=1000, value=1100: депозит 100 выпускает 90 shares, не 100."""
        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)
        asset.mint(vault.address, 100)  # доходность на idle

        fund(asset, vault, BOB, 100)
        assert vault.preview_deposit(100) == 90
        assert vault.deposit(BOB, 100) == 90
        assert vault.total_supply() == 1090
        assert vault.total_managed_value() == 1200

    def test_depositor_not_diluted_by_own_deposit(self, asset, vault):
        """Курс берётся до поступления средств: второй депозит по тому же курсу."""
        fund(asset, vault, ALICE, 500)
        vault.deposit(ALICE, 500)

        fund(asset, vault, BOB, 500)
        assert vault.deposit(BOB, 500) == 500

    def test_zero_deposit_rejected(self, asset, vault):
        with pytest.raises(InvalidAmount):
            vault.deposit(ALICE, 0)
        assert vault.events == []

    def test_dust_deposit_rejected(self, asset, vault):
        """Депозит, дающий 0 shares, отклоняется; средства остаются у депозитора."""
        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)
        asset.mint(vault.address, 100)

        fund(asset, vault, BOB, 1)
        with pytest.raises(InvalidAmount):
            vault.deposit(BOB, 1)

        assert asset.balance_of(BOB) == 1
        assert vault.total_supply() == 1000

    def test_missing_allowance_aborts(self, asset, vault):
        asset.mint(ALICE, 100)

        with pytest.raises(AssetTransferFailed):
            vault.deposit(ALICE, 100)

        assert vault.total_supply() == 0
        assert vault.total_deposited_principal == 0
        assert vault.events == []

    def test_zero_value_with_supply_rejected(self, asset, vault):
        fund(asset, vault, ALICE, 100)
        vault.deposit(ALICE, 100)
        asset.burn(vault.address, 100)  # полная потеря

        fund(asset, vault, BOB, 100)
        with pytest.raises(ZeroManagedValue):
            vault.deposit(BOB, 100)
        assert asset.balance_of(BOB) == 100

    def test_deposit_routed_to_strategy(self, asset, vault, capability):
        pool = RebasingLendingPool(asset)
        strategy = RebasingReceiptStrategy(asset, pool)
        vault.rebind_strategy(capability, strategy)

        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)

        assert vault.idle_balance() == 0
        assert strategy.balance_of() == 1000
        assert vault.total_managed_value() == 1000

    def test_deposit_event(self, asset, vault):
        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)

        assert len(vault.events) == 1
        event = vault.events[0]
        assert isinstance(event, Deposited)
        assert (event.account, event.assets_in, event.shares_out) == (ALICE, 1000, 1000)
        assert event.seq == 0
        assert event.ts_utc_ms == NOW_MS


# =============================================================================
# ТЕСТЫ: Withdraw
# =============================================================================


class TestWithdraw:
    """Тесты Vault.withdraw."""

    def test_partial_withdraw(self, asset, vault):
        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)

        assert vault.withdraw(ALICE, 400) == 400
        assert vault.balance_of(ALICE) == 600
        assert vault.total_supply() == 600
        assert vault.total_deposited_principal == 600
        assert asset.balance_of(ALICE) == 400

    def test_withdraw_includes_yield(self, asset, vault):
        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)
        asset.mint(vault.address, 100)

        assert vault.withdraw(ALICE, 1000) == 1100
        assert vault.total_supply() == 0
        assert vault.total_deposited_principal == 0  # не уходит ниже нуля

    def test_withdraw_rounds_down(self, asset, vault):
        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)
        asset.mint(vault.address, 100)
        fund(asset, vault, BOB, 100)
        vault.deposit(BOB, 100)  # 90 shares, supply 1090, value 1200

        assert vault.withdraw(BOB, 90) == 99

    def test_zero_shares_rejected(self, asset, vault):
        fund(asset, vault, ALICE, 100)
        vault.deposit(ALICE, 100)
        with pytest.raises(InvalidAmount):
            vault.withdraw(ALICE, 0)

    def test_more_than_held_rejected(self, asset, vault):
        fund(asset, vault, ALICE, 100)
        vault.deposit(ALICE, 100)

        with pytest.raises(InsufficientShares):
            vault.withdraw(ALICE, 101)
        with pytest.raises(InsufficientShares):
            vault.withdraw(BOB, 1)

    def test_pulls_shortfall_from_strategy(self, asset, vault, capability):
        pool = RebasingLendingPool(asset)
        strategy = RebasingReceiptStrategy(asset, pool)
        vault.rebind_strategy(capability, strategy)

        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)

        assert vault.withdraw(ALICE, 300) == 300
        assert strategy.balance_of() == 700
        assert vault.idle_balance() == 0
        assert asset.balance_of(ALICE) == 300

    def test_shortfall_illiquid_strategy_rolls_back(self, asset, vault, capability):
        """idle 50, payout 80, стратегия отдаёт 20 из 30 -> InsufficientStrategyFunds, shares не сожжены."""
        fund(asset, vault, ALICE, 150)
        vault.deposit(ALICE, 150)

        pool = RebasingLendingPool(asset)
        strategy = RebasingReceiptStrategy(asset, pool)
        vault.rebind_strategy(capability, strategy)
        asset.mint(vault.address, 50)  # idle 50, value 200, supply 150
        pool.borrow("borrower", 130)  # ликвидность пула 20

        assert vault.preview_withdraw(60) == 80

        with pytest.raises(InsufficientStrategyFunds):
            vault.withdraw(ALICE, 60)

        assert vault.balance_of(ALICE) == 150
        assert vault.total_supply() == 150
        assert vault.idle_balance() == 50
        assert strategy.balance_of() == 150
        assert asset.balance_of(ALICE) == 0
        assert vault.total_deposited_principal == 150
        assert not any(isinstance(e, Withdrawn) for e in vault.events)

    def test_silent_truncation_rejected(self, asset, vault, capability):
        """Стратегия вернула меньше запрошенного без ошибки -> vault сам прерывает вывод."""
        strategy = PartialReturnStrategy(asset, max_return=20)
        vault.rebind_strategy(capability, strategy)

        fund(asset, vault, ALICE, 100)
        vault.deposit(ALICE, 100)

        with pytest.raises(InsufficientStrategyFunds):
            vault.withdraw(ALICE, 50)

        assert vault.balance_of(ALICE) == 100
        assert strategy.balance_of() == 100
        assert vault.idle_balance() == 0


# =============================================================================
# ТЕСТЫ: Preview и conservation
# =============================================================================


class TestPreviewAndConservation:
    """Тесты preview-функций и сохранения supply."""

    def test_preview_on_empty_vault(self, vault):
        assert vault.preview_deposit(1000) == 1000
        with pytest.raises(NoSharesOutstanding):
            vault.preview_withdraw(10)

    def test_preview_invalid_amounts(self, vault):
        with pytest.raises(InvalidAmount):
            vault.preview_deposit(0)
        with pytest.raises(InvalidAmount):
            vault.preview_withdraw(0)

    def test_preview_has_no_side_effects(self, asset, vault):
        fund(asset, vault, ALICE, 1000)
        vault.deposit(ALICE, 1000)
        before = vault.snapshot()

        vault.preview_deposit(500)
        vault.preview_withdraw(500)

        assert vault.snapshot() == before
        assert len(vault.events) == 1

    def test_conservation_over_sequence(self, asset, vault):
        """sum(holder shares) == total_supply на каждом шаге; округление не в пользу пользователей."""
        accounts = [ALICE, BOB, "carol"]
        for account in accounts:
            fund(asset, vault, account, 10_000)

        steps = [
            ("deposit", ALICE, 1000),
            ("deposit", BOB, 333),
            ("withdraw", ALICE, 250),
            ("deposit", "carol", 777),
            ("withdraw", BOB, 333),
            ("deposit", ALICE, 1),
            ("withdraw", "carol", 500),
        ]
        for op, account, amount in steps:
            getattr(vault, op)(account, amount)
            assert holders_sum(vault, accounts) == vault.total_supply()
            if vault.total_supply():
                assert vault.preview_withdraw(vault.total_supply()) <= vault.total_managed_value()

        paid_in = sum(e.assets_in for e in vault.events if isinstance(e, Deposited))
        paid_out = sum(e.assets_out for e in vault.events if isinstance(e, Withdrawn))
        assert vault.total_managed_value() == paid_in - paid_out
