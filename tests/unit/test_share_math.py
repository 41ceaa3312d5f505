"""
Тесты для Share Math — конверсия assets <-> shares и performance fee

Проверяемые инварианты:
1. Bootstrap: первый депозит N при total_supply == 0 даёт ровно N shares
2. Пропорциональность: floor(assets_in * total_supply / total_value)
3. Округление всегда в пользу протокола
4. assets_for_shares(shares_for_deposit(x)) <= x
5. Fee = floor(profit * 10%)
6. Валидация: только положительные int
"""

import pytest

from src.core.errors import InvalidAmount, NoSharesOutstanding, ZeroManagedValue
from src.core.math.share_math import (
    FEE_RATE_BPS,
    FEE_RATE_DENOMINATOR,
    RAY,
    assets_for_shares,
    performance_fee,
    price_per_share_ray,
    shares_for_deposit,
    validate_amount,
    validate_positive_amount,
)


# =============================================================================
# ТЕСТЫ: shares_for_deposit
# =============================================================================


class TestSharesForDeposit:
    """Тесты shares_for_deposit."""

    def test_bootstrap_one_to_one(self):
        """Первый депозит при total_supply == 0 выпускает shares 1:1."""
        assert shares_for_deposit(1000, 0, 0) == 1000
        assert shares_for_deposit(1, 0, 0) == 1

    def test_bootstrap_ignores_stray_value(self):
        """При total_supply == 0 курс 1:1 даже если на vault уже есть активы."""
        assert shares_for_deposit(500, 0, 123) == 500

    def test_proportional_deposit(self):
        """supply=1000, value=1100, deposit=100 -> floor(100*1000/1100) = 90."""
        assert shares_for_deposit(100, 1000, 1100) == 90

    def test_rounds_down(self):
        """Дробная часть shares отбрасывается."""
        # 7 * 3 / 10 = 2.1
        assert shares_for_deposit(7, 3, 10) == 2

    def test_dust_deposit_mints_zero(self):
        """Депозит меньше цены одной share даёт 0 (отклоняет уже vault)."""
        assert shares_for_deposit(1, 1000, 1100) == 0

    def test_zero_assets_rejected(self):
        with pytest.raises(InvalidAmount):
            shares_for_deposit(0, 1000, 1100)

    def test_zero_value_with_supply_rejected(self):
        """Курс не определён: supply > 0, value == 0."""
        with pytest.raises(ZeroManagedValue):
            shares_for_deposit(100, 1000, 0)

    @pytest.mark.parametrize("bad", [-1, 1.5, "100", None, True])
    def test_invalid_types_rejected(self, bad):
        with pytest.raises(InvalidAmount):
            shares_for_deposit(bad, 1000, 1100)


# =============================================================================
# ТЕСТЫ: assets_for_shares
# =============================================================================


class TestAssetsForShares:
    """Тесты assets_for_shares."""

    def test_proportional_redeem(self):
        assert assets_for_shares(500, 1000, 1100) == 550

    def test_rounds_down(self):
        # 90 * 1200 / 1090 = 99.08
        assert assets_for_shares(90, 1090, 1200) == 99

    def test_zero_supply_rejected(self):
        with pytest.raises(NoSharesOutstanding):
            assets_for_shares(10, 0, 0)

    def test_zero_shares_gives_zero(self):
        assert assets_for_shares(0, 1000, 1100) == 0

    @pytest.mark.parametrize(
        "assets_in,total_supply,total_value",
        [
            (100, 1000, 1100),
            (7, 3, 10),
            (999, 1000, 1001),
            (1, 1, 1),
            (12345, 10**18, 10**18 + 7),
            (50, 100, 37),
        ],
    )
    def test_round_trip_never_benefits_depositor(self, assets_in, total_supply, total_value):
        """assets_for_shares(shares_for_deposit(x)) <= x."""
        shares = shares_for_deposit(assets_in, total_supply, total_value)
        redeemed = assets_for_shares(shares, total_supply + shares, total_value + assets_in)
        assert redeemed <= assets_in


# =============================================================================
# ТЕСТЫ: fee и price per share
# =============================================================================


class TestPerformanceFee:
    """Тесты performance_fee."""

    def test_fee_rate_is_ten_percent(self):
        assert FEE_RATE_BPS * 10 == FEE_RATE_DENOMINATOR

    def test_fee_on_profit(self):
        """profit = 100 -> fee = 10."""
        assert performance_fee(100) == 10

    def test_fee_rounds_down(self):
        assert performance_fee(9) == 0
        assert performance_fee(1234) == 123

    def test_zero_profit(self):
        assert performance_fee(0) == 0

    def test_negative_profit_rejected(self):
        with pytest.raises(InvalidAmount):
            performance_fee(-1)


class TestPricePerShare:
    """Тесты price_per_share_ray."""

    def test_bootstrap_price(self):
        assert price_per_share_ray(0, 0) == RAY

    def test_price_after_yield(self):
        assert price_per_share_ray(1000, 1100) == 11 * RAY // 10


class TestValidation:
    """Тесты validate_amount / validate_positive_amount."""

    def test_zero_is_valid_amount(self):
        validate_amount(0, "amount")

    def test_zero_is_not_positive(self):
        with pytest.raises(InvalidAmount, match="must be positive"):
            validate_positive_amount(0, "amount")

    def test_error_names_parameter(self):
        with pytest.raises(InvalidAmount, match="shares_in"):
            validate_amount(-5, "shares_in")
