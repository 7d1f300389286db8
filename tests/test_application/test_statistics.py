"""
Tests for StatisticsService
"""
from datetime import date
from decimal import Decimal

import pytest

from subledger.application.billing import BillingProcessor
from subledger.application.statistics import StatisticsService, StatisticsValidationError
from subledger.application.transactions import CreateTransactionUseCase


@pytest.fixture
def add_tx(db_session, user):
    def _add(amount, category="food", tx_date=date(2026, 3, 5), type="expense", asset_id=None, user_id=None):
        return CreateTransactionUseCase(db_session).execute(
            user_id=user_id or user.id,
            type=type,
            category=category,
            amount=amount,
            date=tx_date,
            asset_id=asset_id,
        )
    return _add


class TestCategorySpending:
    def test_groups_reconcile_with_total(self, db_session, user, add_tx):
        add_tx("0.10", "food")
        add_tx("0.20", "food")
        add_tx("12.34", "other")
        add_tx("15.00", "subscription")
        add_tx("1000.00", "salary", type="income")

        data = StatisticsService(db_session).category_spending(
            user.id, date(2026, 3, 1), date(2026, 3, 31)
        )

        assert data["categories"] == [
            {"category": "subscription", "amount": Decimal("15.00")},
            {"category": "other", "amount": Decimal("12.34")},
            {"category": "food", "amount": Decimal("0.30")},
        ]
        assert data["total"] == Decimal("27.64")
        assert sum(c["amount"] for c in data["categories"]) == data["total"]

    def test_equal_amounts_sorted_by_name(self, db_session, user, add_tx):
        add_tx("5.00", "other")
        add_tx("5.00", "food")

        data = StatisticsService(db_session).category_spending(
            user.id, date(2026, 3, 1), date(2026, 3, 31)
        )

        assert [c["category"] for c in data["categories"]] == ["food", "other"]

    def test_range_is_inclusive(self, db_session, user, add_tx):
        add_tx("1.00", tx_date=date(2026, 3, 1))
        add_tx("2.00", tx_date=date(2026, 3, 31))
        add_tx("4.00", tx_date=date(2026, 4, 1))

        data = StatisticsService(db_session).category_spending(
            user.id, date(2026, 3, 1), date(2026, 3, 31)
        )

        assert data["total"] == Decimal("3.00")

    def test_empty_range(self, db_session, user):
        data = StatisticsService(db_session).category_spending(
            user.id, date(2026, 3, 1), date(2026, 3, 31)
        )
        assert data == {"categories": [], "total": Decimal("0.00")}

    def test_inverted_range_rejected(self, db_session, user):
        with pytest.raises(StatisticsValidationError):
            StatisticsService(db_session).category_spending(
                user.id, date(2026, 3, 31), date(2026, 3, 1)
            )


class TestMonthly:
    def test_monthly_spending_counts_only_expenses_of_month(self, db_session, user, add_tx):
        add_tx("10.00", tx_date=date(2026, 3, 1))
        add_tx("5.55", tx_date=date(2026, 3, 31))
        add_tx("99.00", tx_date=date(2026, 4, 1))
        add_tx("500.00", "salary", type="income", tx_date=date(2026, 3, 10))

        data = StatisticsService(db_session).monthly_spending(user.id, 2026, 3)

        assert data == {"year": 2026, "month": 3, "total_spending": Decimal("15.55")}

    def test_december_boundary(self, db_session, user, add_tx):
        add_tx("7.00", tx_date=date(2025, 12, 31))
        add_tx("8.00", tx_date=date(2026, 1, 1))

        data = StatisticsService(db_session).monthly_spending(user.id, 2025, 12)

        assert data["total_spending"] == Decimal("7.00")

    def test_subscription_spending_after_billing(
        self, db_session, user, add_tx, make_asset, make_subscription
    ):
        asset_id = make_asset(balance="100.00")
        make_subscription(date(2026, 3, 1), asset_id=asset_id, amount="15.00")
        make_subscription(date(2026, 3, 1), asset_id=asset_id, name="Spotify", amount="9.99", category="music")
        add_tx("20.00", "food")
        BillingProcessor(db_session).process(user.id, date(2026, 3, 1))

        stats = StatisticsService(db_session)
        assert stats.subscription_spending(user.id, 2026, 3)["total_subscription_spending"] == Decimal("24.99")
        assert stats.monthly_spending(user.id, 2026, 3)["total_spending"] == Decimal("44.99")

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, db_session, user, month):
        with pytest.raises(StatisticsValidationError):
            StatisticsService(db_session).monthly_spending(user.id, 2026, month)

    def test_other_owner_excluded(self, db_session, user, other_user, add_tx):
        add_tx("10.00", user_id=other_user.id)

        data = StatisticsService(db_session).monthly_spending(user.id, 2026, 3)

        assert data["total_spending"] == Decimal("0.00")


class TestAssetDistribution:
    def test_percentages(self, db_session, user, make_asset):
        bank = make_asset(name="Bank", balance="200.00")
        cash = make_asset(name="Cash", balance="100.00", asset_type="cash")
        make_asset(name="Empty", balance="0", asset_type="payment")

        data = StatisticsService(db_session).asset_distribution(user.id)

        assert data["total_assets"] == Decimal("300.00")
        assert [a["asset_id"] for a in data["assets"][:2]] == [bank, cash]
        assert [a["percentage"] for a in data["assets"]] == [
            Decimal("66.67"), Decimal("33.33"), Decimal("0.00"),
        ]
        assert sum(a["balance"] for a in data["assets"]) == data["total_assets"]

    def test_zero_total_gives_zero_percentages(self, db_session, user, make_asset):
        make_asset(name="A", balance="0")
        make_asset(name="B", balance="0")

        data = StatisticsService(db_session).asset_distribution(user.id)

        assert data["total_assets"] == Decimal("0.00")
        assert all(a["percentage"] == Decimal("0") for a in data["assets"])

    def test_no_assets(self, db_session, user):
        assert StatisticsService(db_session).asset_distribution(user.id) == {
            "assets": [], "total_assets": Decimal("0.00"),
        }

    def test_total_assets(self, db_session, user, make_asset):
        make_asset(balance="10.10")
        make_asset(balance="0.20")

        data = StatisticsService(db_session).total_assets(user.id)

        assert data == {"total": Decimal("10.30"), "user_id": user.id}
