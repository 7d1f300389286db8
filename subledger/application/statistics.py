"""
Statistics service: read-only aggregation over the ledger.

- monthly spending (all expenses of a month)
- category spending over a date range (groups reconcile exactly with total)
- subscription spending (expenses of category "subscription" in a month)
- asset distribution (share of every asset in the owner's total balance)

Все суммы - Decimal; итоги считаются как сумма уже округлённых групп,
поэтому sum(categories) == total без расхождений.
"""
from datetime import date
from decimal import Decimal
from typing import Dict, Any, List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from subledger.application.ledger import LedgerStore
from subledger.config import get_settings
from subledger.domain.transaction import TRANSACTION_TYPE_EXPENSE, CATEGORY_SUBSCRIPTION
from subledger.infrastructure.db.models import Transaction, Asset
from subledger.infrastructure.db.session import begin_snapshot_read
from subledger.utils.money import ZERO, to_money, sum_money, percentage


class StatisticsValidationError(ValueError):
    pass


def _month_start(y: int, m: int) -> date:
    return date(y, m, 1)


def _month_end(y: int, m: int) -> date:
    """Return first day of next month."""
    if m == 12:
        return date(y + 1, 1, 1)
    return date(y, m + 1, 1)


def _validate_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise StatisticsValidationError(f"month must be within 1..12, got {month}")
    # date(9999, 12, 1) + 1 month would overflow
    if not 1 <= year <= 9998:
        raise StatisticsValidationError(f"year out of range: {year}")


class StatisticsService:
    """Build statistics for one owner."""

    def __init__(self, db: Session):
        self.db = db
        self.store = LedgerStore(db)

    def monthly_spending(self, user_id: int, year: int, month: int) -> Dict[str, Any]:
        _validate_month(year, month)
        total = self._expense_sum(
            user_id, _month_start(year, month), _month_end(year, month)
        )
        return {"year": year, "month": month, "total_spending": total}

    def subscription_spending(self, user_id: int, year: int, month: int) -> Dict[str, Any]:
        _validate_month(year, month)
        total = self._expense_sum(
            user_id, _month_start(year, month), _month_end(year, month),
            category=CATEGORY_SUBSCRIPTION,
        )
        return {"year": year, "month": month, "total_subscription_spending": total}

    def category_spending(self, user_id: int, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Expenses grouped by category for [start_date, end_date] inclusive.

        Returns:
            {"categories": [{"category", "amount"}, ...], "total": Decimal}
            categories ordered by amount desc, then name
        """
        if start_date > end_date:
            raise StatisticsValidationError("start_date must be <= end_date")

        with self.store.guard():
            begin_snapshot_read(self.db)
            rows: List[Tuple[str, Decimal]] = self.db.execute(
                select(Transaction.category, func.sum(Transaction.amount))
                .where(
                    Transaction.user_id == user_id,
                    Transaction.type == TRANSACTION_TYPE_EXPENSE,
                    Transaction.date >= start_date,
                    Transaction.date <= end_date,
                )
                .group_by(Transaction.category)
            ).all()

        categories = [
            {"category": category, "amount": to_money(amount or ZERO)}
            for category, amount in rows
        ]
        categories.sort(key=lambda c: (-c["amount"], c["category"]))
        total = sum_money(c["amount"] for c in categories)
        return {"categories": categories, "total": total}

    def asset_distribution(self, user_id: int) -> Dict[str, Any]:
        """
        Share of each asset in the owner's total balance.

        Percentages are rounded (PERCENTAGE_PLACES) and may not add up to
        exactly 100; balances always add up to total_assets exactly.
        """
        places = get_settings().PERCENTAGE_PLACES
        with self.store.guard():
            begin_snapshot_read(self.db)
            assets = list(self.db.execute(
                select(Asset)
                .where(Asset.user_id == user_id)
                .order_by(Asset.balance.desc(), Asset.id)
            ).scalars())

        balances = [(a, to_money(a.balance)) for a in assets]
        total = sum_money(b for _, b in balances)
        return {
            "assets": [
                {
                    "asset_id": a.id,
                    "asset_name": a.name,
                    "asset_type": a.type,
                    "balance": balance,
                    "percentage": percentage(balance, total, places),
                }
                for a, balance in balances
            ],
            "total_assets": total,
        }

    def total_assets(self, user_id: int) -> Dict[str, Any]:
        with self.store.guard():
            balances = self.db.execute(
                select(Asset.balance).where(Asset.user_id == user_id)
            ).scalars().all()
        return {"total": sum_money(balances), "user_id": user_id}

    def _expense_sum(
        self, user_id: int, dt_start: date, dt_end: date, category: str | None = None
    ) -> Decimal:
        """Sum of expenses with dt_start <= date < dt_end."""
        query = select(func.sum(Transaction.amount)).where(
            Transaction.user_id == user_id,
            Transaction.type == TRANSACTION_TYPE_EXPENSE,
            Transaction.date >= dt_start,
            Transaction.date < dt_end,
        )
        if category is not None:
            query = query.where(Transaction.category == category)

        with self.store.guard():
            total = self.db.execute(query).scalar()
        return to_money(total if total is not None else ZERO)
