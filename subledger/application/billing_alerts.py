"""
Upcoming billing alerts - read-only scan of active subscriptions whose
next_billing_date falls within [today, today + days].

Delivery of alerts (push, e-mail) is not part of this service.
"""
from datetime import date, timedelta

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from subledger.application.ledger import LedgerStore
from subledger.domain.billing import BillingAlert
from subledger.domain.subscription import SUBSCRIPTION_STATUS_ACTIVE
from subledger.infrastructure.db.models import Subscription, Asset
from subledger.infrastructure.db.session import begin_snapshot_read
from subledger.utils.money import to_money


class BillingAlertService:
    def __init__(self, db: Session):
        self.db = db
        self.store = LedgerStore(db)

    def alerts(self, user_id: int, days: int = 7, today: date | None = None) -> list[BillingAlert]:
        """
        Alerts ordered by (billing_date, subscription_id).

        Raises:
            ValueError: days < 0
        """
        if days < 0:
            raise ValueError("days must be >= 0")
        if today is None:
            today = date.today()
        horizon = today + timedelta(days=days)

        with self.store.guard():
            begin_snapshot_read(self.db)
            rows = self.db.execute(
                select(Subscription, Asset)
                .outerjoin(
                    Asset,
                    and_(Asset.id == Subscription.asset_id, Asset.user_id == Subscription.user_id),
                )
                .where(
                    Subscription.user_id == user_id,
                    Subscription.status == SUBSCRIPTION_STATUS_ACTIVE,
                    Subscription.next_billing_date >= today,
                    Subscription.next_billing_date <= horizon,
                )
                .order_by(Subscription.next_billing_date, Subscription.id)
            ).all()

        return [
            BillingAlert(
                subscription_id=sub.id,
                subscription_name=sub.name,
                amount=to_money(sub.amount),
                billing_date=sub.next_billing_date,
                asset_id=sub.asset_id,
                asset_name=asset.name if asset else None,
                days_until_billing=(sub.next_billing_date - today).days,
            )
            for sub, asset in rows
        ]
