"""
Subscription use cases - CRUD подписок.

Модуль работает напрямую с ORM. next_billing_date после создания сдвигает
только BillingProcessor; владелец может перенести дату через update.
"""
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from subledger.application.ledger import LedgerStore, NotFoundError, ConcurrentModificationError
from subledger.domain.billing_cycle import validate_billing_cycle
from subledger.domain.subscription import (
    SUBSCRIPTION_CATEGORIES, SUBSCRIPTION_STATUSES, SUBSCRIPTION_STATUS_ACTIVE,
)
from subledger.infrastructure.db.models import Subscription
from subledger.utils.money import to_money


class SubscriptionValidationError(ValueError):
    pass


def _validate_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise SubscriptionValidationError("Subscription name must not be empty")
    return name


def _validate_category(category: str) -> None:
    if category not in SUBSCRIPTION_CATEGORIES:
        raise SubscriptionValidationError(f"Invalid subscription category: {category}")


def _validate_status(status: str) -> None:
    if status not in SUBSCRIPTION_STATUSES:
        raise SubscriptionValidationError(f"Invalid subscription status: {status}")


def _validate_amount(amount) -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise SubscriptionValidationError("Subscription amount must be greater than zero")
    return amount


class CreateSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        name: str,
        category: str,
        amount: Decimal | str,
        billing_cycle: str,
        next_billing_date: date,
        auto_renew: bool = True,
        asset_id: int | None = None,
        status: str = SUBSCRIPTION_STATUS_ACTIVE,
    ) -> int:
        """
        Raises:
            InvalidCycleError: неизвестный billing_cycle
            SubscriptionValidationError: прочие ошибки валидации
            NotFoundError: asset_id не принадлежит владельцу
        """
        validate_billing_cycle(billing_cycle)
        name = _validate_name(name)
        _validate_category(category)
        _validate_status(status)
        amount = _validate_amount(amount)
        if asset_id is not None and LedgerStore(self.db).get_asset(user_id, asset_id) is None:
            raise NotFoundError(f"Asset #{asset_id} not found")

        sub = Subscription(
            user_id=user_id,
            name=name,
            category=category,
            amount=amount,
            billing_cycle=billing_cycle,
            next_billing_date=next_billing_date,
            auto_renew=auto_renew,
            asset_id=asset_id,
            status=status,
        )
        with LedgerStore(self.db).unit_of_work():
            self.db.add(sub)
            self.db.flush()
            sub_id = sub.id
        return sub_id


class UpdateSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: int, user_id: int, **changes) -> None:
        store = LedgerStore(self.db)
        sub = store.get_subscription(user_id, sub_id)
        if not sub:
            raise NotFoundError(f"Subscription #{sub_id} not found")

        if "billing_cycle" in changes:
            sub.billing_cycle = validate_billing_cycle(changes["billing_cycle"])
        if "name" in changes:
            sub.name = _validate_name(changes["name"])
        if "category" in changes:
            _validate_category(changes["category"])
            sub.category = changes["category"]
        if "amount" in changes:
            sub.amount = _validate_amount(changes["amount"])
        if "status" in changes:
            _validate_status(changes["status"])
            sub.status = changes["status"]
        if "next_billing_date" in changes:
            sub.next_billing_date = changes["next_billing_date"]
        if "auto_renew" in changes:
            sub.auto_renew = bool(changes["auto_renew"])
        if "asset_id" in changes:
            asset_id = changes["asset_id"]
            if asset_id is not None and store.get_asset(user_id, asset_id) is None:
                raise NotFoundError(f"Asset #{asset_id} not found")
            sub.asset_id = asset_id
        try:
            store.commit()
        except StaleDataError:
            # version_id_col: подписку успел изменить billing-прогон
            raise ConcurrentModificationError(f"Subscription #{sub_id} was modified concurrently")


class DeleteSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: int, user_id: int) -> None:
        store = LedgerStore(self.db)
        sub = store.get_subscription(user_id, sub_id)
        if not sub:
            raise NotFoundError(f"Subscription #{sub_id} not found")
        if store.subscription_is_referenced(sub_id):
            raise SubscriptionValidationError(
                "Subscription has billing history, cancel it instead of deleting"
            )
        with store.unit_of_work():
            self.db.delete(sub)


def list_subscriptions(db: Session, user_id: int, status: str | None = None) -> list[Subscription]:
    query = select(Subscription).where(Subscription.user_id == user_id)
    if status is not None:
        _validate_status(status)
        query = query.where(Subscription.status == status)
    return list(db.execute(
        query.order_by(Subscription.next_billing_date, Subscription.id)
    ).scalars())
