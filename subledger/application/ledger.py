"""
Ledger Store - owner-scoped access to assets, subscriptions and transactions.

Все изменения баланса и даты следующего списания идут через условные
UPDATE (compare-and-set), поэтому два параллельных прогона не могут оба
пройти проверку баланса или дважды сдвинуть одну подписку:

- debit_asset:           ... WHERE id = :id AND balance >= :amount
- advance_subscription:  ... WHERE id = :id AND next_billing_date = :expected AND version = :version

На PostgreSQL такой UPDATE берёт row lock до конца транзакции; конкурент
ждёт commit и перепроверяет WHERE уже на новой версии строки.
"""
import logging
from contextlib import contextmanager
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update, exists
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from subledger.infrastructure.db.models import Asset, Subscription, Transaction
from subledger.domain.subscription import SUBSCRIPTION_STATUS_ACTIVE, SUBSCRIPTION_STATUS_PAUSED
from subledger.utils.money import to_money

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for ledger store errors"""
    pass


class NotFoundError(LedgerError):
    """Referenced asset / subscription / transaction does not exist for this owner"""
    pass


class InsufficientFundsError(LedgerError):
    """Asset balance is lower than the amount to debit"""
    pass


class ConcurrentModificationError(LedgerError):
    """Compare-and-set lost against another writer"""
    pass


class StoreUnavailableError(LedgerError):
    """Persistence collaborator cannot be reached"""
    pass


def _is_store_failure(exc: DBAPIError) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return bool(exc.connection_invalidated)


class LedgerStore:
    """
    Repository over one SQLAlchemy session.

    Методы не коммитят сами - границы транзакции задаёт unit_of_work().
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Transaction boundaries
    # ------------------------------------------------------------------

    @contextmanager
    def unit_of_work(self):
        """
        Atomic scope: commit on success, rollback on any error.

        Store connectivity failures are re-raised as StoreUnavailableError.
        """
        try:
            with self.guard():
                yield self
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def commit(self) -> None:
        """Commit ORM changes already made on the session (same guarantees as unit_of_work)."""
        with self.unit_of_work():
            pass

    @contextmanager
    def guard(self):
        """Translate driver connectivity errors to StoreUnavailableError."""
        try:
            yield
        except DBAPIError as exc:
            if _is_store_failure(exc):
                logger.error("Ledger store unavailable: %s", exc.orig)
                raise StoreUnavailableError("ledger store unavailable") from exc
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_asset(self, user_id: int, asset_id: int) -> Asset | None:
        with self.guard():
            return self.db.execute(
                select(Asset).where(Asset.id == asset_id, Asset.user_id == user_id)
            ).scalar_one_or_none()

    def get_subscription(self, user_id: int, subscription_id: int) -> Subscription | None:
        with self.guard():
            return self.db.execute(
                select(Subscription).where(
                    Subscription.id == subscription_id,
                    Subscription.user_id == user_id,
                )
            ).scalar_one_or_none()

    def get_transaction(self, user_id: int, transaction_id: int) -> Transaction | None:
        with self.guard():
            return self.db.execute(
                select(Transaction).where(
                    Transaction.id == transaction_id,
                    Transaction.user_id == user_id,
                )
            ).scalar_one_or_none()

    def list_due_subscriptions(self, user_id: int, target_date: date) -> list[Subscription]:
        """Active subscriptions with next_billing_date <= target_date (overdue included)."""
        with self.guard():
            return list(self.db.execute(
                select(Subscription)
                .where(
                    Subscription.user_id == user_id,
                    Subscription.status == SUBSCRIPTION_STATUS_ACTIVE,
                    Subscription.next_billing_date <= target_date,
                )
                .order_by(Subscription.next_billing_date, Subscription.id)
            ).scalars())

    def list_users_with_due_subscriptions(self, target_date: date) -> list[int]:
        with self.guard():
            return list(self.db.execute(
                select(Subscription.user_id)
                .where(
                    Subscription.status == SUBSCRIPTION_STATUS_ACTIVE,
                    Subscription.next_billing_date <= target_date,
                )
                .distinct()
                .order_by(Subscription.user_id)
            ).scalars())

    def asset_is_referenced(self, asset_id: int) -> bool:
        with self.guard():
            return bool(self.db.execute(
                select(
                    exists().where(Transaction.asset_id == asset_id)
                    | exists().where(Subscription.asset_id == asset_id)
                )
            ).scalar())

    def subscription_is_referenced(self, subscription_id: int) -> bool:
        with self.guard():
            return bool(self.db.execute(
                select(exists().where(Transaction.subscription_id == subscription_id))
            ).scalar())

    # ------------------------------------------------------------------
    # Writes (caller owns the unit of work)
    # ------------------------------------------------------------------

    def debit_asset(self, user_id: int, asset_id: int, amount: Decimal) -> None:
        """
        Списать amount с актива одним условным UPDATE.

        Raises:
            NotFoundError: актив не найден у этого владельца
            InsufficientFundsError: balance < amount (актив не изменён)
        """
        amount = to_money(amount)
        result = self.db.execute(
            update(Asset)
            .where(
                Asset.id == asset_id,
                Asset.user_id == user_id,
                Asset.balance >= amount,
            )
            .values(balance=Asset.balance - amount, version=Asset.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            self._expire_cached(Asset, asset_id)
            return

        if self._asset_exists(user_id, asset_id):
            raise InsufficientFundsError(f"Asset #{asset_id}: insufficient balance for {amount}")
        raise NotFoundError(f"Asset #{asset_id} not found")

    def credit_asset(self, user_id: int, asset_id: int, amount: Decimal) -> None:
        amount = to_money(amount)
        result = self.db.execute(
            update(Asset)
            .where(Asset.id == asset_id, Asset.user_id == user_id)
            .values(balance=Asset.balance + amount, version=Asset.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError(f"Asset #{asset_id} not found")
        self._expire_cached(Asset, asset_id)

    def advance_subscription(
        self,
        user_id: int,
        subscription_id: int,
        expected_date: date,
        expected_version: int,
        new_date: date,
    ) -> None:
        """
        Compare-and-set next_billing_date: expected_date -> new_date.

        Raises:
            ConcurrentModificationError: подписку уже сдвинул / изменил другой writer
        """
        result = self.db.execute(
            update(Subscription)
            .where(
                Subscription.id == subscription_id,
                Subscription.user_id == user_id,
                Subscription.status == SUBSCRIPTION_STATUS_ACTIVE,
                Subscription.next_billing_date == expected_date,
                Subscription.version == expected_version,
            )
            .values(next_billing_date=new_date, version=Subscription.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"Subscription #{subscription_id} changed since it was selected"
            )
        self._expire_cached(Subscription, subscription_id)

    def pause_subscription(self, user_id: int, subscription_id: int, expected_version: int) -> None:
        result = self.db.execute(
            update(Subscription)
            .where(
                Subscription.id == subscription_id,
                Subscription.user_id == user_id,
                Subscription.status == SUBSCRIPTION_STATUS_ACTIVE,
                Subscription.version == expected_version,
            )
            .values(status=SUBSCRIPTION_STATUS_PAUSED, version=Subscription.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"Subscription #{subscription_id} changed since it was selected"
            )
        self._expire_cached(Subscription, subscription_id)

    def append_transaction(
        self,
        user_id: int,
        type: str,
        category: str,
        amount: Decimal,
        date: date,
        description: str | None = None,
        subscription_id: int | None = None,
        asset_id: int | None = None,
    ) -> Transaction:
        """Append an immutable ledger entry (flush only, no commit)."""
        tx = Transaction(
            user_id=user_id,
            type=type,
            category=category,
            amount=to_money(amount),
            date=date,
            description=description,
            subscription_id=subscription_id,
            asset_id=asset_id,
        )
        self.db.add(tx)
        self.db.flush()
        return tx

    # ------------------------------------------------------------------

    def _asset_exists(self, user_id: int, asset_id: int) -> bool:
        return bool(self.db.execute(
            select(exists().where(Asset.id == asset_id, Asset.user_id == user_id))
        ).scalar())

    def _expire_cached(self, model, pk: int) -> None:
        """Bulk UPDATE bypasses the identity map - drop stale in-session state."""
        obj = self.db.identity_map.get(Session.identity_key(model, pk))
        if obj is not None:
            self.db.expire(obj)
