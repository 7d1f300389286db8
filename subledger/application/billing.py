"""
Billing Processor - one billing run for one owner and target date.

Для каждой подписки к оплате (active, next_billing_date <= target_date):
  1. auto_renew выключен  -> failed "auto-renew disabled", статус -> paused
  2. нет актива           -> failed "no payment asset"
  3. balance < amount     -> failed "insufficient balance", ничего не меняется,
                             подписка остаётся к оплате до следующего прогона
  4. иначе атомарно: сдвиг next_billing_date от *предыдущей* даты
     (не от target_date), списание с актива, запись expense-транзакции.

Повторный прогон на ту же дату не списывает дважды: оплаченная подписка
уже не попадает в выборку. Ошибка одной подписки не прерывает прогон;
только недоступность хранилища (StoreUnavailableError) фатальна.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from subledger.application.ledger import (
    LedgerStore, NotFoundError, InsufficientFundsError, ConcurrentModificationError,
)
from subledger.domain.billing import (
    BillingOutcome, BillingRunResult,
    MSG_BILLED, MSG_AUTO_RENEW_DISABLED, MSG_NO_PAYMENT_ASSET, MSG_ASSET_NOT_FOUND,
    MSG_INSUFFICIENT_BALANCE, MSG_CONCURRENT_MODIFICATION,
)
from subledger.domain.billing_cycle import next_billing_date
from subledger.domain.subscription import SUBSCRIPTION_STATUS_ACTIVE
from subledger.domain.transaction import TRANSACTION_TYPE_EXPENSE, CATEGORY_SUBSCRIPTION
from subledger.infrastructure.db.models import Subscription
from subledger.utils.money import to_money, format_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _DueSubscription:
    """Snapshot of a selected subscription; ORM rows expire on every commit."""
    id: int
    name: str
    amount: Decimal
    billing_cycle: str
    next_billing_date: date
    auto_renew: bool
    asset_id: int | None
    version: int

    @classmethod
    def from_model(cls, sub: Subscription) -> "_DueSubscription":
        return cls(
            id=sub.id,
            name=sub.name,
            amount=to_money(sub.amount),
            billing_cycle=sub.billing_cycle,
            next_billing_date=sub.next_billing_date,
            auto_renew=sub.auto_renew,
            asset_id=sub.asset_id,
            version=sub.version,
        )

    def outcome(self, success: bool, message: str) -> BillingOutcome:
        return BillingOutcome(
            subscription_id=self.id,
            subscription_name=self.name,
            amount=self.amount,
            asset_id=self.asset_id,
            success=success,
            message=message,
        )


class BillingProcessor:
    """
    Use case: обработать списания по подпискам владельца на target_date

    Usage:
        result = BillingProcessor(db).process(user_id=1, target_date=date(2026, 3, 1))
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = LedgerStore(db)

    def process(self, user_id: int, target_date: date) -> BillingRunResult:
        """
        Run billing for every due subscription of `user_id`.

        Returns:
            BillingRunResult with one outcome per selected subscription,
            in selection order (next_billing_date, id)

        Raises:
            StoreUnavailableError: хранилище недоступно (частичного результата нет)
        """
        due = [
            _DueSubscription.from_model(sub)
            for sub in self.store.list_due_subscriptions(user_id, target_date)
        ]

        outcomes = [self._process_one(user_id, sub, target_date) for sub in due]
        result = BillingRunResult(processed_date=target_date, results=tuple(outcomes))

        logger.info(
            "Billing run user_id=%d date=%s: processed=%d successful=%d failed=%d",
            user_id, target_date.isoformat(),
            result.total_processed, result.successful, result.failed,
        )
        return result

    def _process_one(
        self, user_id: int, sub: _DueSubscription, target_date: date, retry: bool = True
    ) -> BillingOutcome:
        try:
            outcome = self._bill(user_id, sub, target_date)
        except ConcurrentModificationError:
            if not retry:
                return self._failed(sub, MSG_CONCURRENT_MODIFICATION)
            fresh = self.store.get_subscription(user_id, sub.id)
            if (
                fresh is None
                or fresh.status != SUBSCRIPTION_STATUS_ACTIVE
                or fresh.next_billing_date > target_date
            ):
                return self._failed(sub, MSG_CONCURRENT_MODIFICATION)
            return self._process_one(
                user_id, _DueSubscription.from_model(fresh), target_date, retry=False
            )

        if not outcome.success:
            logger.warning(
                "Billing failed sub_id=%d (%s): %s", sub.id, sub.name, outcome.message
            )
        return outcome

    def _bill(self, user_id: int, sub: _DueSubscription, target_date: date) -> BillingOutcome:
        if not sub.auto_renew:
            with self.store.unit_of_work():
                self.store.pause_subscription(user_id, sub.id, sub.version)
            return sub.outcome(False, MSG_AUTO_RENEW_DISABLED)

        if sub.asset_id is None:
            return sub.outcome(False, MSG_NO_PAYMENT_ASSET)

        new_date = next_billing_date(sub.next_billing_date, sub.billing_cycle)
        try:
            with self.store.unit_of_work():
                # Сначала claim подписки: конкурентный прогон упрётся в CAS
                self.store.advance_subscription(
                    user_id, sub.id,
                    expected_date=sub.next_billing_date,
                    expected_version=sub.version,
                    new_date=new_date,
                )
                self.store.debit_asset(user_id, sub.asset_id, sub.amount)
                self.store.append_transaction(
                    user_id=user_id,
                    type=TRANSACTION_TYPE_EXPENSE,
                    category=CATEGORY_SUBSCRIPTION,
                    amount=sub.amount,
                    date=target_date,
                    description=f"{sub.name} ({sub.billing_cycle} billing)",
                    subscription_id=sub.id,
                    asset_id=sub.asset_id,
                )
        except InsufficientFundsError:
            return sub.outcome(False, MSG_INSUFFICIENT_BALANCE)
        except NotFoundError:
            return sub.outcome(False, MSG_ASSET_NOT_FOUND)

        logger.info(
            "Billed sub_id=%d %s from asset_id=%d, next billing %s",
            sub.id, format_money(sub.amount), sub.asset_id, new_date.isoformat(),
        )
        return sub.outcome(True, MSG_BILLED)

    def _failed(self, sub: _DueSubscription, message: str) -> BillingOutcome:
        logger.warning("Billing failed sub_id=%d (%s): %s", sub.id, sub.name, message)
        return sub.outcome(False, message)
