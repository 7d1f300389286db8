"""
Transaction use cases - manual ledger entries

Транзакции неизменяемы: только создание и чтение. Если указан asset_id,
запись и изменение баланса идут в одном unit of work:
income -> credit, expense -> условный debit (balance >= amount).
"""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from subledger.application.ledger import LedgerStore, NotFoundError
from subledger.domain.transaction import (
    TRANSACTION_TYPES, TRANSACTION_CATEGORIES, TRANSACTION_TYPE_INCOME,
)
from subledger.infrastructure.db.models import Transaction
from subledger.utils.money import to_money

logger = logging.getLogger(__name__)


class TransactionValidationError(ValueError):
    """Ошибка валидации транзакции"""
    pass


class CreateTransactionUseCase:
    """
    Use case: Создать транзакцию (income / expense)
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = LedgerStore(db)

    def execute(
        self,
        user_id: int,
        type: str,
        category: str,
        amount: Decimal | str,
        date: date,
        description: str | None = None,
        subscription_id: int | None = None,
        asset_id: int | None = None,
    ) -> int:
        """
        Создать транзакцию и применить её к активу

        Returns:
            transaction_id

        Raises:
            TransactionValidationError: неверный тип / категория / сумма
            NotFoundError: актив или подписка не найдены у владельца
            InsufficientFundsError: expense больше баланса актива
        """
        if type not in TRANSACTION_TYPES:
            raise TransactionValidationError(f"Invalid transaction type: {type}")
        if category not in TRANSACTION_CATEGORIES:
            raise TransactionValidationError(f"Invalid transaction category: {category}")
        amount = to_money(amount)
        if amount <= 0:
            raise TransactionValidationError("Transaction amount must be greater than zero")

        if subscription_id is not None and self.store.get_subscription(user_id, subscription_id) is None:
            raise NotFoundError(f"Subscription #{subscription_id} not found")

        with self.store.unit_of_work():
            if asset_id is not None:
                if type == TRANSACTION_TYPE_INCOME:
                    self.store.credit_asset(user_id, asset_id, amount)
                else:
                    self.store.debit_asset(user_id, asset_id, amount)
            tx = self.store.append_transaction(
                user_id=user_id,
                type=type,
                category=category,
                amount=amount,
                date=date,
                description=description,
                subscription_id=subscription_id,
                asset_id=asset_id,
            )
            transaction_id = tx.id

        logger.info(
            "Transaction created id=%d user_id=%d type=%s amount=%s",
            transaction_id, user_id, type, amount,
        )
        return transaction_id


def list_transactions(
    db: Session,
    user_id: int,
    category: str | None = None,
    subscription_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Transaction]:
    """Transactions of the owner, newest first."""
    query = select(Transaction).where(Transaction.user_id == user_id)
    if category is not None:
        query = query.where(Transaction.category == category)
    if subscription_id is not None:
        query = query.where(Transaction.subscription_id == subscription_id)
    if start_date is not None:
        query = query.where(Transaction.date >= start_date)
    if end_date is not None:
        query = query.where(Transaction.date <= end_date)
    return list(db.execute(
        query.order_by(Transaction.date.desc(), Transaction.id.desc())
    ).scalars())
