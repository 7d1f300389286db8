"""
Transaction API endpoints (create + read, ledger is append-only)
"""
from datetime import date as date_type, datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from subledger.api.deps import get_db, get_current_user
from subledger.application.ledger import LedgerStore
from subledger.application.transactions import CreateTransactionUseCase, list_transactions
from subledger.infrastructure.db.models import User, Transaction
from subledger.utils.money import money_str
from subledger.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/transactions", tags=["transactions"])


# === Request/Response models ===

class TransactionCreateRequest(BaseModel):
    type: str  # income, expense
    category: str  # subscription, food, salary, other
    amount: str
    date: date_type
    description: str | None = None
    subscription_id: int | None = None
    asset_id: int | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2, positive=True)


class TransactionResponse(BaseModel):
    id: int
    user_id: int
    type: str
    category: str
    amount: str  # Decimal as string
    date: date_type
    description: str | None
    subscription_id: int | None
    asset_id: int | None
    created_at: datetime


def _to_response(tx: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=tx.id,
        user_id=tx.user_id,
        type=tx.type,
        category=tx.category,
        amount=money_str(tx.amount),
        date=tx.date,
        description=tx.description,
        subscription_id=tx.subscription_id,
        asset_id=tx.asset_id,
        created_at=tx.created_at,
    )


def _load(db: Session, user: User, transaction_id: int) -> Transaction:
    tx = LedgerStore(db).get_transaction(user.id, transaction_id)
    if not tx:
        raise HTTPException(status_code=404, detail=f"Transaction #{transaction_id} not found")
    return tx


# === Endpoints ===

@router.post("", response_model=TransactionResponse)
def create_transaction(
    req: TransactionCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Создать доход / расход (с применением к активу, если указан)"""
    transaction_id = CreateTransactionUseCase(db).execute(
        user_id=user.id,
        type=req.type,
        category=req.category,
        amount=req.amount,
        date=req.date,
        description=req.description,
        subscription_id=req.subscription_id,
        asset_id=req.asset_id,
    )
    return _to_response(_load(db, user, transaction_id))


@router.get("", response_model=list[TransactionResponse])
def get_transactions(
    category: str | None = None,
    subscription_id: int | None = None,
    start_date: date_type | None = None,
    end_date: date_type | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Список транзакций, новые сверху"""
    txs = list_transactions(
        db, user.id,
        category=category,
        subscription_id=subscription_id,
        start_date=start_date,
        end_date=end_date,
    )
    return [_to_response(tx) for tx in txs]


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _to_response(_load(db, user, transaction_id))
