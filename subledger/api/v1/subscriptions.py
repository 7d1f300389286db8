"""
Subscription API endpoints
"""
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from subledger.api.deps import get_db, get_current_user
from subledger.application.ledger import LedgerStore
from subledger.application.subscriptions import (
    CreateSubscriptionUseCase, UpdateSubscriptionUseCase, DeleteSubscriptionUseCase,
    list_subscriptions,
)
from subledger.infrastructure.db.models import User, Subscription
from subledger.utils.money import money_str
from subledger.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


# === Request/Response models ===

class SubscriptionCreateRequest(BaseModel):
    name: str
    category: str  # video, music, software, cloud, other
    amount: str
    billing_cycle: str  # weekly, monthly, yearly
    next_billing_date: date
    auto_renew: bool = True
    asset_id: int | None = None
    status: str = "active"

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2, positive=True)


class SubscriptionUpdateRequest(BaseModel):
    name: str | None = None
    category: str | None = None
    amount: str | None = None
    billing_cycle: str | None = None
    next_billing_date: date | None = None
    auto_renew: bool | None = None
    asset_id: int | None = None
    status: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        if v is None:
            return v
        return validate_and_normalize_amount(v, max_decimal_places=2, positive=True)


class SubscriptionResponse(BaseModel):
    id: int
    user_id: int
    name: str
    category: str
    amount: str  # Decimal as string
    billing_cycle: str
    next_billing_date: date
    auto_renew: bool
    asset_id: int | None
    status: str
    created_at: datetime
    updated_at: datetime


def _to_response(sub: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        id=sub.id,
        user_id=sub.user_id,
        name=sub.name,
        category=sub.category,
        amount=money_str(sub.amount),
        billing_cycle=sub.billing_cycle,
        next_billing_date=sub.next_billing_date,
        auto_renew=sub.auto_renew,
        asset_id=sub.asset_id,
        status=sub.status,
        created_at=sub.created_at,
        updated_at=sub.updated_at,
    )


def _load(db: Session, user: User, sub_id: int) -> Subscription:
    sub = LedgerStore(db).get_subscription(user.id, sub_id)
    if not sub:
        raise HTTPException(status_code=404, detail=f"Subscription #{sub_id} not found")
    return sub


# === Endpoints ===

@router.post("", response_model=SubscriptionResponse)
def create_subscription(
    req: SubscriptionCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Создать подписку"""
    sub_id = CreateSubscriptionUseCase(db).execute(
        user_id=user.id,
        name=req.name,
        category=req.category,
        amount=req.amount,
        billing_cycle=req.billing_cycle,
        next_billing_date=req.next_billing_date,
        auto_renew=req.auto_renew,
        asset_id=req.asset_id,
        status=req.status,
    )
    return _to_response(_load(db, user, sub_id))


@router.get("", response_model=list[SubscriptionResponse])
def get_subscriptions(
    status: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Список подписок (опционально по статусу)"""
    return [_to_response(s) for s in list_subscriptions(db, user.id, status)]


@router.get("/{sub_id}", response_model=SubscriptionResponse)
def get_subscription(
    sub_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _to_response(_load(db, user, sub_id))


@router.put("/{sub_id}", response_model=SubscriptionResponse)
def update_subscription(
    sub_id: int,
    req: SubscriptionUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # Явный "asset_id": null отвязывает актив, остальные null игнорируются
    changes = {
        k: v for k, v in req.model_dump(exclude_unset=True).items()
        if v is not None or k == "asset_id"
    }
    UpdateSubscriptionUseCase(db).execute(sub_id=sub_id, user_id=user.id, **changes)
    return _to_response(_load(db, user, sub_id))


@router.delete("/{sub_id}", status_code=204)
def delete_subscription(
    sub_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    DeleteSubscriptionUseCase(db).execute(sub_id=sub_id, user_id=user.id)
    return Response(status_code=204)
