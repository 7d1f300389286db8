"""
Billing API endpoints (billing run, upcoming alerts)
"""
from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from subledger.api.deps import get_db, get_current_user
from subledger.application.billing import BillingProcessor
from subledger.application.billing_alerts import BillingAlertService
from subledger.config import get_settings
from subledger.infrastructure.db.models import User
from subledger.utils.money import money_str


router = APIRouter(prefix="/api/billing", tags=["billing"])


# === Request/Response models ===

class BillingProcessRequest(BaseModel):
    target_date: date


class BillingResultItem(BaseModel):
    subscription_id: int
    subscription_name: str
    amount: str  # Decimal as string
    asset_id: int | None
    success: bool
    message: str


class BillingResultResponse(BaseModel):
    processed_date: date
    total_processed: int
    successful: int
    failed: int
    results: list[BillingResultItem]


class BillingAlertResponse(BaseModel):
    subscription_id: int
    subscription_name: str
    amount: str  # Decimal as string
    billing_date: date
    asset_id: int | None
    asset_name: str | None
    days_until_billing: int


# === Endpoints ===

@router.post("/process", response_model=BillingResultResponse)
def process_billing(
    req: BillingProcessRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Списать все подписки, срок которых наступил к target_date"""
    result = BillingProcessor(db).process(user.id, req.target_date)

    return BillingResultResponse(
        processed_date=result.processed_date,
        total_processed=result.total_processed,
        successful=result.successful,
        failed=result.failed,
        results=[
            BillingResultItem(
                subscription_id=r.subscription_id,
                subscription_name=r.subscription_name,
                amount=money_str(r.amount),
                asset_id=r.asset_id,
                success=r.success,
                message=r.message,
            )
            for r in result.results
        ],
    )


@router.get("/alerts", response_model=list[BillingAlertResponse])
def get_alerts(
    days: int | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Подписки к оплате в ближайшие `days` дней (по умолчанию ALERT_HORIZON_DAYS)"""
    if days is None:
        days = get_settings().ALERT_HORIZON_DAYS

    alerts = BillingAlertService(db).alerts(user.id, days)

    return [
        BillingAlertResponse(
            subscription_id=a.subscription_id,
            subscription_name=a.subscription_name,
            amount=money_str(a.amount),
            billing_date=a.billing_date,
            asset_id=a.asset_id,
            asset_name=a.asset_name,
            days_until_billing=a.days_until_billing,
        )
        for a in alerts
    ]
