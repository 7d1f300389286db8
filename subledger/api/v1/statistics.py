"""
Statistics API endpoints
"""
from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from subledger.api.deps import get_db, get_current_user
from subledger.application.statistics import StatisticsService
from subledger.infrastructure.db.models import User
from subledger.utils.money import money_str


router = APIRouter(prefix="/api/statistics", tags=["statistics"])


# === Response models (all money fields are decimal strings) ===

class MonthlySpendingResponse(BaseModel):
    year: int
    month: int
    total_spending: str


class SubscriptionSpendingResponse(BaseModel):
    year: int
    month: int
    total_subscription_spending: str


class CategorySpendingItem(BaseModel):
    category: str
    amount: str


class CategorySpendingResponse(BaseModel):
    categories: list[CategorySpendingItem]
    total: str


class AssetDistributionItem(BaseModel):
    asset_id: int
    asset_name: str
    asset_type: str
    balance: str
    percentage: str


class AssetDistributionResponse(BaseModel):
    assets: list[AssetDistributionItem]
    total_assets: str


# === Endpoints ===

@router.get("/monthly-spending", response_model=MonthlySpendingResponse)
def get_monthly_spending(
    year: int = Query(..., ge=1, le=9998),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = StatisticsService(db).monthly_spending(user.id, year, month)
    return MonthlySpendingResponse(
        year=data["year"],
        month=data["month"],
        total_spending=money_str(data["total_spending"]),
    )


@router.get("/category-spending", response_model=CategorySpendingResponse)
def get_category_spending(
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = StatisticsService(db).category_spending(user.id, start_date, end_date)
    return CategorySpendingResponse(
        categories=[
            CategorySpendingItem(category=c["category"], amount=money_str(c["amount"]))
            for c in data["categories"]
        ],
        total=money_str(data["total"]),
    )


@router.get("/subscription-spending", response_model=SubscriptionSpendingResponse)
def get_subscription_spending(
    year: int = Query(..., ge=1, le=9998),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = StatisticsService(db).subscription_spending(user.id, year, month)
    return SubscriptionSpendingResponse(
        year=data["year"],
        month=data["month"],
        total_subscription_spending=money_str(data["total_subscription_spending"]),
    )


@router.get("/asset-distribution", response_model=AssetDistributionResponse)
def get_asset_distribution(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = StatisticsService(db).asset_distribution(user.id)
    return AssetDistributionResponse(
        assets=[
            AssetDistributionItem(
                asset_id=a["asset_id"],
                asset_name=a["asset_name"],
                asset_type=a["asset_type"],
                balance=money_str(a["balance"]),
                # percentage keeps its own rounding (PERCENTAGE_PLACES)
                percentage=str(a["percentage"]),
            )
            for a in data["assets"]
        ],
        total_assets=money_str(data["total_assets"]),
    )
