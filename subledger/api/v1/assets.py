"""
Asset API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from subledger.api.deps import get_db, get_current_user
from subledger.application.assets import (
    CreateAssetUseCase, UpdateAssetUseCase, DeleteAssetUseCase, list_assets,
)
from subledger.application.ledger import LedgerStore
from subledger.application.statistics import StatisticsService
from subledger.infrastructure.db.models import User, Asset
from subledger.utils.money import money_str
from subledger.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/assets", tags=["assets"])


# === Request/Response models ===

class AssetCreateRequest(BaseModel):
    name: str
    type: str  # bank, payment, cash, investment
    balance: str = "0"  # Начальный баланс
    currency: str | None = None

    @field_validator("balance", mode="before")
    @classmethod
    def validate_balance(cls, v) -> str:
        """Валидация и нормализация баланса (точка/запятая, макс 2 знака)"""
        return validate_and_normalize_amount(v, max_decimal_places=2)


class AssetUpdateRequest(BaseModel):
    name: str | None = None
    type: str | None = None
    currency: str | None = None


class AssetResponse(BaseModel):
    id: int
    user_id: int
    name: str
    type: str
    balance: str  # Decimal as string
    currency: str
    created_at: datetime
    updated_at: datetime


class TotalAssetsResponse(BaseModel):
    total: str
    user_id: int


def _to_response(asset: Asset) -> AssetResponse:
    return AssetResponse(
        id=asset.id,
        user_id=asset.user_id,
        name=asset.name,
        type=asset.type,
        balance=money_str(asset.balance),
        currency=asset.currency,
        created_at=asset.created_at,
        updated_at=asset.updated_at,
    )


def _load(db: Session, user: User, asset_id: int) -> Asset:
    asset = LedgerStore(db).get_asset(user.id, asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail=f"Asset #{asset_id} not found")
    return asset


# === Endpoints ===

@router.post("", response_model=AssetResponse)
def create_asset(
    req: AssetCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Создать актив"""
    asset_id = CreateAssetUseCase(db).execute(
        user_id=user.id,
        name=req.name,
        asset_type=req.type,
        balance=req.balance,
        currency=req.currency,
    )
    return _to_response(_load(db, user, asset_id))


@router.get("", response_model=list[AssetResponse])
def get_assets(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Список всех активов"""
    return [_to_response(a) for a in list_assets(db, user.id)]


@router.get("/total", response_model=TotalAssetsResponse)
def get_total_assets(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = StatisticsService(db).total_assets(user.id)
    return TotalAssetsResponse(total=money_str(data["total"]), user_id=data["user_id"])


@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(
    asset_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _to_response(_load(db, user, asset_id))


@router.put("/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: int,
    req: AssetUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Изменить name / type / currency"""
    UpdateAssetUseCase(db).execute(
        asset_id=asset_id,
        user_id=user.id,
        **req.model_dump(exclude_none=True),
    )
    return _to_response(_load(db, user, asset_id))


@router.delete("/{asset_id}", status_code=204)
def delete_asset(
    asset_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    DeleteAssetUseCase(db).execute(asset_id=asset_id, user_id=user.id)
    return Response(status_code=204)
