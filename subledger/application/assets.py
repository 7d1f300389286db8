"""
Asset use cases - business logic for asset operations

Баланс после создания меняется только через LedgerStore
(транзакции и списания по подпискам), не через update.
"""
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from subledger.application.ledger import LedgerStore, NotFoundError, ConcurrentModificationError
from subledger.config import get_settings
from subledger.domain.asset import ASSET_TYPES
from subledger.infrastructure.db.models import Asset
from subledger.utils.money import to_money
from subledger.utils.validation import validate_currency

logger = logging.getLogger(__name__)


class AssetValidationError(ValueError):
    """Ошибка валидации актива"""
    pass


class AssetInUseError(Exception):
    """Asset is referenced by transactions or subscriptions and cannot be deleted"""
    pass


def _validate_type(asset_type: str) -> None:
    if asset_type not in ASSET_TYPES:
        raise AssetValidationError(
            f"Invalid asset type: {asset_type}. Use one of {', '.join(ASSET_TYPES)}"
        )


def _validate_currency(currency: str) -> None:
    try:
        validate_currency(currency)
    except ValueError as exc:
        raise AssetValidationError(str(exc))


class CreateAssetUseCase:
    """
    Use case: Создать актив

    Начальный баланс - opening balance, должен быть >= 0.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        name: str,
        asset_type: str,
        balance: Decimal | str = "0",
        currency: str | None = None,
    ) -> int:
        name = name.strip()
        if not name:
            raise AssetValidationError("Asset name must not be empty")
        _validate_type(asset_type)
        currency = currency or get_settings().DEFAULT_CURRENCY
        _validate_currency(currency)

        opening = to_money(balance)
        if opening < 0:
            raise AssetValidationError("Opening balance must not be negative")

        asset = Asset(
            user_id=user_id,
            name=name,
            type=asset_type,
            balance=opening,
            currency=currency,
        )
        with LedgerStore(self.db).unit_of_work():
            self.db.add(asset)
            self.db.flush()
            asset_id = asset.id
        logger.info("Asset created id=%d user_id=%d type=%s", asset_id, user_id, asset_type)
        return asset_id


class UpdateAssetUseCase:
    """Use case: изменить name / type / currency (баланс не редактируется)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, asset_id: int, user_id: int, **changes) -> None:
        asset = LedgerStore(self.db).get_asset(user_id, asset_id)
        if not asset:
            raise NotFoundError(f"Asset #{asset_id} not found")

        if "balance" in changes:
            raise AssetValidationError(
                "Balance cannot be edited directly, record an income or expense transaction"
            )
        if "name" in changes:
            name = changes["name"].strip()
            if not name:
                raise AssetValidationError("Asset name must not be empty")
            asset.name = name
        if "type" in changes:
            _validate_type(changes["type"])
            asset.type = changes["type"]
        if "currency" in changes:
            _validate_currency(changes["currency"])
            asset.currency = changes["currency"]
        try:
            LedgerStore(self.db).commit()
        except StaleDataError:
            raise ConcurrentModificationError(f"Asset #{asset_id} was modified concurrently")


class DeleteAssetUseCase:
    """
    Use case: удалить актив

    Актив, на который ссылаются транзакции или подписки, удалить нельзя:
    история ledger'а не переписывается.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, asset_id: int, user_id: int) -> None:
        store = LedgerStore(self.db)
        asset = store.get_asset(user_id, asset_id)
        if not asset:
            raise NotFoundError(f"Asset #{asset_id} not found")
        if store.asset_is_referenced(asset_id):
            raise AssetInUseError(
                f"Asset #{asset_id} is referenced by transactions or subscriptions"
            )
        with store.unit_of_work():
            self.db.delete(asset)
        logger.info("Asset deleted id=%d user_id=%d", asset_id, user_id)


def list_assets(db: Session, user_id: int) -> list[Asset]:
    return list(db.execute(
        select(Asset).where(Asset.user_id == user_id).order_by(Asset.id)
    ).scalars())
