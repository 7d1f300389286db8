"""
SQLAlchemy ORM models (owner, assets, subscriptions, ledger transactions)
"""
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import String, DateTime, Integer, Text, TIMESTAMP, Date, func, Boolean, Numeric, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from subledger.infrastructure.db.session import Base


class User(Base):
    """
    Owner of assets, subscriptions and transactions.

    Authentication lives outside this service; only the identity is stored.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class Asset(Base):
    """
    Account holding a balance in one currency.

    balance меняется только через LedgerStore (debit/credit), version -
    счётчик для optimistic locking.
    """
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # bank, payment, cash, investment
    balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=2),
        nullable=False,
        server_default="0"
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="CNY")

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class Subscription(Base):
    """
    Recurring obligation billed every billing_cycle from next_billing_date.
    """
    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)  # video, music, software, cloud, other
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    billing_cycle: Mapped[str] = mapped_column(String(10), nullable=False)  # weekly, monthly, yearly
    next_billing_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    asset_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("assets.id"), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="active", server_default="active")

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    __table_args__ = (
        # Выборка к оплате: WHERE user_id = ? AND status = 'active' AND next_billing_date <= ?
        Index("ix_subscriptions_due", "user_id", "status", "next_billing_date"),
    )


class Transaction(Base):
    """
    Immutable ledger entry (append-only, never updated or deleted)
    """
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    type: Mapped[str] = mapped_column(String(10), nullable=False, index=True)  # income, expense
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    subscription_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("subscriptions.id"), nullable=True, index=True
    )
    asset_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("assets.id"), nullable=True, index=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
