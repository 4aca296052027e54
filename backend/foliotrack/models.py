# backend/foliotrack/models.py
import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Enum, Numeric, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class HoldingCategory(str, enum.Enum):
    SECURITY = "SECURITY"
    CASH_ACCOUNT = "CASH_ACCOUNT"


class SecurityType(str, enum.Enum):
    STOCK = "STOCK"
    ETF = "ETF"


def _new_holding_id() -> str:
    return uuid.uuid4().hex


class HoldingRecord(Base):
    """
    A user's tracked position: a security purchase or a bank-account balance.

    Security-only columns (ticker, security_type, quantity, purchase_price)
    are NULL for cash accounts. initial_value for securities is always
    quantity × purchase_price and is maintained by the store, never edited
    directly.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        Index("ix_holdings_user_purchase_date", "user_id", "purchase_date"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_holding_id)
    user_id: Mapped[str] = mapped_column(String, index=True)

    name: Mapped[str] = mapped_column(String)
    category: Mapped[HoldingCategory] = mapped_column(Enum(HoldingCategory))
    security_type: Mapped[SecurityType | None] = mapped_column(Enum(SecurityType), nullable=True)
    ticker: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)  # e.g. "VWCE.DE"
    currency: Mapped[str] = mapped_column(String(3), default="EUR")

    quantity: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    purchase_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    initial_value: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    current_value: Mapped[Decimal] = mapped_column(Numeric(18, 8))

    # Last day-over-day move reported by the quote gateway
    daily_change: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    daily_change_percent: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)  # 0.025 == 2.5%

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
