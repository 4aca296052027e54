# backend/foliotrack/services/holdings_store.py
"""
Holdings Store - user-scoped persistence of holdings.

A thin SQLAlchemy implementation of HoldingsStoreProtocol. It keeps the
data-model invariants that depend only on the stored row:

- Security: initial_value = quantity × purchase_price, recomputed on every
  quantity/price edit and never written independently
- Cash account: a balance edit sets initial_value and current_value to the
  new balance and resets purchase_date to today
- purchase_date defaults to today on create
- list() orders by purchase date, newest first

Holdings of other users behave exactly like missing ones
(HoldingNotFoundError), so ids cannot be probed across users.

Usage:
    from foliotrack.database import SessionLocal
    from foliotrack.services.holdings_store import HoldingsStore

    store = HoldingsStore(SessionLocal)
    holdings = store.list(user_id="u-1")
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from foliotrack.models import HoldingCategory, HoldingRecord, SecurityType
from foliotrack.schemas.holdings import (
    CashAccountCreate,
    CashBalanceUpdate,
    HoldingCreate,
    HoldingUpdate,
    MarketValueUpdate,
    SecurityCreate,
    SecurityUpdate,
)
from foliotrack.services.exceptions import (
    HoldingCategoryMismatchError,
    HoldingNotFoundError,
    ValidationError,
)
from foliotrack.services.valuation.types import Holding
from foliotrack.utils.date_utils import today_utc

logger = logging.getLogger(__name__)


class HoldingsStore:
    """
    SQLAlchemy-backed holdings store.

    Each operation opens its own session from the factory and commits
    before returning, so the store can be shared across coroutines.
    """

    def __init__(
            self,
            session_factory: Callable[[], Session],
            today: Callable[[], date] = today_utc,
    ) -> None:
        self._session_factory = session_factory
        self._today = today

    # =========================================================================
    # READ
    # =========================================================================

    def list(self, user_id: str) -> list[Holding]:
        """All holdings of user_id, newest purchase first."""
        with self._session_factory() as db:
            records = db.scalars(
                select(HoldingRecord)
                .where(HoldingRecord.user_id == user_id)
                .order_by(
                    HoldingRecord.purchase_date.desc().nulls_last(),
                    HoldingRecord.created_at.desc(),
                )
            ).all()
            return [self._to_holding(r) for r in records]

    def get(self, user_id: str, holding_id: str) -> Holding:
        """
        Raises:
            HoldingNotFoundError: Missing or owned by another user
        """
        with self._session_factory() as db:
            return self._to_holding(self._get_record(db, user_id, holding_id))

    # =========================================================================
    # WRITE
    # =========================================================================

    def create(self, user_id: str, payload: HoldingCreate) -> Holding:
        """
        Insert a holding.

        Securities start with current_value = initial_value; the holdings
        service refreshes it from a live quote when one is available.
        """
        purchase_date = payload.purchase_date or self._today()

        if isinstance(payload, SecurityCreate):
            initial_value = payload.quantity * payload.purchase_price
            record = HoldingRecord(
                user_id=user_id,
                name=payload.name,
                category=HoldingCategory.SECURITY,
                security_type=payload.security_type,
                ticker=payload.ticker,
                currency=payload.currency,
                quantity=payload.quantity,
                purchase_price=payload.purchase_price,
                purchase_date=purchase_date,
                initial_value=initial_value,
                current_value=initial_value,
            )
        elif isinstance(payload, CashAccountCreate):
            record = HoldingRecord(
                user_id=user_id,
                name=payload.name,
                category=HoldingCategory.CASH_ACCOUNT,
                currency=payload.currency,
                purchase_date=purchase_date,
                initial_value=payload.balance,
                current_value=payload.balance,
            )
        else:
            raise ValidationError(f"Unsupported holding payload: {type(payload).__name__}")

        with self._session_factory() as db:
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.info(f"Created {record.category.value} holding {record.id} for user {user_id}")
            return self._to_holding(record)

    def update(self, user_id: str, holding_id: str, payload: HoldingUpdate) -> Holding:
        """
        Apply an edit.

        Raises:
            HoldingNotFoundError: Missing or owned by another user
            HoldingCategoryMismatchError: Edit targets the wrong category
        """
        with self._session_factory() as db:
            record = self._get_record(db, user_id, holding_id)

            if isinstance(payload, SecurityUpdate):
                self._require_category(record, HoldingCategory.SECURITY)
                self._apply_security_update(record, payload)
            elif isinstance(payload, CashBalanceUpdate):
                self._require_category(record, HoldingCategory.CASH_ACCOUNT)
                record.initial_value = payload.balance
                record.current_value = payload.balance
                record.purchase_date = self._today()
            elif isinstance(payload, MarketValueUpdate):
                self._require_category(record, HoldingCategory.SECURITY)
                record.current_value = payload.current_value
                record.daily_change = payload.daily_change
                record.daily_change_percent = payload.daily_change_percent
            else:
                raise ValidationError(f"Unsupported holding update: {type(payload).__name__}")

            db.commit()
            db.refresh(record)
            logger.info(f"Updated holding {holding_id} ({type(payload).__name__})")
            return self._to_holding(record)

    def delete(self, user_id: str, holding_id: str) -> None:
        """Hard delete."""
        with self._session_factory() as db:
            record = self._get_record(db, user_id, holding_id)
            db.delete(record)
            db.commit()
            logger.info(f"Deleted holding {holding_id} for user {user_id}")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _get_record(self, db: Session, user_id: str, holding_id: str) -> HoldingRecord:
        record = db.get(HoldingRecord, holding_id)
        if record is None or record.user_id != user_id:
            raise HoldingNotFoundError(holding_id)
        return record

    @staticmethod
    def _require_category(record: HoldingRecord, expected: HoldingCategory) -> None:
        if record.category != expected:
            raise HoldingCategoryMismatchError(
                holding_id=record.id,
                expected=expected.value,
                actual=record.category.value,
            )

    @staticmethod
    def _apply_security_update(record: HoldingRecord, payload: SecurityUpdate) -> None:
        if payload.quantity is not None:
            record.quantity = payload.quantity
        if payload.purchase_price is not None:
            record.purchase_price = payload.purchase_price
        if payload.purchase_date is not None:
            record.purchase_date = payload.purchase_date
        if payload.changes_cost:
            record.initial_value = Decimal(record.quantity) * Decimal(record.purchase_price)

    @staticmethod
    def _to_holding(record: HoldingRecord) -> Holding:
        """Convert an ORM row to the engine's Holding."""
        is_security = record.category == HoldingCategory.SECURITY
        return Holding(
            id=record.id,
            name=record.name,
            category=record.category,
            currency=record.currency,
            initial_value=Decimal(record.initial_value),
            current_value=Decimal(record.current_value),
            ticker=record.ticker if is_security else None,
            security_type=(record.security_type or SecurityType.STOCK) if is_security else None,
            quantity=record.quantity if is_security else None,
            purchase_price=record.purchase_price if is_security else None,
            purchase_date=record.purchase_date,
            daily_change=record.daily_change,
            daily_change_percent=record.daily_change_percent,
        )
