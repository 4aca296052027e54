# backend/tests/services/test_holdings_store.py
"""
Tests for the SQLAlchemy holdings store.

Test Coverage:
- Create: derived initial/current values, default purchase date
- List: ordering and user scoping
- Update: cost recompute, balance reset, category checks
- Delete
"""

from datetime import date
from decimal import Decimal

import pytest

from foliotrack.models import HoldingCategory, SecurityType
from foliotrack.schemas.holdings import (
    CashAccountCreate,
    CashBalanceUpdate,
    MarketValueUpdate,
    SecurityCreate,
    SecurityUpdate,
)
from foliotrack.services.exceptions import (
    HoldingCategoryMismatchError,
    HoldingNotFoundError,
)
from foliotrack.services.holdings_store import HoldingsStore

USER = "user-1"
OTHER_USER = "user-2"


@pytest.fixture
def store(session_factory, today) -> HoldingsStore:
    return HoldingsStore(session_factory, today=lambda: today)


def security_payload(**overrides) -> SecurityCreate:
    fields = dict(
        name="Vanguard FTSE All-World",
        ticker="vwce.de",
        security_type=SecurityType.ETF,
        currency="eur",
        quantity=Decimal("10"),
        purchase_price=Decimal("100"),
        purchase_date=date(2024, 1, 2),
    )
    fields.update(overrides)
    return SecurityCreate(**fields)


def cash_payload(**overrides) -> CashAccountCreate:
    fields = dict(name="Savings", currency="EUR", balance=Decimal("5000"))
    fields.update(overrides)
    return CashAccountCreate(**fields)


# =============================================================================
# CREATE
# =============================================================================

class TestCreate:
    """Tests for store.create()."""

    def test_security_values_derived(self, store):
        holding = store.create(USER, security_payload())

        assert holding.category == HoldingCategory.SECURITY
        assert holding.ticker == "VWCE.DE"
        assert holding.currency == "EUR"
        assert holding.initial_value == Decimal("1000")
        assert holding.current_value == Decimal("1000")
        assert holding.security_type == SecurityType.ETF

    def test_cash_account_values(self, store):
        holding = store.create(USER, cash_payload(balance=Decimal("2500.50")))

        assert holding.is_cash_account
        assert holding.initial_value == Decimal("2500.50")
        assert holding.current_value == Decimal("2500.50")
        assert holding.ticker is None
        assert holding.quantity is None

    def test_purchase_date_defaults_to_today(self, store, today):
        holding = store.create(USER, cash_payload(purchase_date=None))
        assert holding.purchase_date == today

    def test_ids_are_unique(self, store):
        first = store.create(USER, cash_payload())
        second = store.create(USER, cash_payload())
        assert first.id != second.id


# =============================================================================
# READ
# =============================================================================

class TestRead:
    """Tests for list() and get()."""

    def test_newest_purchase_first(self, store, today):
        oldest = store.create(USER, security_payload(purchase_date=date(2023, 1, 1)))
        middle = store.create(USER, cash_payload(purchase_date=date(2024, 3, 1)))
        newest = store.create(USER, security_payload(ticker="AAPL", purchase_date=None))

        ids = [h.id for h in store.list(USER)]

        assert ids == [newest.id, middle.id, oldest.id]

    def test_scoped_to_user(self, store):
        mine = store.create(USER, cash_payload())
        store.create(OTHER_USER, cash_payload())

        assert [h.id for h in store.list(USER)] == [mine.id]

    def test_empty(self, store):
        assert store.list(USER) == []

    def test_get(self, store):
        created = store.create(USER, security_payload())
        assert store.get(USER, created.id) == created

    def test_other_users_holding_is_not_found(self, store):
        theirs = store.create(OTHER_USER, cash_payload())

        with pytest.raises(HoldingNotFoundError):
            store.get(USER, theirs.id)

    def test_missing_holding(self, store):
        with pytest.raises(HoldingNotFoundError):
            store.get(USER, "does-not-exist")


# =============================================================================
# UPDATE
# =============================================================================

class TestUpdate:
    """Tests for store.update()."""

    def test_quantity_edit_recomputes_initial_value(self, store):
        holding = store.create(USER, security_payload())

        updated = store.update(USER, holding.id, SecurityUpdate(quantity=Decimal("15")))

        assert updated.quantity == Decimal("15")
        assert updated.initial_value == Decimal("1500")
        assert updated.current_value == Decimal("1000")

    def test_price_edit_recomputes_initial_value(self, store):
        holding = store.create(USER, security_payload())

        updated = store.update(USER, holding.id, SecurityUpdate(purchase_price=Decimal("80")))

        assert updated.initial_value == Decimal("800")

    def test_date_edit_keeps_cost(self, store):
        holding = store.create(USER, security_payload())

        updated = store.update(USER, holding.id, SecurityUpdate(purchase_date=date(2023, 5, 5)))

        assert updated.purchase_date == date(2023, 5, 5)
        assert updated.initial_value == Decimal("1000")

    def test_balance_update_resets_values_and_date(self, store, today):
        holding = store.create(USER, cash_payload(purchase_date=date(2023, 1, 1)))

        updated = store.update(USER, holding.id, CashBalanceUpdate(balance=Decimal("7000")))

        assert updated.initial_value == Decimal("7000")
        assert updated.current_value == Decimal("7000")
        assert updated.purchase_date == today

    def test_market_value_update(self, store):
        holding = store.create(USER, security_payload())

        updated = store.update(USER, holding.id, MarketValueUpdate(
            current_value=Decimal("1234.56"),
            daily_change=Decimal("1.5"),
            daily_change_percent=Decimal("0.0125"),
        ))

        assert updated.current_value == Decimal("1234.56")
        assert updated.daily_change_percent == Decimal("0.0125")
        assert updated.initial_value == Decimal("1000")

    def test_balance_update_on_security_rejected(self, store):
        holding = store.create(USER, security_payload())

        with pytest.raises(HoldingCategoryMismatchError):
            store.update(USER, holding.id, CashBalanceUpdate(balance=Decimal("1")))

    def test_security_update_on_cash_rejected(self, store):
        holding = store.create(USER, cash_payload())

        with pytest.raises(HoldingCategoryMismatchError):
            store.update(USER, holding.id, SecurityUpdate(quantity=Decimal("1")))

    def test_other_users_holding_cannot_be_updated(self, store):
        theirs = store.create(OTHER_USER, cash_payload())

        with pytest.raises(HoldingNotFoundError):
            store.update(USER, theirs.id, CashBalanceUpdate(balance=Decimal("1")))


# =============================================================================
# DELETE
# =============================================================================

class TestDelete:
    """Tests for store.delete()."""

    def test_delete(self, store):
        holding = store.create(USER, cash_payload())

        store.delete(USER, holding.id)

        assert store.list(USER) == []

    def test_other_users_holding_cannot_be_deleted(self, store):
        theirs = store.create(OTHER_USER, cash_payload())

        with pytest.raises(HoldingNotFoundError):
            store.delete(USER, theirs.id)

        assert len(store.list(OTHER_USER)) == 1
