# backend/tests/services/test_holdings_service.py
"""
Tests for the holdings lifecycle service.

Uses the real SQLAlchemy store on in-memory SQLite and the fake quote
gateway from conftest.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from foliotrack.models import SecurityType
from foliotrack.schemas.holdings import (
    CashAccountCreate,
    CashBalanceUpdate,
    SecurityCreate,
    SecurityUpdate,
)
from foliotrack.services.exceptions import HoldingNotFoundError
from foliotrack.services.holdings_service import HoldingsService
from foliotrack.services.holdings_store import HoldingsStore
from foliotrack.services.market_data.base import Quote, SecurityMatch

USER = "user-1"


@pytest.fixture
def store(session_factory, today) -> HoldingsStore:
    return HoldingsStore(session_factory, today=lambda: today)


@pytest.fixture
def service(store, gateway) -> HoldingsService:
    return HoldingsService(store, gateway=gateway)


def run(coro):
    return asyncio.run(coro)


def security_payload(ticker: str = "VWCE.DE", currency: str = "EUR", quantity: str = "10") -> SecurityCreate:
    return SecurityCreate(
        name=ticker,
        ticker=ticker,
        security_type=SecurityType.ETF,
        currency=currency,
        quantity=Decimal(quantity),
        purchase_price=Decimal("100"),
        purchase_date=date(2024, 1, 2),
    )


def quote(ticker: str, price: str, currency: str = "EUR", change: str | None = None) -> Quote:
    return Quote(
        ticker=ticker,
        price=Decimal(price),
        currency=currency,
        name=ticker,
        daily_change=Decimal(change) if change is not None else None,
        daily_change_percent=Decimal("0.01") if change is not None else None,
    )


# =============================================================================
# ADD
# =============================================================================

class TestAddHolding:
    """Tests for add_security() and add_cash_account()."""

    def test_current_value_from_quote(self, service, gateway):
        gateway.quotes["VWCE.DE"] = quote("VWCE.DE", "120", change="1.2")

        holding = run(service.add_security(USER, security_payload()))

        assert holding.initial_value == Decimal("1000")
        assert holding.current_value == Decimal("1200.00")
        assert holding.daily_change == Decimal("1.2")
        assert holding.daily_change_percent == Decimal("0.01")

    def test_without_quote_value_stays_at_cost(self, service, gateway):
        holding = run(service.add_security(USER, security_payload()))

        assert holding.current_value == Decimal("1000")
        assert gateway.count("quote") == 1

    def test_quote_in_other_currency_is_converted(self, service, gateway):
        gateway.quotes["AAPL"] = quote("AAPL", "100", currency="USD", change="2")
        gateway.rates[("USD", "EUR")] = Decimal("0.9")

        holding = run(service.add_security(USER, security_payload(ticker="AAPL")))

        assert holding.current_value == Decimal("900.00")
        assert holding.daily_change == Decimal("1.8")

    def test_unconvertible_quote_is_ignored(self, service, gateway):
        gateway.quotes["AAPL"] = quote("AAPL", "100", currency="USD")

        holding = run(service.add_security(USER, security_payload(ticker="AAPL")))

        assert holding.current_value == Decimal("1000")

    def test_add_cash_account(self, service, gateway):
        holding = run(service.add_cash_account(
            USER, CashAccountCreate(name="Savings", balance=Decimal("5000")),
        ))

        assert holding.current_value == Decimal("5000")
        assert gateway.calls == []


# =============================================================================
# EDIT
# =============================================================================

class TestEditHolding:
    """Tests for update_security(), update_cash_balance() and delete_holding()."""

    def test_quantity_edit_rescales_without_quote(self, service, gateway):
        gateway.quotes["VWCE.DE"] = quote("VWCE.DE", "120")
        holding = run(service.add_security(USER, security_payload()))
        del gateway.quotes["VWCE.DE"]

        updated = run(service.update_security(
            USER, holding.id, SecurityUpdate(quantity=Decimal("15")),
        ))

        assert updated.initial_value == Decimal("1500")
        assert updated.current_value == Decimal("1800.00")

    def test_edit_reprices_from_quote(self, service, gateway):
        holding = run(service.add_security(USER, security_payload()))
        gateway.quotes["VWCE.DE"] = quote("VWCE.DE", "130")

        updated = run(service.update_security(
            USER, holding.id, SecurityUpdate(quantity=Decimal("15")),
        ))

        assert updated.current_value == Decimal("1950.00")

    def test_date_edit_without_quote_keeps_value(self, service, gateway):
        holding = run(service.add_security(USER, security_payload()))

        updated = run(service.update_security(
            USER, holding.id, SecurityUpdate(purchase_date=date(2023, 6, 1)),
        ))

        assert updated.purchase_date == date(2023, 6, 1)
        assert updated.current_value == Decimal("1000")

    def test_update_cash_balance(self, service, today):
        holding = run(service.add_cash_account(
            USER, CashAccountCreate(name="Savings", balance=Decimal("5000"), purchase_date=date(2024, 1, 1)),
        ))

        updated = run(service.update_cash_balance(
            USER, holding.id, CashBalanceUpdate(balance=Decimal("6500")),
        ))

        assert updated.initial_value == Decimal("6500")
        assert updated.current_value == Decimal("6500")
        assert updated.purchase_date == today

    def test_delete_holding(self, service, store):
        holding = run(service.add_security(USER, security_payload()))

        run(service.delete_holding(USER, holding.id))

        with pytest.raises(HoldingNotFoundError):
            store.get(USER, holding.id)


# =============================================================================
# REFRESH
# =============================================================================

class TestRefreshQuotes:
    """Tests for refresh_quotes()."""

    def test_refresh(self, service, gateway):
        first = run(service.add_security(USER, security_payload()))
        second = run(service.add_security(USER, security_payload(quantity="5")))
        missing = run(service.add_security(USER, security_payload(ticker="ENI.MI")))
        run(service.add_cash_account(USER, CashAccountCreate(name="Savings", balance=Decimal("100"))))
        gateway.calls.clear()
        gateway.quotes["VWCE.DE"] = quote("VWCE.DE", "110")

        result = run(service.refresh_quotes(USER))

        values = {h.id: h.current_value for h in result.updated}
        assert values == {first.id: Decimal("1100.00"), second.id: Decimal("550.00")}
        assert result.skipped == [missing.id]
        assert len(result.warnings) == 1
        assert not result.all_updated
        assert gateway.calls.count(("quote", "VWCE.DE")) == 1
        assert gateway.calls[0] == ("quotes", ("ENI.MI", "VWCE.DE"))

    def test_refresh_without_securities(self, service, gateway):
        run(service.add_cash_account(USER, CashAccountCreate(name="Savings", balance=Decimal("100"))))

        result = run(service.refresh_quotes(USER))

        assert result.updated == []
        assert result.all_updated
        assert gateway.calls == []


# =============================================================================
# SEARCH
# =============================================================================

class TestSearch:
    """Tests for search_securities()."""

    def test_delegates_to_gateway(self, service, gateway):
        match = SecurityMatch(ticker="AAPL", name="Apple Inc.", exchange="NASDAQ", quote_type="EQUITY")
        gateway.search_results = [match]

        assert run(service.search_securities("apple")) == [match]
        assert gateway.calls == [("search", "apple")]
