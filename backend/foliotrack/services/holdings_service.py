# backend/foliotrack/services/holdings_service.py
"""
Holdings lifecycle service.

Add, edit, delete and refresh flows on top of the holdings store, keeping
current_value in step with the market:

- add_security: create, then seed current_value from a live quote when one
  is available (otherwise it stays at initial_value)
- update_security: quantity/price/date edit (the store recomputes
  initial_value), then a best-effort refresh of current_value
- update_cash_balance: initial_value = current_value = balance, date reset
- refresh_quotes: re-price every security of a user, quotes fetched
  concurrently, one quote per distinct ticker

Quote gaps never fail a flow: the holding keeps its last known value and
the gap is reported in warnings.

Usage:
    service = HoldingsService(HoldingsStore(SessionLocal))
    holding = await service.add_security("u-1", SecurityCreate(...))
    result = await service.refresh_quotes("u-1")
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from foliotrack.schemas.holdings import (
    CashAccountCreate,
    CashBalanceUpdate,
    MarketValueUpdate,
    SecurityCreate,
    SecurityUpdate,
)
from foliotrack.services.constants import MONEY_QUANTUM, PRICE_QUANTUM
from foliotrack.services.market_data.base import Quote, SecurityMatch
from foliotrack.services.valuation.types import Holding

if TYPE_CHECKING:
    from foliotrack.services.protocols import (
        HoldingsStoreProtocol,
        QuoteGatewayProtocol,
    )

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """
    Outcome of a quote refresh.

    Attributes:
        updated: Holdings whose current value was re-priced
        skipped: Ids of securities left at their last known value
        warnings: Why each skipped holding was skipped
    """

    updated: list[Holding] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def all_updated(self) -> bool:
        return not self.skipped


class HoldingsService:
    """
    Orchestrates holding edits and market-value refreshes.

    Attributes:
        _store: Holdings store (user-scoped CRUD)
        _gateway: Quote gateway (never raises)
    """

    def __init__(
            self,
            store: HoldingsStoreProtocol,
            gateway: QuoteGatewayProtocol | None = None,
    ) -> None:
        if gateway is None:
            from foliotrack.services.market_data import QuoteGateway
            gateway = QuoteGateway()

        self._store = store
        self._gateway = gateway

    # =========================================================================
    # ADD
    # =========================================================================

    async def add_security(self, user_id: str, payload: SecurityCreate) -> Holding:
        """Record a security purchase and price it from a live quote if possible."""
        holding = self._store.create(user_id, payload)

        quote = await self._gateway.get_quote(holding.ticker)
        update = await self._market_value(holding, quote)
        if update is None:
            logger.info(f"No live quote for {holding.ticker}; current value left at cost")
            return holding

        return self._store.update(user_id, holding.id, update)

    async def add_cash_account(self, user_id: str, payload: CashAccountCreate) -> Holding:
        return self._store.create(user_id, payload)

    # =========================================================================
    # EDIT
    # =========================================================================

    async def update_security(
            self,
            user_id: str,
            holding_id: str,
            payload: SecurityUpdate,
    ) -> Holding:
        """
        Edit quantity, purchase price or purchase date.

        current_value is re-priced from a live quote. Without one, a
        quantity change rescales the last known per-unit value; otherwise
        the value is left unchanged.
        """
        before = self._store.get(user_id, holding_id)
        holding = self._store.update(user_id, holding_id, payload)

        quote = await self._gateway.get_quote(holding.ticker)
        update = await self._market_value(holding, quote)

        if update is None and payload.quantity is not None and before.quantity:
            unit_value = before.current_value / before.quantity
            update = MarketValueUpdate(
                current_value=(unit_value * holding.quantity).quantize(MONEY_QUANTUM),
                daily_change=holding.daily_change,
                daily_change_percent=holding.daily_change_percent,
            )

        if update is None:
            return holding
        return self._store.update(user_id, holding_id, update)

    async def update_cash_balance(
            self,
            user_id: str,
            holding_id: str,
            payload: CashBalanceUpdate,
    ) -> Holding:
        return self._store.update(user_id, holding_id, payload)

    async def delete_holding(self, user_id: str, holding_id: str) -> None:
        self._store.delete(user_id, holding_id)

    # =========================================================================
    # REFRESH
    # =========================================================================

    async def refresh_quotes(self, user_id: str) -> RefreshResult:
        """Re-price every security of user_id."""
        result = RefreshResult()
        securities = [h for h in self._store.list(user_id) if h.is_security and h.ticker]
        if not securities:
            return result

        quotes = await self._gateway.get_quotes(h.ticker for h in securities)

        updates = await asyncio.gather(*[
            self._market_value(h, quotes.get(h.ticker)) for h in securities
        ])

        for holding, update in zip(securities, updates):
            if update is None:
                message = f"No usable quote for {holding.ticker}; '{holding.name}' keeps its last value"
                logger.warning(message)
                result.skipped.append(holding.id)
                result.warnings.append(message)
                continue
            result.updated.append(self._store.update(user_id, holding.id, update))

        logger.info(
            f"Refreshed quotes for user {user_id}: "
            f"{len(result.updated)} updated, {len(result.skipped)} skipped"
        )
        return result

    async def search_securities(self, query: str) -> list[SecurityMatch]:
        """Securities offered by the add-holding search."""
        return await self._gateway.search_securities(query)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _market_value(self, holding: Holding, quote: Quote | None) -> MarketValueUpdate | None:
        """
        Market value of a security from a quote, in the holding's currency.

        Returns None without a quote, without a quantity, or when the
        quote's currency cannot be converted into the holding's.
        """
        if quote is None or not holding.quantity:
            return None

        rate = Decimal("1")
        if quote.currency != holding.currency:
            rate = await self._gateway.get_exchange_rate(quote.currency, holding.currency)
            if rate is None:
                logger.warning(
                    f"Cannot convert {quote.ticker} quote from {quote.currency} "
                    f"to {holding.currency}"
                )
                return None

        price = quote.price * rate
        daily_change = (
            (quote.daily_change * rate).quantize(PRICE_QUANTUM)
            if quote.daily_change is not None
            else None
        )

        return MarketValueUpdate(
            current_value=(price * holding.quantity).quantize(MONEY_QUANTUM),
            daily_change=daily_change,
            daily_change_percent=quote.daily_change_percent,
        )
