# backend/foliotrack/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- QuoteGateway satisfies QuoteGatewayProtocol without inheriting from it
- Test fakes work without explicit inheritance
- Clear documentation of required interfaces
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from foliotrack.schemas.holdings import (
        HoldingCreate,
        HoldingUpdate,
    )
    from foliotrack.services.market_data.base import (
        PricePoint,
        Quote,
        SecurityMatch,
    )
    from foliotrack.services.valuation.types import Holding


class QuoteGatewayProtocol(Protocol):
    """
    Interface required by ValuationEngine and HoldingsService.

    Implementations must never raise for market-data gaps: they return
    None or [] instead.
    """

    async def get_quote(self, ticker: str) -> Quote | None:
        ...

    async def get_quotes(self, tickers: Iterable[str]) -> dict[str, Quote | None]:
        """Quotes keyed by normalized ticker, fetched concurrently."""
        ...

    async def get_historical_data(
        self,
        ticker: str,
        start_date: date,
        end_date: date | None = None,
    ) -> list[PricePoint]:
        ...

    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        ...

    async def search_securities(self, query: str) -> list[SecurityMatch]:
        ...


class HoldingsStoreProtocol(Protocol):
    """
    Interface required by HoldingsService.

    Every operation is scoped to one user: ids of other users' holdings
    behave as if they did not exist.
    """

    def list(self, user_id: str) -> list[Holding]:
        """All holdings of user_id, newest purchase first."""
        ...

    def get(self, user_id: str, holding_id: str) -> Holding:
        ...

    def create(self, user_id: str, payload: HoldingCreate) -> Holding:
        ...

    def update(self, user_id: str, holding_id: str, payload: HoldingUpdate) -> Holding:
        ...

    def delete(self, user_id: str, holding_id: str) -> None:
        ...
