# backend/foliotrack/services/market_data/quotes.py
"""
Quote normalization and validation.

Pure functions turning a provider's RawQuote into a validated Quote.
No network calls here; the gateway decides which candidates to build and
supplies the synthetic previous close when the provider had none.

Daily change derivation order:
    1. (price - previous_close) / previous_close
    2. The provider's own change fields (percent normalized)
    3. A synthetic previous close (last historical close before today)
    4. Unknown (None)

Percent normalization:
    Provider values are sometimes fractions (0.025) and sometimes whole
    percentages (2.5). Anything with |value| > 1 is treated as a whole
    percentage and divided by 100. A real daily move above 100% is therefore
    misread; this is a known limitation.
"""

from datetime import date
from decimal import Decimal, InvalidOperation

from foliotrack.services.constants import (
    CURRENCY_CODE_PATTERN,
    PRICE_QUANTUM,
    WHOLE_PERCENT_THRESHOLD,
)
from foliotrack.services.market_data.base import PricePoint, Quote, RawQuote


def normalize_change_percent(value: Decimal | None) -> Decimal | None:
    """
    Normalize a provider change percent to a fraction.

    Examples:
        >>> normalize_change_percent(Decimal("2.5"))
        Decimal('0.025')
        >>> normalize_change_percent(Decimal("0.025"))
        Decimal('0.025')
        >>> normalize_change_percent(Decimal("-3"))
        Decimal('-0.03')
    """
    if value is None:
        return None
    if abs(value) > WHOLE_PERCENT_THRESHOLD:
        return value / Decimal("100")
    return value


def change_from_previous_close(
        price: Decimal,
        previous_close: Decimal,
) -> tuple[Decimal, Decimal] | None:
    """(absolute change, fractional change) against a previous close, if usable."""
    if previous_close is None or previous_close <= 0:
        return None
    change = price - previous_close
    return change, change / previous_close


def derive_daily_change(
        raw: RawQuote,
        synthetic_previous_close: Decimal | None = None,
) -> tuple[Decimal | None, Decimal | None]:
    """
    Daily change of a quote candidate, following the derivation order.

    Args:
        raw: Candidate with a positive price
        synthetic_previous_close: Last historical close before today, used
            only when the provider reported neither a previous close nor
            its own change fields

    Returns:
        (daily_change, daily_change_percent as a fraction); both None when
        nothing is known
    """
    price = raw.price

    from_close = change_from_previous_close(price, raw.previous_close)
    if from_close is not None:
        return _quantize_pair(*from_close)

    if raw.change is not None or raw.change_percent is not None:
        percent = normalize_change_percent(raw.change_percent)
        change = raw.change
        if change is None and percent is not None and percent != Decimal("-1"):
            # price = previous * (1 + percent)
            change = price - price / (1 + percent)
        if percent is None and change is not None and price != change:
            percent = change / (price - change)
        return _quantize_pair(change, percent)

    from_history = change_from_previous_close(price, synthetic_previous_close)
    if from_history is not None:
        return _quantize_pair(*from_history)

    return None, None


def needs_synthetic_previous_close(raw: RawQuote) -> bool:
    """True if only historical data can tell the daily change of raw."""
    return (
        (raw.previous_close is None or raw.previous_close <= 0)
        and raw.change is None
        and raw.change_percent is None
    )


def last_close_before(points: list[PricePoint], day: date) -> Decimal | None:
    """Most recent close strictly before day, or None."""
    earlier = [p for p in points if p.date < day]
    if not earlier:
        return None
    return max(earlier, key=lambda p: p.date).close


def is_valid_candidate(raw: RawQuote | None) -> bool:
    """
    Check the fields a quote cannot do without.

    price > 0 and a 3-letter currency. The name is checked in build_quote,
    since the secondary path may substitute the ticker.
    """
    if raw is None or raw.price is None or raw.price <= 0:
        return False
    currency = (raw.currency or "").strip().upper()
    return bool(CURRENCY_CODE_PATTERN.match(currency))


def build_quote(
        ticker: str,
        raw: RawQuote | None,
        synthetic_previous_close: Decimal | None = None,
        fallback_name: str | None = None,
) -> Quote | None:
    """
    Validate a candidate and build the normalized Quote.

    Args:
        ticker: Symbol the caller asked for
        raw: Provider candidate (None if the path failed)
        synthetic_previous_close: See derive_daily_change
        fallback_name: Name used when the candidate has none

    Returns:
        Quote, or None if price, currency or name is unusable
    """
    if not is_valid_candidate(raw):
        return None

    name = (raw.name or fallback_name or "").strip()
    if not name:
        return None

    daily_change, daily_change_percent = derive_daily_change(raw, synthetic_previous_close)

    return Quote(
        ticker=ticker,
        price=raw.price,
        currency=raw.currency.strip().upper(),
        name=name,
        daily_change=daily_change,
        daily_change_percent=daily_change_percent,
    )


def _quantize_pair(
        change: Decimal | None,
        percent: Decimal | None,
) -> tuple[Decimal | None, Decimal | None]:
    try:
        return (
            change.quantize(PRICE_QUANTUM) if change is not None else None,
            percent.quantize(PRICE_QUANTUM) if percent is not None else None,
        )
    except InvalidOperation:
        return None, None
