# backend/foliotrack/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO presentation
knowledge. Ordinary market-data gaps never surface as exceptions from the
valuation engine or the quote gateway; the errors below are raised by the
provider layer (and recovered by the gateway) or for contract violations.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── InvalidWindowError
    │   ├── InvalidGroupingError
    │   └── HoldingCategoryMismatchError
    ├── NotFoundError
    │   └── HoldingNotFoundError
    ├── MarketDataError
    │   ├── ProviderUnavailableError
    │   ├── TickerNotFoundError
    │   └── RateLimitError
    └── FXRateError
        └── FXRateNotFoundError
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when a caller violates an API contract.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidWindowError(ValidationError):
    """
    Raised when an unknown history window is requested.

    Valid windows are: 1M, 6M, 1Y, YTD, MAX
    """

    def __init__(self, window: object) -> None:
        self.window = window
        super().__init__(
            f"Invalid window: '{window}'. Valid options: 1M, 6M, 1Y, YTD, MAX",
            field="window"
        )


class InvalidGroupingError(ValidationError):
    """
    Raised when an unknown allocation grouping is requested.

    Valid groupings are: category, holding
    """

    def __init__(self, group_by: object) -> None:
        self.group_by = group_by
        super().__init__(
            f"Invalid grouping: '{group_by}'. Valid options: category, holding",
            field="group_by"
        )


class HoldingCategoryMismatchError(ValidationError):
    """
    Raised when an edit meant for one category targets the other.

    Example: a balance update sent to a security holding.
    """

    def __init__(self, holding_id: str, expected: str, actual: str) -> None:
        self.holding_id = holding_id
        super().__init__(
            f"Holding {holding_id} is a {actual}, expected a {expected}",
            field="category"
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Holding")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class HoldingNotFoundError(NotFoundError):
    """
    Raised when a holding does not exist or belongs to another user.

    Both cases are reported identically so that ids of other users'
    holdings cannot be probed.
    """

    def __init__(self, holding_id: str) -> None:
        self.holding_id = holding_id
        super().__init__(
            f"Holding {holding_id} not found",
            resource_type="Holding",
            resource_id=holding_id,
        )


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a market data provider is temporarily unavailable.

    Examples:
    - Network timeout
    - Server errors (500, 502, 503)

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class TickerNotFoundError(MarketDataError):
    """
    Raised when a ticker symbol is not recognized by the provider.

    This is NOT a retryable error.
    """

    def __init__(self, ticker: str, provider: str) -> None:
        message = f"Ticker '{ticker}' not found by {provider}"
        super().__init__(message, provider=provider)
        self.ticker = ticker


class RateLimitError(MarketDataError):
    """
    Raised when the provider's rate limit has been exceeded.

    This is a retryable error (with backoff).

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


# =============================================================================
# FX RATE ERRORS
# =============================================================================


class FXRateError(ServiceError):
    """
    Base exception for FX rate errors.

    Attributes:
        base_currency: The base currency code
        quote_currency: The quote currency code
    """

    def __init__(
            self,
            message: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        super().__init__(message)


class FXRateNotFoundError(FXRateError):
    """Raised by the provider when no usable rate exists for a pair."""

    def __init__(self, base_currency: str, quote_currency: str) -> None:
        super().__init__(
            f"No FX rate found for {base_currency}/{quote_currency}",
            base_currency=base_currency,
            quote_currency=quote_currency,
        )


__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "InvalidWindowError",
    "InvalidGroupingError",
    "HoldingCategoryMismatchError",
    # Not Found
    "NotFoundError",
    "HoldingNotFoundError",
    # Market Data
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    # FX Rate
    "FXRateError",
    "FXRateNotFoundError",
]
