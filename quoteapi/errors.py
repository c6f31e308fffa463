"""Domain errors raised by the quote service and its collaborators."""
from __future__ import annotations


class QuoteError(Exception):
    """Base error carrying a stable, client-facing error code."""

    code = "quote.error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InvalidInputError(QuoteError, ValueError):
    code = "validation.invalid-input"


class NoRouteFoundError(QuoteError, RuntimeError):
    code = "routing.no-route"


class PricingConfigNotFoundError(QuoteError):
    code = "pricing-config.not-found"

    def __init__(self, message: str = "No active pricing configuration") -> None:
        super().__init__(message)


class QuoteNotFoundError(QuoteError):
    code = "quote.not-found"

    def __init__(self, quote_id: object) -> None:
        super().__init__(f"Quote not found or expired: {quote_id}")
        self.quote_id = quote_id


class ConfigurationError(QuoteError, RuntimeError):
    code = "config.invalid"
