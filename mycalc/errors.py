"""Exceptions raised by the registry, the execution engine and the price client."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class CalcError(Exception):
    """Base error for every mycalc failure."""


class RegistryError(CalcError):
    """Raised when the operation declaration table is malformed."""


class OperationNotFoundError(CalcError):
    """Raised when an operation name is not registered."""


class SettingsError(CalcError):
    """Raised when the settings file or an override cannot be used."""


class ValidationError(CalcError):
    """Raised when the argument count does not match an operation's arity."""

    def __init__(self, operation: str, expected: int, actual: int) -> None:
        self.operation = operation
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Operation {operation} expects {expected} arguments, "
            f"but {actual} were provided."
        )


class InvocationError(CalcError):
    """Raised when an operation's computation fails.

    The original exception is kept on ``cause`` (and as ``__cause__``);
    ``cause_kind`` is the price error kind when there is one, otherwise the
    exception class name.
    """

    def __init__(self, operation: str, cause: BaseException, message: Optional[str] = None) -> None:
        self.operation = operation
        self.cause = cause
        kind = getattr(cause, "kind", None)
        self.cause_kind = kind.value if isinstance(kind, Enum) else type(cause).__name__
        self.message = message or str(cause)
        super().__init__(f"{operation} failed: {self.message}")


class PriceFetchErrorKind(str, Enum):
    """Terminal failure kinds of a price lookup."""

    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    NETWORK = "network"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    UNEXPECTED = "unexpected"


class PriceFetchError(CalcError):
    """Base error for price lookups."""

    kind: PriceFetchErrorKind = PriceFetchErrorKind.UNEXPECTED

    def __init__(self, message: str, asset_id: str = "") -> None:
        self.message = message
        self.asset_id = asset_id
        super().__init__(self.message)


class RateLimitExceededError(PriceFetchError):
    """Raised when the provider keeps rate limiting after every retry."""

    kind = PriceFetchErrorKind.RATE_LIMIT_EXCEEDED

    def __init__(self, asset_id: str, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or (
                f"CoinGecko API rate limit exceeded for {asset_id}. Please wait a "
                "moment before trying again. The free API has usage limits - "
                "consider waiting 1-2 minutes between multiple requests."
            ),
            asset_id,
        )


class NetworkError(PriceFetchError):
    """Raised when every attempt failed at the network level."""

    kind = PriceFetchErrorKind.NETWORK

    def __init__(self, asset_id: str, attempts: int, last_error: str) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Network error getting {asset_id} price after {attempts} attempts. "
            f"Please check your internet connection. Last error: {last_error}",
            asset_id,
        )


class PriceTimeoutError(PriceFetchError):
    """Raised when every attempt timed out."""

    kind = PriceFetchErrorKind.TIMEOUT

    def __init__(self, asset_id: str, attempts: int, last_error: str) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Request timeout getting {asset_id} price after {attempts} attempts. "
            f"The API might be slow or unavailable. Last error: {last_error}",
            asset_id,
        )


class MalformedResponseError(PriceFetchError):
    """Raised when the quote payload cannot be read. Never retried."""

    kind = PriceFetchErrorKind.MALFORMED_RESPONSE


class UnexpectedError(PriceFetchError):
    """Raised for failures outside the known classes. Never retried."""

    kind = PriceFetchErrorKind.UNEXPECTED

    def __init__(self, asset_id: str, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Unexpected error getting {asset_id} price: {detail}", asset_id)
