"""Remote price lookups with classified, bounded retries.

Each HTTP attempt is reduced to an AttemptResult tagged with an
AttemptOutcome; fetch_price switches on that tag to return the price, retry
after a backoff, or raise a terminal PriceFetchError.

Schedule with the default settings (free-tier CoinGecko quota):
    wait 1s → attempt 1 → wait 5s → attempt 2 → wait 10s → attempt 3
Only rate limiting, network failures and timeouts are retried.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional

import httpx
import structlog

from mycalc.errors import (
    MalformedResponseError,
    NetworkError,
    PriceFetchError,
    PriceTimeoutError,
    RateLimitExceededError,
    UnexpectedError,
)
from mycalc.settings import CryptoApiSettings

logger = structlog.get_logger(__name__)

QUOTE_CURRENCY = "usd"


class AttemptOutcome(str, Enum):
    """Classification of a single HTTP attempt."""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    NETWORK_FAILURE = "network_failure"
    TIMEOUT = "timeout"
    MALFORMED_SHAPE = "malformed_shape"
    PARSE_FAILURE = "parse_failure"
    OTHER = "other"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {AttemptOutcome.RATE_LIMITED, AttemptOutcome.NETWORK_FAILURE, AttemptOutcome.TIMEOUT}
)


@dataclass(frozen=True)
class AttemptResult:
    """What one attempt produced: a price, or an outcome with a message."""

    outcome: AttemptOutcome
    price: Optional[Decimal] = None
    message: str = ""
    error: Optional[BaseException] = None


def parse_quote(payload: Any, asset_id: str) -> AttemptResult:
    """Extract the USD price of ``asset_id`` from a decoded simple-price payload.

    Expected shape: ``{"<asset_id>": {"usd": <number>}}``. A payload that is
    not a mapping of mappings, or a price that is not a number, is a
    PARSE_FAILURE; a well-formed payload without the asset or without a
    ``usd`` entry is a MALFORMED_SHAPE.
    """
    if not isinstance(payload, dict):
        return AttemptResult(
            AttemptOutcome.PARSE_FAILURE,
            message=f"expected a JSON object, got {type(payload).__name__}",
        )
    if asset_id not in payload:
        return AttemptResult(AttemptOutcome.MALFORMED_SHAPE, message=f"no entry for {asset_id}")
    quotes = payload[asset_id]
    if not isinstance(quotes, dict):
        return AttemptResult(
            AttemptOutcome.PARSE_FAILURE,
            message=f"entry for {asset_id} is not an object",
        )
    if QUOTE_CURRENCY not in quotes:
        return AttemptResult(
            AttemptOutcome.MALFORMED_SHAPE,
            message=f"no {QUOTE_CURRENCY} quote for {asset_id}",
        )
    price = quotes[QUOTE_CURRENCY]
    # bool is an int subclass; NaN/Infinity come back as float
    if isinstance(price, bool) or not isinstance(price, (Decimal, int)):
        return AttemptResult(AttemptOutcome.PARSE_FAILURE, message=f"price is not a number: {price!r}")
    return AttemptResult(AttemptOutcome.SUCCESS, price=Decimal(price))


def _is_rate_limited(response: httpx.Response) -> bool:
    return (
        response.status_code == httpx.codes.TOO_MANY_REQUESTS
        or "too many requests" in response.reason_phrase.lower()
    )


class RetryingPriceClient:
    """Fetch current USD prices from a simple-price quote endpoint.

    One httpx.Client (and its keep-alive connection pool) is held for the
    lifetime of the instance and shared by every lookup.

    Example:
        ```python
        client = RetryingPriceClient(CryptoApiSettings(request_timeout_s=10))
        price = client.fetch_price("bitcoin")
        ```
    """

    def __init__(
        self,
        config: Optional[CryptoApiSettings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        log: Any = None,
    ) -> None:
        """
        Args:
            config: Endpoint, timeout and retry schedule. Defaults to
                CryptoApiSettings().
            transport: httpx transport override (tests use MockTransport).
            sleep: Blocking wait used for pacing and backoff.
            log: structlog logger; the module logger when None.
        """
        self.config = config or CryptoApiSettings()
        self._sleep = sleep
        self._log = log if log is not None else logger
        self._client = httpx.Client(
            timeout=self.config.request_timeout_s,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "application/json",
                "Connection": "keep-alive",
            },
            follow_redirects=True,
            transport=transport,
        )

    def __enter__(self) -> RetryingPriceClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._client.close()

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    def attempt(self, asset_id: str) -> AttemptResult:
        """Issue one quote request and classify the result. Never raises."""
        try:
            response = self._client.get(
                self.config.base_url,
                params={"ids": asset_id, "vs_currencies": QUOTE_CURRENCY},
            )
        except httpx.TimeoutException as exc:
            return AttemptResult(AttemptOutcome.TIMEOUT, message=str(exc) or type(exc).__name__, error=exc)
        except httpx.TransportError as exc:
            return AttemptResult(
                AttemptOutcome.NETWORK_FAILURE, message=str(exc) or type(exc).__name__, error=exc
            )
        except Exception as exc:
            return AttemptResult(AttemptOutcome.OTHER, message=str(exc), error=exc)

        if _is_rate_limited(response):
            return AttemptResult(
                AttemptOutcome.RATE_LIMITED,
                message=f"{response.status_code} {response.reason_phrase}",
            )
        if response.is_error:
            # Other HTTP failures count as network-level errors and are retried
            return AttemptResult(
                AttemptOutcome.NETWORK_FAILURE,
                message=f"Response status code does not indicate success: "
                f"{response.status_code} ({response.reason_phrase})",
            )

        try:
            payload = response.json(parse_float=Decimal)
        except ValueError as exc:
            return AttemptResult(AttemptOutcome.PARSE_FAILURE, message=str(exc), error=exc)
        return parse_quote(payload, asset_id)

    def fetch_price(self, asset_id: str) -> Decimal:
        """Return the current USD price of ``asset_id``.

        Args:
            asset_id: Provider asset id (e.g., "bitcoin", "ethereum").

        Returns:
            The quoted price as a Decimal.

        Raises:
            RateLimitExceededError: Still rate limited after the last retry.
            NetworkError: Every attempt failed at the network level.
            PriceTimeoutError: Every attempt timed out.
            MalformedResponseError: The payload could not be read (no retry).
            UnexpectedError: Any other failure (no retry).
        """
        max_retries = self.config.max_retries
        retry_count = 0
        log = self._log.bind(asset_id=asset_id)

        self._sleep(self.config.initial_delay_s)

        while retry_count <= max_retries:
            result = self.attempt(asset_id)
            attempts = retry_count + 1

            if result.outcome is AttemptOutcome.SUCCESS:
                log.debug("Price fetched", price=str(result.price), attempts=attempts)
                return result.price

            if not result.outcome.retryable:
                log.warning("Price fetch failed", outcome=result.outcome.value, error=result.message)
                raise self._terminal_error(asset_id, result) from result.error

            if retry_count == max_retries:
                log.warning(
                    "Price fetch retries exhausted",
                    outcome=result.outcome.value,
                    attempts=attempts,
                    error=result.message,
                )
                raise self._exhausted_error(asset_id, result, attempts) from result.error

            retry_count += 1
            delay = self.config.backoff_step_s * retry_count
            log.info(
                "Retrying price fetch",
                outcome=result.outcome.value,
                retry=retry_count,
                delay_s=delay,
                error=result.message,
            )
            self._sleep(delay)

        raise RateLimitExceededError(
            asset_id,
            f"Failed to get {asset_id} price after {max_retries + 1} attempts due to rate limiting",
        )

    @staticmethod
    def _terminal_error(asset_id: str, result: AttemptResult) -> PriceFetchError:
        if result.outcome is AttemptOutcome.MALFORMED_SHAPE:
            return MalformedResponseError(
                f"Unable to get price for {asset_id} - invalid response structure",
                asset_id,
            )
        if result.outcome is AttemptOutcome.PARSE_FAILURE:
            return MalformedResponseError(
                f"Invalid response format for {asset_id} price. The API response "
                f"format may have changed. Details: {result.message}",
                asset_id,
            )
        return UnexpectedError(asset_id, result.message)

    @staticmethod
    def _exhausted_error(asset_id: str, result: AttemptResult, attempts: int) -> PriceFetchError:
        if result.outcome is AttemptOutcome.TIMEOUT:
            return PriceTimeoutError(asset_id, attempts, result.message)
        if result.outcome is AttemptOutcome.NETWORK_FAILURE:
            return NetworkError(asset_id, attempts, result.message)
        return RateLimitExceededError(asset_id)
