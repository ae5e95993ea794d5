"""Financial operations: current crypto prices in USD.

All lookups go through one process-wide RetryingPriceClient so the HTTP
connection pool is reused across calls. The CLI installs a client built from
the loaded settings with use_price_client(); otherwise one is created from
load_settings() on first use.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from mycalc.models import Category, OperationDef
from mycalc.pricing import RetryingPriceClient
from mycalc.settings import load_settings

CATEGORY = Category("Financial", "Financial prices and calculations", sort_order=4)

_price_client: Optional[RetryingPriceClient] = None


def use_price_client(client: Optional[RetryingPriceClient]) -> None:
    """Install the client used by every price operation (None resets).

    The previously installed client is closed.
    """
    global _price_client
    previous, _price_client = _price_client, client
    if previous is not None and previous is not client:
        previous.close()


def get_price_client() -> RetryingPriceClient:
    global _price_client
    if _price_client is None:
        _price_client = RetryingPriceClient(load_settings().crypto_api)
    return _price_client


def bitcoin_price() -> Decimal:
    return get_price_client().fetch_price("bitcoin")


def ethereum_price() -> Decimal:
    return get_price_client().fetch_price("ethereum")


OPERATIONS = (
    OperationDef("Bitcoin Price", bitcoin_price, "Gets current Bitcoin price in USD"),
    OperationDef("Ethereum Price", ethereum_price, "Gets current Ethereum price in USD"),
)
