"""Shared fixtures: scripted HTTP transport, recorded sleeps, clean global state."""

import logging
import os

import httpx
import pytest
import structlog

from mycalc.operations import financial
from mycalc.pricing import RetryingPriceClient
from mycalc.settings import CryptoApiSettings

QUOTE_URL = "https://quotes.test/api/v3/simple/price"


@pytest.fixture
def scripted_transport():
    """Factory for a MockTransport that plays ``steps`` in order, one per request.

    A step is either an httpx.Response to return or an exception to raise.
    The factory returns (transport, requests) where requests records every call.
    """

    def factory(*steps):
        queue = list(steps)
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            step = queue.pop(0)
            if isinstance(step, Exception):
                raise step
            return step

        return httpx.MockTransport(handler), requests

    return factory


@pytest.fixture
def quote():
    """Factory for a 200 simple-price response with the price written verbatim."""

    def factory(asset_id: str, price: str) -> httpx.Response:
        return httpx.Response(200, text=f'{{"{asset_id}": {{"usd": {price}}}}}')

    return factory


@pytest.fixture
def sleeps():
    """Seconds passed to the price client's sleep, in call order."""
    return []


@pytest.fixture
def make_client(scripted_transport, sleeps):
    """Build a RetryingPriceClient over a scripted transport.

    Usage: ``client, requests = make_client(resp1, resp2, ...)``
    """
    clients = []

    def factory(*steps, **config):
        transport, requests = scripted_transport(*steps)
        client = RetryingPriceClient(
            CryptoApiSettings(base_url=QUOTE_URL, **config),
            transport=transport,
            sleep=sleeps.append,
        )
        clients.append(client)
        return client, requests

    yield factory
    for client in clients:
        client.close()


@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    """Hide MYCALC_* variables; undo logging setup and the installed price client."""
    for name in list(os.environ):
        if name.upper().startswith("MYCALC_"):
            monkeypatch.delenv(name)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    financial.use_price_client(None)
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)
