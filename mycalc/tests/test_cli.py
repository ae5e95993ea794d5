"""Command-line interface: list, run, price and the interactive menu.

Every invocation points --settings at a file that does not exist so the
defaults apply, and raises the log level so stderr carries only errors.
"""

import httpx
import pytest
from typer.testing import CliRunner

from mycalc.__main__ import app
from mycalc.pricing import RetryingPriceClient

runner = CliRunner()


@pytest.fixture
def invoke(tmp_path):
    def _invoke(*args, input=None):
        return runner.invoke(
            app,
            ["--settings", str(tmp_path / "missing.json"), "--log-level", "CRITICAL", *args],
            input=input,
        )

    return _invoke


@pytest.fixture
def fake_prices(monkeypatch, scripted_transport, sleeps):
    """Make the CLI install a price client backed by scripted responses."""

    def _install(*steps):
        transport, requests = scripted_transport(*steps)

        def client_factory(config):
            return RetryingPriceClient(config, transport=transport, sleep=sleeps.append)

        monkeypatch.setattr("mycalc.__main__.RetryingPriceClient", client_factory)
        return requests

    return _install


# --- list ---

def test_list_shows_every_operation(invoke):
    result = invoke("list")
    assert result.exit_code == 0
    for name in ("Add", "Subtract", "Square", "Bitcoin Price", "Ethereum Price"):
        assert name in result.output
    assert "Basic Arithmetic" in result.output
    assert result.output.index("Basic Arithmetic") < result.output.index("Financial")


# --- run ---

def test_run_add_is_exact(invoke):
    result = invoke("run", "Add", "0.1", "0.2")
    assert result.exit_code == 0
    assert result.output.strip() == "0.3"


def test_run_accepts_comma_separator(invoke):
    result = invoke("run", "add", "0,1", "0,2")
    assert result.exit_code == 0
    assert result.output.strip() == "0.3"


def test_run_negative_number_after_double_dash(invoke):
    result = invoke("run", "Square", "--", "-5")
    assert result.exit_code == 0
    assert result.output.strip() == "25"


def test_run_keeps_twenty_nine_digits(invoke):
    result = invoke("run", "Add", "10000000000000000000000000000", "1")
    assert result.exit_code == 0
    assert result.output.strip() == "10000000000000000000000000001"


def test_run_wrong_argument_count(invoke):
    result = invoke("run", "Add", "1")
    assert result.exit_code == 1
    assert "expects 2 arguments, but 1 were provided" in result.output


def test_run_unknown_operation(invoke):
    result = invoke("run", "Divide", "1", "2")
    assert result.exit_code == 1
    assert "Unknown operation: Divide" in result.output


def test_run_invalid_number(invoke):
    result = invoke("run", "Add", "1", "two")
    assert result.exit_code == 1
    assert "Invalid number format" in result.output


def test_run_price_operation(invoke, fake_prices, quote):
    requests = fake_prices(quote("bitcoin", "67123.45"))
    result = invoke("run", "Bitcoin Price")
    assert result.exit_code == 0
    assert result.output.strip() == "67123.45"
    assert len(requests) == 1


def test_run_price_failure_shows_message(invoke, fake_prices, sleeps):
    fake_prices(httpx.Response(429), httpx.Response(429), httpx.Response(429))
    result = invoke("run", "Ethereum Price")
    assert result.exit_code == 1
    assert "rate limit exceeded for ethereum" in result.output
    assert sleeps == [1.0, 5.0, 10.0]


# --- price ---

def test_price_any_asset(invoke, fake_prices, quote):
    requests = fake_prices(quote("solana", "142.5"))
    result = invoke("price", "Solana")
    assert result.exit_code == 0
    assert result.output.strip() == "142.5"
    assert requests[0].url.params["ids"] == "solana"


# --- settings ---

def test_invalid_settings_file_exits(tmp_path):
    bad = tmp_path / "appsettings.json"
    bad.write_text("{broken", encoding="utf-8")
    result = runner.invoke(app, ["--settings", str(bad), "list"])
    assert result.exit_code == 1
    assert "Settings error" in result.output


def test_unknown_log_level_exits(tmp_path):
    result = runner.invoke(app, ["--settings", str(tmp_path / "none.json"), "--log-level", "LOUD", "list"])
    assert result.exit_code == 1
    assert "Unknown log level" in result.output


def test_settings_file_with_invalid_utf8_exits(tmp_path):
    bad = tmp_path / "appsettings.json"
    bad.write_bytes(b'{"Logging": {"Level": "\xff"}}')
    result = runner.invoke(app, ["--settings", str(bad), "list"])
    assert result.exit_code == 1
    assert not isinstance(result.exception, UnicodeDecodeError)
    assert "Settings error" in result.output


def test_settings_configure_installed_client(tmp_path, monkeypatch):
    settings_file = tmp_path / "appsettings.json"
    settings_file.write_text('{"CryptoApi": {"RequestTimeoutSeconds": 4}}', encoding="utf-8")
    installed = []

    def client_factory(config):
        client = RetryingPriceClient(config)
        installed.append(client)
        return client

    monkeypatch.setattr("mycalc.__main__.RetryingPriceClient", client_factory)
    result = runner.invoke(app, ["--settings", str(settings_file), "--log-level", "CRITICAL", "list"])

    assert result.exit_code == 0
    [client] = installed
    assert client.config.request_timeout_s == 4.0
    assert client.closed


# --- menu ---

def test_menu_add_then_exit(invoke):
    # category 1, operation 1 (Add), two operands, back, exit
    result = invoke("menu", input="1\n1\n0.1\n0,2\n0\n0\n")
    assert result.exit_code == 0
    assert "MyCalc - Choose a category:" in result.output
    assert "Result: 0.3" in result.output
    assert "Goodbye!" in result.output


def test_no_command_starts_menu(invoke):
    result = invoke(input="0\n")
    assert result.exit_code == 0
    assert "1. Basic Arithmetic - Fundamental mathematical operations" in result.output
    assert "Goodbye!" in result.output


def test_menu_reprompts_on_invalid_number(invoke):
    result = invoke("menu", input="2\n1\nabc\n-5\n0\n0\n")
    assert result.exit_code == 0
    assert "Invalid number format. Please try again." in result.output
    assert "Result: 25" in result.output


def test_menu_shows_operation_errors_and_continues(invoke, fake_prices, quote):
    fake_prices(quote("bitcoin", '"n/a"'), quote("bitcoin", "50000"))
    result = invoke("menu", input="3\n1\n1\n0\n0\n")
    assert result.exit_code == 0
    assert "Error: Invalid response format for bitcoin price" in result.output
    assert "Result: 50000" in result.output


def test_menu_rejects_out_of_range_choice(invoke):
    result = invoke("menu", input="9\n0\n")
    assert result.exit_code == 0
    assert "Goodbye!" in result.output
