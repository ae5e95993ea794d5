"""Settings for mycalc: appsettings.json plus MYCALC_* environment overrides.

File layout:

    {
      "CryptoApi": {"CoinGeckoBaseUrl": "...", "RequestTimeoutSeconds": 30},
      "Logging": {"Level": "INFO", "Format": "console"}
    }

Environment variables use the nested field names with ``__`` between levels,
e.g. ``MYCALC_CRYPTO_API__REQUEST_TIMEOUT_S=10`` or
``MYCALC_LOGGING__LEVEL=DEBUG``, and take precedence over the file.
A missing file is not an error; every key has a default.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from mycalc.errors import SettingsError

DEFAULT_COINGECKO_URL = "https://api.coingecko.com/api/v3/simple/price"
DEFAULT_USER_AGENT = "MyCalc-Calculator/1.0"
SETTINGS_FILENAME = "appsettings.json"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("console", "json")

# File section -> Settings field
_FILE_SECTIONS = {"CryptoApi": "crypto_api", "Logging": "logging"}


class CryptoApiSettings(BaseModel):
    """Quote endpoint and retry schedule for price lookups.

    Attributes:
        base_url: Simple-price endpoint queried with ``ids`` and ``vs_currencies``.
        request_timeout_s: Per-attempt HTTP timeout in seconds.
        user_agent: Value of the User-Agent header.
        max_retries: Retries after the first attempt.
        initial_delay_s: Pause before the first attempt.
        backoff_step_s: Retry ``k`` waits ``backoff_step_s * k`` seconds.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    base_url: str = Field(
        DEFAULT_COINGECKO_URL,
        validation_alias=AliasChoices("base_url", "CoinGeckoBaseUrl"),
    )
    request_timeout_s: float = Field(
        30.0,
        gt=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("request_timeout_s", "RequestTimeoutSeconds"),
    )
    user_agent: str = Field(
        DEFAULT_USER_AGENT,
        validation_alias=AliasChoices("user_agent", "UserAgent"),
    )
    max_retries: int = Field(2, ge=0)
    initial_delay_s: float = Field(1.0, ge=0, allow_inf_nan=False)
    backoff_step_s: float = Field(5.0, ge=0, allow_inf_nan=False)

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("CoinGeckoBaseUrl cannot be empty")
        return value

    @field_validator(
        "request_timeout_s", "max_retries", "initial_delay_s", "backoff_step_s", mode="before"
    )
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        # bool would otherwise coerce to 1/0
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value


class LoggingSettings(BaseModel):
    """Log level and renderer ("console" or "json")."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    level: str = Field("INFO", validation_alias=AliasChoices("level", "Level"))
    format: str = Field("console", validation_alias=AliasChoices("format", "Format"))

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return value

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in _LOG_FORMATS:
            raise ValueError(f"Unknown log format: {value}")
        return value


class Settings(BaseSettings):
    """All mycalc settings.

    Sources, highest priority first: ``MYCALC_*`` environment variables,
    then keyword arguments (load_settings passes the file's contents here).
    """

    model_config = SettingsConfigDict(
        env_prefix="MYCALC_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    crypto_api: CryptoApiSettings = Field(default_factory=CryptoApiSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="before")
    @classmethod
    def _fold_file_sections(cls, data: Any) -> Any:
        """Move the file's CryptoApi/Logging sections under the field names.

        Keys already under the field name come from the environment and win.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for section, name in _FILE_SECTIONS.items():
            if section not in data:
                continue
            from_file = data.pop(section)
            current = data.get(name)
            if current is None:
                data[name] = from_file
            elif isinstance(from_file, dict) and isinstance(current, dict):
                data[name] = {**from_file, **current}
        return data

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings


def _settings_path(path: Optional[Union[str, Path]]) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get("MYCALC_SETTINGS")
    if env_path:
        return Path(env_path)
    return Path.cwd() / SETTINGS_FILENAME


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )


def _read_file(path: Path) -> dict[str, Any]:
    try:
        return JsonConfigSettingsSource(Settings, json_file=path, json_file_encoding="utf-8")()
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Invalid JSON in {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise SettingsError(f"{path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise SettingsError(f"Cannot read {path}: {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"{path} must contain a JSON object") from exc


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings from ``path`` (or the default location) and the environment.

    Args:
        path: Settings file. Defaults to ``$MYCALC_SETTINGS`` or
            ``./appsettings.json``.

    Returns:
        Validated Settings.

    Raises:
        SettingsError: The file cannot be read or decoded, or a value is invalid.
    """
    file_values = _read_file(_settings_path(path))
    try:
        return Settings(**file_values)
    except ValidationError as exc:
        raise SettingsError(f"Invalid settings: {_describe(exc)}") from exc


def with_log_level(settings: Settings, level: str) -> Settings:
    """Copy of ``settings`` with the log level replaced (``--log-level``)."""
    try:
        logging_settings = LoggingSettings(level=level, format=settings.logging.format)
    except ValidationError as exc:
        raise SettingsError(_describe(exc)) from exc
    return settings.model_copy(update={"logging": logging_settings})
