"""Configuration system using pydantic-settings with environment variable loading."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from tracker.exceptions import ConfigurationError
from tracker.logging import get_logger
from tracker.models import Currency

logger = get_logger(__name__)


class AverageThreshold(str, Enum):
    """When the trailing average becomes reportable.

    EXCEEDS_WINDOW reports once more than ``window_size`` valid closes have
    been seen (the historical report format). MEETS_WINDOW reports as soon
    as the window is full.
    """

    EXCEEDS_WINDOW = "exceeds_window"
    MEETS_WINDOW = "meets_window"


class MarketDataSettings(BaseSettings):
    """CoinMarketCap historical quotes endpoint."""

    model_config = SettingsConfigDict(env_prefix="CMC_")

    base_url: str = "https://web-api.coinmarketcap.com/v1/cryptocurrency/ohlcv/historical"
    convert: str = "USD"


class RateSettings(BaseSettings):
    """Bank of Israel daily exchange rate lookup."""

    model_config = SettingsConfigDict(env_prefix="RATES_")

    base_url: str = "https://www.boi.org.il/currency.xml"
    currency_code: str = "01"  # USD in the BOI currency table
    max_retries: int = 20  # days to walk back before giving up


class AverageSettings(BaseSettings):
    """Trailing moving average parameters."""

    model_config = SettingsConfigDict(env_prefix="AVERAGE_")

    window_size: int = 14
    threshold: AverageThreshold = AverageThreshold.EXCEEDS_WINDOW


class ReportSettings(BaseSettings):
    """Spreadsheet report locations."""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    path: Path = Path("Crypto-HistoricalPrice.xlsx")
    directory: Path = Path(".")  # where delta workbooks are written
    delta_enabled: bool = True


class PriorityConfig(BaseSettings):
    """Priority ERP credentials. Forwarding is disabled while endpoint is empty."""

    model_config = SettingsConfigDict(env_prefix="PRIORITY_")

    endpoint: str = ""
    username: str = ""
    password: SecretStr = SecretStr("")

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)


class PipelineSettings(BaseSettings):
    """Run-level pipeline behaviour."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    days_back: int = 15
    isolate_failures: bool = False  # continue with next currency on fetch/data errors
    http_timeout_seconds: float = 30.0


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # LOG_FORMAT=json for collected output
    market_data: MarketDataSettings = MarketDataSettings()
    rates: RateSettings = RateSettings()
    average: AverageSettings = AverageSettings()
    report: ReportSettings = ReportSettings()
    priority: PriorityConfig = PriorityConfig()
    pipeline: PipelineSettings = PipelineSettings()


class CurrencyList(BaseModel):
    """Top-level shape of the currency configuration file."""

    currencies: list[Currency]


def currency_config_candidates(path: Path, search_dirs: list[Path] | None = None) -> list[Path]:
    """Locations tried for the currency config, in order.

    The given path comes first; then a file with the same name in each of
    ``search_dirs`` (the working directory by default).
    """
    candidates = [path]
    for directory in search_dirs if search_dirs is not None else [Path.cwd()]:
        candidate = directory / path.name
        if candidate.resolve() not in {c.resolve() for c in candidates}:
            candidates.append(candidate)
    return candidates


def load_currencies(path: Path, search_dirs: list[Path] | None = None) -> list[Currency]:
    """Load the tracked currency list from a JSON file.

    When ``path`` does not exist, the same file name is looked up in the
    working directory (or ``search_dirs``).

    Raises:
        ConfigurationError: If no candidate exists, or the file is not JSON or has the wrong shape.
    """
    candidates = currency_config_candidates(path, search_dirs)
    found = next((c for c in candidates if c.is_file()), None)
    if found is None:
        tried = ", ".join(str(c) for c in candidates)
        raise ConfigurationError(f"cannot find currency config (tried {tried})")
    if found != path:
        logger.info("currency_config_fallback", requested=str(path), path=str(found))

    try:
        raw = found.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read currency config {found}: {e}") from e

    try:
        return CurrencyList.model_validate(json.loads(raw)).currencies
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError(f"invalid currency config {found}: {e}") from e
