"""Entry point for the crypto price tracker.

Wires all components together and runs one pipeline pass over the
configured currencies.

Component wiring order (in _build_components):
1. ExchangeRateCache (one per run)
2. BankOfIsraelRateSource + RateConverter
3. SeriesFetcher (CoinMarketCap)
4. MovingAverageProcessor
5. Primary Report + optional delta Report
6. PriorityClient (only when an endpoint is configured)
7. ReportMerger
8. PipelineOrchestrator

Exits with status 1 on any unrecovered error.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

import httpx
import typer
from pydantic import SecretStr

from tracker.accounting.priority_client import PriorityClient
from tracker.config import AppSettings, load_currencies
from tracker.exceptions import TrackerError
from tracker.logging import bind_run_context, get_logger, setup_logging
from tracker.market_data.fetcher import SeriesFetcher
from tracker.models import Currency
from tracker.orchestrator import PipelineOrchestrator
from tracker.rates.bank_of_israel import BankOfIsraelRateSource
from tracker.rates.cache import ExchangeRateCache
from tracker.rates.converter import RateConverter
from tracker.report.merger import ReportMerger
from tracker.report.workbook import Report, delta_report_path
from tracker.signals.moving_average import MovingAverageProcessor

app = typer.Typer(
    add_completion=False,
    help="Track cryptocurrency daily prices, trailing averages and ILS values in a spreadsheet.",
)


@dataclass(frozen=True)
class RunWindow:
    """Reportable days of one run."""

    start: date
    end: date
    explicit_end: bool  # False: let the market data source pick its latest day

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def resolve_window(
    days: int,
    start_date: date | None = None,
    end_date: date | None = None,
    today: date | None = None,
) -> RunWindow:
    """Derive the run window from the CLI flags.

    A start date wins over ``days``; without an end date the window ends today.

    Raises:
        typer.BadParameter: If the range is empty or inverted.
    """
    end = end_date or today or date.today()
    if start_date is not None:
        if start_date > end:
            raise typer.BadParameter("start date is after end date", param_hint="--start-date")
        start = start_date
    else:
        if days < 1:
            raise typer.BadParameter("must be at least 1", param_hint="--days")
        start = end - timedelta(days=days - 1)
    return RunWindow(start=start, end=end, explicit_end=end_date is not None)


def _build_components(
    settings: AppSettings,
    client: httpx.AsyncClient,
    window: RunWindow,
    report_path: Path,
    delta_enabled: bool,
) -> dict[str, Any]:
    """Build all pipeline components for a single run."""
    cache = ExchangeRateCache()
    converter = RateConverter(
        BankOfIsraelRateSource(client, settings.rates),
        cache,
        max_retries=settings.rates.max_retries,
    )
    fetcher = SeriesFetcher(client, settings.market_data, settings.average.window_size)
    processor = MovingAverageProcessor(
        converter,
        window_size=settings.average.window_size,
        threshold=settings.average.threshold,
    )

    report = Report.open(report_path, window_size=settings.average.window_size)
    delta_report = None
    if delta_enabled:
        delta_report = Report.open(
            delta_report_path(settings.report.directory, window.start, window.end),
            window_size=settings.average.window_size,
            deferred=True,
        )

    forwarder = PriorityClient(client, settings.priority) if settings.priority.enabled else None
    merger = ReportMerger(report, delta_report, forwarder)

    orchestrator = PipelineOrchestrator(
        fetcher,
        processor,
        merger,
        days=window.days,
        end_date=window.end if window.explicit_end else None,
        isolate_failures=settings.pipeline.isolate_failures,
    )
    return {
        "cache": cache,
        "converter": converter,
        "fetcher": fetcher,
        "processor": processor,
        "report": report,
        "delta_report": delta_report,
        "forwarder": forwarder,
        "merger": merger,
        "orchestrator": orchestrator,
    }


async def run(
    settings: AppSettings,
    currencies: list[Currency],
    window: RunWindow,
    report_path: Path,
    delta_enabled: bool,
) -> int:
    """Run the pipeline once. Returns the number of rows appended."""
    async with httpx.AsyncClient(timeout=settings.pipeline.http_timeout_seconds) as client:
        components = _build_components(settings, client, window, report_path, delta_enabled)
        return await components["orchestrator"].run(currencies)


def _parse_day(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


@app.command()
def track(
    config: Path = typer.Option(
        Path("config.json"), "--config", "-c", help="Currency configuration file."
    ),
    days: int | None = typer.Option(
        None,
        "--days",
        help="Number of days to report. The averaging lookback (window - 1 days) is fetched on top.",
    ),
    start_date: datetime | None = typer.Option(
        None, "--start-date", formats=["%Y-%m-%d"], help="First reported day (overrides --days)."
    ),
    end_date: datetime | None = typer.Option(
        None, "--end-date", formats=["%Y-%m-%d"], help="Last reported day (default: today)."
    ),
    report: Path | None = typer.Option(None, "--report", help="Primary report workbook."),
    no_delta: bool = typer.Option(False, "--no-delta", help="Skip the per-run delta workbook."),
    priority_endpoint: str | None = typer.Option(
        None,
        "--priority-endpoint",
        help="If set, new rows are also exported to Priority (test or prod endpoint URI).",
    ),
    priority_username: str | None = typer.Option(
        None, "--priority-username", help="Username for the Priority API client."
    ),
    priority_password: str | None = typer.Option(
        None, "--priority-password", help="Password for the Priority API client."
    ),
    isolate_failures: bool = typer.Option(
        False,
        "--isolate-failures",
        help="Continue with the next currency when one currency's fetch fails.",
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Root logging level."),
) -> None:
    """Fetch, average, convert and append daily prices for every configured currency."""
    settings = AppSettings()
    settings = _apply_overrides(
        settings,
        priority_endpoint=priority_endpoint,
        priority_username=priority_username,
        priority_password=priority_password,
        isolate_failures=isolate_failures,
    )

    setup_logging(log_level or settings.log_level, settings.log_format)
    logger = get_logger("tracker.main")

    window = resolve_window(
        days if days is not None else settings.pipeline.days_back,
        _parse_day(start_date),
        _parse_day(end_date),
    )
    bind_run_context(window.start.isoformat(), window.end.isoformat())

    try:
        currencies = load_currencies(config)
        logger.info(
            "tracker_starting",
            currencies=[c.name for c in currencies],
            days=window.days,
            forwarding=settings.priority.enabled,
        )
        appended = asyncio.run(
            run(
                settings,
                currencies,
                window,
                report or settings.report.path,
                settings.report.delta_enabled and not no_delta,
            )
        )
    except TrackerError as e:
        logger.error("tracker_failed", error_type=type(e).__name__, error=str(e))
        raise typer.Exit(code=1) from e

    logger.info("tracker_finished", rows_appended=appended)


def _apply_overrides(
    settings: AppSettings,
    priority_endpoint: str | None,
    priority_username: str | None,
    priority_password: str | None,
    isolate_failures: bool,
) -> AppSettings:
    """Overlay CLI flags on top of environment settings."""
    priority = settings.priority
    updates: dict[str, Any] = {}
    if priority_endpoint is not None:
        updates["endpoint"] = priority_endpoint
    if priority_username is not None:
        updates["username"] = priority_username
    if priority_password is not None:
        updates["password"] = SecretStr(priority_password)
    if updates:
        priority = priority.model_copy(update=updates)

    pipeline = settings.pipeline
    if isolate_failures:
        pipeline = pipeline.model_copy(update={"isolate_failures": True})

    return settings.model_copy(update={"priority": priority, "pipeline": pipeline})


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
