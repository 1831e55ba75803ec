# polar_weight_sync/cli.py
from __future__ import annotations

import asyncio
import datetime as dt
import os
from pathlib import Path
from typing import List, Optional

import typer
import structlog
from dotenv import load_dotenv

from .auth import SessionAuthenticator
from .batch import BatchOrchestrator
from .browser import open_page
from .config import Settings, get_settings
from .cookies import CookieStore
from .csvlog import clean_log, read_daily_entries
from .models import BatchResult, DailyEntry
from .updater import WeightUpdater
from .utils import get_tz, iso_date, redact, round_1dp, timed, today

load_dotenv()

app = typer.Typer(no_args_is_help=True, help="Sync body weight into Polar Flow")
log = structlog.get_logger()


# ---------- helpers ----------

def _parse_day(value: Optional[str]) -> dt.date:
    if not value:
        return today(get_tz())
    try:
        return dt.date.fromisoformat(value.strip())
    except ValueError:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


def _print_summary(title: str, total: int, result: BatchResult) -> None:
    typer.echo("")
    typer.echo("===============================")
    typer.echo(f"{title}:")
    typer.echo(f"Total entries: {total}")
    typer.echo(f"Successful updates: {result.successful}")
    typer.echo(f"Failed updates: {result.failed}")
    if result.skipped:
        typer.echo(f"Skipped (login failed): {result.skipped}")
    if result.failed_dates:
        typer.echo(f"Failed dates: {', '.join(result.failed_dates)}")
    typer.echo("===============================")


async def _sync(settings: Settings, entries: List[DailyEntry], login_first: bool = False) -> BatchResult:
    store = CookieStore(settings.POLAR_COOKIES_FILE)
    updater = WeightUpdater(settings)
    authenticator = SessionAuthenticator(settings, store)

    with timed("total_execution", entries=len(entries)):
        async with open_page(settings, store) as page:
            authenticated = False
            if login_first:
                if not await authenticator.authenticate(page):
                    log.error("authentication_failed", hint="check POLAR_USERNAME / POLAR_PASSWORD")
                    return BatchResult(skipped=len(entries))
                authenticated = True
            orchestrator = BatchOrchestrator(updater, authenticator, authenticated=authenticated)
            return await orchestrator.run(page, entries)


def _run(coro) -> BatchResult:
    try:
        return asyncio.run(coro)
    except Exception as e:  # noqa: BLE001
        log.error("fatal_error", error=str(e), error_type=type(e).__name__)
        typer.echo(f"[ERR] {e}", err=True)
        raise typer.Exit(code=1)


# ---------- commands ----------

@app.command("diag")
def diag() -> None:
    """Show the effective configuration (credentials redacted)."""
    s = get_settings()
    store = CookieStore(s.POLAR_COOKIES_FILE)
    typer.echo(f"POLAR_USERNAME: {redact(s.POLAR_USERNAME) or '(not set)'}")
    typer.echo(f"POLAR_PASSWORD set: {bool(s.POLAR_PASSWORD)}")
    typer.echo(f"POLAR_FLOW_URL: {s.POLAR_FLOW_URL}")
    typer.echo(f"POLAR_AUTH_URL: {s.POLAR_AUTH_URL}")
    typer.echo(f"POLAR_COOKIES_FILE: {s.POLAR_COOKIES_FILE}  (exists={store.exists})")
    typer.echo(f"DISABLE_DIRECT_API: {s.DISABLE_DIRECT_API}")
    typer.echo(f"HEADLESS: {s.HEADLESS}")
    typer.echo(f"WEIGHT_RAW_CSV: {s.WEIGHT_RAW_CSV}  (exists={os.path.exists(s.WEIGHT_RAW_CSV)})")
    typer.echo(f"WEIGHT_CLEANED_CSV: {s.WEIGHT_CLEANED_CSV}  (exists={os.path.exists(s.WEIGHT_CLEANED_CSV)})")


@app.command()
def clean(
    input: Optional[Path] = typer.Option(None, "--input", "-i", help="Raw weight log (default WEIGHT_RAW_CSV)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Cleaned log (default WEIGHT_CLEANED_CSV)"),
) -> None:
    """Keep the last measurement of each day and write the cleaned log."""
    s = get_settings()
    src = input or Path(s.WEIGHT_RAW_CSV)
    dst = output or Path(s.WEIGHT_CLEANED_CSV)
    try:
        count = clean_log(src, dst)
    except FileNotFoundError as e:
        typer.echo(f"[ERR] {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"OK — {count} days written to {dst}")


@app.command()
def update(
    weight: float = typer.Argument(..., help="Weight in kg"),
    date: Optional[str] = typer.Argument(None, help="YYYY-MM-DD (default today)"),
) -> None:
    """Set the weight of a single day."""
    s = get_settings()
    day = _parse_day(date)
    entry = DailyEntry(date=iso_date(day), weight_kg=weight)

    result = _run(_sync(s, [entry]))

    if result.successful:
        typer.echo(f"Weight successfully updated to {round_1dp(weight)}kg for {entry.date}")
    else:
        typer.echo(f"Failed to update weight for {entry.date}.")


@app.command()
def upload(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Cleaned log (default WEIGHT_CLEANED_CSV)"),
    login_first: bool = typer.Option(False, "--login-first", help="Log in before the first update instead of on demand"),
) -> None:
    """Upload every day of the cleaned log, oldest first."""
    s = get_settings()
    src = file or Path(s.WEIGHT_CLEANED_CSV)
    try:
        entries = read_daily_entries(src)
    except FileNotFoundError as e:
        typer.echo(f"[ERR] {e}", err=True)
        raise typer.Exit(code=1)

    if not entries:
        typer.echo("No weight entries found in the CSV file.")
        return

    result = _run(_sync(s, entries, login_first=login_first))
    _print_summary("Weight Upload Summary", len(entries), result)


if __name__ == "__main__":
    app()
