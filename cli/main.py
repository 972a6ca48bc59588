"""LinkGuard CLI: entry-point for scans, link checks, and stored results.

Usage:
    linkguard --help
    python cli/main.py --help

Command groups:
    scan      scan a channel or a list of videos
    check     probe individual links
    scans     browse stored results
    keys      inspect the API key pool
    db        database operations
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from linkguard.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import List, Optional

import typer

from linkguard.config import settings
from linkguard.db import get_connection, init_db
from linkguard.links.checker import LinkHealthChecker
from linkguard.log import configure_logging
from linkguard.scan.models import ScanStatistics

from cli.commands.history import scans_app
from cli.commands.keys import keys_app
from cli.commands.scan import scan_app
from cli.rendering import render_link, render_statistics

app = typer.Typer(
    name="linkguard",
    help="Find broken links in YouTube video descriptions.",
    no_args_is_help=True,
)
app.add_typer(scan_app, name="scan")
app.add_typer(scans_app, name="scans")
app.add_typer(keys_app, name="keys")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)."
    ),
) -> None:
    configure_logging(log_level)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Link checks
# ---------------------------------------------------------------------------
@app.command("check")
def check(
    urls: List[str] = typer.Argument(..., help="One or more URLs to probe."),
    as_json: bool = typer.Option(False, "--json", help="Print raw results as JSON."),
) -> None:
    """Probe links with the same rules a scan uses.

    Exits with code 1 when any link is broken.
    """
    with LinkHealthChecker() as checker:
        results = checker.probe_many(urls, concurrency=settings.probe_concurrency)

    stats = ScanStatistics.from_links(results)
    if as_json:
        typer.echo(json.dumps(
            {"results": [r.to_dict() for r in results], "statistics": stats.to_dict()},
            indent=2,
        ))
    else:
        for result in results:
            typer.echo(render_link(result))
        typer.echo(render_statistics(stats))

    if stats.broken_links:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
