"""Scan commands: a channel's uploads or an explicit list of videos."""

from __future__ import annotations

import json
from typing import List, Optional

import typer

from linkguard.db import get_connection, init_db
from linkguard.db.scans import save_scan
from linkguard.errors import LinkGuardError
from linkguard.scan.models import ScanProgress, ScanRequest, ScanResult, parse_plan_limit
from linkguard.scan.orchestrator import build_credential_pool, build_orchestrator

from cli.rendering import render_summary

scan_app = typer.Typer(help="Scan YouTube videos for broken description links.", no_args_is_help=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _progress(p: ScanProgress) -> None:
    typer.echo(f"[{p.percent:3d}%] {p.message}", err=True)


def _run(scan_request: ScanRequest, quiet: bool) -> ScanResult:
    pool = build_credential_pool()
    if not len(pool):
        typer.echo("❌ No API keys configured. Set YOUTUBE_API_KEYS in the environment or .env.", err=True)
        raise typer.Exit(code=1)

    engine = build_orchestrator(pool)
    try:
        return engine.run(scan_request, progress=None if quiet else _progress)
    except LinkGuardError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        engine.close()


def _finish(result: ScanResult, key: str, target: str, save: bool, as_json: bool, only_problems: bool) -> None:
    scan_id: Optional[str] = None
    if save:
        conn = get_connection()
        init_db(conn)
        try:
            scan_id = save_scan(conn, key, target, result).id
        finally:
            conn.close()

    if as_json:
        payload = result.to_dict()
        if scan_id:
            payload["scanId"] = scan_id
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(render_summary(result, only_problems=only_problems))
    if scan_id:
        typer.echo(f"\n💾 Saved as {scan_id}")


def _plan_limit(value: Optional[str]) -> Optional[int]:
    try:
        return parse_plan_limit(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--plan-limit") from exc


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@scan_app.command("channel")
def scan_channel(
    channel: str = typer.Argument(..., help="Channel id, @handle, or channel URL."),
    count: int = typer.Option(10, "--count", "-n", min=1, help="Most recent videos to scan."),
    start: Optional[str] = typer.Option(None, help="Only videos published on/after (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, help="Only videos published on/before (YYYY-MM-DD)."),
    plan_limit: Optional[str] = typer.Option(None, help="Cap on videos per scan (int or 'unlimited')."),
    key: str = typer.Option("default", help="Owner key the result is stored under."),
    save: bool = typer.Option(True, "--save/--no-save", help="Store the result in the local DB."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON."),
    only_problems: bool = typer.Option(False, "--problems", help="Hide working links."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No progress output."),
) -> None:
    """Scan a channel's most recent uploads."""
    scan_request = ScanRequest.for_channel(
        channel,
        count,
        start_date=start,
        end_date=end,
        plan_limit=_plan_limit(plan_limit),
    )
    try:
        result = _run(scan_request, quiet)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    _finish(result, key, channel, save, as_json, only_problems)


@scan_app.command("videos")
def scan_videos(
    urls: List[str] = typer.Argument(..., help="Video URLs or 11-character ids."),
    count: Optional[int] = typer.Option(None, "--count", "-n", min=1, help="Scan at most this many."),
    plan_limit: Optional[str] = typer.Option(None, help="Cap on videos per run (int or 'unlimited')."),
    key: str = typer.Option("default", help="Owner key the result is stored under."),
    save: bool = typer.Option(True, "--save/--no-save", help="Store the result in the local DB."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON."),
    only_problems: bool = typer.Option(False, "--problems", help="Hide working links."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No progress output."),
) -> None:
    """Scan an explicit list of videos."""
    kwargs = {"requested_count": count} if count is not None else {}
    scan_request = ScanRequest.for_videos(urls, plan_limit=_plan_limit(plan_limit), **kwargs)
    result = _run(scan_request, quiet)
    _finish(result, key, f"{len(urls)} video(s)", save, as_json, only_problems)
