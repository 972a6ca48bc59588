"""Stored scan results."""

from __future__ import annotations

import json
from typing import Optional

import typer

from linkguard.db import get_connection, init_db
from linkguard.db.scans import get_scan, list_scans

from cli.rendering import render_scan_rows, render_summary

scans_app = typer.Typer(help="Browse stored scan results.", no_args_is_help=True)


@scans_app.command("list")
def scans_list(
    key: Optional[str] = typer.Option(None, help="Only scans stored under this key."),
    limit: int = typer.Option(20, min=1, help="Maximum rows."),
) -> None:
    """List stored scans, newest first."""
    conn = get_connection()
    init_db(conn)
    try:
        scans = list_scans(conn, key, limit)
    finally:
        conn.close()

    if not scans:
        typer.echo("No scans found.")
        return
    typer.echo(render_scan_rows(s.summary() for s in scans))


@scans_app.command("show")
def scans_show(
    scan_id: str = typer.Argument(..., help="Scan id (from `scans list`)."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON."),
    only_problems: bool = typer.Option(False, "--problems", help="Hide working links."),
) -> None:
    """Show one stored scan."""
    conn = get_connection()
    init_db(conn)
    try:
        stored = get_scan(conn, scan_id)
    finally:
        conn.close()

    if stored is None or stored.result is None:
        typer.echo(f"❌ Scan not found: {scan_id}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(stored.result.to_dict(), indent=2))
        return
    typer.echo(f"Target         : {stored.target}  [{stored.scan_key}]")
    typer.echo(render_summary(stored.result, only_problems=only_problems))
