"""API credential commands."""

from __future__ import annotations

import json

import typer

from linkguard.scan.orchestrator import build_credential_pool

keys_app = typer.Typer(help="Inspect the configured API keys.", no_args_is_help=True)


@keys_app.command("status")
def keys_status(
    as_json: bool = typer.Option(False, "--json", help="Print the raw status as JSON."),
) -> None:
    """Show the configured keys (masked) and their quota limits.

    Usage counters live in memory, so a fresh CLI process always starts at
    zero; the API's ``GET /credentials`` reports live counters.
    """
    status = build_credential_pool().status()
    if as_json:
        typer.echo(json.dumps(status, indent=2))
        return

    if not status["total"]:
        typer.echo("No API keys configured. Set YOUTUBE_API_KEYS in the environment or .env.")
        return

    typer.echo(f"Keys: {status['total']}  available={status['available']}  exhausted={status['exhausted']}")
    for cred in status["credentials"]:
        marker = "x" if cred["exhausted"] else " "
        typer.echo(
            f"  [{marker}] #{cred['id']}  {cred['key']}  "
            f"{cred['quota_used']}/{cred['quota_limit']}"
        )
