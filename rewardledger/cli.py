"""Command line helpers for the reward ledger."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import asdict

from rich.console import Console
from rich.table import Table

from .app import LedgerApp
from .config import LedgerConfig
from .validators import validate_config

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_serve() -> None:
    parser = argparse.ArgumentParser(description="Reward ledger HTTP API")
    parser.add_argument("--host", help="Bind address (defaults to REWARDLEDGER_API_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (defaults to REWARDLEDGER_API_PORT)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    _configure_logging(args.verbose)

    import uvicorn

    from .api import create_app

    config = LedgerConfig.from_env()
    issues = validate_config(config)
    for issue in issues:
        console.print(f"[yellow]warning:[/yellow] {issue}")
    app = create_app(config=config)
    uvicorn.run(
        app,
        host=args.host or config.api.host,
        port=args.port or config.api.port,
        log_config=None,
    )


def run_initdb() -> None:
    parser = argparse.ArgumentParser(description="Create reward ledger tables")
    parser.add_argument("--dsn", help="Database URL (defaults to REWARDLEDGER_STORAGE_DSN)")
    args = parser.parse_args()
    _configure_logging(False)

    config = LedgerConfig.from_env()
    config.storage.backend = "sqlalchemy"
    if args.dsn:
        config.storage.dsn = args.dsn

    async def _init() -> None:
        ledger = LedgerApp(config)
        try:
            await ledger.init_backend()
        finally:
            await ledger.aclose()

    asyncio.run(_init())
    console.print(f"[bold green]Tables ready[/bold green] at {config.storage.resolve_dsn()}")


def run_verify_tx() -> None:
    parser = argparse.ArgumentParser(description="Check a booster payment against the chain")
    parser.add_argument("transaction", help="0x-prefixed transaction hash")
    parser.add_argument("fid", type=int, help="Player fid the purchase is claimed for")
    parser.add_argument("booster", help="Booster code or name")
    parser.add_argument("quantity", type=int, help="Purchased quantity")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    _configure_logging(args.verbose)

    config = LedgerConfig.from_env()

    async def _verify():
        ledger = LedgerApp(config)
        try:
            return await ledger.verifier.verify(
                args.transaction.lower(), args.fid, args.booster, args.quantity
            )
        finally:
            await ledger.aclose()

    result = asyncio.run(_verify())
    table = Table(title=f"Transaction {result.transaction_id}")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("verified", "[green]yes[/green]" if result.ok else "[red]no[/red]")
    table.add_row("reason", result.reason.value if result.reason else "-")
    table.add_row("block", str(result.block_number) if result.block_number is not None else "-")
    table.add_row("payer", result.payer or "-")
    table.add_row("amount", str(result.amount) if result.amount is not None else "-")
    table.add_row(
        "expected", str(result.expected_amount) if result.expected_amount is not None else "-"
    )
    if result.detail:
        table.add_row("detail", result.detail)
    console.print(table)
    if not result.ok:
        sys.exit(2 if result.retryable else 1)


def run_validate() -> None:
    parser = argparse.ArgumentParser(description="Reward ledger configuration validator")
    parser.add_argument("--show", action="store_true", help="Print the resolved configuration")
    args = parser.parse_args()

    config = LedgerConfig.from_env()
    issues = validate_config(config)
    if args.show:
        resolved = asdict(config)
        resolved["api"]["auth_keys"] = f"{len(config.api.auth_keys)} key(s)"
        resolved["identity"]["api_key"] = "***" if config.identity.api_key else None
        console.print(resolved)
    if issues:
        console.print("[bold red]Configuration errors:[/bold red]")
        for issue in issues:
            console.print(f"- {issue}")
        sys.exit(1)
    console.print("Configuration is valid ✅")
