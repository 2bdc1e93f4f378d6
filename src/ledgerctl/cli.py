"""Root CLI group for ledgerctl with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from ledgerctl import __version__
from ledgerctl.commands import register_commands
from ledgerctl.commands._context import AppContext
from ledgerctl.config.settings import LedgerSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="ledgerctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "-f",
    "--file",
    "ledger_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Root ledger file (overrides [ledger] file).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    ledger_file: Path | None,
) -> None:
    """ledgerctl — plain-text double-entry ledger checker."""
    ctx.ensure_object(dict)
    settings = LedgerSettings.from_cli(
        config_path=config_path,
        ledger_file=ledger_file,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
