"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. Provides lazy workspace construction and centralized
result emission (stdout/stderr routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from ledgerctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from ledgerctl.config.settings import LedgerSettings
    from ledgerctl.infrastructure.workspace import Workspace
    from ledgerctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The workspace is created on first use so ``--help`` and ``--version``
    never touch ledger files.
    """

    def __init__(self, settings: LedgerSettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None

        from ledgerctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from ledgerctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def workspace(self) -> Workspace:
        """The workspace for the configured root ledger file."""
        if self._workspace is None:
            ledger_file = self.settings.resolved_ledger_file()
            if ledger_file is None:
                msg = "No ledger file given. Pass -f FILE or set [ledger] file in ledgerctl.toml."
                raise click.UsageError(msg)

            from ledgerctl.infrastructure.workspace import Workspace
            from ledgerctl.services.loader import load_file

            self._workspace = Workspace(ledger_file, self.settings.ledger_config(), load_file)
        return self._workspace

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout and returns. Warnings go
          to stderr so they don't pollute piped output.
        * Failure: writes to stderr and exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
