"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO); the caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ledgerctl.output.console import create_console, get_output, style_for_number

if TYPE_CHECKING:
    from rich.console import Console

    from ledgerctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal, which is
    the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    if result.op == "check" and result.data.get("issues"):
        return "\n".join(_issue_line(issue) for issue in result.data["issues"])
    if result.op == "files":
        return "\n".join(result.data.get("files", []))
    if result.op == "accounts":
        return "\n".join(item["account"] for item in result.data.get("items", []))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _issue_line(issue: dict[str, Any]) -> str:
    where = ""
    if issue.get("file"):
        where = f"{issue['file']}:{issue.get('line')}:{issue.get('column')}: "
    return f"{where}{issue.get('message', '')}"


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "ledger.ok"), (f"  {result.op}", "ledger.op")))


def _field(console: Console, key: str, value: Any) -> None:
    style = ""
    if key == "account":
        style = "ledger.account"
    elif key in ("file", "root", "path"):
        style = "ledger.path"
    console.print(Text.assemble((f"  {key}: ", "ledger.key"), (str(value), style)))


def _amounts_text(amounts: dict[str, str]) -> Text:
    """One line per currency, each amount colored by sign."""
    text = Text()
    for index, (currency, number) in enumerate(amounts.items()):
        if index:
            text.append("\n")
        text.append(f"{number} {currency}", style=style_for_number(number))
    return text


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block, including the telemetry span tree."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text.assemble(("ERROR", "ledger.error"), (f"  {result.op}", "ledger.op"), f" — {msg}")
    )

    if err and err.detail and (verbose or "file" in err.detail):
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Check ─────────────────────────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render diagnostics grouped by source file, in ledger order."""
    issues = result.data.get("issues", [])
    count = result.data.get("count", len(issues))
    files = result.data.get("files", 0)
    entries = result.data.get("entries", 0)

    if count == 0:
        console.print(
            f"[ledger.ok]OK[/ledger.ok]  No errors in {entries} entries across {files} files."
        )
        if verbose:
            _render_meta(console, result)
        return

    by_file: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_file.setdefault(str(issue.get("file") or "<unknown>"), []).append(issue)

    for file, file_issues in by_file.items():
        console.print(f"\n[bold]{escape(file)}[/bold]")
        for issue in file_issues:
            kind = issue.get("kind", "error")
            position = f"{issue.get('line')}:{issue.get('column')}" if issue.get("line") else "-"
            console.print(
                f"  [ledger.path]{position}[/ledger.path]  "
                f"[ledger.error]{kind}[/ledger.error]: {escape(issue.get('message', ''))}"
            )
            if verbose and issue.get("detail"):
                for key, value in issue["detail"].items():
                    console.print(f"      {key}: {value}")

    console.print(f"\n{count} errors")
    if verbose:
        for kind, n in result.data.get("by_kind", {}).items():
            console.print(f"  {kind}: {n}")
        _render_meta(console, result)


# ── Query renderers ───────────────────────────────────────────────────


def _render_balances(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the account tree, indenting each segment under its parent."""
    rows = result.data.get("rows", [])
    title = "Balances"
    if result.data.get("as_of"):
        title += f" as of {result.data['as_of']}"
    if result.data.get("at_cost"):
        title += " (at cost)"

    table = Table(title=title, show_header=True, pad_edge=False, expand=False)
    table.add_column("Account", style="ledger.account", no_wrap=True)
    table.add_column("Balance", justify="right")
    if verbose:
        table.add_column("Own", justify="right")

    for row in rows:
        leaf = row["account"].rsplit(":", 1)[-1]
        cells: list[Any] = ["  " * row["depth"] + leaf, _amounts_text(row["balance"])]
        if verbose:
            cells.append(_amounts_text(row["own"]))
        table.add_row(*cells)

    console.print(table)
    if verbose:
        _render_meta(console, result)


def _render_accounts(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Account", style="ledger.account", no_wrap=True)
    table.add_column("Open", style="ledger.date")
    table.add_column("Close", style="ledger.date")
    table.add_column("Currencies")
    table.add_column("Booking")
    if verbose:
        table.add_column("Declared", style="ledger.path")

    for item in items:
        cells = [
            item["account"],
            item["open"],
            item.get("close") or "",
            ", ".join(item.get("currencies", [])),
            item.get("booking") or "",
        ]
        if verbose:
            cells.append(f"{item.get('file')}:{item.get('line')}")
        table.add_row(*cells, style="ledger.closed" if item.get("close") else None)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} accounts")


def _render_files(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    for path in result.data.get("files", []):
        console.print(Text(path, style="ledger.path"))
    if verbose:
        console.print(f"\n{result.data.get('count', 0)} files")


def _render_journal(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    rows = result.data.get("rows", [])
    table = Table(title=result.data.get("account"), show_header=True, pad_edge=False)
    table.add_column("Date", style="ledger.date", no_wrap=True)
    table.add_column("F")
    table.add_column("Description")
    table.add_column("Amount", justify="right", no_wrap=True)
    table.add_column("Balance", justify="right")
    if verbose:
        table.add_column("Source", style="ledger.path")

    for row in rows:
        description = row.get("narration") or ""
        if row.get("payee"):
            description = f"{row['payee']} | {description}"
        amount = row["amount"]
        if row.get("cost"):
            amount += f" {row['cost']}"
        cells: list[Any] = [
            row["date"],
            row.get("flag", ""),
            description,
            Text(amount, style=style_for_number(row["amount"])),
            _amounts_text(row.get("balance", {})),
        ]
        if verbose:
            cells.append(f"{row.get('file')}:{row.get('line')}")
        table.add_row(*cells)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(rows))} postings")


def _render_price(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    when = f" on {d['on']}" if d.get("on") else ""
    console.print(f"1 {d['base']} = {d['rate']} {d['quote']}{when}")
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "check": _render_check,
    "balances": _render_balances,
    "accounts": _render_accounts,
    "files": _render_files,
    "journal": _render_journal,
    "price": _render_price,
}
