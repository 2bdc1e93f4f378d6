"""Source collection — reading files and resolving the include graph.

Files are discovered level by level from the root: each level's newly
referenced files are read and parsed (on a thread pool when more than one
worker is configured), then their includes form the next level. The
include graph is a networkx ``DiGraph``; any cycle aborts the load.

Once every file is parsed, directives are assembled depth-first from the
root: an included file's directives are spliced in at its ``include``
statement. A file included more than once contributes its directives only
at the first point it is reached. The position of a directive in this
assembly is its declaration sequence.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import networkx as nx

from ledgerctl.domain.directives import Directive, Include
from ledgerctl.domain.errors import IncludeCycleError, LedgerError, SourceReadError
from ledgerctl.domain.lexer import decode_source
from ledgerctl.domain.parser import ParsedFile, parse_text
from ledgerctl.domain.tokens import Location

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedSource:
    """One parsed file plus the resolved targets of its includes.

    ``includes`` is aligned with the ``Include`` directives of ``parsed``.
    """

    name: str
    parsed: ParsedFile
    includes: tuple[tuple[str, Location], ...]


@dataclass(frozen=True)
class SourceSet:
    """Every file reachable from the root, assembled in declaration order."""

    root: str
    files: tuple[str, ...]
    directives: tuple[Directive, ...]
    errors: tuple[LedgerError, ...]
    graph: nx.DiGraph = field(repr=False)


# ---------------------------------------------------------------------------
# Reading and parsing single files
# ---------------------------------------------------------------------------


def read_source(path: Path, included_from: Location | None = None) -> str:
    """Read and decode one ledger file.

    Raises :class:`SourceReadError` (pointing at the ``include`` statement
    when there is one) or :class:`LexError` for invalid UTF-8.
    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise SourceReadError(str(path), exc.strerror or str(exc), included_from) from exc
    logger.debug("Read %s (%d bytes)", path, len(data))
    return decode_source(data, str(path))


def parse_file(path: Path, included_from: Location | None = None) -> ParsedSource:
    text = read_source(path, included_from)
    parsed = parse_text(text, str(path))
    return _with_includes(str(path), parsed, path.parent)


def parse_string(text: str, name: str, base_dir: Path) -> ParsedSource:
    return _with_includes(name, parse_text(text, name), base_dir)


def _with_includes(name: str, parsed: ParsedFile, base_dir: Path) -> ParsedSource:
    includes: list[tuple[str, Location]] = []
    for directive in parsed.directives:
        if isinstance(directive, Include):
            target = Path(directive.filename)
            if not target.is_absolute():
                target = base_dir / target
            includes.append((str(target.resolve()), directive.location))
    logger.debug(
        "Parsed %s: %d directives, %d errors, %d includes",
        name,
        len(parsed.directives),
        len(parsed.errors),
        len(includes),
    )
    return ParsedSource(name, parsed, tuple(includes))


# ---------------------------------------------------------------------------
# Include graph
# ---------------------------------------------------------------------------


def collect(root: Path, *, workers: int = 1) -> SourceSet:
    """Parse *root* and everything it includes, transitively."""
    return collect_from(parse_file(root.resolve()), workers=workers)


def collect_from(first: ParsedSource, *, workers: int = 1) -> SourceSet:
    """Resolve the include graph below an already parsed root source."""
    graph: nx.DiGraph = nx.DiGraph()
    graph.add_node(first.name)
    sources: dict[str, ParsedSource] = {first.name: first}

    frontier = [first]
    while frontier:
        pending: dict[str, Location] = {}
        for source in frontier:
            for target, location in source.includes:
                graph.add_edge(source.name, target)
                if target not in sources and target not in pending:
                    pending[target] = location
        _check_cycles(graph, first.name)
        frontier = _parse_level(pending, workers)
        for source in frontier:
            sources[source.name] = source

    files, directives, errors = _assemble(first.name, sources)
    return SourceSet(
        root=first.name,
        files=tuple(files),
        directives=tuple(directives),
        errors=tuple(errors),
        graph=graph,
    )


def _check_cycles(graph: nx.DiGraph, root: str) -> None:
    try:
        edges = nx.find_cycle(graph, source=root)
    except nx.NetworkXNoCycle:
        return
    raise IncludeCycleError([edge[0] for edge in edges])


def _parse_level(pending: dict[str, Location], workers: int) -> list[ParsedSource]:
    """Parse one level of newly discovered files, preserving discovery order."""
    items = list(pending.items())
    if workers <= 1 or len(items) <= 1:
        return [parse_file(Path(name), location) for name, location in items]
    logger.debug("Parsing %d files on %d workers", len(items), workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(parse_file, Path(name), location) for name, location in items]
        return [future.result() for future in futures]


def _assemble(
    root: str, sources: dict[str, ParsedSource]
) -> tuple[list[str], list[Directive], list[LedgerError]]:
    files: list[str] = []
    directives: list[Directive] = []
    errors: list[LedgerError] = []

    def visit(name: str) -> None:
        files.append(name)
        source = sources[name]
        errors.extend(source.parsed.errors)
        targets: Iterator[tuple[str, Location]] = iter(source.includes)
        for directive in source.parsed.directives:
            directives.append(directive)
            if isinstance(directive, Include):
                target, _ = next(targets)
                if target not in files:
                    visit(target)

    visit(root)
    return files, directives, errors
