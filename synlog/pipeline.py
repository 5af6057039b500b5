"""Pipeline — drive line sources through parse → correlate → filter → format."""

import logging
import re
import sys
from dataclasses import dataclass, replace
from typing import Callable, Generator, Iterable, Iterator, TextIO

from synlog.correlation import DEFAULT_WINDOW, CorrelationBuffer
from synlog.formatter import format_text
from synlog.parser import CompletionRecord, DiagnosticRecord, parse_line, split_source
from synlog.tally import Tally

logger = logging.getLogger(__name__)

Source = tuple[str, Iterable[str]]


@dataclass
class RunStats:
    lines: int = 0
    skipped: int = 0
    unrecognized: int = 0
    diagnostics: int = 0
    completions: int = 0
    accepted: int = 0
    expired: int = 0
    pending: int = 0


def process(
    sources: Iterable[Source],
    prefilter: re.Pattern | None = None,
    predicate: Callable[[CompletionRecord], bool] | None = None,
    formatter: Callable[[CompletionRecord], str] | None = None,
    window: float = DEFAULT_WINDOW,
    stats: RunStats | None = None,
) -> Generator[str, None, None]:
    """Yield one rendered string per accepted completion record, in arrival order.

    Sources are read one after another; no merging across sources. Diagnostic
    lines still pending when input ends are dropped.
    """
    if stats is None:
        stats = RunStats()
    if formatter is None:
        formatter = format_text
    buffer = CorrelationBuffer(window)

    for log_path, lines in sources:
        logger.info("Reading %s", log_path)
        current_path = log_path
        for raw in lines:
            stats.lines += 1
            source, line = split_source(raw)
            if source is not None:
                current_path = source

            if prefilter is not None and not prefilter.search(raw):
                stats.skipped += 1
                continue

            record = parse_line(line, current_path)
            if record is None:
                stats.unrecognized += 1
                continue

            if isinstance(record, DiagnosticRecord):
                stats.diagnostics += 1
                buffer.store(record)
                continue

            stats.completions += 1
            extra = buffer.retrieve(record.request_id)
            if extra:
                record = replace(record, extra_lines=extra)
            if predicate is not None and not predicate(record):
                continue
            stats.accepted += 1
            yield formatter(record)

    stats.expired = buffer.expired
    stats.pending = buffer.clear()
    if stats.pending:
        logger.info("Discarding %d request(s) that never completed", stats.pending)


def run(
    sources: Iterable[Source],
    prefilter: re.Pattern | None = None,
    predicate: Callable[[CompletionRecord], bool] | None = None,
    formatter: Callable[[CompletionRecord], str] | None = None,
    tally: bool = False,
    window: float = DEFAULT_WINDOW,
    out: TextIO | None = None,
) -> RunStats:
    """Print rendered records (or a tally of them) to out. Returns run counters."""
    out = out or sys.stdout
    stats = RunStats()
    rendered: Iterator[str] = process(
        sources,
        prefilter=prefilter,
        predicate=predicate,
        formatter=formatter,
        window=window,
        stats=stats,
    )

    if tally:
        table = Tally()
        for text in rendered:
            table.add(text)
        for line in table.report():
            print(line, file=out)
    else:
        for text in rendered:
            print(text, file=out)

    logger.info(
        "Done: %d line(s), %d skipped, %d unrecognized, %d diagnostic, "
        "%d completed, %d accepted, %d expired, %d pending",
        stats.lines, stats.skipped, stats.unrecognized, stats.diagnostics,
        stats.completions, stats.accepted, stats.expired, stats.pending,
    )
    return stats
