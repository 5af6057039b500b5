"""Generator-based line sources — glob expansion, gzip, stdin."""

import glob
import gzip
import os
import sys
from typing import Generator, Iterator

STDIN = "-"


def read_lines(filepath: str) -> Generator[str, None, None]:
    """Yield each line of one source. '-' is stdin; '.gz' files are decompressed."""
    if filepath == STDIN:
        if hasattr(sys.stdin, "reconfigure"):
            sys.stdin.reconfigure(encoding="utf-8", errors="replace")
        yield from sys.stdin
        return
    opener = gzip.open if filepath.endswith(".gz") else open
    with opener(filepath, "rt", encoding="utf-8", errors="replace") as f:
        yield from f


def open_sources(paths: list[str]) -> Generator[tuple[str, Iterator[str]], None, None]:
    """Yield (path, lines) for each source, sequentially.

    Each source is opened lazily, when its lines are first iterated.
    """
    for path in paths:
        yield path, read_lines(path)


def expand_paths(raw_paths: list[str]) -> list[str]:
    """Expand globs, deduplicate, and validate that files exist.

    '-' is kept as-is. An empty list means stdin.
    Raises FileNotFoundError if a non-glob path doesn't exist.
    Raises FileNotFoundError if expansion produces zero files.
    """
    if not raw_paths:
        return [STDIN]

    expanded = []
    seen = set()

    for raw in raw_paths:
        if raw == STDIN:
            candidates = [raw]
        elif any(c in raw for c in ("*", "?", "[")):
            candidates = sorted(glob.glob(raw))
        else:
            if not os.path.isfile(raw):
                raise FileNotFoundError(f"File not found: {raw}")
            candidates = [raw]
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                expanded.append(candidate)

    if not expanded:
        raise FileNotFoundError("No log files found matching the given paths")

    return expanded
