"""Correlation buffer — holds diagnostic lines per request id until the
request's completion line shows up or the entry expires.

"Now" is the timestamp of the record being stored, not the wall clock, so
lines within one source must be in time order for expiry to be accurate.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field

from synlog.parser import DiagnosticRecord, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 600.0
DEFAULT_INDENT = "    "


@dataclass
class _Entry:
    lines: list[str] = field(default_factory=list)
    expires: float = 0.0


class CorrelationBuffer:
    """Expiring per-request store of diagnostic lines.

    Entries live in an OrderedDict kept in touch order: the first item is
    always the least recently stored-to, so the expiry sweep only ever
    looks at the front.
    """

    def __init__(self, window: float = DEFAULT_WINDOW, indent: str = DEFAULT_INDENT):
        self._window = window
        self._indent = indent
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self.expired = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request_id: str) -> bool:
        return request_id in self._entries

    def store(self, record: DiagnosticRecord) -> bool:
        """Buffer a diagnostic line. Returns False if its timestamp is unusable."""
        now = parse_timestamp(record)
        if now is None:
            logger.debug("Dropping diagnostic line with bad timestamp: %s", record.timestamp)
            return False

        entry = self._entries.get(record.request_id)
        if entry is None:
            entry = self._entries[record.request_id] = _Entry()
        else:
            self._entries.move_to_end(record.request_id)
        entry.lines.append(self._indent + record.line)
        entry.expires = now + self._window

        self._sweep(now)
        return True

    def retrieve(self, request_id: str) -> str:
        """Remove and return the buffered lines for request_id, newline-joined.

        Returns "" when nothing is pending. Expiry is not checked: a
        completion line always claims whatever is still buffered.
        """
        entry = self._entries.pop(request_id, None)
        if entry is None:
            return ""
        return "\n".join(entry.lines)

    def clear(self) -> int:
        """Drop every pending entry and return how many there were."""
        pending = len(self._entries)
        self._entries.clear()
        return pending

    def _sweep(self, now: float) -> None:
        while self._entries:
            request_id, entry = next(iter(self._entries.items()))
            if entry.expires > now:
                break
            self._entries.popitem(last=False)
            self.expired += 1
            logger.debug("Expired %s (%d line(s))", request_id, len(entry.lines))
