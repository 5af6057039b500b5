"""Log line parser — frozen dataclasses + compiled regex.

Two grammars are tried in order:
  1. Completion — the access-log line Synapse writes once a request finishes.
  2. Diagnostic — any other line sharing the common prefix, tied to a
     request by its request id.
Anything else is unrecognized and yields None.
"""

import os
import re
import time
from dataclasses import asdict, dataclass, fields

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

_PREFIX = (
    r"(?P<date>\d{4}-\d{2}-\d{2}) (?P<time>\d{2}:\d{2}:\d{2}),(?P<msec>\d{3})"
    r" - (?P<logger>\S+)"
    r" - (?P<lineno>\d+)"
    r" - (?P<level>[A-Z]+)"
    r" - (?P<request_id>\S+)"
    r" - "
)

_COMPLETION_RE = re.compile(
    "^" + _PREFIX
    + r"(?P<client_ip>\S+) - (?P<client_port>\d+) - \{(?P<user>[^}]*)\}"
    r" Processed request:"
    r" (?P<elapsed>-?\d+\.\d+)sec/(?P<send_time>-?\d+\.\d+)sec"
    r" \((?P<user_time>-?\d+\.\d+)sec, (?P<sys_time>-?\d+\.\d+)sec\)"
    r" \((?P<db_sched>-?\d+\.\d+)sec/(?P<db_time>-?\d+\.\d+)sec/(?P<db_txns>\d+)\)"
    r" (?P<resp_bytes>\d+)B (?P<resp_code>\d+)(?P<abandoned>!?)"
    r' "(?P<req_method>\S+) (?P<req_path>[^?\s]*)(?:\?(?P<req_query>\S*))? (?P<req_protocol>[^"]*)"'
    r' "(?P<user_agent>.*)"'
    r" \[(?P<db_events>\d+) dbevts\]$"
)

_DIAGNOSTIC_RE = re.compile("^" + _PREFIX + r"(?P<message>.*)$")

# "@localpart:domain" — domain may carry a port
_IDENTITY_RE = re.compile(r"^@(?P<local>[^:]+):(?P<domain>.+)$")

# "<path>:" directly followed by a dated line (grep -H style output)
_SOURCE_PREFIX_RE = re.compile(r"^(?P<path>.+?):(?=\d{4}-\d{2}-\d{2} )")
_LEADING_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2} ")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Prefix:
    date: str
    time: str
    msec: str
    timestamp: str
    logger: str
    lineno: str
    level: str
    request_id: str
    line: str

    def get(self, name: str) -> str:
        return getattr(self, name)

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class DiagnosticRecord(_Prefix):
    message: str
    log_path: str = ""
    log_file: str = ""


@dataclass(frozen=True)
class CompletionRecord(_Prefix):
    client_ip: str
    client_port: str
    user: str
    user_local: str
    user_domain: str
    elapsed: str
    send_time: str
    user_time: str
    sys_time: str
    db_sched: str
    db_time: str
    db_txns: str
    resp_bytes: str
    resp_code: str
    abandoned: str
    req_method: str
    req_path: str
    req_query: str
    req_protocol: str
    user_agent: str
    db_events: str
    log_path: str = ""
    log_file: str = ""
    extra_lines: str = ""


LogRecord = CompletionRecord | DiagnosticRecord

COMPLETION_FIELDS = tuple(f.name for f in fields(CompletionRecord))
DIAGNOSTIC_FIELDS = tuple(f.name for f in fields(DiagnosticRecord))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _split_identity(token: str) -> tuple[str, str]:
    """Split '@alice:example.org' → ('alice', 'example.org'); anything else → ('', '')."""
    m = _IDENTITY_RE.match(token)
    if not m:
        return "", ""
    return m.group("local"), m.group("domain")


def _prefix_values(groups: dict[str, str | None], line: str) -> dict[str, str]:
    return {
        "date": groups["date"],
        "time": groups["time"],
        "msec": groups["msec"],
        "timestamp": f"{groups['date']} {groups['time']},{groups['msec']}",
        "logger": groups["logger"],
        "lineno": groups["lineno"],
        "level": groups["level"],
        "request_id": groups["request_id"],
        "line": line,
    }


def parse_timestamp(record: LogRecord) -> float | None:
    """Return the record's time as local wall-clock epoch seconds, or None."""
    try:
        parsed = time.strptime(f"{record.date} {record.time}", TIMESTAMP_FORMAT)
        return time.mktime(parsed) + int(record.msec) / 1000
    except (ValueError, OverflowError):
        return None


def split_source(line: str) -> tuple[str | None, str]:
    """Strip a leading '<path>:' from a dated line.

    Returns (path, rest) when a prefix is present, else (None, line).
    A line that already starts with a date never carries a prefix.
    """
    if _LEADING_DATE_RE.match(line):
        return None, line
    m = _SOURCE_PREFIX_RE.match(line)
    if not m:
        return None, line
    return m.group("path"), line[m.end():]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def parse_line(line: str, log_path: str = "") -> LogRecord | None:
    """Parse a single log line. Returns None for unrecognized lines."""
    stripped = line.rstrip("\r\n")
    log_file = os.path.basename(log_path)

    m = _COMPLETION_RE.match(stripped)
    if m:
        groups = m.groupdict()
        user_local, user_domain = _split_identity(groups["user"])
        return CompletionRecord(
            **_prefix_values(groups, stripped),
            client_ip=groups["client_ip"],
            client_port=groups["client_port"],
            user=groups["user"],
            user_local=user_local,
            user_domain=user_domain,
            elapsed=groups["elapsed"],
            send_time=groups["send_time"],
            user_time=groups["user_time"],
            sys_time=groups["sys_time"],
            db_sched=groups["db_sched"],
            db_time=groups["db_time"],
            db_txns=groups["db_txns"],
            resp_bytes=groups["resp_bytes"],
            resp_code=groups["resp_code"],
            abandoned=groups["abandoned"],
            req_method=groups["req_method"],
            req_path=groups["req_path"],
            req_query=groups["req_query"] or "",
            req_protocol=groups["req_protocol"],
            user_agent=groups["user_agent"],
            db_events=groups["db_events"],
            log_path=log_path,
            log_file=log_file,
        )

    m = _DIAGNOSTIC_RE.match(stripped)
    if m:
        groups = m.groupdict()
        return DiagnosticRecord(
            **_prefix_values(groups, stripped),
            message=groups["message"],
            log_path=log_path,
            log_file=log_file,
        )

    return None
