"""Output formatters — raw text, ${field} templates, JSON (NDJSON)."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable

from synlog.errors import ConfigError, UnknownFieldError
from synlog.parser import COMPLETION_FIELDS, CompletionRecord

logger = logging.getLogger(__name__)

# \$ \\ \{ \} are escapes; any other backslash is copied as-is
_TOKEN_RE = re.compile(
    r"\\(?P<escaped>[$\\{}])"
    r"|\$\{(?P<field>[^}]*)\}"
    r"|(?P<text>[^\\$]+|[\\$])"
)


def _check_fields(names: Iterable[str]) -> list[str]:
    names = list(names)
    for name in names:
        if name not in COMPLETION_FIELDS:
            raise UnknownFieldError(name)
    return names


@dataclass(frozen=True)
class FormatProgram:
    """A compiled template: (value, is_field) segments in source order."""

    segments: tuple[tuple[str, bool], ...]

    def __call__(self, record: CompletionRecord) -> str:
        return "".join(
            record.get(value) if is_field else value
            for value, is_field in self.segments
        )

    @property
    def fields(self) -> list[str]:
        return [value for value, is_field in self.segments if is_field]


def compile_template(template: str) -> FormatProgram:
    """Compile '... ${field} ...' into a FormatProgram.

    Adjacent literal text is merged into one segment. Raises
    UnknownFieldError for a reference outside the completion fields.
    """
    segments: list[tuple[str, bool]] = []
    literal = []
    for m in _TOKEN_RE.finditer(template):
        name = m.group("field")
        if name is None:
            literal.append(m.group("escaped") or m.group("text"))
            continue
        _check_fields([name])
        if literal:
            segments.append(("".join(literal), False))
            literal = []
        segments.append((name, True))
    if literal:
        segments.append(("".join(literal), False))
    return FormatProgram(tuple(segments))


def compile_field_list(names: Iterable[str], separator: str = " ") -> FormatProgram:
    """Build the program that prints the given fields joined by separator."""
    names = _check_fields(names)
    segments: list[tuple[str, bool]] = []
    for i, name in enumerate(names):
        if i:
            segments.append((separator, False))
        segments.append((name, True))
    return FormatProgram(tuple(segments))


def format_text(record: CompletionRecord) -> str:
    """Return the buffered diagnostic lines (if any) followed by the completion line."""
    if record.extra_lines:
        return record.extra_lines + "\n" + record.line
    return record.line


def format_json(record: CompletionRecord, fields: Iterable[str] | None = None) -> str:
    """Return NDJSON — one flat JSON object per record, compatible with jq."""
    names = COMPLETION_FIELDS if fields is None else fields
    return json.dumps({name: record.get(name) for name in names})


def get_formatter(
    template: str | None = None,
    fields: list[str] | None = None,
    json_output: bool = False,
) -> Callable[[CompletionRecord], str]:
    """Factory that returns the right formatter for the run options."""
    if json_output:
        if template is not None:
            raise ConfigError("A template and JSON output cannot be used together")
        selected = _check_fields(fields) if fields else None
        return lambda record: format_json(record, selected)
    if template is not None:
        if fields:
            logger.warning("Ignoring --fields %s: a template was given", ",".join(fields))
        return compile_template(template)
    if fields:
        return compile_field_list(fields)
    return format_text
