"""Filter predicates for completion records — ``field op value`` expressions."""

import re
from dataclasses import dataclass
from typing import Callable, Iterable

from synlog.errors import FilterSyntaxError, PatternError, UnknownFieldError
from synlog.parser import COMPLETION_FIELDS, CompletionRecord

_EXPR_RE = re.compile(r"^\s*(?P<field>\w+)\s*(?P<op>!=|!~|=|~)(?!\s*[=~])\s*(?P<value>.*?)\s*$")

EQUALS = "="
NOT_EQUALS = "!="
MATCHES = "~"
NOT_MATCHES = "!~"


def compile_pattern(source: str) -> re.Pattern:
    """re.compile, reporting bad syntax as PatternError."""
    try:
        return re.compile(source)
    except re.error as exc:
        raise PatternError(f"Invalid regular expression {source!r}: {exc}") from exc


@dataclass(frozen=True)
class FilterPredicate:
    field: str
    op: str
    operand: str
    pattern: re.Pattern | None = None

    def __call__(self, record: CompletionRecord) -> bool:
        value = record.get(self.field)
        if self.op == EQUALS:
            return value == self.operand
        if self.op == NOT_EQUALS:
            return value != self.operand
        matched = self.pattern.search(value) is not None
        return matched if self.op == MATCHES else not matched

    def __str__(self) -> str:
        return f"{self.field} {self.op} {self.operand}"


def compile_filter(expr: str) -> FilterPredicate:
    """Compile one ``field op value`` expression.

    Raises FilterSyntaxError, UnknownFieldError, or PatternError.
    """
    m = _EXPR_RE.match(expr)
    if not m:
        raise FilterSyntaxError(
            f"Invalid filter {expr!r}: expected 'field OP value' with OP one of =, !=, ~, !~"
        )
    name, op, value = m.group("field", "op", "value")
    if name not in COMPLETION_FIELDS:
        raise UnknownFieldError(name)
    pattern = compile_pattern(value) if op in (MATCHES, NOT_MATCHES) else None
    return FilterPredicate(field=name, op=op, operand=value, pattern=pattern)


def build_filter_chain(exprs: Iterable[str] | None) -> Callable[[CompletionRecord], bool]:
    """Compile all expressions into a single callable that ANDs them together.

    Evaluation stops at the first predicate that fails.
    """
    predicates = [compile_filter(expr) for expr in exprs or ()]

    if not predicates:
        return lambda record: True

    def combined(record: CompletionRecord) -> bool:
        return all(p(record) for p in predicates)

    return combined
