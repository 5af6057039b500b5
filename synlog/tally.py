"""Tally — count identical rendered lines, report them ascending by count."""

from collections import Counter


class Tally:
    def __init__(self):
        self._counts = Counter()

    def __len__(self) -> int:
        return len(self._counts)

    def add(self, rendered: str) -> None:
        self._counts[rendered] += 1

    def items(self) -> list[tuple[str, int]]:
        """(rendered, count) pairs sorted ascending by count. Tie order is unspecified."""
        return sorted(self._counts.items(), key=lambda item: item[1])

    def report(self) -> list[str]:
        """Count-prefixed lines; counts right-aligned one wider than the largest."""
        if not self._counts:
            return []
        width = len(str(max(self._counts.values()))) + 1
        return [f"{count:>{width}} {rendered}" for rendered, count in self.items()]
