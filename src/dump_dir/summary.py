from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dump_dir.filters import FilterDecision, SkipReason


class SummaryTally:
    """Counts of what happened to every candidate during one run.

    A disabled tally ignores every call, so callers never need to check
    whether `--summary` was requested.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self.included = 0
        self.lines = 0
        self.skipped: Counter[str] = Counter()
        self.pruned: Counter[str] = Counter()
        self.render_errors = 0
        self.walk_warnings = 0

    def record(self, decision: FilterDecision) -> None:
        if not self.enabled:
            return
        if decision.included:
            self.included += 1
        elif decision.reason is not None:
            self.skipped[decision.reason.value] += 1

    def record_pruned(self, reason: SkipReason) -> None:
        if self.enabled:
            self.pruned[reason.value] += 1

    def record_lines(self, count: int) -> None:
        if self.enabled:
            self.lines += count

    def record_render_error(self) -> None:
        if self.enabled:
            self.render_errors += 1

    def record_walk_warning(self) -> None:
        if self.enabled:
            self.walk_warnings += 1

    def skip_reasons(self) -> list[tuple[str, int]]:
        """Skip reasons with their counts, most frequent first, ties by name."""
        return sorted(self.skipped.items(), key=lambda kv: (-kv[1], kv[0]))

    def report(self) -> list[str]:
        """Render the summary as lines of text (empty when disabled)."""
        if not self.enabled:
            return []
        files = "file" if self.included == 1 else "files"
        lines = "line" if self.lines == 1 else "lines"
        out = [f"Summary: {self.included} {files}, {self.lines} {lines}"]
        out.extend(f"  skipped ({reason}): {count}" for reason, count in self.skip_reasons())
        out.extend(
            f"  pruned directories ({reason}): {count}"
            for reason, count in sorted(self.pruned.items(), key=lambda kv: (-kv[1], kv[0]))
        )
        if self.render_errors:
            out.append(f"  unreadable: {self.render_errors}")
        if self.walk_warnings:
            out.append(f"  walk warnings: {self.walk_warnings}")
        return out
