"""
Reports: titled collections of lines produced by an analyzer run.

A report renders as:

    Integrity Errors: Package Copies Missing From Silo Pools
    ::::::::::::::::::::::::::::::::::::::::::::::::::::::::
    http://storage.example.org/packages/E20110210_ROGMBP.000 has too few copies, only:
        http://silos.example.org:70/001/data/E20110210_ROGMBP.000
    <blank>

Lines are spooled to a temporary file as they arrive (an orphan report can
run to hundreds of thousands of lines), and each one is logged at its level
as it is added, so the log holds the complete report even when the written
copy is abbreviated.
"""

from __future__ import annotations

import tempfile
from collections import Counter, deque
from collections.abc import Iterator
from typing import TextIO

from fixity_spine.core.logging import get_logger

log = get_logger(__name__)

DEFAULT_MAX_LINES = 1000


class Reporter:
    """
    A titled report.

    Example:
        >>> report = Reporter("Fixity Errors", "Package Copies With Fixity Errors")
        >>> report.err("http://storage.example.org/packages/E1.000 checksum errors:")
        >>> report.interesting
        True
        >>> report.write(sys.stdout)
    """

    def __init__(self, title: str, subtitle: str | None = None, max_lines: int = DEFAULT_MAX_LINES):
        self.title = f"{title}: {subtitle}" if subtitle else title
        self.max_lines = max_lines
        self.counts: Counter[str] = Counter()
        self._spool = tempfile.TemporaryFile(mode="w+", encoding="utf-8", prefix="report-")

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.title!r} ({len(self)} lines)>"

    def __len__(self) -> int:
        return sum(self.counts.values())

    def info(self, *lines: str) -> None:
        self._add("info", lines)

    def warn(self, *lines: str) -> None:
        self._add("warning", lines)

    def err(self, *lines: str) -> None:
        self._add("error", lines)

    def _add(self, level: str, lines: tuple[str, ...]) -> None:
        # warn() with no arguments adds a blank line, as a spacer
        for line in lines or ("",):
            self.counts[level] += 1
            getattr(log, level)("report.line", report=self.title, line=line)
            self._spool.write(line + "\n")

    @property
    def interesting(self) -> bool:
        """True once anything has been added to the report."""
        return len(self) > 0

    def _body(self) -> Iterator[str]:
        self._spool.seek(0)
        for line in self._spool:
            yield line.rstrip("\n")
        self._spool.seek(0, 2)

    def lines(self) -> Iterator[str]:
        """The rendered report, one line at a time, without newlines."""
        yield self.title
        yield ":" * len(self.title)
        yield from self._body()
        if self.interesting:
            yield ""

    def __iter__(self) -> Iterator[str]:
        return self.lines()

    def write(self, io: TextIO) -> None:
        for line in self.lines():
            io.write(line + "\n")

    def abbreviated(self, io: TextIO, max_lines: int | None = None) -> None:
        """
        Like write(), but a report of more than ``max_lines`` lines keeps only
        its first and last halves, with a note of how many were dropped.
        """
        max_lines = max_lines or self.max_lines
        total = len(self)
        if total <= max_lines:
            self.write(io)
            return

        head_count = max_lines // 2
        tail: deque[str] = deque(maxlen=max_lines - head_count)

        io.write(self.title + "\n")
        io.write(":" * len(self.title) + "\n")
        for i, line in enumerate(self._body()):
            if i < head_count:
                io.write(line + "\n")
            else:
                tail.append(line)
        io.write(f"    ... {total - max_lines} lines removed: see logs for the full report ...\n")
        for line in tail:
            io.write(line + "\n")
        io.write("\n")

    def close(self) -> None:
        self._spool.close()


def anything_interesting(reports: list[Reporter]) -> bool:
    return any(report.interesting for report in reports)
