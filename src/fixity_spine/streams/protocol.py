"""
Sorted-sequence protocol.

A stream, for us, is a sequence of key/value pairs where the keys are sorted
in ascending order. Keys must support ``<`` and ``==``; values can be anything,
but are usually a record or a list of records. Every stream supports:

    get()    - the next (key, value) pair, or None at the end of the stream
    unget()  - push the last pair back; the next get() returns it again
    eos()    - True when no more pairs can be had (a pending unget counts)
    rewind() - restart from the beginning; re-fetches where the source must
    close()  - release the underlying source; a closed stream can't be rewound
    closed   - True once closed

Iterating a stream yields pairs until ``eos()``. Joins yield wider tuples
(``MergedStream`` yields ``(key, first, second)``).

Design:
    - Pull-based: nothing is read until a consumer asks for it
    - One level of unget per stream; a second unget raises StreamProtocolError
    - Sort order is a precondition, never checked beyond the one-pair lookahead

Every concrete stream implements three hooks: ``_read()`` (next pair or None),
``_exhausted()`` (no more pairs from the source) and ``_reset()`` (go back to
the start). Should have a good ``__str__``; it shows up in log messages.
"""

from __future__ import annotations

import csv
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any, TextIO

from fixity_spine.core.errors import StreamClosedError, StreamProtocolError

Pair = tuple[Any, ...]


class SortedStream(ABC):
    """Base class for all sorted streams."""

    def __init__(self) -> None:
        self._last: Pair | None = None
        self._ungot = False

    def __str__(self) -> str:
        return f"<{self.__class__.__name__}#{id(self):x}>"

    def __iter__(self) -> Iterator[Pair]:
        while not self.eos():
            pair = self.get()
            if pair is None:
                return
            yield pair

    def get(self) -> Pair | None:
        """Read the next pair off the stream; None at the end."""
        if self._ungot:
            self._ungot = False
            return self._last
        if self.closed:
            raise StreamClosedError(f"Stream {self} has been closed; it can't be read")
        pair = self._read()
        self._last = pair
        return pair

    def unget(self) -> None:
        """Push the last pair back onto the stream. Only one level is supported."""
        if self._ungot:
            raise StreamProtocolError(
                f"The unget method only supports one level of unget; two consecutive "
                f"ungets have been called on {self}"
            )
        if self._last is None:
            raise StreamProtocolError(f"Nothing has been read from {self}, so there is nothing to unget")
        self._ungot = True

    def ungetting(self) -> bool:
        return self._ungot

    def eos(self) -> bool:
        """End of stream: nothing pending and nothing left in the source."""
        if self._ungot:
            return False
        return self._exhausted()

    def rewind(self) -> SortedStream:
        """Reset the stream to its first pair. Returns the stream."""
        if self.closed:
            raise StreamClosedError(f"Stream {self} can't be rewound: it has been closed")
        self._ungot = False
        self._last = None
        self._reset()
        return self

    @property
    @abstractmethod
    def closed(self) -> bool: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def _read(self) -> Pair | None: ...

    @abstractmethod
    def _exhausted(self) -> bool: ...

    @abstractmethod
    def _reset(self) -> None: ...


class DataFileStream(SortedStream):
    """
    Read white-space delimited, pre-sorted records from a text file, one per line.

    The first field is the key; the remaining fields make up the value. With
    exactly one value field the value is that string; otherwise it is a list of
    strings. Blank lines are skipped and a last line without a newline parses
    like any other.

    The stream keeps one line of lookahead so ``eos()`` is exact.
    """

    def __init__(self, io: TextIO):
        super().__init__()
        self.io = io
        self._next_fields: list[str] | None = None
        self._start()

    def __str__(self) -> str:
        return f"<{self.__class__.__name__}#{id(self):x} from {getattr(self.io, 'name', self.io)!r}>"

    @property
    def closed(self) -> bool:
        return self.io.closed

    def close(self) -> None:
        if not self.io.closed:
            self.io.close()

    def _start(self) -> None:
        self._skip_preamble()
        self._advance()

    def _skip_preamble(self) -> None:
        """Hook for sources with header lines."""
        pass

    def _split(self, line: str) -> list[str]:
        return line.split()

    def _advance(self) -> None:
        while True:
            line = self.io.readline()
            if not line:
                self._next_fields = None
                return
            fields = self._split(line)
            if fields:
                self._next_fields = fields
                return

    def _make_pair(self, fields: list[str]) -> Pair:
        key, rest = fields[0], fields[1:]
        if len(rest) == 1:
            return key, rest[0]
        return key, rest

    def _read(self) -> Pair | None:
        if self._next_fields is None:
            return None
        fields = self._next_fields
        self._advance()
        return self._make_pair(fields)

    def _exhausted(self) -> bool:
        return self._next_fields is None

    def _reset(self) -> None:
        self.io.seek(0)
        self._start()


class CsvFileStream(DataFileStream):
    """Like DataFileStream, but each line is a CSV record."""

    def _split(self, line: str) -> list[str]:
        if not line.strip():
            return []
        return next(csv.reader([line]))
