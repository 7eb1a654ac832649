"""
Stream filters: wrap a sorted stream and collapse runs of equal keys.

    UniqueStream  - keeps the first value seen for each key
    FoldedStream  - keeps every value for each key, in order, as a list

Both detect the end of a key run by reading one pair too far and ungetting
it onto the wrapped stream, so the wrapped stream must support unget.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from fixity_spine.streams.protocol import Pair, SortedStream


class _FilterStream(SortedStream):
    def __init__(self, stream: SortedStream):
        super().__init__()
        self.stream = stream

    def __str__(self) -> str:
        return f"<{self.__class__.__name__}#{id(self):x} from {self.stream}>"

    @property
    def closed(self) -> bool:
        return self.stream.closed

    def close(self) -> None:
        self.stream.close()

    def _exhausted(self) -> bool:
        return self.stream.eos()

    def _reset(self) -> None:
        self.stream.rewind()

    def _run(self, key: Any) -> Iterator[Any]:
        """Yield the values that follow ``key`` in the wrapped stream under the same key."""
        while True:
            pair = self.stream.get()
            if pair is None:
                return
            if pair[0] != key:
                self.stream.unget()
                return
            yield pair[1]


class UniqueStream(_FilterStream):
    """
    Filter a stream so its keys are unique, returning only the first of
    several records sharing a key.

    Example:
        (1, a) (1, b) (2, c)  ->  (1, a) (2, c)
    """

    def _read(self) -> Pair | None:
        pair = self.stream.get()
        if pair is None:
            return None
        key, value = pair
        for _ in self._run(key):
            pass
        return key, value


class FoldedStream(_FilterStream):
    """
    Fold the values for identical keys together into a list. Values are
    always lists, even for a key seen only once.

    Example:
        (1, a) (1, b) (2, c)  ->  (1, [a, b]) (2, [c])
    """

    def _read(self) -> Pair | None:
        pair = self.stream.get()
        if pair is None:
            return None
        key, value = pair
        return key, [value, *self._run(key)]
