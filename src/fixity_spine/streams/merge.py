"""
Outer joins over sorted streams.

    MergedStream           - two unique-keyed streams -> (key, first_or_None, second_or_None)
    MultiStream            - any number of streams -> (key, [values from streams that had key])
    PoolMultiFixities      - MultiStream over pool fixity streams, keyed by package name
    StoreUrlMultiFixities  - the same, keyed by the package's canonical storage URL
    StoreUrlPoolListings   - every record each pool lists, keyed by storage URL

Each join keeps an explicit pending slot per input: a pair that was pulled
but belonged to a later key waits there until its key comes up. Inputs are
never ungot, so the joined streams stay free to use their own single unget.
"""

from __future__ import annotations

from typing import Any

from fixity_spine.core.settings import package_url_prefix
from fixity_spine.streams.filters import FoldedStream, UniqueStream
from fixity_spine.streams.protocol import Pair, SortedStream
from fixity_spine.streams.records import FixityRecordContainer


class _JoinStream(SortedStream):
    def __init__(self, streams: list[SortedStream]):
        super().__init__()
        self.streams = list(streams)
        self._pending: list[Pair | None] = [None] * len(self.streams)

    def __str__(self) -> str:
        inputs = ", ".join(str(s) for s in self.streams)
        return f"<{self.__class__.__name__}#{id(self):x} from [{inputs}]>"

    @property
    def closed(self) -> bool:
        return any(s.closed for s in self.streams)

    def close(self) -> None:
        for stream in self.streams:
            stream.close()

    def _pull(self, i: int) -> Pair | None:
        """Next pair from input ``i``, taking its pending slot first."""
        pair = self._pending[i]
        if pair is not None:
            self._pending[i] = None
            return pair
        if self.streams[i].eos():
            return None
        return self.streams[i].get()

    def _exhausted(self) -> bool:
        return all(p is None for p in self._pending) and all(s.eos() for s in self.streams)

    def _reset(self) -> None:
        for stream in self.streams:
            stream.rewind()
        self._pending = [None] * len(self.streams)


class MergedStream(_JoinStream):
    """
    Full outer join of two sorted streams with unique keys.

    Example:
        first:  (1, a) (2, b) (4, d)
        second: (2, B) (3, C) (4, D) (5, E)
        ->      (1, a, None) (2, b, B) (3, None, C) (4, d, D) (5, None, E)
    """

    def __init__(self, first: SortedStream, second: SortedStream):
        super().__init__([first, second])

    @property
    def first(self) -> SortedStream:
        return self.streams[0]

    @property
    def second(self) -> SortedStream:
        return self.streams[1]

    def _read(self) -> Pair | None:
        a = self._pull(0)
        b = self._pull(1)

        if a is None and b is None:
            return None
        if b is None:
            return a[0], a[1], None
        if a is None:
            return b[0], None, b[1]
        if a[0] < b[0]:
            self._pending[1] = b
            return a[0], a[1], None
        if b[0] < a[0]:
            self._pending[0] = a
            return b[0], None, b[1]
        return a[0], a[1], b[1]


class MultiStream(_JoinStream):
    """
    Full outer join of any number of sorted, unique-keyed streams.

    Each get() returns the smallest key among the inputs' heads, with a
    container of the values from every input whose head had that key, in
    input order. Subclasses pick the container with ``values_container`` and
    can rewrite keys with ``_emit_key``.

    Example:
        (a, 1) (c, 3)
        (a, 2) (b, 4)
        ->  (a, [1, 2]) (b, [4]) (c, [3])
    """

    values_container: type = list

    def _emit_key(self, key: Any) -> Any:
        return key

    def _read(self) -> Pair | None:
        heads = [self._pull(i) for i in range(len(self.streams))]
        keys = [head[0] for head in heads if head is not None]
        if not keys:
            return None

        key = min(keys)
        values = self.values_container()
        for i, head in enumerate(heads):
            if head is None:
                continue
            if head[0] == key:
                values.append(head[1])
            else:
                self._pending[i] = head
        return self._emit_key(key), values


class PoolMultiFixities(MultiStream):
    """
    Join the fixity streams of several pools by package name.

    Each pool stream is rewound and made unique, so a package a pool lists
    twice contributes one record. Values are FixityRecordContainers.
    """

    values_container = FixityRecordContainer

    def __init__(self, streams: list[SortedStream]):
        super().__init__([self._per_pool(stream.rewind()) for stream in streams])

    def _per_pool(self, stream: SortedStream) -> SortedStream:
        return UniqueStream(stream)


class StoreUrlMultiFixities(PoolMultiFixities):
    """
    Like PoolMultiFixities, but keyed by the package's storage URL,
    ``<server_location>/packages/<name>``, the key DAITSS and the
    store-master copy records use.
    """

    def __init__(self, streams: list[SortedStream], server_location: str | None):
        self.prefix = package_url_prefix(server_location)
        super().__init__(streams)

    def _emit_key(self, key: Any) -> Any:
        return self.prefix + key


class StoreUrlPoolListings(StoreUrlMultiFixities):
    """
    Every record every pool lists for a package, keyed by storage URL.

    Unlike the copy-counting joins, a package a pool lists more than once
    contributes all of its records, so each listed location is present.
    """

    def _per_pool(self, stream: SortedStream) -> SortedStream:
        return FoldedStream(stream)

    def _read(self) -> Pair | None:
        pair = super()._read()
        if pair is None:
            return None
        url, folded = pair
        records = self.values_container()
        for listed in folded:
            records.extend(listed)
        return url, records
