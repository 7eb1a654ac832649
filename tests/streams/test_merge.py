"""Tests for the stream joins."""

import pytest

from fixity_spine.core.errors import MissingConfigError
from fixity_spine.streams.merge import (
    MergedStream,
    MultiStream,
    PoolMultiFixities,
    StoreUrlMultiFixities,
    StoreUrlPoolListings,
)
from fixity_spine.streams.records import FixityRecordContainer
from tests._support import ListStream, fixity, pool_stream


class TestMergedStream:
    def test_full_outer_join(self):
        first = ListStream([(1, "a"), (2, "b"), (4, "d")])
        second = ListStream([(2, "B"), (3, "C"), (4, "D"), (5, "E")])
        assert list(MergedStream(first, second)) == [
            (1, "a", None),
            (2, "b", "B"),
            (3, None, "C"),
            (4, "d", "D"),
            (5, None, "E"),
        ]

    def test_one_side_empty(self):
        assert list(MergedStream(ListStream([]), ListStream([(1, "x")]))) == [(1, None, "x")]
        assert list(MergedStream(ListStream([(1, "x")]), ListStream([]))) == [(1, "x", None)]

    def test_both_empty(self):
        merged = MergedStream(ListStream([]), ListStream([]))
        assert merged.eos()
        assert merged.get() is None

    def test_inputs_stay_free_for_unget(self):
        first = ListStream([(1, "a"), (3, "c")])
        second = ListStream([(2, "B")])
        merged = MergedStream(first, second)
        assert merged.get() == (1, "a", None)
        assert not first.ungetting()
        assert not second.ungetting()

    def test_unget_on_merged(self):
        merged = MergedStream(ListStream([(1, "a")]), ListStream([(2, "B")]))
        merged.get()
        merged.unget()
        assert merged.get() == (1, "a", None)
        assert merged.get() == (2, None, "B")
        assert merged.eos()

    def test_rewind_restarts_both(self):
        merged = MergedStream(ListStream([(1, "a")]), ListStream([(1, "A"), (2, "B")]))
        list(merged)
        assert list(merged.rewind()) == [(1, "a", "A"), (2, None, "B")]

    def test_close_closes_inputs(self):
        first, second = ListStream([]), ListStream([])
        merged = MergedStream(first, second)
        merged.close()
        assert first.closed and second.closed
        assert merged.closed

    def test_first_and_second(self):
        first, second = ListStream([]), ListStream([])
        merged = MergedStream(first, second)
        assert merged.first is first
        assert merged.second is second


class TestMultiStream:
    def test_union_with_values_in_input_order(self):
        streams = [
            ListStream([("a", 1), ("c", 3)]),
            ListStream([("a", 2), ("b", 4)]),
            ListStream([]),
        ]
        assert list(MultiStream(streams)) == [("a", [1, 2]), ("b", [4]), ("c", [3])]

    def test_rewind_reproduces_output(self):
        streams = [ListStream([("a", 1), ("c", 3)]), ListStream([("a", 2), ("b", 4)])]
        joined = MultiStream(streams)
        first = list(joined)
        assert list(joined.rewind()) == first

    def test_no_streams(self):
        assert list(MultiStream([])) == []

    def test_every_key_once(self):
        streams = [ListStream([(k, k) for k in keys]) for keys in ([1, 4, 7], [2, 4, 8], [3, 7, 9])]
        keys = [key for key, _ in MultiStream(streams)]
        assert keys == [1, 2, 3, 4, 7, 8, 9]


class TestPoolMultiFixities:
    def test_joins_pools_by_name(self):
        one = pool_stream("one.example.org", "E1.000", "E2.000")
        two = pool_stream("two.example.org", "E2.000", "E3.000")
        joined = list(PoolMultiFixities([one, two]))

        assert [name for name, _ in joined] == ["E1.000", "E2.000", "E3.000"]
        assert all(isinstance(copies, FixityRecordContainer) for _, copies in joined)
        assert joined[1][1].locations() == [
            "http://one.example.org/data/E2.000",
            "http://two.example.org/data/E2.000",
        ]

    def test_duplicate_listings_count_once(self):
        one = ListStream(
            [
                ("E1.000", fixity("http://one/data/E1.000")),
                ("E1.000", fixity("http://one/data/E1.000-again")),
            ]
        )
        two = pool_stream("two", "E1.000")
        [(name, copies)] = list(PoolMultiFixities([one, two]))
        assert copies.locations() == ["http://one/data/E1.000", "http://two/data/E1.000"]

    def test_rewinds_inputs_first(self):
        one = pool_stream("one", "E1.000")
        list(one)
        assert [name for name, _ in PoolMultiFixities([one])] == ["E1.000"]


class TestStoreUrlMultiFixities:
    def test_keys_are_storage_urls(self):
        joined = StoreUrlMultiFixities([pool_stream("one", "E1.000")], "http://storage.example.org/")
        [(url, copies)] = list(joined)
        assert url == "http://storage.example.org/packages/E1.000"
        assert len(copies) == 1

    @pytest.mark.parametrize("server_location", [None, ""])
    def test_requires_server_location(self, server_location):
        with pytest.raises(MissingConfigError):
            StoreUrlMultiFixities([pool_stream("one", "E1.000")], server_location)


class TestStoreUrlPoolListings:
    def test_keeps_every_listing(self):
        one = ListStream(
            [
                ("E1.000", fixity("http://one/data/a/E1.000")),
                ("E1.000", fixity("http://one/data/b/E1.000")),
                ("E2.000", fixity("http://one/data/E2.000")),
            ]
        )
        two = pool_stream("two", "E1.000")
        joined = list(StoreUrlPoolListings([one, two], "http://storage.example.org"))

        assert [url for url, _ in joined] == [
            "http://storage.example.org/packages/E1.000",
            "http://storage.example.org/packages/E2.000",
        ]
        assert isinstance(joined[0][1], FixityRecordContainer)
        assert joined[0][1].locations() == [
            "http://one/data/a/E1.000",
            "http://one/data/b/E1.000",
            "http://two/data/E1.000",
        ]

    def test_rewind_reproduces_output(self):
        one = ListStream(
            [
                ("E1.000", fixity("http://one/data/a/E1.000")),
                ("E1.000", fixity("http://one/data/b/E1.000")),
            ]
        )
        joined = StoreUrlPoolListings([one, pool_stream("two", "E1.000", "E2.000")], "http://s")
        first = list(joined)
        assert list(joined.rewind()) == first

    def test_requires_server_location(self):
        with pytest.raises(MissingConfigError):
            StoreUrlPoolListings([pool_stream("one", "E1.000")], None)
