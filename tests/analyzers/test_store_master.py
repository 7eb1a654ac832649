"""Tests for the store-master analyzers."""

import pytest

from fixity_spine.analyzers import StoreMasterAnalyzer, StoreMasterVsPoolAnalyzer
from fixity_spine.analyzers.store_master import PackageUrlStream
from fixity_spine.core.errors import MissingConfigError
from fixity_spine.streams.records import StoreMasterCopyRecord
from tests._support import ListStream, fixity, pool_stream


def body(report):
    return list(report)[2:-1]


def store_master(*copies: tuple[str, str]) -> ListStream:
    """(name, pool) pairs -> a store-master stream with locations under http://<pool>/data/."""
    return ListStream(
        [
            (name, StoreMasterCopyRecord(name, f"http://{pool}/data/{name}", name.split(".")[0]))
            for name, pool in sorted(copies)
        ]
    )


class TestPackageUrlStream:
    def test_folds_and_rekeys(self):
        stream = PackageUrlStream(store_master(("E1.000", "one"), ("E1.000", "two")), "http://s/packages/")
        [(url, records)] = list(stream)
        assert url == "http://s/packages/E1.000"
        assert [record.store_location for record in records] == ["http://one/data/E1.000", "http://two/data/E1.000"]

    def test_rewind_reproduces_output(self):
        stream = PackageUrlStream(
            store_master(("E1.000", "one"), ("E1.000", "two"), ("E2.000", "one")), "http://s/packages/"
        )
        first = list(stream)
        assert [url for url, _ in first] == ["http://s/packages/E1.000", "http://s/packages/E2.000"]
        assert stream.eos()
        assert list(stream.rewind()) == first


class TestStoreMasterAnalyzer:
    def test_counts(self, now):
        stream = store_master(
            ("E1.000", "one"),
            ("E2.000", "one"),
            ("E2.000", "two"),
            ("E3.000", "one"),
            ("E3.000", "three"),
            ("E3.000", "two"),
        )
        analyzer = StoreMasterAnalyzer(stream, required_number=2, now=now).run()
        assert body(analyzer.report_count) == [
            "E1.000 has too few copies listed, only:",
            "    http://one/data/E1.000",
            "E3.000 has too many copies listed:",
            "    http://one/data/E3.000",
            "    http://three/data/E3.000",
            "    http://two/data/E3.000",
        ]
        assert analyzer.report_count.counts == {"error": 2, "warning": 4}

    def test_title_names_required_number(self, now):
        analyzer = StoreMasterAnalyzer(store_master(), required_number=1, now=now)
        assert analyzer.report_count.title.endswith("Without 1 Copy Listed In The Store-Master")


class TestStoreMasterVsPoolAnalyzer:
    SERVER = "http://storage.example.org"

    def test_agreement_is_quiet(self, now):
        analyzer = StoreMasterVsPoolAnalyzer(
            store_master(("E1.000", "one"), ("E1.000", "two")),
            [pool_stream("one", "E1.000"), pool_stream("two", "E1.000")],
            self.SERVER,
            now=now,
        ).run()
        assert not any(report.interesting for report in analyzer.reports)

    def test_orphans(self, now):
        analyzer = StoreMasterVsPoolAnalyzer(
            store_master(("E1.000", "one")),
            [pool_stream("one", "E1.000", "E9.000"), pool_stream("two", "E9.000")],
            self.SERVER,
            now=now,
        ).run()
        assert body(analyzer.report_orphaned) == ["http://one/data/E9.000", "http://two/data/E9.000"]
        assert not analyzer.report_missing.interesting

    def test_names_exactly_the_absent_copies(self, now):
        analyzer = StoreMasterVsPoolAnalyzer(
            store_master(("E1.000", "one"), ("E1.000", "two"), ("E2.000", "one"), ("E2.000", "two")),
            [pool_stream("one", "E1.000")],
            self.SERVER,
            now=now,
        ).run()
        assert body(analyzer.report_missing) == [
            "http://storage.example.org/packages/E1.000 is missing 1 copy:",
            "    http://two/data/E1.000",
            "http://storage.example.org/packages/E2.000 is missing 2 copies:",
            "    http://one/data/E2.000",
            "    http://two/data/E2.000",
        ]

    def test_copy_reported_missing_by_pool_is_absent(self, now):
        pool = ListStream([("E1.000", fixity("http://one/data/E1.000", status="missing"))])
        analyzer = StoreMasterVsPoolAnalyzer(store_master(("E1.000", "one")), [pool], self.SERVER, now=now).run()
        assert body(analyzer.report_missing)[1:] == ["    http://one/data/E1.000"]

    def test_every_location_a_pool_lists_counts_as_held(self, now):
        pool_one = ListStream(
            [
                ("E1.000", fixity("http://one/data/a/E1.000")),
                ("E1.000", fixity("http://one/data/b/E1.000")),
            ]
        )
        store = ListStream(
            [
                ("E1.000", StoreMasterCopyRecord("E1.000", "http://one/data/b/E1.000", "E1")),
                ("E1.000", StoreMasterCopyRecord("E1.000", "http://two/data/E1.000", "E1")),
            ]
        )
        pools = [pool_one, pool_stream("two", "E1.000")]
        analyzer = StoreMasterVsPoolAnalyzer(store, pools, self.SERVER, now=now).run()
        assert not analyzer.report_missing.interesting
        assert not analyzer.report_orphaned.interesting

    def test_requires_server_location(self, now):
        with pytest.raises(MissingConfigError):
            StoreMasterVsPoolAnalyzer(store_master(), [], None, now=now)
