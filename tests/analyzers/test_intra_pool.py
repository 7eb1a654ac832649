"""Tests for IntraPoolAnalyzer."""

import pytest

from fixity_spine.analyzers import IntraPoolAnalyzer
from fixity_spine.core.errors import AnalyzerError
from tests._support import ListStream, fixity, pool_stream


def body(report):
    return list(report)[2:-1]


class TestIntraPoolAnalyzer:
    def test_clean_pools_are_quiet(self, now):
        analyzer = IntraPoolAnalyzer(
            [pool_stream("one", "E1.000", "E2.000"), pool_stream("two", "E1.000")], max_days=45, now=now
        ).run()
        assert not any(report.interesting for report in analyzer.reports)

    def test_bad_status(self, now):
        stream = ListStream(
            [
                ("E1.000", fixity("http://one/data/E1.000", status="fail")),
                ("E2.000", fixity("http://one/data/E2.000", status="missing")),
                ("E3.000", fixity("http://one/data/E3.000")),
            ]
        )
        analyzer = IntraPoolAnalyzer([stream], max_days=45, now=now).run()
        assert body(analyzer.report_status) == [
            "http://one/data/E1.000 has status 'fail'",
            "http://one/data/E2.000 has status 'missing'",
        ]
        assert analyzer.report_status.counts["error"] == 2

    def test_expired(self, now):
        stream = ListStream(
            [
                ("E1.000", fixity("http://one/data/E1.000", fixity_time="2026-01-01T00:00:00Z")),
                ("E2.000", fixity("http://one/data/E2.000", fixity_time="2026-10-18T00:00:00Z")),
            ]
        )
        analyzer = IntraPoolAnalyzer([stream], max_days=45, now=now).run()
        assert body(analyzer.report_expired) == ["http://one/data/E1.000 last checked at 2026-01-01T00:00:00Z"]
        assert "Over 45 Days Old" in analyzer.report_expired.title

    def test_singular_day_in_title(self, now):
        analyzer = IntraPoolAnalyzer([], max_days=1, now=now)
        assert analyzer.report_expired.title.endswith("Over 1 Day Old")

    def test_redundant_listing(self, now):
        stream = ListStream(
            [
                ("E1.000", fixity("http://one/data/a/E1.000")),
                ("E1.000", fixity("http://one/data/b/E1.000")),
                ("E2.000", fixity("http://one/data/E2.000")),
            ],
            name="one",
        )
        analyzer = IntraPoolAnalyzer([stream], max_days=45, now=now).run()
        assert body(analyzer.report_redundant) == [
            "E1.000 is listed 2 times by <ListStream one>:",
            "    http://one/data/a/E1.000",
            "    http://one/data/b/E1.000",
        ]

    def test_runs_once(self, now):
        analyzer = IntraPoolAnalyzer([], max_days=45, now=now)
        assert analyzer.run() is analyzer
        with pytest.raises(AnalyzerError):
            analyzer.run()
