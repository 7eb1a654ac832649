"""Tests for StatCounter."""

from fixity_spine.analyzers import StatCounter


class TestStatCounter:
    def test_starts_at_zero(self):
        counter = StatCounter()
        assert counter.events_total == 0
        assert counter.format_max_width() == 1

    def test_events_total(self):
        counter = StatCounter(events_err=1, events_new=1240, events_old=2)
        assert counter.events_total == 1243

    def test_width_includes_separators(self):
        counter = StatCounter(packages_total=1242, packages_missing=2)
        assert counter.format_max_width() == len("1,242")

    def test_width_covers_event_total(self):
        counter = StatCounter(events_new=600, events_old=600)
        assert counter.format_max_width() == len("1,200")

    def test_width_covers_considered_packages(self):
        counter = StatCounter(packages_considered=10_500, packages_total=9)
        assert counter.format_max_width() == len("10,500")
