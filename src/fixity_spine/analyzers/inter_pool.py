"""Checks across pools: copy counts and agreement between copies."""

from __future__ import annotations

from datetime import datetime

from fixity_spine.analyzers.base import Analyzer
from fixity_spine.core.formatting import indent, pluralize
from fixity_spine.core.logging import get_logger
from fixity_spine.reporting.reporter import Reporter
from fixity_spine.streams.merge import PoolMultiFixities
from fixity_spine.streams.protocol import SortedStream
from fixity_spine.streams.records import Consistency, FixityRecordContainer

log = get_logger(__name__)

COMPARED_FIELDS = ("sha1", "md5", "size")


class InterPoolAnalyzer(Analyzer):
    """
    Join the pools by package name. Each package needs ``required_copies``
    copies: fewer is an error, more a warning. The copies' sha1, md5 and size
    should all agree; any that don't are listed copy by copy.
    """

    name = "inter_pool"

    def __init__(self, pool_streams: list[SortedStream], required_copies: int, now: datetime | None = None):
        super().__init__(now)
        self.required_copies = required_copies
        self.pool_fixities = PoolMultiFixities(pool_streams)
        self.comparisons_unknown = 0

        copies = pluralize(required_copies, "Copy", "Copies")
        self.report_count = Reporter("Integrity Errors", f"Packages Without {required_copies} {copies} In The Pools")
        self.report_mismatch = Reporter("Fixity Warnings", "Package Copies That Disagree Across Pools")
        self.reports = [self.report_count, self.report_mismatch]

    def _analyze(self) -> None:
        for name, copies in self.pool_fixities.rewind():
            self._check_count(name, copies)
            for field in COMPARED_FIELDS:
                self._check_field(name, copies, field)

        if self.comparisons_unknown:
            log.warning("inter_pool.comparisons_unknown", count=self.comparisons_unknown)

    def _check_count(self, name: str, copies: FixityRecordContainer) -> None:
        locations = [indent(location) for location in copies.locations()]
        if len(copies) < self.required_copies:
            self.report_count.err(f"{name} has too few copies ({len(copies)} of {self.required_copies}):", *locations)
        elif len(copies) > self.required_copies:
            self.report_count.warn(f"{name} has too many copies ({len(copies)} of {self.required_copies}):", *locations)

    def _check_field(self, name: str, copies: FixityRecordContainer, field: str) -> None:
        state = copies.consistency(field, skip_none=(field == "size"))
        if state is Consistency.UNKNOWN:
            self.comparisons_unknown += 1
            return
        if state is Consistency.INCONSISTENT:
            self.report_mismatch.warn(
                f"{name} has inconsistent {field.upper()} values:",
                *(indent(f"{record.location} reports {getattr(record, field)}") for record in copies),
            )
