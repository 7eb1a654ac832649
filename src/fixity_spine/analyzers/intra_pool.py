"""Checks within each pool, one pool at a time."""

from __future__ import annotations

from datetime import datetime

from fixity_spine.analyzers.base import Analyzer
from fixity_spine.core.formatting import indent, pluralize
from fixity_spine.core.timestamps import zulu_days_ago
from fixity_spine.reporting.reporter import Reporter
from fixity_spine.streams.filters import FoldedStream
from fixity_spine.streams.protocol import SortedStream


class IntraPoolAnalyzer(Analyzer):
    """
    For every copy each pool reports: flag a status other than "ok", and a
    fixity check older than ``max_days``. Then flag packages a pool lists
    more than once.
    """

    name = "intra_pool"

    def __init__(self, pool_streams: list[SortedStream], max_days: int, now: datetime | None = None):
        super().__init__(now)
        self.pool_streams = pool_streams
        self.max_days = max_days

        self.report_status = Reporter("Pool Status Errors", "Package Copies Not Reported As OK")
        self.report_expired = Reporter(
            "Fixity Expirations",
            f"Package Copies With Fixities Over {max_days} {pluralize(max_days, 'Day', 'Days')} Old",
        )
        self.report_redundant = Reporter("Redundant Copies", "Packages Listed More Than Once By A Pool")
        self.reports = [self.report_status, self.report_expired, self.report_redundant]

    def _analyze(self) -> None:
        expiration = zulu_days_ago(self.max_days, self.now)

        for stream in self.pool_streams:
            for name, record in stream.rewind():
                if record.status != "ok":
                    self.report_status.err(f"{record.location} has status '{record.status}'")
                if record.fixity_time < expiration:
                    self.report_expired.warn(f"{record.location} last checked at {record.fixity_time}")

        for stream in self.pool_streams:
            for name, records in FoldedStream(stream.rewind()):
                if len(records) > 1:
                    self.report_redundant.warn(
                        f"{name} is listed {len(records)} times by {stream}:",
                        *(indent(record.location) for record in records),
                    )
