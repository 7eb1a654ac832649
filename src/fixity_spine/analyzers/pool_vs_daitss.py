"""
Reconcile what the pools hold against what DAITSS expects, recording
fixity and integrity events on the DAITSS packages.

The pool side is keyed by storage URL and carries a FixityRecordContainer:

    http://storage.example.org/packages/E20110210_ROGMBP.000  [FixityRecord(...), FixityRecord(...)]

The DAITSS side has the same key and a DaitssPackageRecord:

    http://storage.example.org/packages/E20110210_ROGMBP.000  DaitssPackageRecord(ieid='E20110210_ROGMBP', md5=..., sha1=..., size=4761600, ...)

The summary report reads roughly:

    Summary of DAITSS Package Fixity Checks: Requiring 2 Copies Per Package
    ::::::::::::::::::::::::::::::::::::::::::::::::::::::::::::::::::::::::
    1,242 ingested package records as of 2011-12-01 04:15:00

    1,240 new correct fixities
        0 old correct fixities
        1 incorrect fixity
        2 had missing copies
        0 with the wrong number of copies in pools
    -----
    1,242 total events, 1,242 of which are new

    Additionally:
        1 unexpected package (orphaned?) in silo pools
        1 package had an expired fixity
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from fixity_spine.analyzers.base import Analyzer
from fixity_spine.analyzers.stats import StatCounter
from fixity_spine.core.formatting import commify, indent, pluralize
from fixity_spine.core.logging import get_logger
from fixity_spine.core.timestamps import to_zulu, zulu_days_ago
from fixity_spine.reporting.reporter import Reporter
from fixity_spine.sources.daitss import DaitssPackage, EventOutcome
from fixity_spine.streams.filters import UniqueStream
from fixity_spine.streams.merge import MergedStream, StoreUrlMultiFixities
from fixity_spine.streams.protocol import SortedStream
from fixity_spine.streams.records import Consistency, DaitssPackageRecord, FixityRecordContainer

log = get_logger(__name__)


class PackageLookup(Protocol):
    def package_for_url(self, url: str) -> DaitssPackage | None: ...


class PoolVsDaitssAnalyzer(Analyzer):
    """
    Full outer join, by storage URL, of the pools' fixity data and DAITSS's
    package copies.

    Per package:
      - copies put after ``no_later_than`` are still settling: skip the package
      - nothing in the pools: integrity failure
      - nothing in DAITSS: an orphan, reported but no event
      - wrong number of copies, or copies the pools report missing: integrity failure
      - checksums or size not what DAITSS recorded: fixity failure
      - otherwise: fixity success, dated by the oldest of the copies' checks

    A second pass reports copies whose fixity checks are over
    ``expiration_days`` old.
    """

    name = "pool_vs_daitss"

    def __init__(
        self,
        pool_streams: list[SortedStream],
        daitss_stream: SortedStream,
        required_copies: int,
        expiration_days: int,
        no_later_than: datetime,
        server_location: str | None,
        packages: PackageLookup,
        now: datetime | None = None,
    ):
        super().__init__(now)
        self.pool_fixities = StoreUrlMultiFixities(pool_streams, server_location)
        self.daitss_fixities = UniqueStream(daitss_stream)
        self.required_copies = required_copies
        self.expiration_days = expiration_days
        self.no_later_than = no_later_than
        self.packages = packages
        self.counter = StatCounter()

        copies = pluralize(required_copies, "Copy", "Copies")
        self.report_integrity = Reporter("Integrity Errors", "Package Copies Missing From Silo Pools")
        self.report_too_many = Reporter("Integrity Errors", "Too Many Copies Of Packages")
        self.report_fixity = Reporter("Fixity Errors", "Package Copies With Fixity Errors")
        self.report_expired = Reporter(
            "Fixity Expirations", f"Package Copies With Fixities Over {expiration_days} Days Old"
        )
        self.report_orphaned = Reporter("Unexpected Packages", "Pools Contain Packages Not Listed By DAITSS")
        self.report_summary = Reporter(
            "Summary of DAITSS Package Fixity Checks", f"Requiring {required_copies} {copies} Per Package"
        )
        self.reports = [
            self.report_summary,
            self.report_fixity,
            self.report_integrity,
            self.report_too_many,
            self.report_orphaned,
            self.report_expired,
        ]

    def _joined(self) -> MergedStream:
        self.pool_fixities.rewind()
        self.daitss_fixities.rewind()
        return MergedStream(self.pool_fixities, self.daitss_fixities)

    def _analyze(self) -> None:
        cutoff = to_zulu(self.no_later_than)

        for url, pool_data, daitss_data in self._joined():
            if daitss_data is not None:
                self.counter.packages_considered += 1
            if pool_data is not None and self._too_recent(pool_data, cutoff):
                self.counter.packages_skipped_recent += 1
                continue
            if pool_data is None:
                self._missing_everywhere(url)
            elif daitss_data is None:
                self.counter.packages_orphaned += 1
                self.report_orphaned.warn(*pool_data.locations())
            else:
                self._reconcile(url, pool_data, daitss_data)

        self._expirations()
        self._summarize()

    # ------------------------------------------------------------------
    # First pass
    # ------------------------------------------------------------------

    @staticmethod
    def _too_recent(pool_data: FixityRecordContainer, cutoff: str) -> bool:
        return any(record.put_time and record.put_time > cutoff for record in pool_data)

    def _package(self, url: str) -> DaitssPackage | None:
        """Look the package up again; DAITSS may have deleted it since the run began."""
        package = self.packages.package_for_url(url)
        if package is None:
            log.info(
                "pool_vs_daitss.package_vanished",
                url=url,
                message=f"{url} is no longer in the DAITSS DB; it was deleted during fixity reconciliation",
            )
        return package

    def _tally(self, saved: bool) -> None:
        if saved:
            self.counter.events_new += 1
        else:
            self.counter.events_err += 1

    def _missing_everywhere(self, url: str) -> None:
        package = self._package(url)
        if package is None:
            return
        self.counter.packages_total += 1
        self.counter.packages_missing += 1
        self.report_integrity.err(f"{url}: no copies were listed by any of the pools.")
        self._tally(package.record_integrity_failure("No copies were listed by any of the pools."))

    def _reconcile(self, url: str, pool_data: FixityRecordContainer, daitss_data: DaitssPackageRecord) -> None:
        copy_count = len(pool_data)
        count_messages = None
        if copy_count < self.required_copies:
            count_messages = [f"{url} has too few copies, only:"]
        elif copy_count > self.required_copies:
            count_messages = [f"{url} has too many copies:"]
        if count_messages:
            count_messages += [indent(location) for location in pool_data.locations()]

        missing_messages = self._missing_issues(url, pool_data)
        fixity_messages = self._fixity_issues(url, pool_data, daitss_data)

        if not (count_messages or missing_messages or fixity_messages):
            self._fixity_success(url, pool_data, daitss_data)
            return

        package = self._package(url)
        if package is None:
            return
        counter = self.counter

        if count_messages:
            counter.packages_total += 1
            if copy_count < self.required_copies:
                counter.packages_missing += 1
                self.report_integrity.err(*count_messages)
            else:
                counter.packages_wrong_number += 1
                self.report_too_many.err(*count_messages)
            self._tally(package.record_integrity_failure("\n".join(count_messages)))

        if fixity_messages:
            counter.packages_total += 1
            counter.packages_fixity_failure += 1
            self.report_fixity.err(*fixity_messages, "")
            self._tally(package.record_fixity_failure("\n".join(fixity_messages)))

        if missing_messages:
            counter.packages_total += 1
            counter.packages_missing += 1
            self.report_integrity.err(*missing_messages, "")
            self._tally(package.record_integrity_failure("\n".join(missing_messages)))

        # A package with both a bad copy and a missing one was counted twice.
        if missing_messages and fixity_messages:
            counter.packages_double_counted += 1
            counter.packages_total -= 1

    def _missing_issues(self, url: str, pool_data: FixityRecordContainer) -> list[str] | None:
        """Pools may know a copy is gone and say so in its status."""
        messages = [indent(record.location) for record in pool_data if record.missing]
        if not messages:
            return None
        return [f"{url} missing {len(messages)} {pluralize(len(messages), 'copy', 'copies')}:", *messages]

    def _fixity_issues(
        self, url: str, pool_data: FixityRecordContainer, daitss_data: DaitssPackageRecord
    ) -> list[str] | None:
        messages = []
        present = FixityRecordContainer(record for record in pool_data if not record.missing)

        for record in present:
            if daitss_data.sha1 and record.sha1 != daitss_data.sha1:
                messages.append(
                    indent(f"DAITSS DB has SHA1 of {daitss_data.sha1}, but silo at {record.location} reports {record.sha1}")
                )
            if record.md5 != daitss_data.md5:
                messages.append(
                    indent(f"DAITSS DB has MD5 of {daitss_data.md5}, but silo at {record.location} reports {record.md5}")
                )
            if daitss_data.size is not None and record.size is not None and record.size != daitss_data.size:
                messages.append(
                    indent(f"DAITSS DB has size of {daitss_data.size}, but silo at {record.location} reports {record.size}")
                )

        # Copies can still disagree among themselves where DAITSS has no value to compare to.
        for field in ("sha1", "size"):
            if getattr(daitss_data, field):
                continue
            state = present.consistency(field, skip_none=True)
            if state is Consistency.UNKNOWN:
                self.counter.comparisons_unknown += 1
            elif state is Consistency.INCONSISTENT:
                values = ", ".join(f"{record.location}: {getattr(record, field)}" for record in present)
                messages.append(indent(f"Silo copies disagree on {field.upper()}: {values}"))

        if not messages:
            return None
        return [f"{url} checksum errors:", *messages]

    def _fixity_success(self, url: str, pool_data: FixityRecordContainer, daitss_data: DaitssPackageRecord) -> None:
        counter = self.counter
        pool_fixity_time = pool_data.earliest_fixity_time()

        if pool_fixity_time == daitss_data.last_successful_fixity_time:
            counter.packages_fixity_unchanged += 1
            counter.events_old += 1
            counter.packages_total += 1
            return

        package = self._package(url)
        if package is None:
            return

        outcome = package.record_fixity_success(pool_fixity_time)
        if outcome is EventOutcome.RECORDED:
            counter.events_new += 1
        elif outcome is EventOutcome.UNCHANGED:
            counter.events_old += 1
        else:
            counter.events_err += 1
        counter.packages_fixity_success += 1
        counter.packages_total += 1

    # ------------------------------------------------------------------
    # Second pass
    # ------------------------------------------------------------------

    def _expirations(self) -> None:
        expiration = zulu_days_ago(self.expiration_days, self.now)

        for _url, pool_data, daitss_data in self._joined():
            # expired orphans aren't reported
            if pool_data is None or daitss_data is None:
                continue
            for record in pool_data:
                if record.fixity_time < expiration:
                    self.counter.packages_expired += 1
                    self.report_expired.warn(f"{record.location} last checked at {record.fixity_time}")

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def _summarize(self) -> None:
        c = self.counter
        width = c.format_max_width()
        report = self.report_summary

        def count(n: int) -> str:
            return commify(n).rjust(width)

        as_of = self.no_later_than.strftime("%Y-%m-%d %H:%M:%S")

        report.warn(f"{count(c.packages_considered)} DAITSS package records considered as of {as_of}")
        report.warn(f"{count(c.packages_total)} ingested package records checked")
        report.warn()
        report.warn(
            f"{count(c.packages_fixity_success)} new correct "
            f"{pluralize(c.packages_fixity_success, 'fixity', 'fixities')}"
        )
        report.warn(
            f"{count(c.packages_fixity_unchanged)} old correct "
            f"{pluralize(c.packages_fixity_unchanged, 'fixity', 'fixities')}"
        )
        report.warn(
            f"{count(c.packages_fixity_failure)} incorrect "
            f"{pluralize(c.packages_fixity_failure, 'fixity', 'fixities')}"
        )
        report.warn(f"{count(c.packages_missing)} had missing copies")
        report.warn(f"{count(c.packages_wrong_number)} with the wrong number of copies in pools")
        report.warn("-" * width)
        report.warn(
            f"{count(c.events_total)} total events, {commify(c.events_new)} new, "
            f"{commify(c.events_old)} unchanged, {commify(c.events_err)} failed"
        )

        report.warn()
        report.warn("Additionally:")
        report.warn(
            f"{count(c.packages_orphaned)} unexpected "
            f"{pluralize(c.packages_orphaned, 'package', 'packages')} (orphaned?) in silo pools"
        )
        report.warn(
            f"{count(c.packages_expired)} {pluralize(c.packages_expired, 'package', 'packages')} had "
            f"{pluralize(c.packages_expired, 'an expired fixity', 'expired fixities')}"
        )
        if c.packages_skipped_recent:
            report.warn(
                f"{count(c.packages_skipped_recent)} recently stored "
                f"{pluralize(c.packages_skipped_recent, 'package', 'packages')} skipped until the next run"
            )
        if c.comparisons_unknown:
            report.warn(
                f"{count(c.comparisons_unknown)} copy {pluralize(c.comparisons_unknown, 'comparison', 'comparisons')} "
                "could not be made; see the logs"
            )

        if (n := c.events_err) > 0:
            there = "There was one failure" if n == 1 else f"There were {commify(n)} failures"
            report.err(f"{there} writing new events to the DAITSS DB")

        if (n := c.packages_double_counted) > 0:
            report.warn("Note that there were multiple events recorded for some packages (this can")
            report.warn("happen when a package has a copy failing a fixity check, with the other missing).")
            report.warn("There was one such double count." if n == 1 else f"There were {n} such double counts.")
