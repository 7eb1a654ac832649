"""Checks of the store-master copy database, alone and against the pools."""

from __future__ import annotations

from datetime import datetime

from fixity_spine.analyzers.base import Analyzer
from fixity_spine.core.formatting import indent, pluralize
from fixity_spine.core.settings import package_url_prefix
from fixity_spine.reporting.reporter import Reporter
from fixity_spine.streams.filters import FoldedStream
from fixity_spine.streams.merge import MergedStream, StoreUrlPoolListings
from fixity_spine.streams.protocol import Pair, SortedStream


class PackageUrlStream(FoldedStream):
    """
    Fold a stream keyed by package name and re-key it by the package's
    storage URL, ``<prefix><name>``.
    """

    def __init__(self, stream: SortedStream, prefix: str):
        super().__init__(stream)
        self.prefix = prefix

    def _read(self) -> Pair | None:
        pair = super()._read()
        if pair is None:
            return None
        name, values = pair
        return self.prefix + name, values


class StoreMasterAnalyzer(Analyzer):
    """Every package should have ``required_number`` copies listed in the store-master."""

    name = "store_master"

    def __init__(self, store_master_stream: SortedStream, required_number: int, now: datetime | None = None):
        super().__init__(now)
        self.store_master_stream = store_master_stream
        self.required_number = required_number

        copies = pluralize(required_number, "Copy", "Copies")
        self.report_count = Reporter(
            "Store-Master Errors", f"Packages Without {required_number} {copies} Listed In The Store-Master"
        )
        self.reports = [self.report_count]

    def _analyze(self) -> None:
        for name, records in FoldedStream(self.store_master_stream.rewind()):
            locations = [indent(record.store_location) for record in records]
            if len(records) < self.required_number:
                self.report_count.err(f"{name} has too few copies listed, only:", *locations)
            elif len(records) > self.required_number:
                self.report_count.warn(f"{name} has too many copies listed:", *locations)


class StoreMasterVsPoolAnalyzer(Analyzer):
    """
    Join the store-master's copies with the pools' by storage URL.

    Packages only the pools know about are orphans (a warning). Copies the
    store-master lists that no pool has, or that a pool reports as missing,
    are errors naming exactly the absent locations.
    """

    name = "store_master_vs_pool"

    def __init__(
        self,
        store_master_stream: SortedStream,
        pool_streams: list[SortedStream],
        server_location: str | None,
        now: datetime | None = None,
    ):
        super().__init__(now)
        self.store_master_stream = PackageUrlStream(store_master_stream, package_url_prefix(server_location))
        self.pool_listings = StoreUrlPoolListings(pool_streams, server_location)

        self.report_missing = Reporter("Integrity Errors", "Package Copies Listed By The Store-Master Missing From Pools")
        self.report_orphaned = Reporter("Unexpected Packages", "Pools Contain Packages Not Listed By The Store-Master")
        self.reports = [self.report_missing, self.report_orphaned]

    def _analyze(self) -> None:
        self.store_master_stream.rewind()
        self.pool_listings.rewind()

        for url, pool_copies, store_copies in MergedStream(self.pool_listings, self.store_master_stream):
            if store_copies is None:
                self.report_orphaned.warn(*pool_copies.locations())
                continue

            held = set() if pool_copies is None else {copy.location for copy in pool_copies if not copy.missing}
            absent = [record.store_location for record in store_copies if record.store_location not in held]
            if absent:
                self.report_missing.err(
                    f"{url} is missing {len(absent)} {pluralize(len(absent), 'copy', 'copies')}:",
                    *(indent(location) for location in absent),
                )
