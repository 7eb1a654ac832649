"""
Fixity check runner.

Wires one reconciliation run together: lists the pools, fetches their
fixity feeds, opens the database streams, runs the selected analyzers in
order and closes everything again.

    runner = FixityCheckRunner(settings)
    result = runner.run()
    for report in result.ordered_reports():
        if report.interesting:
            report.write(sys.stdout)

Analyzers run in a fixed order: store-master, intra-pool, inter-pool,
store-master-vs-pool, pool-vs-daitss. The first failure stops the run; it
is logged and recorded on the RunResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx
from sqlalchemy.engine import Engine

from fixity_spine.analyzers import (
    Analyzer,
    InterPoolAnalyzer,
    IntraPoolAnalyzer,
    PoolVsDaitssAnalyzer,
    StoreMasterAnalyzer,
    StoreMasterVsPoolAnalyzer,
)
from fixity_spine.core.logging import LogContext, get_logger, log_step
from fixity_spine.core.settings import FixitySettings
from fixity_spine.core.timestamps import generate_ulid, utc_now
from fixity_spine.db.engine import create_fixity_engine
from fixity_spine.reporting.reporter import Reporter
from fixity_spine.sources.daitss import DaitssRepository
from fixity_spine.sources.database import DaitssPackageStream, StoreMasterPackageStream, list_active_pools
from fixity_spine.sources.pool import Pool, PoolFixityStream, make_http_client
from fixity_spine.streams.protocol import SortedStream
from fixity_spine.streams.records import FixitySchema

log = get_logger(__name__)


class AnalyzerName(str, Enum):
    """The analyzers, in the order a run executes them."""

    STORE_MASTER = "store_master"
    INTRA_POOL = "intra_pool"
    INTER_POOL = "inter_pool"
    STORE_MASTER_VS_POOL = "store_master_vs_pool"
    POOL_VS_DAITSS = "pool_vs_daitss"


class RunStatus(str, Enum):
    """Run execution status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunResult:
    """Result of a fixity check run."""

    run_id: str
    status: RunStatus
    started_at: datetime
    completed_at: datetime | None = None
    error: str | None = None
    timings: dict[str, float] = field(default_factory=dict)
    reports: dict[str, list[Reporter]] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float | None:
        """Duration in seconds if completed."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def ordered_reports(self) -> list[Reporter]:
        """All reports, the DAITSS summary and its details first."""
        names = sorted(self.reports, key=lambda name: name != AnalyzerName.POOL_VS_DAITSS.value)
        return [report for name in names for report in self.reports[name]]

    def interesting_reports(self) -> list[Reporter]:
        return [report for report in self.ordered_reports() if report.interesting]


class FixityCheckRunner:
    """
    Run the selected analyzers against the audited systems.

    Engines, the HTTP client and the pool list can be passed in; anything not
    passed is built from ``settings`` when first needed.
    """

    def __init__(
        self,
        settings: FixitySettings,
        analyzers: list[AnalyzerName] | None = None,
        *,
        store_master_engine: Engine | None = None,
        daitss_engine: Engine | None = None,
        http_client: httpx.Client | None = None,
        pools: list[Pool] | None = None,
        schema: FixitySchema = FixitySchema.V2,
        now: datetime | None = None,
    ):
        self.settings = settings
        selected = set(analyzers or list(AnalyzerName))
        self.analyzers = [name for name in AnalyzerName if name in selected]
        self.schema = schema
        self.now = now or utc_now()
        self.no_later_than = settings.no_later_than(self.now)

        self._store_master_engine = store_master_engine
        self._daitss_engine = daitss_engine
        self._http_client = http_client
        self._own_http_client = http_client is None
        self._pools = pools
        self._streams: list[SortedStream] = []
        self._pool_streams: list[SortedStream] | None = None

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    @property
    def store_master_engine(self) -> Engine:
        if self._store_master_engine is None:
            self.settings.require("store_master_db_url")
            self._store_master_engine = create_fixity_engine(self.settings.store_master_db_url)
        return self._store_master_engine

    @property
    def daitss_engine(self) -> Engine:
        if self._daitss_engine is None:
            self.settings.require("daitss_db_url")
            self._daitss_engine = create_fixity_engine(self.settings.daitss_db_url)
        return self._daitss_engine

    @property
    def http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = make_http_client(self.settings)
        return self._http_client

    def pools(self) -> list[Pool]:
        if self._pools is None:
            self._pools = list_active_pools(self.store_master_engine)
            log.info("runner.pools", count=len(self._pools), pools=[pool.name for pool in self._pools])
        return self._pools

    def pool_streams(self) -> list[SortedStream]:
        """One fixity stream per active pool, fetched once and shared by the analyzers."""
        if self._pool_streams is None:
            self._pool_streams = []
            for pool in self.pools():
                with log_step("runner.fetch_pool", pool=pool.name):
                    stream = PoolFixityStream(pool, client=self.http_client, schema=self.schema)
                self._pool_streams.append(stream)
                self._streams.append(stream)
        return self._pool_streams

    def _open(self, stream: SortedStream) -> SortedStream:
        self._streams.append(stream)
        return stream

    def store_master_stream(self) -> SortedStream:
        return self._open(
            StoreMasterPackageStream(
                self.store_master_engine,
                before=self.no_later_than,
                page_size=self.settings.store_master_page_size,
            )
        )

    def daitss_stream(self) -> SortedStream:
        return self._open(
            DaitssPackageStream(
                self.daitss_engine,
                before=self.no_later_than,
                page_size=self.settings.daitss_page_size,
            )
        )

    def close(self) -> None:
        for stream in self._streams:
            if not stream.closed:
                stream.close()
        self._streams = []
        self._pool_streams = None
        if self._own_http_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    # ------------------------------------------------------------------
    # Analyzers
    # ------------------------------------------------------------------

    def build(self, name: AnalyzerName) -> Analyzer:
        """Construct one analyzer over freshly opened streams."""
        settings = self.settings
        if name is AnalyzerName.STORE_MASTER:
            return StoreMasterAnalyzer(self.store_master_stream(), settings.required_copies, now=self.now)
        if name is AnalyzerName.INTRA_POOL:
            return IntraPoolAnalyzer(self.pool_streams(), settings.expiration_days, now=self.now)
        if name is AnalyzerName.INTER_POOL:
            return InterPoolAnalyzer(self.pool_streams(), settings.required_copies, now=self.now)
        if name is AnalyzerName.STORE_MASTER_VS_POOL:
            return StoreMasterVsPoolAnalyzer(
                self.store_master_stream(),
                self.pool_streams(),
                settings.server_location,
                now=self.now,
            )
        return PoolVsDaitssAnalyzer(
            self.pool_streams(),
            self.daitss_stream(),
            required_copies=settings.required_copies,
            expiration_days=settings.expiration_days,
            no_later_than=self.no_later_than,
            server_location=settings.server_location,
            packages=DaitssRepository(self.daitss_engine, agent_id=settings.agent_id),
            now=self.now,
        )

    def run(self) -> RunResult:
        """Run every selected analyzer in order. Never raises; failures are on the result."""
        result = RunResult(run_id=generate_ulid(), status=RunStatus.RUNNING, started_at=utc_now())

        with LogContext(run_id=result.run_id):
            log.info("runner.start", analyzers=[name.value for name in self.analyzers])
            try:
                for name in self.analyzers:
                    with log_step("runner.analyzer", analyzer=name.value) as timer:
                        analyzer = self.build(name)
                        result.reports[name.value] = analyzer.reports
                        analyzer.run()
                    result.timings[name.value] = round(timer.duration_ms, 2)
                result.status = RunStatus.COMPLETED
            except Exception as e:
                log.error("runner.error", error=str(e), error_type=type(e).__name__, **_error_fields(e))
                result.status = RunStatus.FAILED
                result.error = f"{type(e).__name__}: {e}"
            finally:
                self.close()
                result.completed_at = utc_now()

            log.info(
                "runner.completed",
                status=result.status.value,
                duration_ms=round(result.duration_seconds * 1000, 2),
                interesting_reports=len(result.interesting_reports()),
            )
        return result


def _error_fields(error: Exception) -> dict[str, Any]:
    to_dict = getattr(error, "to_dict", None)
    if to_dict is None:
        return {}
    fields = to_dict()
    fields.pop("message", None)
    fields.pop("error_type", None)
    return fields
