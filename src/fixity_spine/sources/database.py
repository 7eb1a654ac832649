"""
Database sources: what the systems of record say should exist.

    StoreMasterPackageStream  - store-master copies, keyed by package name
    DaitssPackageStream       - DAITSS package copies, keyed by storage URL

Both fetch their query a page at a time, so a run over 10^6 packages holds
one page in memory. The ORDER BY is the stream's sort order; neither sorts
anything itself. ``rewind()`` re-issues the query from the first page.

Timestamps come back as datetimes and leave as UTC "Z" strings, comparable
with what the pools report.
"""

from __future__ import annotations

from abc import abstractmethod
from collections import deque
from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, func, or_, select
from sqlalchemy.engine import Dialect, Engine
from sqlalchemy.exc import SQLAlchemyError

from fixity_spine.core.errors import DatabaseError
from fixity_spine.core.logging import get_logger
from fixity_spine.core.timestamps import to_zulu, utc_now
from fixity_spine.db.tables import (
    AipTable,
    DaitssCopyTable,
    DaitssPackageTable,
    EventTable,
    PoolTable,
    StoreMasterCopyTable,
    StoreMasterPackageTable,
)
from fixity_spine.sources.daitss import FIXITY_SUCCESS
from fixity_spine.sources.pool import Pool
from fixity_spine.streams.protocol import Pair, SortedStream
from fixity_spine.streams.records import DaitssPackageRecord, StoreMasterCopyRecord

log = get_logger(__name__)


class PagedQueryStream(SortedStream):
    """
    A sorted stream over a SELECT, fetched a page at a time.

    Pages are keyset pages: each one picks up after the (sort key, row id) of
    the last row read, so rows deleted or added behind the cursor while a run
    is under way never shift what comes next. Sort keys are compared under a
    byte-order collation where the dialect needs one, so the database's order
    agrees with Python's ``<`` on the same strings.

    Subclasses supply the statement, its sort key and row id columns, and
    turn rows into pairs.
    """

    default_page_size = 1000

    # Dialects whose default text collation may not order like Python str.
    BINARY_COLLATIONS = {"postgresql": "C", "mysql": "utf8mb4_bin"}

    def __init__(self, engine: Engine, before: datetime | None = None, page_size: int | None = None):
        super().__init__()
        self.engine = engine
        self.before = before or utc_now()
        self.page_size = page_size or self.default_page_size
        self._buffer: deque[Any] = deque()
        self._after: tuple[Any, Any] | None = None
        self._fetched = 0
        self._done = False
        self._closed = False

    def __str__(self) -> str:
        return f"<{self.__class__.__name__}#{id(self):x} copies prior to {to_zulu(self.before)}>"

    @abstractmethod
    def _statement(self) -> Select:
        """The query, without ORDER BY or paging."""

    @abstractmethod
    def _sort_columns(self) -> tuple[ColumnElement[Any], ColumnElement[Any]]:
        """The stream's sort key and a unique row id that breaks ties."""

    @abstractmethod
    def _pair(self, row: Any) -> Pair: ...

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        # The engine belongs to the caller; just drop what we hold.
        self._buffer.clear()
        self._closed = True

    def _page_statement(self, dialect: Dialect) -> Select:
        """The next page's query, for ``dialect``."""
        key, row_id = self._sort_columns()
        stmt = self._statement().add_columns(key.label("page_key"), row_id.label("page_id"))

        collation = self.BINARY_COLLATIONS.get(dialect.name)
        if collation:
            key = key.collate(collation)
        if self._after is not None:
            last_key, last_id = self._after
            stmt = stmt.where(or_(key > last_key, and_(key == last_key, row_id > last_id)))
        return stmt.order_by(key, row_id).limit(self.page_size)

    def _fill(self) -> None:
        if self._buffer or self._done:
            return
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(self._page_statement(conn.dialect)).all()
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Query for {self} failed after {self._fetched} rows: {e}",
                cause=e,
            ).with_context(stream=str(self)) from e

        log.debug("query_stream.page", stream=str(self), fetched=self._fetched, rows=len(rows))
        self._fetched += len(rows)
        if rows:
            self._after = (rows[-1].page_key, rows[-1].page_id)
        if len(rows) < self.page_size:
            self._done = True
        self._buffer.extend(rows)

    def _read(self) -> Pair | None:
        self._fill()
        if not self._buffer:
            return None
        return self._pair(self._buffer.popleft())

    def _exhausted(self) -> bool:
        self._fill()
        return not self._buffer

    def _reset(self) -> None:
        self._buffer.clear()
        self._after = None
        self._fetched = 0
        self._done = False


class StoreMasterPackageStream(PagedQueryStream):
    """
    What the store-master thinks the pools hold: one pair per copy of each
    extant package, keyed by package name.

        E20110210_ROGMBP.000  StoreMasterCopyRecord(name='E20110210_ROGMBP.000', store_location='http://one.example.com/.../E20110210_ROGMBP.000', ieid='E20110210_ROGMBP')
        E20110210_ROGMBP.000  StoreMasterCopyRecord(name='E20110210_ROGMBP.000', store_location='http://two.example.com/.../E20110210_ROGMBP.000', ieid='E20110210_ROGMBP')
        ...

    Keys repeat, once per copy; fold the stream to get one pair per package.
    """

    default_page_size = 5000

    def _statement(self) -> Select:
        packages, copies = StoreMasterPackageTable, StoreMasterCopyTable
        return (
            select(packages.name, copies.store_location, packages.ieid)
            .join(copies, copies.package_id == packages.id)
            .where(packages.extant.is_(True))
            .where(copies.stored_at < self.before)
        )

    def _sort_columns(self) -> tuple[ColumnElement[Any], ColumnElement[Any]]:
        return StoreMasterPackageTable.name, StoreMasterCopyTable.id

    def _pair(self, row: Any) -> Pair:
        return row.name, StoreMasterCopyRecord(row.name, row.store_location, row.ieid)


class DaitssPackageStream(PagedQueryStream):
    """
    What DAITSS expects of each stored package copy, keyed by storage URL,
    with the time of the package's last recorded fixity success.
    """

    default_page_size = 2000

    def _statement(self) -> Select:
        packages, aips, copies = DaitssPackageTable, AipTable, DaitssCopyTable
        successes = (
            select(EventTable.package_id, func.max(EventTable.timestamp).label("timestamp"))
            .where(EventTable.name == FIXITY_SUCCESS)
            .group_by(EventTable.package_id)
            .subquery()
        )
        return (
            select(
                packages.id.label("ieid"),
                copies.url,
                copies.md5,
                copies.sha1,
                copies.size,
                copies.timestamp.label("package_store_time"),
                successes.c.timestamp.label("last_successful_fixity_time"),
            )
            .select_from(packages)
            .join(aips, aips.package_id == packages.id)
            .join(copies, copies.aip_id == aips.id)
            .outerjoin(successes, successes.c.package_id == packages.id)
            .where(copies.timestamp < self.before)
        )

    def _sort_columns(self) -> tuple[ColumnElement[Any], ColumnElement[Any]]:
        return DaitssCopyTable.url, DaitssCopyTable.id

    def _pair(self, row: Any) -> Pair:
        record = DaitssPackageRecord(
            ieid=row.ieid,
            url=row.url,
            md5=row.md5,
            sha1=row.sha1,
            size=row.size,
            last_successful_fixity_time=to_zulu(row.last_successful_fixity_time),
            package_store_time=to_zulu(row.package_store_time),
        )
        return record.url, record


def list_active_pools(engine: Engine) -> list[Pool]:
    """The pools that must hold a copy of every package, most preferred first."""
    stmt = (
        select(PoolTable)
        .where(PoolTable.required.is_(True))
        .order_by(PoolTable.read_preference.desc(), PoolTable.id)
    )
    try:
        with engine.connect() as conn:
            rows = conn.execute(stmt).all()
    except SQLAlchemyError as e:
        raise DatabaseError(f"Can't list the store-master pools: {e}", cause=e) from e
    return [Pool.from_row(row) for row in rows]
