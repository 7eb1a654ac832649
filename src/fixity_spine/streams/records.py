"""
Record types carried as stream values.

Each source has its own named record with a fixed field list:

    FixityRecord            - one physical copy, as a pool reports it
    StoreMasterCopyRecord   - one copy the store-master database expects
    DaitssPackageRecord     - what DAITSS expects of a package

Pool timestamps are UTC "Z" strings (``2011-04-27T11:38:30Z``), kept as
strings so they compare correctly as they are.

The pool CSV feed has had two shapes. ``FixitySchema`` names them explicitly
and the pool stream validates the feed's header against the schema it was
asked for, rather than guessing:

    V2: "name","location","sha1","md5","size","fixity_time","put_time","status"
    V1: "name","location","sha1","md5","timestamp","status"
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from fixity_spine.core.errors import ParseError
from fixity_spine.core.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class FixityRecord:
    """Fixity of one copy of a package on one pool."""

    location: str
    sha1: str
    md5: str
    size: int | None
    fixity_time: str
    put_time: str | None
    status: str

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def missing(self) -> bool:
        return self.status == "missing"


@dataclass(frozen=True)
class StoreMasterCopyRecord:
    """A copy of a package the store-master database believes a pool holds."""

    name: str
    store_location: str
    ieid: str


@dataclass(frozen=True)
class DaitssPackageRecord:
    """
    DAITSS's expectations for one package copy, keyed by its storage URL.

    ``last_successful_fixity_time`` is None for a package never checked.
    """

    ieid: str
    url: str
    md5: str
    sha1: str | None
    size: int | None
    last_successful_fixity_time: str | None = None
    package_store_time: str | None = None


class FixitySchema(str, Enum):
    """Versioned column layouts of a pool's CSV fixity feed."""

    V1 = "v1"
    V2 = "v2"

    @property
    def columns(self) -> tuple[str, ...]:
        return _SCHEMA_COLUMNS[self]

    def check_header(self, header: list[str]) -> None:
        """Raise ParseError unless ``header`` is exactly this schema's columns."""
        found = tuple(column.strip() for column in header)
        if found != self.columns:
            raise ParseError(
                f"Fixity feed header {list(found)} does not match schema {self.value} {list(self.columns)}"
            )

    def parse_row(self, row: list[str]) -> tuple[str, FixityRecord]:
        """Split a CSV row into the package name and its FixityRecord."""
        if len(row) != len(self.columns):
            raise ParseError(
                f"Fixity feed row has {len(row)} fields, schema {self.value} expects {len(self.columns)}: {row!r}"
            )
        if self is FixitySchema.V1:
            name, location, sha1, md5, timestamp, status = row
            return name, FixityRecord(location, sha1, md5, None, timestamp, None, status)

        name, location, sha1, md5, size, fixity_time, put_time, status = row
        return name, FixityRecord(
            location, sha1, md5, _parse_size(size, row), fixity_time, put_time or None, status
        )


_SCHEMA_COLUMNS = {
    FixitySchema.V1: ("name", "location", "sha1", "md5", "timestamp", "status"),
    FixitySchema.V2: ("name", "location", "sha1", "md5", "size", "fixity_time", "put_time", "status"),
}


def _parse_size(size: str, row: list[str]) -> int | None:
    if not size:
        return None
    try:
        return int(size)
    except ValueError as e:
        raise ParseError(f"Fixity feed row has a non-numeric size: {row!r}", cause=e) from e


class Consistency(str, Enum):
    """Whether all records in a container agree on a field."""

    CONSISTENT = "consistent"
    INCONSISTENT = "inconsistent"
    UNKNOWN = "unknown"


class FixityRecordContainer(list):
    """
    A list of FixityRecords for one package, one per pool that has a copy.

    Adds predicates that map over all the records. A comparison that fails
    (an unknown field, unhashable values) is UNKNOWN, never a guess either way;
    it is logged as a warning so it can't pass unnoticed.
    """

    def consistency(self, field: str, skip_none: bool = False) -> Consistency:
        """
        Whether every record has the same value for ``field`` (sha1, md5, size...).

        With ``skip_none``, records that don't carry the field (legacy feeds
        have no size) are left out of the comparison.
        """
        try:
            distinct = {getattr(record, field) for record in self}
            if skip_none:
                distinct.discard(None)
        except (AttributeError, TypeError) as e:
            log.warning(
                "fixity_container.consistency_unknown",
                field=field,
                error=f"{type(e).__name__}: {e}",
                locations=self.locations(),
            )
            return Consistency.UNKNOWN
        return Consistency.CONSISTENT if len(distinct) <= 1 else Consistency.INCONSISTENT

    def consistent(self, field: str, skip_none: bool = False) -> bool | None:
        """True/False, or None when it can't be determined."""
        state = self.consistency(field, skip_none)
        if state is Consistency.UNKNOWN:
            return None
        return state is Consistency.CONSISTENT

    def inconsistent(self, field: str, skip_none: bool = False) -> bool | None:
        state = self.consistency(field, skip_none)
        if state is Consistency.UNKNOWN:
            return None
        return state is Consistency.INCONSISTENT

    def locations(self) -> list[str]:
        return [getattr(record, "location", repr(record)) for record in self]

    def earliest_fixity_time(self) -> str | None:
        times = [record.fixity_time for record in self if record.fixity_time]
        return min(times) if times else None

    def latest_put_time(self) -> str | None:
        times = [record.put_time for record in self if record.put_time]
        return max(times) if times else None
