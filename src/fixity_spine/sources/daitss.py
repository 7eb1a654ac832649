"""
Audit events in the DAITSS package database.

Fixity reconciliation leaves a trail of time-stamped events on each package:

    fixity success     - every copy's recent fixity check matches what DAITSS
                         recorded; one per package, its timestamp moved forward
    fixity failure     - a copy's checksums don't match what DAITSS recorded
    integrity failure  - copies are missing, or there are too few or too many

Failure events are appended on every run that finds the failure. Each write
commits on its own; a failed write is rolled back, logged and reported to the
caller as a failure, and the run carries on.

Usage:
    repo = DaitssRepository(engine, agent_id=settings.agent_id)
    package = repo.package_for_url(url)
    if package is not None:
        package.record_fixity_success("2011-04-27T11:38:30Z")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fixity_spine.core.errors import DatabaseError
from fixity_spine.core.logging import get_logger
from fixity_spine.core.settings import DEFAULT_AGENT_ID
from fixity_spine.core.timestamps import from_zulu, to_zulu, utc_now
from fixity_spine.db.engine import fixity_session_factory
from fixity_spine.db.tables import AgentTable, AipTable, DaitssCopyTable, EventTable

log = get_logger(__name__)

FIXITY_SUCCESS = "fixity success"
FIXITY_FAILURE = "fixity failure"
INTEGRITY_FAILURE = "integrity failure"


class EventOutcome(str, Enum):
    """What happened to a fixity success event."""

    RECORDED = "recorded"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class DaitssRepository:
    """Package lookups and event writes against the DAITSS database."""

    def __init__(self, engine: Engine, agent_id: str = DEFAULT_AGENT_ID):
        self.engine = engine
        self.agent_id = agent_id
        self._sessions = fixity_session_factory(engine)

    def package_for_url(self, url: str) -> DaitssPackage | None:
        """
        The package with a copy stored at ``url``, or None if DAITSS no
        longer has one (it may have been deleted since the run started).
        """
        stmt = (
            select(AipTable.package_id)
            .join(DaitssCopyTable, DaitssCopyTable.aip_id == AipTable.id)
            .where(DaitssCopyTable.url == url)
            .limit(1)
        )
        try:
            with self._sessions() as session:
                ieid = session.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Can't look up the DAITSS package for {url}: {e}", cause=e).with_context(
                url=url
            ) from e
        if ieid is None:
            return None
        return DaitssPackage(self, ieid, url)

    def add_event(self, ieid: str, name: str, note: str) -> bool:
        """Append an event to a package. True if it was saved."""
        with self._sessions() as session:
            try:
                self._ensure_agent(session)
                session.add(
                    EventTable(
                        name=name,
                        package_id=ieid,
                        agent_id=self.agent_id,
                        timestamp=utc_now(),
                        notes=note,
                    )
                )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                log.error("daitss.event_write_failed", ieid=ieid, event_name=name, error=str(e))
                return False
        log.debug("daitss.event_recorded", ieid=ieid, event_name=name)
        return True

    def set_fixity_success(self, ieid: str, timestamp: str) -> EventOutcome:
        """
        Create or move forward the package's single fixity success event.

        Nothing is written when the stored timestamp already equals ``timestamp``.
        """
        stmt = (
            select(EventTable)
            .where(EventTable.package_id == ieid)
            .where(EventTable.name == FIXITY_SUCCESS)
            .order_by(EventTable.id)
            .limit(1)
        )
        with self._sessions() as session:
            try:
                event = session.scalars(stmt).first()
                if event is not None and to_zulu(event.timestamp) == timestamp:
                    return EventOutcome.UNCHANGED
                self._ensure_agent(session)
                if event is None:
                    event = EventTable(name=FIXITY_SUCCESS, package_id=ieid, agent_id=self.agent_id)
                    session.add(event)
                event.agent_id = self.agent_id
                event.timestamp = from_zulu(timestamp)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                log.error("daitss.event_write_failed", ieid=ieid, event_name=FIXITY_SUCCESS, error=str(e))
                return EventOutcome.FAILED
        log.debug("daitss.event_recorded", ieid=ieid, event_name=FIXITY_SUCCESS, timestamp=timestamp)
        return EventOutcome.RECORDED

    def _ensure_agent(self, session: Session) -> None:
        if session.get(AgentTable, self.agent_id) is None:
            session.add(AgentTable(id=self.agent_id))
            session.flush()


@dataclass(frozen=True)
class DaitssPackage:
    """A DAITSS package, found by the URL of one of its copies."""

    repository: DaitssRepository
    ieid: str
    url: str

    def record_integrity_failure(self, note: str) -> bool:
        return self.repository.add_event(self.ieid, INTEGRITY_FAILURE, note)

    def record_fixity_failure(self, note: str) -> bool:
        return self.repository.add_event(self.ieid, FIXITY_FAILURE, note)

    def record_fixity_success(self, timestamp: str) -> EventOutcome:
        """Record that all copies checked out as of ``timestamp`` (a "Z" string)."""
        return self.repository.set_fixity_success(self.ieid, timestamp)
