"""SQLAlchemy 2.0 mappings for the parts of the audited schemas we touch.

Neither schema is ours; these classes cover only the columns the fixity
queries read and the event rows they write. ``metadata.create_all`` on them
is for local and test databases.

Store-master::

    pools     (id, required, services_location, read_preference,
               basic_auth_username, basic_auth_password)
    packages  (id, extant, ieid, name)
    copies    (id, datetime, store_location, package_id, pool_id)

DAITSS::

    packages  (id, uri)
    aips      (id, package_id)
    copies    (id, aip_id, url, md5, sha1, size, timestamp)
    agents    (id)
    events    (id, name, timestamp, notes, outcome, agent_id, package_id)

Usage::

    from fixity_spine.db import DaitssBase, create_fixity_engine

    engine = create_fixity_engine("sqlite:///daitss.db")
    DaitssBase.metadata.create_all(engine)
"""

from __future__ import annotations

import datetime

from sqlalchemy import BigInteger, ForeignKey, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from fixity_spine.db.base import DaitssBase, StoreMasterBase

# =============================================================================
# Store-master
# =============================================================================


class PoolTable(StoreMasterBase):
    __tablename__ = "pools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    required: Mapped[bool] = mapped_column(default=True, server_default=text("true"))
    services_location: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    read_preference: Mapped[int] = mapped_column(default=0, server_default=text("0"))
    basic_auth_username: Mapped[str | None] = mapped_column(Text)
    basic_auth_password: Mapped[str | None] = mapped_column(Text)


class StoreMasterPackageTable(StoreMasterBase):
    __tablename__ = "packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    extant: Mapped[bool] = mapped_column(default=True, server_default=text("true"))
    ieid: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)


class StoreMasterCopyTable(StoreMasterBase):
    __tablename__ = "copies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Column is named "datetime" in the store-master schema.
    stored_at: Mapped[datetime.datetime | None] = mapped_column("datetime")
    store_location: Mapped[str] = mapped_column(String(255), nullable=False)
    package_id: Mapped[int] = mapped_column(ForeignKey("packages.id"), nullable=False)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False)


# =============================================================================
# DAITSS
# =============================================================================


class DaitssPackageTable(DaitssBase):
    __tablename__ = "packages"

    # The IEID.
    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    uri: Mapped[str | None] = mapped_column(Text)


class AipTable(DaitssBase):
    __tablename__ = "aips"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    package_id: Mapped[str] = mapped_column(ForeignKey("packages.id"), nullable=False)


class DaitssCopyTable(DaitssBase):
    __tablename__ = "copies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    aip_id: Mapped[int] = mapped_column(ForeignKey("aips.id"), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    md5: Mapped[str] = mapped_column(String(40), nullable=False)
    sha1: Mapped[str | None] = mapped_column(String(40))
    size: Mapped[int | None] = mapped_column(BigInteger)
    timestamp: Mapped[datetime.datetime | None]


class AgentTable(DaitssBase):
    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)


class EventTable(DaitssBase):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    timestamp: Mapped[datetime.datetime] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    outcome: Mapped[str] = mapped_column(String(50), default="N/A")
    agent_id: Mapped[str] = mapped_column(ForeignKey("agents.id"), nullable=False)
    package_id: Mapped[str] = mapped_column(ForeignKey("packages.id"), nullable=False, index=True)


__all__ = [
    "PoolTable",
    "StoreMasterPackageTable",
    "StoreMasterCopyTable",
    "DaitssPackageTable",
    "AipTable",
    "DaitssCopyTable",
    "AgentTable",
    "EventTable",
]
