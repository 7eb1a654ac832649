"""Declarative bases for the two audited databases.

The store-master and DAITSS schemas live in separate databases and share
table names (``packages``, ``copies``), so each gets its own base and
metadata.

Both use a ``type_annotation_map`` that maps Python built-in types to
portable SA column types:

* ``str``   → ``Text``
* ``int``   → ``Integer``
* ``bool``  → ``Boolean``
* ``datetime.datetime`` → ``DateTime(timezone=True)``
"""

from __future__ import annotations

import datetime

from sqlalchemy import Boolean, DateTime, Integer, Text
from sqlalchemy.orm import DeclarativeBase

_TYPE_MAP = {
    str: Text,
    int: Integer,
    bool: Boolean,
    datetime.datetime: DateTime(timezone=True),
}


class StoreMasterBase(DeclarativeBase):
    """Base for the store-master copy database tables."""

    type_annotation_map = _TYPE_MAP


class DaitssBase(DeclarativeBase):
    """Base for the DAITSS package database tables."""

    type_annotation_map = _TYPE_MAP
