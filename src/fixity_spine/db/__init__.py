"""SQLAlchemy 2.0 layer for the store-master and DAITSS databases.

Modules
-------
base        StoreMasterBase, DaitssBase (declarative bases)
engine      create_fixity_engine, fixity_session_factory
tables      Mapped classes for the tables the fixity queries touch
"""

from __future__ import annotations

from fixity_spine.db.base import DaitssBase, StoreMasterBase
from fixity_spine.db.engine import create_fixity_engine, fixity_session_factory
from fixity_spine.db.tables import *  # noqa: F401,F403
from fixity_spine.db.tables import __all__ as _table_names

__all__ = [
    "StoreMasterBase",
    "DaitssBase",
    "create_fixity_engine",
    "fixity_session_factory",
    *_table_names,
]
