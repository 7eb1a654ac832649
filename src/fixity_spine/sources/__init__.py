"""
Source adapters: the audited systems as sorted streams.

- pool:     PoolFixityStream over a pool's HTTP fixity feed
- database: StoreMasterPackageStream, DaitssPackageStream over paged SQL
- daitss:   DaitssRepository / DaitssPackage for audit event writes
"""

from fixity_spine.sources.daitss import DaitssPackage, DaitssRepository, EventOutcome
from fixity_spine.sources.database import (
    DaitssPackageStream,
    PagedQueryStream,
    StoreMasterPackageStream,
    list_active_pools,
)
from fixity_spine.sources.pool import Pool, PoolFixityStream, make_http_client, resolve_fixity_url

__all__ = [
    # Pools
    "Pool",
    "PoolFixityStream",
    "make_http_client",
    "resolve_fixity_url",
    # Databases
    "PagedQueryStream",
    "StoreMasterPackageStream",
    "DaitssPackageStream",
    "list_active_pools",
    # Events
    "DaitssRepository",
    "DaitssPackage",
    "EventOutcome",
]
