"""
Analyzers: the reconciliation procedures.

- StoreMasterAnalyzer:        copy counts in the store-master database
- IntraPoolAnalyzer:          status, expiry and duplicates within each pool
- InterPoolAnalyzer:          copy counts and agreement across pools
- StoreMasterVsPoolAnalyzer:  store-master copies against what pools hold
- PoolVsDaitssAnalyzer:       pools against DAITSS, with audit events
"""

from fixity_spine.analyzers.base import Analyzer
from fixity_spine.analyzers.inter_pool import InterPoolAnalyzer
from fixity_spine.analyzers.intra_pool import IntraPoolAnalyzer
from fixity_spine.analyzers.pool_vs_daitss import PackageLookup, PoolVsDaitssAnalyzer
from fixity_spine.analyzers.stats import StatCounter
from fixity_spine.analyzers.store_master import (
    PackageUrlStream,
    StoreMasterAnalyzer,
    StoreMasterVsPoolAnalyzer,
)

__all__ = [
    "Analyzer",
    "StatCounter",
    "StoreMasterAnalyzer",
    "IntraPoolAnalyzer",
    "InterPoolAnalyzer",
    "StoreMasterVsPoolAnalyzer",
    "PoolVsDaitssAnalyzer",
    "PackageLookup",
    "PackageUrlStream",
]
