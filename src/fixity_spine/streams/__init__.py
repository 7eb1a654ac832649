"""
Sorted-sequence streams.

Provides pull-based streams of (key, value) pairs and the combinators the
analyzers build on.
"""

from fixity_spine.streams.filters import FoldedStream, UniqueStream
from fixity_spine.streams.merge import (
    MergedStream,
    MultiStream,
    PoolMultiFixities,
    StoreUrlMultiFixities,
)
from fixity_spine.streams.protocol import CsvFileStream, DataFileStream, Pair, SortedStream
from fixity_spine.streams.records import (
    Consistency,
    DaitssPackageRecord,
    FixityRecord,
    FixityRecordContainer,
    FixitySchema,
    StoreMasterCopyRecord,
)

__all__ = [
    # Protocol
    "Pair",
    "SortedStream",
    "DataFileStream",
    "CsvFileStream",
    # Filters
    "UniqueStream",
    "FoldedStream",
    # Joins
    "MergedStream",
    "MultiStream",
    "PoolMultiFixities",
    "StoreUrlMultiFixities",
    # Records
    "FixityRecord",
    "FixitySchema",
    "FixityRecordContainer",
    "Consistency",
    "StoreMasterCopyRecord",
    "DaitssPackageRecord",
]
