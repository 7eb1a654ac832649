"""
fixity-spine - periodic fixity reconciliation for replicated preservation storage.

Compares what each storage pool reports about its package copies against
the store-master copy database and the DAITSS package database, producing
discrepancy reports and audit events.

- fixity_spine.core: errors, logging, settings, timestamps
- fixity_spine.streams: sorted-sequence protocol, filters and joins
- fixity_spine.sources: pool feeds and database queries as streams
- fixity_spine.analyzers: the reconciliation procedures
"""

__version__ = "0.1.0"
