"""
Tallies for the DAITSS reconciliation summary.

Keeps track of how packages came out and how their events were recorded;
the database may fail to take some events, and many fixity success events
are unchanged and never written.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

from fixity_spine.core.formatting import commify


@dataclass
class StatCounter:
    events_err: int = 0
    events_new: int = 0
    events_old: int = 0

    packages_considered: int = 0
    packages_double_counted: int = 0
    packages_expired: int = 0
    packages_fixity_failure: int = 0
    packages_fixity_success: int = 0
    packages_fixity_unchanged: int = 0  # implies successful fixity
    packages_missing: int = 0
    packages_orphaned: int = 0
    packages_skipped_recent: int = 0
    packages_total: int = 0
    packages_wrong_number: int = 0

    comparisons_unknown: int = 0

    @property
    def events_total(self) -> int:
        return self.events_err + self.events_new + self.events_old

    def format_max_width(self) -> int:
        """Width of the widest count, with thousands separators."""
        largest = max(getattr(self, f.name) for f in fields(self))
        return len(commify(max(largest, self.events_total)))
