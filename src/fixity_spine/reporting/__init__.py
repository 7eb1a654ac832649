"""Report sink for analyzer output."""

from fixity_spine.reporting.reporter import DEFAULT_MAX_LINES, Reporter, anything_interesting

__all__ = ["Reporter", "anything_interesting", "DEFAULT_MAX_LINES"]
