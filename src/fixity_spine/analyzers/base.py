"""
Base analyzer interface.

Analyzers run checks over pool, store-master and DAITSS streams and fill
Reporters with warnings and errors, for later printing or mailing. Each has
two public members:

    run()    - run the analysis once, filling the reports; returns the analyzer
    reports  - the reports, in the order they should be written

Analyzers are single-use: the streams they hold are consumed by the run, so
a second run() raises AnalyzerError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from fixity_spine.core.errors import AnalyzerError
from fixity_spine.core.logging import LogContext, get_logger, log_step
from fixity_spine.core.timestamps import utc_now
from fixity_spine.reporting.reporter import Reporter

log = get_logger(__name__)


class Analyzer(ABC):
    """Base class for all analyzers."""

    name: str = ""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or utc_now()
        self.reports: list[Reporter] = []
        self._ran = False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"

    def run(self) -> Analyzer:
        """Run the analysis, filling ``reports``. Returns the analyzer."""
        if self._ran:
            raise AnalyzerError(f"{self!r} has already been run; analyzers are single-use").with_context(
                analyzer=self.name
            )
        self._ran = True

        with LogContext(analyzer=self.name), log_step("analyzer.run", analyzer=self.name) as timer:
            self._analyze()
            timer.add_metric("report_lines", sum(len(report) for report in self.reports))
            timer.add_metric("interesting_reports", sum(1 for report in self.reports if report.interesting))
        return self

    @abstractmethod
    def _analyze(self) -> None:
        """Do the work of run(). Must be implemented by subclasses."""
        ...
