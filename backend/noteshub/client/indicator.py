"""
NotesHub Client — Database Status Indicator
============================================

Indicator state machine and the pure renderer that maps a state to what
the status badge shows.

    loading ──response──▶ ok | warning | error
       ▲                        │
       └── refresh (optional) ──┘
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from noteshub.schemas.status import StatusReport

logger = logging.getLogger(__name__)


class IndicatorState(str, enum.Enum):
    LOADING = "loading"
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class StatusPresentation:
    icon: str
    color: str
    text: str
    animated: bool = False


CONNECTION_FAILURE_REPORT = StatusReport(
    status="error",
    message="Could not connect to server",
    fallback=True,
)

_PRESENTATIONS = {
    IndicatorState.LOADING: StatusPresentation("database", "gray", "Checking...", animated=True),
    IndicatorState.OK: StatusPresentation("check-circle", "green", "DB Online"),
    IndicatorState.WARNING: StatusPresentation("alert-circle", "amber", "DB Fallback"),
    IndicatorState.ERROR: StatusPresentation("alert-circle", "red", "DB Error"),
}


def render_status(state: IndicatorState) -> StatusPresentation:
    """Map an indicator state to its icon, color and label."""
    return _PRESENTATIONS[IndicatorState(state)]


class StatusIndicator:
    """
    Holds the current indicator state and the report that produced it.

    Starts in LOADING with no report. apply() always leaves a non-loading
    state behind.
    """

    def __init__(self) -> None:
        self.state: IndicatorState = IndicatorState.LOADING
        self.report: Optional[StatusReport] = None

    def mark_loading(self) -> None:
        self.state = IndicatorState.LOADING

    def apply(self, report: StatusReport) -> IndicatorState:
        previous = self.state
        self.report = report
        self.state = IndicatorState(report.status)
        if previous not in (IndicatorState.LOADING, self.state):
            logger.info("Database status changed: %s -> %s", previous.value, self.state.value)
        return self.state

    def render(self) -> StatusPresentation:
        return render_status(self.state)

    @property
    def tooltip(self) -> str:
        if self.report is None:
            return "Checking database status..."
        return self.report.message
