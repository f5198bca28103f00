"""
NotesHub Client — Database Status Poller
=========================================

What:  Polls GET /api/db-status on a fixed interval and feeds the result
       into a StatusIndicator.
How:   httpx.AsyncClient for the request, RepeatingTask for the schedule.

Outcome mapping for one poll:
    body parses as StatusReport     → indicator takes report.status
    network error / timeout         → CONNECTION_FAILURE_REPORT
    unparseable body / unknown status → CONNECTION_FAILURE_REPORT

A non-2xx response still counts as a report when its body parses (the
server answers 500 with status "error"). Polls may overlap; whichever
response completes last sets the state.
"""

import logging
from typing import Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from noteshub.client.indicator import (
    CONNECTION_FAILURE_REPORT,
    IndicatorState,
    StatusIndicator,
)
from noteshub.client.tasks import RepeatingTask
from noteshub.config import settings
from noteshub.schemas.status import StatusReport

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL = 30.0
MAX_POLL_INTERVAL = 60.0


class StatusPoller:
    """
    Periodic database-status poller.

    Args:
        url: Status endpoint (default settings.status_url)
        interval: Seconds between polls, 30-60 (default settings.status_poll_interval)
        client: Shared httpx.AsyncClient; when omitted the poller owns one
        indicator: Indicator to update (a fresh one by default)
        show_loading_on_refresh: Re-enter loading at the start of every tick
        timeout: Per-request timeout in seconds
        on_update: Called with the new state after every completed poll
    """

    def __init__(
        self,
        url: Optional[str] = None,
        interval: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        indicator: Optional[StatusIndicator] = None,
        show_loading_on_refresh: bool = False,
        timeout: Optional[float] = None,
        on_update: Optional[Callable[[IndicatorState], None]] = None,
    ):
        interval = settings.status_poll_interval if interval is None else interval
        if not MIN_POLL_INTERVAL <= interval <= MAX_POLL_INTERVAL:
            raise ValueError(
                f"Poll interval must be between {MIN_POLL_INTERVAL:g} and "
                f"{MAX_POLL_INTERVAL:g} seconds, got {interval:g}"
            )

        self.url = url or settings.status_url
        self.interval = interval
        self.indicator = indicator or StatusIndicator()
        self.show_loading_on_refresh = show_loading_on_refresh
        self.on_update = on_update
        self.timeout = settings.status_request_timeout if timeout is None else timeout

        self._client = client
        self._owns_client = client is None
        self._task = RepeatingTask(self.poll_once, interval=self.interval)

    @property
    def state(self) -> IndicatorState:
        return self.indicator.state

    @property
    def running(self) -> bool:
        return self._task.running

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def fetch_report(self) -> StatusReport:
        """Issue one request and turn its outcome into a StatusReport."""
        try:
            response = await self._get_client().get(self.url, timeout=self.timeout)
        except Exception as e:
            logger.error("Error checking database status: %s", str(e) or type(e).__name__)
            return CONNECTION_FAILURE_REPORT

        try:
            return StatusReport.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error(
                "Unreadable database status response (HTTP %d): %s",
                response.status_code,
                str(e).splitlines()[0] if str(e) else type(e).__name__,
            )
            return CONNECTION_FAILURE_REPORT

    async def poll_once(self) -> IndicatorState:
        if self.show_loading_on_refresh:
            self.indicator.mark_loading()
        report = await self.fetch_report()
        state = self.indicator.apply(report)
        if self.on_update is not None:
            self.on_update(state)
        return state

    def start(self) -> None:
        """Poll immediately, then every `interval` seconds."""
        logger.debug("Starting status poller: %s every %gs", self.url, self.interval)
        self._task.start()

    async def stop(self) -> None:
        """Cancel the schedule and any request still in flight."""
        await self._task.stop()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "StatusPoller":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
