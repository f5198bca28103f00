"""
NotesHub Tools — Keep-alive Pinger
===================================

What:  Stops a sleeping free-tier host from idling out by requesting
       GET {base_url}/test on a fixed interval (5 minutes by default).
How:   RepeatingTask + httpx.AsyncClient. Each ping logs the status code
       and the body, decoded as JSON when possible. Failures are logged;
       there is no retry beyond the next tick.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import httpx

from noteshub.client.tasks import RepeatingTask
from noteshub.config import settings

logger = logging.getLogger(__name__)

PING_PATH = "/test"


class KeepAlivePinger:
    def __init__(
        self,
        base_url: Optional[str] = None,
        interval: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or settings.keepalive_url).rstrip("/")
        self.interval = settings.keepalive_interval if interval is None else interval
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def url(self) -> str:
        return f"{self.base_url}{PING_PATH}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def ping(self) -> Optional[int]:
        """
        Send one ping.

        Returns:
            The HTTP status code, or None when the request failed.
        """
        logger.info("Pinging %s...", self.url)
        try:
            response = await self._get_client().get(self.url)
        except httpx.HTTPError as e:
            logger.error("Error pinging %s: %s", self.url, str(e) or type(e).__name__)
            return None

        logger.info("Response: %d %s", response.status_code, response.reason_phrase)
        body: Any
        try:
            body = json.dumps(response.json())
        except ValueError:
            body = response.text
        logger.info("Data: %s", body)
        return response.status_code

    async def run(self) -> None:
        """Ping immediately and then every interval until cancelled."""
        logger.info("Keep-alive service started.")
        logger.info("Pinging %s every %g minutes.", self.url, self.interval / 60)

        task = RepeatingTask(self._tick, interval=self.interval)
        task.start()
        try:
            await asyncio.Event().wait()
        finally:
            await task.stop()
            await self.aclose()

    async def _tick(self) -> None:
        await self.ping()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
