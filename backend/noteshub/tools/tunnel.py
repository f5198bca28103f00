"""
NotesHub Tools — Development Tunnel
====================================

What:  Exposes a locally running backend through a public tunnel and points
       the frontend build config at it.
How:   A TunnelProvider opens the tunnel and reports its URL;
       TunnelSupervisor writes the URL into .env.production and
       firebase.json, then stays in the foreground until the tunnel closes
       or the process receives SIGINT/SIGTERM.

Providers:
    ngrok        pyngrok (downloads and manages the ngrok binary)
    localtunnel  `lt --port N` subprocess; URL parsed from its output

Keep-running mode reopens the tunnel after an unexpected close. Opening is
retried with tenacity: up to `max_retries` consecutive failures, a fixed
delay between attempts; the counter resets after each successful open.
"""

import asyncio
import logging
import re
import signal
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from pyngrok import conf, ngrok
from pyngrok.exception import PyngrokError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from noteshub.config import settings
from noteshub.exceptions import TunnelError
from noteshub.tools.tunnel_config import update_env_file, update_firebase_config

logger = logging.getLogger(__name__)

LOCALTUNNEL_URL_PATTERN = re.compile(r"https://[A-Za-z0-9.-]+")


# ══════════════════════════════════════════════════════════════════════════
# Providers
# ══════════════════════════════════════════════════════════════════════════

class TunnelProvider(ABC):
    """Opens one tunnel at a time to a local port."""

    name: str = "tunnel"

    @abstractmethod
    async def open(self, port: int) -> str:
        """Open the tunnel and return its public URL. Raises TunnelError."""

    @abstractmethod
    async def wait_closed(self) -> None:
        """Return (or raise TunnelError) once the open tunnel has gone away."""

    @abstractmethod
    async def close(self) -> None:
        """Tear down the tunnel. Safe to call when nothing is open."""


class NgrokTunnelProvider(TunnelProvider):
    """ngrok via pyngrok. Blocking pyngrok calls run in a worker thread."""

    name = "ngrok"

    def __init__(self, region: Optional[str] = None, auth_token: Optional[str] = None):
        self.region = region or settings.tunnel_region
        self.auth_token = auth_token
        self._public_url: Optional[str] = None

    def _configure(self) -> None:
        pyngrok_config = conf.get_default()
        pyngrok_config.region = self.region
        pyngrok_config.monitor_thread = False
        if self.auth_token:
            pyngrok_config.auth_token = self.auth_token

    async def open(self, port: int) -> str:
        self._configure()
        try:
            tunnel = await asyncio.to_thread(ngrok.connect, port, "http")
        except PyngrokError as e:
            raise TunnelError(f"ngrok failed to start: {e}", provider=self.name) from e

        self._public_url = tunnel.public_url
        return self._public_url

    async def wait_closed(self) -> None:
        try:
            process = ngrok.get_ngrok_process()
        except PyngrokError as e:
            raise TunnelError(f"ngrok process unavailable: {e}", provider=self.name) from e
        code = await asyncio.to_thread(process.proc.wait)
        raise TunnelError(f"ngrok exited with code {code}", provider=self.name)

    async def close(self) -> None:
        if self._public_url is None:
            return
        url, self._public_url = self._public_url, None
        try:
            await asyncio.to_thread(ngrok.disconnect, url)
        except PyngrokError as e:
            logger.warning("ngrok disconnect failed: %s", str(e))
        await asyncio.to_thread(ngrok.kill)


class LocalTunnelProvider(TunnelProvider):
    """localtunnel via its `lt` command-line client."""

    name = "localtunnel"

    def __init__(self, command: str = "lt", startup_timeout: float = 30.0):
        self.command = command
        self.startup_timeout = startup_timeout
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._drain_task: Optional[asyncio.Task] = None

    async def open(self, port: int) -> str:
        try:
            self._proc = await asyncio.create_subprocess_exec(
                self.command, "--port", str(port),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise TunnelError(
                f"'{self.command}' not found. Install it with: npm install -g localtunnel",
                provider=self.name,
            ) from e

        try:
            url = await asyncio.wait_for(self._read_url(), timeout=self.startup_timeout)
        except asyncio.TimeoutError as e:
            await self.close()
            raise TunnelError(
                f"No tunnel URL within {self.startup_timeout:g}s", provider=self.name
            ) from e
        except TunnelError:
            await self.close()
            raise

        # Keep reading so the pipe never fills up
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        return url

    async def _read_url(self) -> str:
        assert self._proc is not None and self._proc.stdout is not None
        while True:
            line = await self._proc.stdout.readline()
            if not line:
                raise TunnelError("localtunnel exited before reporting a URL", provider=self.name)
            text = line.decode("utf-8", errors="replace").strip()
            logger.debug("lt: %s", text)
            match = LOCALTUNNEL_URL_PATTERN.search(text)
            if match:
                return match.group(0)

    async def _drain(self) -> None:
        assert self._proc is not None and self._proc.stdout is not None
        async for line in self._proc.stdout:
            logger.debug("lt: %s", line.decode("utf-8", errors="replace").rstrip())

    async def wait_closed(self) -> None:
        if self._proc is None:
            raise TunnelError("Tunnel is not open", provider=self.name)
        code = await self._proc.wait()
        raise TunnelError(f"localtunnel exited with code {code}", provider=self.name)

    async def close(self) -> None:
        proc, self._proc = self._proc, None
        drain, self._drain_task = self._drain_task, None
        if proc is not None and proc.returncode is None:
            proc.terminate()
            try:
                await asyncio.wait_for(proc.wait(), timeout=5)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
        if drain is not None:
            drain.cancel()
            await asyncio.gather(drain, return_exceptions=True)


PROVIDERS = {
    NgrokTunnelProvider.name: NgrokTunnelProvider,
    LocalTunnelProvider.name: LocalTunnelProvider,
}


def make_provider(name: str) -> TunnelProvider:
    try:
        return PROVIDERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown tunnel provider '{name}'. Choose one of: {', '.join(sorted(PROVIDERS))}"
        ) from None


# ══════════════════════════════════════════════════════════════════════════
# Supervisor
# ══════════════════════════════════════════════════════════════════════════

class TunnelSupervisor:
    """
    Runs one tunnel in the foreground.

    run() returns the process exit status: 0 after a requested shutdown,
    1 when the tunnel could not be opened (after retries in keep-running
    mode) or closed unexpectedly in single-shot mode.
    """

    def __init__(
        self,
        provider: TunnelProvider,
        port: Optional[int] = None,
        keep_running: bool = False,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        env_path: Union[str, Path, None] = None,
        firebase_path: Union[str, Path, None] = None,
    ):
        self.provider = provider
        self.port = port or settings.tunnel_port
        self.keep_running = keep_running
        self.max_retries = settings.tunnel_max_retries if max_retries is None else max_retries
        self.retry_delay = settings.tunnel_retry_delay if retry_delay is None else retry_delay
        self.env_path = Path(env_path or settings.env_production_path)
        self.firebase_path = Path(firebase_path or settings.firebase_config_path)
        self.public_url: Optional[str] = None
        self._stop_event = asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        if not self._stop_event.is_set():
            logger.info("Shutting down tunnel...")
        self._stop_event.set()

    async def publish(self, url: str) -> None:
        """Write the URL into both config files. Failures are logged only."""
        await update_env_file(self.env_path, url)
        await update_firebase_config(self.firebase_path, url)

    async def _open(self) -> str:
        logger.info("Starting %s to port %d...", self.provider.name, self.port)
        url = await self.provider.open(self.port)
        logger.info("Tunnel established! Public URL: %s", url)
        return url

    async def _open_with_retries(self) -> Optional[str]:
        """Returns None when stop() arrives between attempts."""
        if not self.keep_running:
            return await self._open()

        url = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_fixed(self.retry_delay),
            retry=(
                retry_if_exception_type(TunnelError)
                & retry_if_exception(lambda e: not self.stopping)
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep_unless_stopped,
            reraise=True,
        ):
            with attempt:
                if self.stopping:
                    return None
                url = await self._open()
        return url

    async def _wait_for_close_or_stop(self) -> bool:
        """Returns True when the tunnel closed by itself, False on stop()."""
        closed = asyncio.ensure_future(self.provider.wait_closed())
        stopped = asyncio.ensure_future(self._stop_event.wait())
        done, pending = await asyncio.wait(
            {closed, stopped}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if closed in done:
            error = closed.exception()
            reason = error.message if isinstance(error, TunnelError) else error
            logger.warning("Tunnel closed unexpectedly: %s", reason)
            return True
        return False

    async def _sleep_unless_stopped(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> int:
        self._install_signal_handlers()
        try:
            while not self.stopping:
                try:
                    url = await self._open_with_retries()
                except TunnelError as e:
                    if self.stopping:
                        break
                    attempts = self.max_retries + 1 if self.keep_running else 1
                    logger.error(
                        "Failed to establish tunnel after %d attempt(s): %s",
                        attempts,
                        e.message,
                    )
                    return 1
                if url is None:
                    break

                self.public_url = url
                try:
                    await self.publish(url)
                    log_next_steps()
                    closed_by_itself = await self._wait_for_close_or_stop()
                finally:
                    await self.provider.close()

                if not closed_by_itself:
                    break
                if not self.keep_running:
                    return 1
                logger.info("Will retry in %g seconds...", self.retry_delay)
                await self._sleep_unless_stopped(self.retry_delay)
            return 0
        finally:
            self._remove_signal_handlers()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                logger.debug("Signal handler for %s not installed", sig)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handler for %s not removed", sig)


def log_next_steps(lines: Optional[List[str]] = None) -> None:
    steps = lines or [
        "Next steps:",
        "1. Build your frontend: npm run build",
        "2. Deploy to Firebase: firebase deploy",
        "3. The deployed app now reaches your local backend through the tunnel",
        "Keep this process running: stopping it closes the tunnel.",
    ]
    for line in steps:
        logger.info(line)


async def run_tunnel(
    provider_name: str = "ngrok",
    port: Optional[int] = None,
    keep_running: bool = False,
) -> int:
    """Entry point used by the CLI. Returns the exit status."""
    supervisor = TunnelSupervisor(make_provider(provider_name), port=port, keep_running=keep_running)
    return await supervisor.run()
