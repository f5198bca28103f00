"""
NotesHub Tools — Tunnel Provider & Supervisor Tests
====================================================

The supervisor runs against a scripted in-process provider; the real
providers are exercised with pyngrok mocked out and with a tiny shell
script standing in for the `lt` client.
"""

import asyncio
import json
import stat
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pyngrok.exception import PyngrokError

from noteshub.exceptions import TunnelError
from noteshub.tools.tunnel import (
    LocalTunnelProvider,
    NgrokTunnelProvider,
    TunnelProvider,
    TunnelSupervisor,
    make_provider,
)
from noteshub.tools.tunnel_config import ENV_KEY


class ScriptedProvider(TunnelProvider):
    """Each open() consumes the next scripted result (URL or exception)."""

    name = "scripted"

    def __init__(self, results):
        self.results = list(results)
        self.open_calls = 0
        self.close_calls = 0
        self._closed = asyncio.Event()

    async def open(self, port):
        self.open_calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        self._closed = asyncio.Event()
        return result

    async def wait_closed(self):
        await self._closed.wait()
        raise TunnelError("connection lost", provider=self.name)

    async def close(self):
        self.close_calls += 1

    def drop(self):
        self._closed.set()


async def wait_until(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def config_paths(tmp_path):
    firebase = tmp_path / "firebase.json"
    firebase.write_text(json.dumps({"hosting": {"rewrites": []}}))
    return tmp_path / ".env.production", firebase


def _supervisor(provider, config_paths, **kwargs):
    env_path, firebase_path = config_paths
    return TunnelSupervisor(
        provider,
        port=5000,
        retry_delay=0,
        env_path=env_path,
        firebase_path=firebase_path,
        **kwargs,
    )


# ── Supervisor ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_single_shot_publishes_url_and_stops_cleanly(config_paths):
    provider = ScriptedProvider(["https://one.ngrok.io"])
    supervisor = _supervisor(provider, config_paths)

    run = asyncio.ensure_future(supervisor.run())
    await wait_until(lambda: supervisor.public_url is not None)
    await asyncio.sleep(0.01)
    supervisor.stop()

    assert await run == 0
    assert provider.close_calls == 1
    env_path, firebase_path = config_paths
    assert env_path.read_text() == f"{ENV_KEY}=https://one.ngrok.io\n"
    rewrites = json.loads(firebase_path.read_text())["hosting"]["rewrites"]
    assert rewrites == [{"source": "/api/**", "destination": "https://one.ngrok.io/api/**"}]


@pytest.mark.asyncio
async def test_single_shot_open_failure_exits_1(config_paths):
    provider = ScriptedProvider([TunnelError("no binary")])

    assert await _supervisor(provider, config_paths).run() == 1
    assert provider.open_calls == 1


@pytest.mark.asyncio
async def test_single_shot_unexpected_close_exits_1(config_paths):
    provider = ScriptedProvider(["https://one.ngrok.io"])
    supervisor = _supervisor(provider, config_paths)

    run = asyncio.ensure_future(supervisor.run())
    await wait_until(lambda: supervisor.public_url is not None)
    provider.drop()

    assert await run == 1


@pytest.mark.asyncio
async def test_keep_running_retries_and_reopens(config_paths):
    provider = ScriptedProvider([
        TunnelError("refused"),
        TunnelError("refused"),
        "https://first.loca.lt",
        "https://second.loca.lt",
    ])
    supervisor = _supervisor(provider, config_paths, keep_running=True, max_retries=3)

    run = asyncio.ensure_future(supervisor.run())
    await wait_until(lambda: supervisor.public_url == "https://first.loca.lt")
    provider.drop()
    await wait_until(lambda: supervisor.public_url == "https://second.loca.lt")
    await asyncio.sleep(0.01)
    supervisor.stop()

    assert await run == 0
    assert provider.open_calls == 4
    env_path, _ = config_paths
    assert env_path.read_text() == f"{ENV_KEY}=https://second.loca.lt\n"


@pytest.mark.asyncio
async def test_keep_running_gives_up_after_max_retries(config_paths):
    provider = ScriptedProvider([TunnelError("refused")] * 10)
    supervisor = _supervisor(provider, config_paths, keep_running=True, max_retries=2)

    assert await supervisor.run() == 1
    # Initial attempt plus two retries
    assert provider.open_calls == 3


@pytest.mark.asyncio
async def test_stop_during_retry_wait_skips_further_attempts(config_paths):
    env_path, firebase_path = config_paths
    provider = ScriptedProvider([TunnelError("refused"), "https://late.ngrok.io"])
    supervisor = TunnelSupervisor(
        provider,
        port=5000,
        keep_running=True,
        max_retries=3,
        retry_delay=30,
        env_path=env_path,
        firebase_path=firebase_path,
    )

    run = asyncio.ensure_future(supervisor.run())
    await wait_until(lambda: provider.open_calls == 1)
    await asyncio.sleep(0.01)
    supervisor.stop()

    assert await asyncio.wait_for(run, timeout=2) == 0
    assert provider.open_calls == 1
    assert supervisor.public_url is None
    assert not env_path.exists()


@pytest.mark.asyncio
async def test_undecodable_env_file_does_not_stop_tunnel(config_paths):
    env_path, firebase_path = config_paths
    env_path.write_bytes(b"OTHER=\xff\xfe\n")
    provider = ScriptedProvider(["https://one.ngrok.io"])
    supervisor = _supervisor(provider, config_paths)

    run = asyncio.ensure_future(supervisor.run())
    await wait_until(lambda: supervisor.public_url is not None)
    await asyncio.sleep(0.01)
    supervisor.stop()

    assert await run == 0
    assert provider.close_calls == 1
    assert env_path.read_bytes() == b"OTHER=\xff\xfe\n"
    rewrites = json.loads(firebase_path.read_text())["hosting"]["rewrites"]
    assert rewrites[0]["destination"] == "https://one.ngrok.io/api/**"


@pytest.mark.asyncio
async def test_publish_failure_still_closes_provider(config_paths):
    provider = ScriptedProvider(["https://one.ngrok.io"])
    supervisor = _supervisor(provider, config_paths)

    with patch.object(supervisor, "publish", new=AsyncMock(side_effect=RuntimeError("boom"))):
        with pytest.raises(RuntimeError):
            await supervisor.run()

    assert provider.close_calls == 1


def test_make_provider():
    assert isinstance(make_provider("ngrok"), NgrokTunnelProvider)
    assert isinstance(make_provider("localtunnel"), LocalTunnelProvider)
    with pytest.raises(ValueError):
        make_provider("serveo")


# ── ngrok ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_ngrok_provider_open_and_close():
    with patch("noteshub.tools.tunnel.ngrok") as mock_ngrok, \
         patch("noteshub.tools.tunnel.conf") as mock_conf:
        mock_ngrok.connect.return_value = MagicMock(public_url="https://x.ngrok.io")
        provider = NgrokTunnelProvider(region="eu")

        url = await provider.open(5000)
        await provider.close()

        assert url == "https://x.ngrok.io"
        mock_ngrok.connect.assert_called_once_with(5000, "http")
        assert mock_conf.get_default.return_value.region == "eu"
        mock_ngrok.disconnect.assert_called_once_with("https://x.ngrok.io")
        mock_ngrok.kill.assert_called_once()


@pytest.mark.asyncio
async def test_ngrok_provider_wraps_errors():
    with patch("noteshub.tools.tunnel.ngrok") as mock_ngrok, \
         patch("noteshub.tools.tunnel.conf"):
        mock_ngrok.connect.side_effect = PyngrokError("authtoken required")

        with pytest.raises(TunnelError, match="authtoken required"):
            await NgrokTunnelProvider().open(5000)


# ── localtunnel ───────────────────────────────────────────────────────────

@pytest.fixture
def fake_lt(tmp_path):
    script = tmp_path / "lt"
    script.write_text(
        "#!/bin/sh\n"
        "echo \"your url is: https://quiet-fox-42.loca.lt\"\n"
        "exec sleep 30\n"
    )
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return str(script)


@pytest.mark.asyncio
async def test_localtunnel_parses_url(fake_lt):
    provider = LocalTunnelProvider(command=fake_lt, startup_timeout=5)

    url = await provider.open(5000)
    await provider.close()

    assert url == "https://quiet-fox-42.loca.lt"


@pytest.mark.asyncio
async def test_localtunnel_missing_binary():
    provider = LocalTunnelProvider(command="definitely-not-installed-lt")

    with pytest.raises(TunnelError, match="not found"):
        await provider.open(5000)
