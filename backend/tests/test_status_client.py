"""
NotesHub Client — Status Indicator, Poller & Repeating Task Tests
==================================================================

The poller talks to an httpx.MockTransport, so no server is needed.
Timing-based tests use short intervals on RepeatingTask directly; the
poller's own interval is validated to 30-60 s and is exercised through
poll_once().
"""

import asyncio

import httpx
import pytest

from noteshub.client.indicator import (
    CONNECTION_FAILURE_REPORT,
    IndicatorState,
    StatusIndicator,
    render_status,
)
from noteshub.client.poller import StatusPoller
from noteshub.client.tasks import RepeatingTask
from noteshub.schemas.status import StatusReport

STATUS_URL = "http://backend.test/api/db-status"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _json_handler(body, status_code=200):
    def handler(request):
        return httpx.Response(status_code, json=body)
    return handler


# ── Renderer ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "state, icon, color, text",
    [
        (IndicatorState.LOADING, "database", "gray", "Checking..."),
        (IndicatorState.OK, "check-circle", "green", "DB Online"),
        (IndicatorState.WARNING, "alert-circle", "amber", "DB Fallback"),
        (IndicatorState.ERROR, "alert-circle", "red", "DB Error"),
    ],
)
def test_render_status(state, icon, color, text):
    presentation = render_status(state)
    assert (presentation.icon, presentation.color, presentation.text) == (icon, color, text)


def test_only_loading_is_animated():
    assert render_status(IndicatorState.LOADING).animated is True
    assert render_status(IndicatorState.OK).animated is False


def test_indicator_starts_loading():
    indicator = StatusIndicator()
    assert indicator.state == IndicatorState.LOADING
    assert indicator.render().text == "Checking..."


# ── Poller ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, expected",
    [
        ({"status": "ok", "message": "Database connection is active", "fallback": False}, IndicatorState.OK),
        ({"status": "warning", "message": "fallback", "fallback": True}, IndicatorState.WARNING),
        ({"status": "error", "message": "down", "fallback": False}, IndicatorState.ERROR),
    ],
)
async def test_poll_maps_status(body, expected):
    async with _client(_json_handler(body)) as client:
        poller = StatusPoller(url=STATUS_URL, interval=30, client=client)
        assert await poller.poll_once() == expected
        assert poller.indicator.report.message == body["message"]


@pytest.mark.asyncio
async def test_poll_error_body_on_500_is_used():
    body = {"status": "error", "message": "Database connection test failed", "fallback": False}
    async with _client(_json_handler(body, status_code=500)) as client:
        poller = StatusPoller(url=STATUS_URL, interval=30, client=client)
        assert await poller.poll_once() == IndicatorState.ERROR
        assert poller.indicator.report.message == "Database connection test failed"


@pytest.mark.asyncio
async def test_network_failure_synthesizes_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        poller = StatusPoller(url=STATUS_URL, interval=30, client=client)
        state = await poller.poll_once()

    assert state == IndicatorState.ERROR
    assert poller.indicator.report == CONNECTION_FAILURE_REPORT
    assert poller.indicator.report.message == "Could not connect to server"
    assert poller.indicator.report.fallback is True


@pytest.mark.asyncio
async def test_invalid_url_synthesizes_error():
    async with _client(_json_handler({"status": "ok", "message": "x", "fallback": False})) as client:
        poller = StatusPoller(url="http://[::1/api/db-status", interval=30, client=client)
        assert await poller.poll_once() == IndicatorState.ERROR

    assert poller.indicator.report == CONNECTION_FAILURE_REPORT


@pytest.mark.asyncio
async def test_unexpected_transport_exception_synthesizes_error():
    def handler(request):
        raise RuntimeError("transport exploded")

    async with _client(handler) as client:
        poller = StatusPoller(url=STATUS_URL, interval=30, client=client, show_loading_on_refresh=True)
        assert await poller.poll_once() == IndicatorState.ERROR

    assert poller.state != IndicatorState.LOADING


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"status": "ok", "message": "Connected"}),
        httpx.Response(200, text="<html>bad gateway</html>"),
        httpx.Response(200, json={"status": "degraded", "message": "?"}),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
async def test_unparseable_response_synthesizes_error(response):
    async with _client(lambda request: response) as client:
        poller = StatusPoller(url=STATUS_URL, interval=30, client=client)
        assert await poller.poll_once() == IndicatorState.ERROR
        assert poller.indicator.report == CONNECTION_FAILURE_REPORT


def test_interval_bounds():
    with pytest.raises(ValueError):
        StatusPoller(url=STATUS_URL, interval=5)
    with pytest.raises(ValueError):
        StatusPoller(url=STATUS_URL, interval=61)


@pytest.mark.asyncio
async def test_keeps_last_state_during_refresh_by_default():
    release = asyncio.Event()
    ok = {"status": "ok", "message": "up", "fallback": False}

    async def handler(request):
        await release.wait()
        return httpx.Response(200, json=ok)

    async with _client(handler) as client:
        poller = StatusPoller(url=STATUS_URL, interval=30, client=client)
        poller.indicator.apply(StatusReport(**ok))

        pending = asyncio.ensure_future(poller.poll_once())
        await asyncio.sleep(0)
        assert poller.state == IndicatorState.OK

        release.set()
        await pending


@pytest.mark.asyncio
async def test_show_loading_on_refresh():
    release = asyncio.Event()
    ok = {"status": "ok", "message": "up", "fallback": False}

    async def handler(request):
        await release.wait()
        return httpx.Response(200, json=ok)

    async with _client(handler) as client:
        poller = StatusPoller(
            url=STATUS_URL, interval=30, client=client, show_loading_on_refresh=True
        )
        poller.indicator.apply(StatusReport(**ok))

        pending = asyncio.ensure_future(poller.poll_once())
        await asyncio.sleep(0)
        assert poller.state == IndicatorState.LOADING

        release.set()
        assert await pending == IndicatorState.OK


@pytest.mark.asyncio
async def test_last_completed_response_wins():
    slow_started = asyncio.Event()
    slow_release = asyncio.Event()
    calls = []

    async def handler(request):
        calls.append(request)
        if len(calls) == 1:
            slow_started.set()
            await slow_release.wait()
            return httpx.Response(200, json={"status": "ok", "message": "late", "fallback": False})
        return httpx.Response(200, json={"status": "warning", "message": "early", "fallback": True})

    async with _client(handler) as client:
        poller = StatusPoller(url=STATUS_URL, interval=30, client=client)
        first = asyncio.ensure_future(poller.poll_once())
        await asyncio.wait_for(slow_started.wait(), timeout=1)
        await poller.poll_once()
        assert poller.state == IndicatorState.WARNING

        slow_release.set()
        await first
        assert poller.state == IndicatorState.OK
        assert poller.indicator.report.message == "late"


@pytest.mark.asyncio
async def test_start_polls_immediately_and_stop_cancels_in_flight():
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def handler(request):
        started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return httpx.Response(200, json={})

    async with _client(handler) as client:
        poller = StatusPoller(url=STATUS_URL, interval=30, client=client)
        poller.start()
        await asyncio.wait_for(started.wait(), timeout=1)
        assert poller.running

        await poller.stop()

        assert cancelled.is_set()
        assert not poller.running
        assert poller.state == IndicatorState.LOADING


# ── RepeatingTask ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_repeating_task_ticks_until_stopped():
    ticks = []

    async def tick():
        ticks.append(asyncio.get_running_loop().time())

    task = RepeatingTask(tick, interval=0.01)
    task.start()
    await asyncio.sleep(0.055)
    await task.stop()
    count = len(ticks)
    await asyncio.sleep(0.03)

    assert count >= 3
    assert len(ticks) == count


@pytest.mark.asyncio
async def test_repeating_task_survives_failing_tick():
    calls = 0

    async def tick():
        nonlocal calls
        calls += 1
        raise RuntimeError("boom")

    async with RepeatingTask(tick, interval=0.01):
        await asyncio.sleep(0.035)

    assert calls >= 2


@pytest.mark.asyncio
async def test_slow_tick_does_not_delay_next_tick():
    started = 0
    gate = asyncio.Event()

    async def tick():
        nonlocal started
        started += 1
        await gate.wait()

    task = RepeatingTask(tick, interval=0.01)
    task.start()
    await asyncio.sleep(0.045)
    assert started >= 3
    assert task.in_flight >= 3
    await task.stop()
    assert task.in_flight == 0


def test_repeating_task_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        RepeatingTask(lambda: None, interval=0)
