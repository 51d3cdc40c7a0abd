from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Callable

import pytest
from nicegui import ui

from robodash import main
from robodash.config import Config
from robodash.pages.card import PollingCard
from robodash.resources import commands_key, logs_key, telemetry_key, vitals_key
from robodash.schemas import LogEntry, PosePayload, RobotVitals, TelemetryRecord, Vitals
from robodash.state import ErrorInfo, ErrorKind, FetchResult, ResourceKind
from tests.utils.fakes import FakeBackend

if TYPE_CHECKING:
    from nicegui.testing import User
    from pytest import MonkeyPatch

TURTLE = RobotVitals(
    id="robot0",
    name="Turtle",
    online=True,
    vitals=Vitals(cpu=12, battery=88.5, ram=40, disk=71),
)


def healthy_backend() -> FakeBackend:
    return FakeBackend(
        {
            ResourceKind.VITALS: TURTLE,
            ResourceKind.COMMANDS: [],
            ResourceKind.TELEMETRY: [TelemetryRecord(payload=PosePayload(x=1, y=1, theta=0))],
            ResourceKind.LOGS: [LogEntry(stamp="t0", level="WARN", msg="low battery")],
        }
    )


async def serve(backend: FakeBackend, cfg: Config):
    """Swap the services built at startup for ones wired to `backend`."""
    if main.services is not None:
        await main.services.close()
    main.services = main.DashboardServices.create(cfg, client=backend)
    return main.services


async def until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not reached in time"
        await asyncio.sleep(0.05)


def card_keys(cfg: Config):
    return [vitals_key(cfg), commands_key(cfg), telemetry_key(cfg), logs_key(cfg)]


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_dashboard_renders_backend_data(user: User, cfg: Config):
    backend = healthy_backend()
    await serve(backend, cfg)

    await user.open("/")
    await user.should_see("Acme Robotics Dashboard")
    await user.should_see("Turtle", retries=30)
    await user.should_see("88.5%")
    await user.should_see("Online")
    await user.should_see("No commands sent")
    await user.should_see(kind=ui.html, content="<circle")
    await user.should_not_see("No logs collected")


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_cards_subscribe_once_on_connect_and_release_on_disconnect(user: User, cfg: Config):
    services = await serve(healthy_backend(), cfg)
    keys = card_keys(cfg)

    client = await user.open("/")
    await until(lambda: all(services.cache.subscriber_count(k) == 1 for k in keys))

    (socket_id,) = list(client._socket_to_document_id)
    client.handle_disconnect(socket_id)
    # Disconnect handlers run once the reconnect window has passed
    await until(lambda: all(services.cache.subscriber_count(k) == 0 for k in keys), timeout=6.0)
    assert not any(services.cache.is_in_flight(k) for k in keys)


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_rendered_page_without_socket_holds_no_subscription(user: User, cfg: Config):
    backend = healthy_backend()
    services = await serve(backend, cfg)

    response = await user.http_client.get("/")
    assert response.status_code == 200
    await asyncio.sleep(0.3)

    assert backend.fetches == []
    assert all(services.cache.subscriber_count(k) == 0 for k in card_keys(cfg))


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_loading_until_first_answer_without_duplicate_requests(user: User, cfg: Config):
    backend = healthy_backend()
    backend.gate.clear()
    await serve(backend, cfg)

    await user.open("/")
    await user.should_see("Loading...")
    # Several UI refresh ticks pass while the first requests are parked
    await asyncio.sleep(0.6)
    assert sorted(k.kind.value for k in backend.fetches) == sorted(k.value for k in ResourceKind)

    backend.gate.set()
    await user.should_see("Turtle", retries=30)


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_card_rerenders_only_when_snapshot_changes(user: User, cfg: Config, monkeypatch: MonkeyPatch):
    renders: list[ResourceKind] = []
    original = PollingCard.render_state

    def counting(self, state):
        renders.append(self.key.kind)
        original(self, state)

    monkeypatch.setattr(PollingCard, "render_state", counting)
    # One fetch per key for the whole test
    await serve(healthy_backend(), replace(cfg, REFETCH_INTERVAL_S=30.0))

    await user.open("/")
    await user.should_see("Turtle", retries=30)
    await asyncio.sleep(1.0)

    # Initial placeholder plus the first answer; idle refresh ticks add nothing
    assert renders.count(ResourceKind.VITALS) == 2


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_failure_without_data_shows_error(user: User, cfg: Config):
    await serve(FakeBackend(), cfg)

    await user.open("/")
    await user.should_see("An error occurred...", retries=30)
    await user.should_not_see("Turtle")


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_failure_after_data_keeps_data_with_notice(user: User, cfg: Config):
    backend = healthy_backend()
    await serve(backend, replace(cfg, REFETCH_INTERVAL_S=0.2, REQUEST_TIMEOUT_S=0.1))

    await user.open("/")
    await user.should_see("Turtle", retries=30)
    backend.answers[ResourceKind.VITALS] = FetchResult.failure(ErrorInfo(ErrorKind.REMOTE_REJECTED, status_code=503))

    await user.should_see("Connection problem", retries=30)
    await user.should_see("Turtle")
    await user.should_not_see("An error occurred...")


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_strict_errors_replace_data_with_error(user: User, cfg: Config):
    backend = healthy_backend()
    await serve(backend, replace(cfg, REFETCH_INTERVAL_S=0.2, REQUEST_TIMEOUT_S=0.1, KEEP_STALE_ON_ERROR=False))

    await user.open("/")
    await user.should_see("Turtle", retries=30)
    del backend.answers[ResourceKind.VITALS]

    await user.should_see("An error occurred...", retries=30)
    await user.should_not_see("Turtle")


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_direction_button_posts_command(user: User, cfg: Config):
    backend = healthy_backend()
    await serve(backend, cfg)

    await user.open("/")
    user.find("Forward").click()
    await until(lambda: len(backend.posted) == 1)

    (request,) = backend.posted
    assert request.name == "/turtle1/cmd_vel"
    assert request.payload.linear.x == 2.0
    assert request.payload.angular.z == 0.0


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_click_while_command_in_flight_notifies_busy(user: User, cfg: Config):
    backend = healthy_backend()
    backend.hold_posts.clear()
    services = await serve(backend, cfg)

    await user.open("/")
    user.find("Forward").click()
    await until(lambda: services.dispatcher.in_flight)
    user.find("Left").click()

    await user.should_see("Previous command still in flight", retries=30)
    backend.hold_posts.set()
    await until(lambda: not services.dispatcher.in_flight)
    assert len(backend.posted) == 1


@pytest.mark.integration
@pytest.mark.module_under_test(main)
async def test_rejected_command_notifies_operator(user: User, cfg: Config, caplog: pytest.LogCaptureFixture):
    backend = healthy_backend()
    backend.post_result = FetchResult.failure(ErrorInfo(ErrorKind.REMOTE_REJECTED, status_code=500))
    await serve(backend, cfg)

    await user.open("/")
    user.find("Right").click()

    await user.should_see("Command right failed", retries=30)
    assert "Command right failed" in caplog.text
    # The rejection is expected here; keep it from failing the session check
    caplog.clear()
