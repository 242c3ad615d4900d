"""Event bus delivery, shell state and the console session."""

import io

import pytest
from rich.console import Console

from atelier.shared.core import events
from atelier.shared.core.configuration import SystemConfig
from atelier.shared.core.event_bus import EventBus
from atelier.shared.core.service_registry import clear_services, get_service, run_cleanup
from atelier.shell.main import run_session
from atelier.shell.state import GateState, Store


@pytest.mark.asyncio
async def test_event_bus_isolates_failing_handler():
    bus = EventBus()
    received = []

    async def broken(payload):
        raise RuntimeError("boom")

    async def working(payload):
        received.append(payload)

    await bus.subscribe("t", broken)
    await bus.subscribe("t", working)
    await bus.publish("t", {"n": 1})

    assert await bus.wait_until_idle()
    assert received == [{"n": 1}]


@pytest.mark.asyncio
async def test_event_bus_unsubscribe():
    bus = EventBus()
    received = []

    async def handler(payload):
        received.append(payload)

    await bus.subscribe("t", handler)
    await bus.subscribe("t", handler)
    await bus.unsubscribe("t", handler)
    await bus.publish("t", {})
    await bus.wait_until_idle()

    assert received == []


@pytest.mark.asyncio
async def test_gate_state_follows_status_events():
    bus = EventBus()
    state = GateState(bus)
    await state.initialize()
    assert state.busy and not state.show_local

    await bus.publish(events.TOPIC_GATE_STATUS, events.create_gate_status_event("validating"))
    await bus.wait_until_idle()
    assert state.busy
    assert state.phase == "validating"

    await bus.publish(events.TOPIC_GATE_STATUS, events.create_gate_status_event(
        "authorized", token="T", destination="https://dest.example/x",
    ))
    await bus.wait_until_idle()
    assert state.active_destination == "https://dest.example/x"
    assert not state.busy
    assert not state.show_local
    assert state.settled


@pytest.mark.asyncio
async def test_gate_state_fallback_shows_local():
    bus = EventBus()
    state = GateState(bus)
    await state.initialize()

    await bus.publish(events.TOPIC_GATE_STATUS, events.create_gate_status_event("fallback"))
    await state.wait_for_change()

    assert state.show_local
    assert state.active_destination is None


@pytest.mark.asyncio
async def test_gate_state_ignores_idle_and_caps_logs():
    bus = EventBus()
    state = GateState(bus)
    state.max_logs = 3
    await state.initialize()

    await bus.publish(events.TOPIC_GATE_STATUS, events.create_gate_status_event("idle"))
    for n in range(5):
        await bus.publish(events.TOPIC_LOGS_EVENT, events.create_logs_event(f"m{n}"))
    await bus.wait_until_idle()

    assert state.phase == "idle"
    assert not state.changed.is_set()
    assert [entry["message"] for entry in state.logs] == ["m2", "m3", "m4"]


def test_store_singleton_lifecycle():
    Store.reset()
    store = Store.initialize(EventBus())
    assert Store.get() is store
    with pytest.raises(RuntimeError):
        Store.initialize(EventBus())
    Store.reset()
    with pytest.raises(RuntimeError):
        Store.get()


@pytest.mark.asyncio
async def test_unconfigured_session_falls_back_to_inventory(tmp_path):
    config = SystemConfig(storage={"data_dir": str(tmp_path / "data")})
    output = io.StringIO()
    console = Console(file=output, width=100, force_terminal=False)

    try:
        phase = await run_session(config, console)
        inventory = get_service("inventory_store")
        assert inventory.counts()["ingredients"] == 1
    finally:
        run_cleanup()
        clear_services()
        Store.reset()

    assert phase == "fallback"
    assert Store._instance is None
    rendered = output.getvalue()
    assert "Workshop Inventory" in rendered
    assert "Ingredients" in rendered
    assert (tmp_path / "data" / "secret.key").exists()
