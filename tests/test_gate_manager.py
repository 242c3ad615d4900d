"""Access gate state machine behaviour."""

import asyncio

import pytest
from httpx import URL

from atelier.shared.core import events
from atelier.shared.domain.access import (
    Authorized,
    Fallback,
    GateAccessManager,
    Idle,
    Validating,
)
from atelier.shared.infrastructure.http import TransportError
from atelier.shared.infrastructure.persistence import RecordNotFoundError, StoreError

from conftest import EXPECTED_TOKEN, FakeResolver, StatusRecorder

DESTINATION = "https://dest.example/x"


def make_manager(event_bus, config, settings_store, secret_store, resolver, device, sleep):
    return GateAccessManager(
        event_bus,
        config,
        settings_store,
        secret_store,
        resolver,
        device_profile=device,
        sleep=sleep,
    )


@pytest.fixture
def build(event_bus, gate_config, settings_store, secret_store, device, recording_sleep):
    def _build(resolver, **overrides):
        return make_manager(
            event_bus,
            overrides.get("config", gate_config),
            overrides.get("settings", settings_store),
            overrides.get("secrets", secret_store),
            resolver,
            device,
            recording_sleep,
        )
    return _build


@pytest.mark.asyncio
async def test_starts_idle(build):
    manager = build(FakeResolver())
    assert manager.status == Idle()
    assert not manager.in_flight


@pytest.mark.asyncio
async def test_valid_cache_authorizes_without_network(build, gate_config, settings_store, secret_store, event_bus):
    settings_store.set(gate_config.cached_url_key, DESTINATION)
    secret_store.store(gate_config.cached_token_key, EXPECTED_TOKEN)
    recorder = StatusRecorder()
    await event_bus.subscribe(events.TOPIC_GATE_STATUS, recorder)
    resolver = FakeResolver([f"{EXPECTED_TOKEN}#https://other.example"])
    manager = build(resolver)

    task = await manager.begin_access()
    await event_bus.wait_until_idle()

    assert task is None
    assert manager.status == Authorized(token=EXPECTED_TOKEN, destination=DESTINATION)
    assert resolver.calls == 0
    assert recorder.phases == ["authorized"]
    assert recorder.payloads[0]["destination"] == DESTINATION


@pytest.mark.asyncio
async def test_stale_cached_token_is_ignored_not_deleted(build, gate_config, settings_store, secret_store):
    settings_store.set(gate_config.cached_url_key, DESTINATION)
    secret_store.store(gate_config.cached_token_key, "OLDTOKEN")
    resolver = FakeResolver(["WRONG#https://dest.example/y"])
    manager = build(resolver)

    await manager.begin_access()
    status = await manager.wait_until_resolved()

    assert resolver.calls == 1
    assert status == Fallback()
    assert settings_store.get(gate_config.cached_url_key) == DESTINATION
    assert secret_store.retrieve(gate_config.cached_token_key) == "OLDTOKEN"


@pytest.mark.asyncio
@pytest.mark.parametrize("cached", ["not a url", "https://xn--/x"])
async def test_cached_destination_must_parse_as_url(build, gate_config, settings_store, secret_store, cached):
    settings_store.set(gate_config.cached_url_key, cached)
    secret_store.store(gate_config.cached_token_key, EXPECTED_TOKEN)
    resolver = FakeResolver([f"{EXPECTED_TOKEN}#{DESTINATION}"])
    manager = build(resolver)

    await manager.begin_access()
    status = await manager.wait_until_resolved()

    assert resolver.calls == 1
    assert status == Authorized(token=EXPECTED_TOKEN, destination=DESTINATION)


@pytest.mark.asyncio
async def test_missing_token_triggers_resolution(build, gate_config, settings_store, secret_store):
    settings_store.set(gate_config.cached_url_key, DESTINATION)
    with pytest.raises(RecordNotFoundError):
        secret_store.retrieve(gate_config.cached_token_key)
    resolver = FakeResolver(["WRONG#x"])
    manager = build(resolver)

    await manager.begin_access()
    await manager.wait_until_resolved()

    assert resolver.calls == 1


@pytest.mark.asyncio
async def test_valid_response_authorizes_and_persists(build, gate_config, settings_store, secret_store, event_bus):
    recorder = StatusRecorder()
    await event_bus.subscribe(events.TOPIC_GATE_STATUS, recorder)
    resolver = FakeResolver([f"  {EXPECTED_TOKEN}#{DESTINATION}\n"])
    manager = build(resolver)

    await manager.begin_access()
    status = await manager.wait_until_resolved()
    await event_bus.wait_until_idle()

    assert status == Authorized(token=EXPECTED_TOKEN, destination=DESTINATION)
    assert settings_store.get(gate_config.cached_url_key) == DESTINATION
    assert secret_store.retrieve(gate_config.cached_token_key) == EXPECTED_TOKEN
    assert recorder.phases == ["validating", "authorized"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    f"WRONG#{DESTINATION}",
    f"{EXPECTED_TOKEN}",
    f"{EXPECTED_TOKEN}#{DESTINATION}#extra",
    f"{EXPECTED_TOKEN}#not a url",
    f"{EXPECTED_TOKEN}#https://xn--/x",
    f"{EXPECTED_TOKEN}#",
    "",
])
async def test_rejected_response_falls_back_without_writes(build, gate_config, settings_store, secret_store, recording_sleep, body):
    resolver = FakeResolver([body])
    manager = build(resolver)

    await manager.begin_access()
    status = await manager.wait_until_resolved()

    assert status == Fallback()
    assert resolver.calls == 1
    assert recording_sleep.delays == []
    assert settings_store.get(gate_config.cached_url_key) is None
    with pytest.raises(RecordNotFoundError):
        secret_store.retrieve(gate_config.cached_token_key)


@pytest.mark.asyncio
async def test_transport_failures_back_off_then_authorize(build, recording_sleep):
    resolver = FakeResolver([
        TransportError("connect failed"),
        TransportError("timed out"),
        f"{EXPECTED_TOKEN}#{DESTINATION}",
    ])
    manager = build(resolver)

    await manager.begin_access()
    status = await manager.wait_until_resolved()

    assert status == Authorized(token=EXPECTED_TOKEN, destination=DESTINATION)
    assert resolver.calls == 3
    assert recording_sleep.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_transport_failures_retry_until_cancelled(build, recording_sleep):
    resolver = FakeResolver([TransportError("offline")])
    manager = build(resolver)

    await manager.begin_access()
    while len(recording_sleep.delays) < 8:
        await asyncio.sleep(0)
    await manager.cancel()

    assert recording_sleep.delays[:8] == [2.0, 4.0, 8.0, 16.0, 30.0, 30.0, 30.0, 30.0]
    assert manager.status == Validating()
    assert not manager.in_flight


@pytest.mark.asyncio
async def test_begin_access_twice_starts_one_resolution(build):
    resolver = FakeResolver([f"{EXPECTED_TOKEN}#{DESTINATION}"])
    manager = build(resolver)

    first = await manager.begin_access()
    second = await manager.begin_access()
    await manager.wait_until_resolved()
    third = await manager.begin_access()

    assert first is second is third
    assert resolver.calls == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint", ["not-a-url", "https://xn--"])
async def test_malformed_endpoint_falls_back_without_network(build, gate_config, endpoint):
    config = gate_config.model_copy(update={"host_endpoint": endpoint})
    resolver = FakeResolver([f"{EXPECTED_TOKEN}#{DESTINATION}"])
    manager = build(resolver, config=config)

    await manager.begin_access()
    status = await manager.wait_until_resolved()

    assert status == Fallback()
    assert resolver.calls == 0


@pytest.mark.asyncio
async def test_request_carries_device_parameters(build):
    resolver = FakeResolver([f"{EXPECTED_TOKEN}#{DESTINATION}"])
    manager = build(resolver)

    await manager.begin_access()
    await manager.wait_until_resolved()

    url = URL(resolver.urls[0])
    assert url.host == "resolver.example"
    assert url.path == "/gate.php"
    assert url.params["p"] == "s3cret"
    assert url.params["os"] == "Linux 6.1"
    assert url.params["lng"] == "en"
    assert url.params["devicemodel"] == "x86_64"
    assert url.params["country"] == "US"


class FailingSecretStore:
    def store(self, key, value):
        raise StoreError("keychain locked")

    def retrieve(self, key):
        raise RecordNotFoundError(key)


@pytest.mark.asyncio
async def test_secret_write_failure_still_authorizes(build, gate_config, settings_store):
    resolver = FakeResolver([f"{EXPECTED_TOKEN}#{DESTINATION}"])
    manager = build(resolver, secrets=FailingSecretStore())

    await manager.begin_access()
    status = await manager.wait_until_resolved()

    assert status == Authorized(token=EXPECTED_TOKEN, destination=DESTINATION)
    assert settings_store.get(gate_config.cached_url_key) == DESTINATION


@pytest.mark.asyncio
async def test_second_session_uses_cache(event_bus, gate_config, settings_store, secret_store, device, recording_sleep):
    first = make_manager(
        event_bus, gate_config, settings_store, secret_store,
        FakeResolver([f"{EXPECTED_TOKEN}#{DESTINATION}"]), device, recording_sleep,
    )
    await first.begin_access()
    await first.wait_until_resolved()

    resolver = FakeResolver([TransportError("offline")])
    second = make_manager(event_bus, gate_config, settings_store, secret_store, resolver, device, recording_sleep)
    await second.begin_access()

    assert second.status == Authorized(token=EXPECTED_TOKEN, destination=DESTINATION)
    assert resolver.calls == 0
