"""Shared fixtures for the gate, store and shell tests."""

from __future__ import annotations

import asyncio
from typing import List, Sequence, Union

import pytest
from cryptography.fernet import Fernet

from atelier.shared.core.configuration import AccessGateConfig
from atelier.shared.core.event_bus import EventBus
from atelier.shared.domain.access import DeviceProfile
from atelier.shared.infrastructure.http import TransportError
from atelier.shared.infrastructure.persistence import SecretStore, SettingsStore

EXPECTED_TOKEN = "TOKEN123"
ENDPOINT = "https://resolver.example/gate.php"


class FakeResolver:
    """Replays scripted outcomes: strings are bodies, exceptions are raised."""

    def __init__(self, outcomes: Sequence[Union[str, Exception]] = ()):
        self.outcomes = list(outcomes)
        self.urls: List[str] = []

    async def fetch_text(self, url) -> str:
        self.urls.append(str(url))
        if not self.outcomes:
            raise TransportError("no scripted outcome")
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def calls(self) -> int:
        return len(self.urls)


class RecordingSleep:
    """Stands in for asyncio.sleep; records delays and yields once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class StatusRecorder:
    """Collects gate.status payloads from the bus."""

    def __init__(self):
        self.phases: List[str] = []
        self.payloads: List[dict] = []

    async def __call__(self, payload: dict) -> None:
        self.payloads.append(payload)
        self.phases.append(payload["phase"])


@pytest.fixture
def gate_config() -> AccessGateConfig:
    return AccessGateConfig(
        validation_token=EXPECTED_TOKEN,
        host_endpoint=ENDPOINT,
        auth_secret="s3cret",
    )


@pytest.fixture
def device() -> DeviceProfile:
    return DeviceProfile(
        os_description="Linux 6.1",
        locale="en",
        device_model="x86_64",
        country="US",
    )


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def settings_store():
    store = SettingsStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def secret_store():
    store = SecretStore(":memory:", key=Fernet.generate_key())
    yield store
    store.close()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
