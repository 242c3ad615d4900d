"""Access Gate resolution state machine.

Decides once per session whether the shell shows a remote destination or the
local inventory experience:

    Idle ──cache hit──────────────────────────────► Authorized
    Idle ──► Validating ──valid response──────────► Authorized
                        ──rejected response/URL───► Fallback

Transport failures never leave ``Validating``; the loop sleeps with capped
exponential backoff and tries again until it gets an answer or is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from atelier.shared.core import events
from atelier.shared.core.configuration import AccessGateConfig
from atelier.shared.core.event_bus import EventBus
from atelier.shared.infrastructure.http.resolver_client import TransportError
from atelier.shared.infrastructure.persistence.errors import StoreError

from .backoff import backoff_delay
from .request import DeviceProfile, RequestConstructionError, ResolutionRequest, detect_device_profile
from .response import parse_destination, parse_resolution_response
from .status import Authorized, Fallback, GateStatus, Idle, Validating, is_terminal

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class SettingsBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...


class SecretBackend(Protocol):
    def store(self, key: str, value: str) -> None: ...
    def retrieve(self, key: str) -> str: ...


class TextFetcher(Protocol):
    async def fetch_text(self, url) -> str: ...


class GateAccessManager:
    """Owns the gate status and the single resolution task of a session."""

    def __init__(
        self,
        event_bus: EventBus,
        config: AccessGateConfig,
        settings_store: SettingsBackend,
        secret_store: SecretBackend,
        resolver: TextFetcher,
        device_profile: Optional[DeviceProfile] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.event_bus = event_bus
        self.config = config
        self.settings_store = settings_store
        self.secret_store = secret_store
        self.resolver = resolver
        self.device_profile = device_profile
        self._sleep = sleep

        self._status: GateStatus = Idle()
        self._task: Optional[asyncio.Task] = None
        self._started = False

    @property
    def status(self) -> GateStatus:
        return self._status

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def begin_access(self) -> Optional[asyncio.Task]:
        """Start access resolution for this session.

        A valid cached token/destination pair authorizes immediately without
        touching the network. Otherwise resolution runs as a background task,
        which is returned. Repeated calls never start a second resolution.
        """
        if self._started:
            logger.debug(f"begin_access ignored, gate already {self._status.phase}")
            return self._task
        self._started = True

        cached = self._load_cached_access()
        if cached is not None:
            logger.info("Cached access is valid, skipping resolution")
            await self._transition(cached)
            return None

        self._task = asyncio.create_task(self._resolve(), name="gate-resolution")
        return self._task

    async def wait_until_resolved(self, timeout: Optional[float] = None) -> GateStatus:
        """Wait for the in-flight resolution (if any) and return the status."""
        if self._task is not None and not self._task.done():
            await asyncio.wait_for(asyncio.shield(self._task), timeout)
        return self._status

    async def cancel(self) -> None:
        """Stop the retry loop; the status stays where it is."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info(f"Gate resolution cancelled while {self._status.phase}")

    def _load_cached_access(self) -> Optional[Authorized]:
        """Return the cached pair if both halves exist and the token is current.

        A stale pair is ignored, never deleted.
        """
        try:
            cached_destination = self.settings_store.get(self.config.cached_url_key)
        except StoreError as e:
            logger.warning(f"Could not read cached destination: {e}")
            return None
        if cached_destination is None or parse_destination(cached_destination) is None:
            return None

        try:
            cached_token = self.secret_store.retrieve(self.config.cached_token_key)
        except StoreError as e:
            logger.debug(f"No usable cached token: {e}")
            return None

        if cached_token != self.config.validation_token:
            logger.info("Cached token is stale, resolving again")
            return None

        return Authorized(token=cached_token, destination=cached_destination)

    async def _resolve(self) -> None:
        await self._transition(Validating())

        try:
            device = self.device_profile or detect_device_profile()
            url = ResolutionRequest.from_config(self.config, device).to_url()
        except RequestConstructionError as e:
            logger.error(f"Cannot build resolution request: {e}")
            await self._transition(Fallback())
            return

        attempt = 0
        while True:
            attempt += 1
            try:
                content = await self.resolver.fetch_text(url)
            except TransportError as e:
                delay = backoff_delay(
                    attempt,
                    base=self.config.backoff_base,
                    max_exponent=self.config.backoff_max_exponent,
                    cap=self.config.backoff_cap_seconds,
                )
                logger.warning(f"Resolution attempt {attempt} failed ({e}), retrying in {delay:.0f}s")
                await self._sleep(delay)
                continue

            result = parse_resolution_response(content, self.config.validation_token)
            if result is None:
                await self._transition(Fallback())
                return

            self._persist(result.token, result.destination)
            await self._transition(Authorized(token=result.token, destination=result.destination))
            return

    def _persist(self, token: str, destination: str) -> None:
        """Best-effort write of the validated pair; failures are logged only."""
        try:
            self.settings_store.set(self.config.cached_url_key, destination)
        except StoreError as e:
            logger.error(f"Could not cache destination: {e}")
        try:
            self.secret_store.store(self.config.cached_token_key, token)
        except StoreError as e:
            logger.warning(f"Could not cache validation token: {e}")

    async def _transition(self, status: GateStatus) -> None:
        if is_terminal(self._status):
            logger.warning(f"Ignoring transition to {status.phase}, gate already {self._status.phase}")
            return

        logger.info(f"Gate status: {self._status.phase} -> {status.phase}")
        self._status = status
        payload = events.create_gate_status_event(
            status.phase,
            token=getattr(status, "token", None),
            destination=getattr(status, "destination", None),
        )
        await self.event_bus.publish(events.TOPIC_GATE_STATUS, payload)
