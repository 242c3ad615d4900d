"""Gate Screen State.

Mirrors the access gate status into the three values the shell renders:
a busy indicator, the active destination, and whether the local inventory
dashboard should be shown.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from atelier.shared.core import events
from atelier.shared.core.event_bus import EventBus, EventPayload


class GateState:
    """Observable state for the gate screen.

    Subscribes to ``gate.status`` events on the EventBus. Each transition
    also sets ``changed`` so the shell can wait for the next update.
    """

    def __init__(self, event_bus: EventBus) -> None:
        """Initialize gate screen state.

        Args:
            event_bus: The shared event bus for cross-cutting concerns
        """
        self.bus = event_bus

        self.phase: str = "idle"
        self.busy: bool = True
        self.active_destination: Optional[str] = None

        # Log entries (each is a dict: {message, level, ts})
        self.logs: List[Dict[str, Any]] = []
        self.max_logs = 200

        self.changed = asyncio.Event()
        self._started = False

    @property
    def show_local(self) -> bool:
        """True once resolution settled without a destination."""
        return self.active_destination is None and not self.busy

    @property
    def settled(self) -> bool:
        return self.phase in ("authorized", "fallback")

    async def initialize(self) -> None:
        """Bind to EventBus events. Safe to call more than once."""
        if self._started:
            return

        await self.bus.subscribe(events.TOPIC_GATE_STATUS, self._handle_gate_status)
        await self.bus.subscribe(events.TOPIC_LOGS_EVENT, self._handle_logs_event)
        self._started = True

    async def wait_for_change(self) -> None:
        await self.changed.wait()
        self.changed.clear()

    # --- Event Handlers ---

    async def _handle_gate_status(self, payload: EventPayload) -> None:
        phase = payload.get("phase")
        if phase == "validating":
            self.busy = True
        elif phase == "authorized":
            self.active_destination = payload.get("destination")
            self.busy = False
        elif phase == "fallback":
            self.active_destination = None
            self.busy = False
        else:
            return

        self.phase = phase
        self.changed.set()

    async def _handle_logs_event(self, payload: EventPayload) -> None:
        self.logs.append({
            "message": payload.get("message", ""),
            "level": payload.get("level", "info"),
            "ts": payload.get("ts"),
        })
        if len(self.logs) > self.max_logs:
            del self.logs[: len(self.logs) - self.max_logs]
