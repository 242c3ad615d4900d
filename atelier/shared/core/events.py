"""Canonical event definitions for Atelier."""

from __future__ import annotations

import time
from typing import Any, Dict, Literal, Optional

from .event_bus import EventPayload

# Event Topics
TOPIC_LOGS_EVENT = "logs.event"
TOPIC_GATE_STATUS = "gate.status"
TOPIC_INVENTORY_CHANGED = "inventory.changed"


def create_gate_status_event(
    phase: str,
    token: Optional[str] = None,
    destination: Optional[str] = None,
) -> EventPayload:
    """Create a gate status event.

    Args:
        phase: One of "idle", "validating", "authorized", "fallback"
        token: Validation token, only for "authorized"
        destination: Resolved destination URL, only for "authorized"
    """
    return {
        "phase": phase,
        "token": token,
        "destination": destination,
        "ts": time.time(),
    }


def create_logs_event(
    message: str,
    level: Literal["info", "warning", "error", "success"] = "info",
    topic: str | None = None,
) -> EventPayload:
    """Create a Log event."""
    return {
        "message": message,
        "level": level,
        "topic": topic,
        "ts": time.time(),
    }


def create_inventory_changed_event(
    collection: str,
    action: Literal["add", "delete", "seed"],
    ids: list[str] | None = None,
) -> EventPayload:
    """Create an inventory change event."""
    event: Dict[str, Any] = {
        "collection": collection,
        "action": action,
    }
    if ids:
        event["ids"] = ids
    return event
