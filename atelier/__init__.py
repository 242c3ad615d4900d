"""Atelier package."""

from .shared.core.event_bus import EventBus
from .shell.state import GateState, Store

__all__ = ["Store", "GateState", "EventBus"]
