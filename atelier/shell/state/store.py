"""Global State Store - Service Locator Pattern.

Provides centralized access to shell state from any component.
"""

from __future__ import annotations

from typing import Optional

from .gate_state import GateState
from atelier.shared.core.event_bus import EventBus


class Store:
    """Global state store for the shell.

    Usage:
        # During app initialization
        Store.initialize(event_bus)

        # Anywhere in the shell
        store = Store.get()
        store.gate.active_destination
    """

    _instance: Optional['Store'] = None

    def __init__(self, event_bus: EventBus) -> None:
        """Initialize store with event bus.

        Note: Do not call directly. Use Store.initialize() instead.
        """
        self.bus = event_bus
        self.gate = GateState(event_bus)

    @classmethod
    def initialize(cls, event_bus: EventBus) -> 'Store':
        """Initialize the global store instance.

        Raises:
            RuntimeError: If store is already initialized
        """
        if cls._instance is not None:
            raise RuntimeError("Store already initialized!")

        cls._instance = cls(event_bus)
        return cls._instance

    @classmethod
    def get(cls) -> 'Store':
        """Get the global store instance.

        Raises:
            RuntimeError: If store has not been initialized
        """
        if cls._instance is None:
            raise RuntimeError("Store not initialized! Call Store.initialize() first.")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the store instance. Primarily used for testing."""
        cls._instance = None
