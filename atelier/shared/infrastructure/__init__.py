"""
Shared Infrastructure Module
=============================

Technical adapters for external systems (local stores, remote resolver).
"""

# Persistence
from atelier.shared.infrastructure.persistence import (
    InventoryStore,
    RecordNotFoundError,
    SecretStore,
    SettingsStore,
    StoreError,
)

# HTTP
from atelier.shared.infrastructure.http import ResolverClient, TransportError

__all__ = [
    # Persistence
    "StoreError",
    "RecordNotFoundError",
    "SettingsStore",
    "SecretStore",
    "InventoryStore",
    # HTTP
    "ResolverClient",
    "TransportError",
]
