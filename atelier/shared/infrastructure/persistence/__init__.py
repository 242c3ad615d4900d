"""Local persistence adapters (DuckDB)."""

from .errors import RecordNotFoundError, StoreError
from .inventory_store import (
    COLLECTIONS,
    HistoryEntry,
    Ingredient,
    InventoryStore,
    PerfumeRecipe,
    ProductionRecord,
    Supply,
    Worker,
)
from .secret_store import SecretStore
from .settings_store import SettingsStore

__all__ = [
    "StoreError",
    "RecordNotFoundError",
    "SettingsStore",
    "SecretStore",
    "InventoryStore",
    "COLLECTIONS",
    "Ingredient",
    "PerfumeRecipe",
    "ProductionRecord",
    "Worker",
    "Supply",
    "HistoryEntry",
]
