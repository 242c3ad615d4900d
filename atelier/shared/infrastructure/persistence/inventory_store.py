"""Inventory Record Store for the perfume workshop.

Keeps ingredients, recipes, production records, workers, supplies and the
change history as JSON payloads in a single DuckDB table, one row per
record. This is the local experience shown when the access gate falls back.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Type, Union
from uuid import UUID, uuid4

import duckdb
from pydantic import BaseModel, Field, ValidationError

from atelier.shared.core import events
from atelier.shared.core.event_bus import EventBus

from .errors import StoreError
from .settings_store import connect_database

logger = logging.getLogger(__name__)


class Ingredient(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    category: str
    scent_note: str
    supplier_name: str = ""
    batch_code: str = ""
    origin_country: str = ""
    storage_location: str = ""
    quantity_ml: float = Field(default=0.0, ge=0.0)
    reorder_level: float = Field(default=0.0, ge=0.0)
    cost_per_ml: float = Field(default=0.0, ge=0.0)
    expiry_date: Optional[datetime] = None
    received_date: datetime = Field(default_factory=datetime.now)

    @property
    def needs_reorder(self) -> bool:
        return self.quantity_ml <= self.reorder_level

    @property
    def total_stock_value(self) -> float:
        return self.quantity_ml * self.cost_per_ml


class PerfumeRecipe(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    creator_name: str = ""
    fragrance_family: str = ""
    top_notes: List[str] = Field(default_factory=list)
    middle_notes: List[str] = Field(default_factory=list)
    base_notes: List[str] = Field(default_factory=list)
    concentration_type: str = ""
    total_volume_ml: float = Field(default=0.0, ge=0.0)
    alcohol_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    allergens: List[str] = Field(default_factory=list)
    unique_code: str = ""
    created_at: datetime = Field(default_factory=datetime.now)


class ProductionRecord(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    record_number: str
    perfume_name: str
    batch_number: str
    production_date: datetime = Field(default_factory=datetime.now)
    total_volume_produced: float = Field(default=0.0, ge=0.0)
    total_cost: float = Field(default=0.0, ge=0.0)
    supervisor_name: str = ""
    bottles_filled: int = Field(default=0, ge=0)
    quality_check_passed: bool = False
    remarks: str = ""


class Worker(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    employee_id: str
    role: str
    department: str = ""
    join_date: datetime = Field(default_factory=datetime.now)
    shift_time: str = ""
    hourly_rate: float = Field(default=0.0, ge=0.0)
    total_hours_worked: float = Field(default=0.0, ge=0.0)
    is_active: bool = True
    certifications: List[str] = Field(default_factory=list)


class Supply(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    supply_id: str
    item_name: str
    supplier_name: str = ""
    received_date: datetime = Field(default_factory=datetime.now)
    quantity_received: int = Field(default=0, ge=0)
    unit_type: str = "pcs"
    unit_cost: float = Field(default=0.0, ge=0.0)
    stock_available: int = Field(default=0, ge=0)
    reorder_threshold: int = Field(default=0, ge=0)
    payment_status: str = ""
    delivery_status: str = ""

    @property
    def total_cost(self) -> float:
        return self.quantity_received * self.unit_cost


class HistoryEntry(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    record_type: str
    record_title: str
    description: str = ""
    change_type: str = ""
    previous_value: str = ""
    new_value: str = ""
    created_by: str = ""
    logged_at: datetime = Field(default_factory=datetime.now)
    is_archived: bool = False


InventoryRecord = Union[Ingredient, PerfumeRecipe, ProductionRecord, Worker, Supply, HistoryEntry]

COLLECTIONS: Dict[str, Type[BaseModel]] = {
    "ingredients": Ingredient,
    "recipes": PerfumeRecipe,
    "production_records": ProductionRecord,
    "workers": Worker,
    "supplies": Supply,
    "histories": HistoryEntry,
}

_COLLECTION_BY_MODEL = {model: name for name, model in COLLECTIONS.items()}


def collection_for(record: BaseModel) -> str:
    """Return the collection name a record model is stored under."""
    try:
        return _COLLECTION_BY_MODEL[type(record)]
    except KeyError:
        raise ValueError(f"Unsupported inventory record type: {type(record).__name__}") from None


class InventoryStore:
    """Add/delete/list access to the workshop inventory collections."""

    def __init__(self, db_path: str = ":memory:", event_bus: Optional[EventBus] = None):
        self.db_path = db_path
        self.event_bus = event_bus
        self._pending_tasks: set[asyncio.Task] = set()
        self.conn: Optional[duckdb.DuckDBPyConnection] = connect_database(db_path)
        self._create_schema()
        logger.info(f"Inventory store initialized: {self.db_path}")

    def _create_schema(self) -> None:
        self.conn.execute("""
            CREATE SEQUENCE IF NOT EXISTS inventory_seq START 1
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS inventory_records (
                id VARCHAR PRIMARY KEY,
                seq BIGINT DEFAULT nextval('inventory_seq'),
                collection VARCHAR NOT NULL,
                payload_json TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_inventory_collection ON inventory_records(collection)
        """)

    def _connection(self) -> duckdb.DuckDBPyConnection:
        if self.conn is None:
            raise StoreError(f"Inventory store is closed: {self.db_path}")
        return self.conn

    def add(self, record: InventoryRecord) -> InventoryRecord:
        """Append a record to its collection."""
        collection = collection_for(record)
        try:
            self._connection().execute(
                """
                INSERT INTO inventory_records (id, collection, payload_json)
                VALUES (?, ?, ?)
                """,
                (str(record.id), collection, record.model_dump_json()),
            )
        except duckdb.Error as e:
            raise StoreError(f"Failed to add {collection} record {record.id}: {e}") from e

        logger.debug(f"Added {collection} record {record.id}")
        self._notify(events.create_inventory_changed_event(collection, "add", [str(record.id)]))
        return record

    def delete(self, collection: str, ids: Iterable[Union[UUID, str]]) -> int:
        """Delete records by id from a collection; returns the number removed."""
        self._check_collection(collection)
        id_list = [str(record_id) for record_id in ids]
        if not id_list:
            return 0

        placeholders = ", ".join("?" for _ in id_list)
        conn = self._connection()
        try:
            removed = conn.execute(
                f"SELECT count(*) FROM inventory_records WHERE collection = ? AND id IN ({placeholders})",
                [collection, *id_list],
            ).fetchone()[0]
            conn.execute(
                f"DELETE FROM inventory_records WHERE collection = ? AND id IN ({placeholders})",
                [collection, *id_list],
            )
        except duckdb.Error as e:
            raise StoreError(f"Failed to delete {collection} records: {e}") from e

        if removed:
            self._notify(events.create_inventory_changed_event(collection, "delete", id_list))
        return removed

    def list(self, collection: str) -> List[InventoryRecord]:
        """Return a collection's records in insertion order."""
        model = self._check_collection(collection)
        try:
            rows = self._connection().execute(
                """
                SELECT payload_json FROM inventory_records
                WHERE collection = ?
                ORDER BY seq
                """,
                (collection,),
            ).fetchall()
        except duckdb.Error as e:
            raise StoreError(f"Failed to list {collection}: {e}") from e

        records = []
        for (payload,) in rows:
            try:
                records.append(model.model_validate_json(payload))
            except ValidationError as e:
                # Unreadable rows are skipped so one bad payload does not hide the collection
                logger.warning(f"Skipping unreadable {collection} record: {e}")
        return records

    def counts(self) -> Dict[str, int]:
        """Record count per collection, including empty collections."""
        result = {name: 0 for name in COLLECTIONS}
        rows = self._connection().execute(
            "SELECT collection, count(*) FROM inventory_records GROUP BY collection"
        ).fetchall()
        for collection, count in rows:
            if collection in result:
                result[collection] = count
        return result

    def seed_sample_data(self) -> bool:
        """Load one sample record per collection into an empty store."""
        if any(self.counts().values()):
            return False

        now = datetime.now()
        self.add(Ingredient(
            name="Rose Oil", category="Essential Oil", scent_note="Middle",
            supplier_name="FloraEssence", batch_code="R001", origin_country="France",
            storage_location="Shelf A1", quantity_ml=200, reorder_level=50, cost_per_ml=2.5,
            expiry_date=now + timedelta(days=365), received_date=now,
        ))
        self.add(PerfumeRecipe(
            name="Blossom Mist", creator_name="Manu", fragrance_family="Floral",
            top_notes=["Bergamot", "Lemon"], middle_notes=["Rose", "Jasmine"], base_notes=["Musk"],
            concentration_type="Eau de Parfum", total_volume_ml=50, alcohol_percentage=70,
            allergens=["Linalool"], unique_code="BM-2025",
        ))
        self.add(ProductionRecord(
            record_number="PR001", perfume_name="Blossom Mist", batch_number="BATCH-A1",
            total_volume_produced=500, total_cost=1200, supervisor_name="Alex",
            bottles_filled=100, quality_check_passed=True, remarks="Successful batch",
        ))
        self.add(Worker(
            name="Sara Khan", employee_id="W001", role="Perfumer", department="Production",
            join_date=now - timedelta(days=23), shift_time="Morning", hourly_rate=15,
            total_hours_worked=1200, certifications=["Aromachemistry", "Safety"],
        ))
        self.add(Supply(
            supply_id="S001", item_name="Glass Bottles", supplier_name="PurePack Ltd.",
            quantity_received=500, unit_cost=0.5, stock_available=400, reorder_threshold=100,
            payment_status="Paid", delivery_status="Delivered",
        ))
        self.add(HistoryEntry(
            record_type="System", record_title="App Initialized",
            description="Initial sample data loaded", change_type="Initialization",
            new_value="Created", created_by="System",
        ))
        logger.info("Seeded inventory with sample data")
        return True

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _check_collection(self, collection: str) -> Type[BaseModel]:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(
                f"Unknown collection: {collection}. Supported: {list(COLLECTIONS)}"
            ) from None

    def _notify(self, payload: events.EventPayload) -> None:
        if self.event_bus is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to deliver on (synchronous scripts)
            return
        task = loop.create_task(self.event_bus.publish(events.TOPIC_INVENTORY_CHANGED, payload))
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    async def wait_until_notified(self) -> None:
        """Wait for queued change notifications to reach the event bus."""
        while self._pending_tasks:
            await asyncio.gather(*list(self._pending_tasks), return_exceptions=True)
