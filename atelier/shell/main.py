"""Atelier - Main application entry point.

Resolves the access gate for this session and renders the outcome: the
authorized destination, or the local inventory dashboard.
"""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from atelier.shared.core.configuration import (
    LoggingConfig,
    SystemConfig,
    ValidationLevel,
    get_config,
    validate_critical_config,
)
from atelier.shared.core import events
from atelier.shared.core.event_bus import EventBus
from atelier.shared.core.service_registry import register_cleanup_handler, register_service, run_cleanup
from atelier.shared.domain.access import GateAccessManager, detect_device_profile
from atelier.shared.infrastructure.http import ResolverClient
from atelier.shared.infrastructure.persistence import InventoryStore, SecretStore, SettingsStore
from atelier.shell.state import Store

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(config: LoggingConfig) -> Path:
    """File handler at the configured level, console for warnings and up."""
    logs_dir = Path(config.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = logs_dir / "atelier.log"

    file_log_level = LOG_LEVELS.get(config.level.upper(), logging.DEBUG)
    console_log_level = LOG_LEVELS.get(config.console_level.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(file_log_level)
    root_logger.handlers.clear()

    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_log_level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    ))
    root_logger.addHandler(console_handler)

    # Suppress verbose third-party library logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return log_file_path


@dataclass
class Services:
    settings: SettingsStore
    secrets: SecretStore
    inventory: InventoryStore
    resolver: ResolverClient
    gate: GateAccessManager


def build_services(config: SystemConfig, event_bus: EventBus) -> Services:
    """Open the local stores and wire the gate manager."""
    storage = config.storage
    settings = SettingsStore(str(storage.path_for(storage.settings_db)))
    register_cleanup_handler(settings.close)

    secrets = SecretStore(
        str(storage.path_for(storage.secrets_db)),
        key_path=storage.path_for(storage.secret_key_file),
    )
    register_cleanup_handler(secrets.close)

    inventory = InventoryStore(str(storage.path_for(storage.inventory_db)), event_bus)
    register_cleanup_handler(inventory.close)
    if storage.seed_sample_data:
        inventory.seed_sample_data()

    resolver = ResolverClient(timeout=config.access.request_timeout)
    gate = GateAccessManager(
        event_bus,
        config.access,
        settings,
        secrets,
        resolver,
        device_profile=detect_device_profile(config.device),
    )

    for name, service in (
        ("settings_store", settings),
        ("secret_store", secrets),
        ("inventory_store", inventory),
        ("resolver_client", resolver),
        ("gate_manager", gate),
    ):
        register_service(name, service)

    return Services(settings, secrets, inventory, resolver, gate)


def render_destination(console: Console, destination: str) -> None:
    console.print(Panel(destination, title="Destination", border_style="green"))


def render_inventory(console: Console, inventory: InventoryStore) -> None:
    table = Table(title="Workshop Inventory")
    table.add_column("Collection")
    table.add_column("Records", justify="right")
    for collection, count in inventory.counts().items():
        table.add_row(collection.replace("_", " ").title(), str(count))
    console.print(table)

    low_stock = [item.name for item in inventory.list("ingredients") if item.needs_reorder]
    if low_stock:
        console.print(f"[yellow]Reorder soon:[/yellow] {', '.join(low_stock)}")


async def run_session(config: SystemConfig, console: Optional[Console] = None) -> str:
    """Run one gate session and render its outcome; returns the final phase."""
    console = console or Console()
    event_bus = EventBus()
    Store.reset()
    store = Store.initialize(event_bus)
    await store.gate.initialize()

    if not validate_critical_config(config):
        logger.error("Access gate configuration is incomplete, the gate will fall back")
        await event_bus.publish(events.TOPIC_LOGS_EVENT, events.create_logs_event(
            "Access gate configuration incomplete", level="warning",
        ))

    services = build_services(config, event_bus)
    try:
        with console.status("Checking access..."):
            await services.gate.begin_access()
            await services.gate.wait_until_resolved()
            await services.inventory.wait_until_notified()
            await event_bus.wait_until_idle()

        if store.gate.active_destination:
            render_destination(console, store.gate.active_destination)
        elif store.gate.show_local:
            render_inventory(console, services.inventory)
        return services.gate.status.phase
    finally:
        await services.gate.cancel()
        await services.resolver.aclose()


def main() -> None:
    """Console entry point."""
    load_dotenv()
    config = get_config(ValidationLevel.LENIENT)
    log_file_path = configure_logging(config.logging)
    logger.info(f"Logging configured: file={log_file_path}, console={config.logging.console_level}+")

    try:
        asyncio.run(run_session(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        run_cleanup()


if __name__ == "__main__":
    main()
