"""
Shared Core Module
==================

Event system, configuration, and service registry.
"""

# Event System
from .event_bus import EventBus, EventPayload
from . import events

# Service Registry
from .service_registry import (
    register_service,
    get_service,
    get_services,
    clear_services,
    register_cleanup_handler,
    run_cleanup,
)

# Configuration
from .configuration import (
    AccessGateConfig,
    ConfigManager,
    DeviceConfig,
    LoggingConfig,
    StorageConfig,
    SystemConfig,
    get_config_manager,
    get_config,
    validate_critical_config,
    ValidationLevel,
)

__all__ = [
    # Event System
    "EventBus",
    "EventPayload",
    "events",
    # Service Registry
    "register_service",
    "get_service",
    "get_services",
    "clear_services",
    "register_cleanup_handler",
    "run_cleanup",
    # Configuration
    "AccessGateConfig",
    "ConfigManager",
    "DeviceConfig",
    "LoggingConfig",
    "StorageConfig",
    "SystemConfig",
    "get_config_manager",
    "get_config",
    "validate_critical_config",
    "ValidationLevel",
]
