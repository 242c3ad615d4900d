"""Service registry for cross-module access to initialized services."""

from __future__ import annotations

import atexit
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Global registry for long-lived services (stores, clients, gate manager)
_services: Dict[str, Any] = {}

# Global cleanup management
_cleanup_registered = False
_cleanup_handlers: List[Callable[[], None]] = []


def register_service(service_name: str, service: Any) -> None:
    """Register a service under a well-known name."""
    _services[service_name] = service


def get_service(service_name: str) -> Optional[Any]:
    """Get a registered service, or None."""
    return _services.get(service_name)


def get_services() -> Dict[str, Any]:
    """Get all registered services."""
    return _services.copy()


def clear_services() -> None:
    """Clear all registered services."""
    _services.clear()


def register_cleanup_handler(handler: Callable[[], None]) -> None:
    """Register a cleanup handler to be called on application exit."""
    global _cleanup_registered
    _cleanup_handlers.append(handler)
    if not _cleanup_registered:
        atexit.register(run_cleanup)
        _cleanup_registered = True
        logger.debug("Registered atexit cleanup handler")


def run_cleanup() -> None:
    """Run and drop all registered cleanup handlers."""
    if not _cleanup_handlers:
        return
    logger.info("Running application cleanup...")
    while _cleanup_handlers:
        handler = _cleanup_handlers.pop()
        try:
            handler()
        except Exception as e:
            logger.warning(f"Error in cleanup handler: {e}")
    logger.info("Application cleanup completed")
