"""
Atelier Shared Kernel
=====================

Architecture:
- core: EventBus, configuration, service registry
- infrastructure: Technical adapters (settings/secret/inventory stores, HTTP)
- domain: Access gate resolution
"""

__version__ = "1.0.0"

__all__ = []
