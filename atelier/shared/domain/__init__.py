"""
Shared Domain Module
====================

Business logic for access gate resolution.
"""

from atelier.shared.domain.access import GateAccessManager, GateStatus

__all__ = [
    "GateAccessManager",
    "GateStatus",
]
