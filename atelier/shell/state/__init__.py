"""Shell state management.

Architecture:
- GateState: gate screen state (busy, destination, local fallback)
- Store: Service locator for accessing state from any component
"""

from .gate_state import GateState
from .store import Store

__all__ = ["GateState", "Store"]
