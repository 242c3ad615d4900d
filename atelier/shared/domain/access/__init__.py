"""Access gate resolution: status, request/response protocol, backoff and the state machine."""

from .backoff import backoff_delay, backoff_schedule
from .gate_manager import GateAccessManager
from .request import (
    DeviceProfile,
    RequestConstructionError,
    ResolutionRequest,
    detect_device_profile,
    normalize_locale,
)
from .response import ResolutionResult, parse_destination, parse_resolution_response
from .status import Authorized, Fallback, GateStatus, Idle, Validating, is_terminal

__all__ = [
    "GateAccessManager",
    "GateStatus",
    "Idle",
    "Validating",
    "Authorized",
    "Fallback",
    "is_terminal",
    "backoff_delay",
    "backoff_schedule",
    "DeviceProfile",
    "RequestConstructionError",
    "ResolutionRequest",
    "detect_device_profile",
    "normalize_locale",
    "ResolutionResult",
    "parse_destination",
    "parse_resolution_response",
]
