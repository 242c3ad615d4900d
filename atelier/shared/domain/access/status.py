"""Gate status values observed by the presentation shell."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class Idle:
    """No resolution attempted yet."""
    phase: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Validating:
    """Resolution in progress."""
    phase: ClassVar[str] = "validating"


@dataclass(frozen=True)
class Authorized:
    """Resolution succeeded; ``destination`` should be displayed."""
    token: str
    destination: str
    phase: ClassVar[str] = "authorized"


@dataclass(frozen=True)
class Fallback:
    """No destination; show the local experience."""
    phase: ClassVar[str] = "fallback"


GateStatus = Union[Idle, Validating, Authorized, Fallback]

TERMINAL_PHASES = frozenset({Authorized.phase, Fallback.phase})


def is_terminal(status: GateStatus) -> bool:
    return status.phase in TERMINAL_PHASES
