"""
Input deduplication for interactive controls.

Components:
- PressEvent: raw press / release / context-menu event
- EventDeduplicationGate: one logical activation per tap
"""

from .dedup_gate import (
    DEBOUNCE_SECONDS,
    GESTURE_MAX_MS,
    GESTURE_MAX_SECONDS,
    EventDeduplicationGate,
    GatePhase,
    GateState,
)
from .events import InputSource, PressAction, PressEvent

__all__ = [
    "DEBOUNCE_SECONDS",
    "GESTURE_MAX_MS",
    "GESTURE_MAX_SECONDS",
    "EventDeduplicationGate",
    "GatePhase",
    "GateState",
    "InputSource",
    "PressAction",
    "PressEvent",
]
