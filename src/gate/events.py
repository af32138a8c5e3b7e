"""
Raw input events fed to a deduplication gate.

A terminal, a web view and a touch screen all report presses differently.
Front ends translate whatever they receive into PressEvent before handing it
to a gate, so the gate only reasons about source, action and button.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class InputSource(str, Enum):
    """Event family that reported the press."""

    TOUCH = "touch"
    POINTER = "pointer"  # mouse / pen / keyboard-synthesized clicks


class PressAction(str, Enum):
    """What happened on the control."""

    DOWN = "down"
    UP = "up"
    CONTEXT_MENU = "context_menu"


PRIMARY_BUTTON = 0


@dataclass
class PressEvent:
    """A single physical input event on one interactive control."""

    source: InputSource
    action: PressAction
    button: int = PRIMARY_BUTTON
    timestamp: float | None = None  # seconds, same clock as the gate
    default_prevented: bool = False

    @property
    def is_touch(self) -> bool:
        return self.source == InputSource.TOUCH

    @property
    def is_primary(self) -> bool:
        return self.button == PRIMARY_BUTTON

    def prevent_default(self) -> None:
        """Ask the front end not to run the platform's default action."""
        self.default_prevented = True

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def touch_start(cls, timestamp: float | None = None) -> PressEvent:
        return cls(InputSource.TOUCH, PressAction.DOWN, timestamp=timestamp)

    @classmethod
    def touch_end(cls, timestamp: float | None = None) -> PressEvent:
        return cls(InputSource.TOUCH, PressAction.UP, timestamp=timestamp)

    @classmethod
    def mouse_down(
        cls, timestamp: float | None = None, button: int = PRIMARY_BUTTON
    ) -> PressEvent:
        return cls(InputSource.POINTER, PressAction.DOWN, button=button, timestamp=timestamp)

    @classmethod
    def mouse_up(
        cls, timestamp: float | None = None, button: int = PRIMARY_BUTTON
    ) -> PressEvent:
        return cls(InputSource.POINTER, PressAction.UP, button=button, timestamp=timestamp)

    @classmethod
    def context_menu(cls, source: InputSource = InputSource.POINTER) -> PressEvent:
        return cls(source, PressAction.CONTEXT_MENU)
