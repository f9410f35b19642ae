"""Cross-frame message protocol between the deck host and embedded viewers.

Every payload is a JSON-shaped dict with a ``type`` tag. :func:`parse_message`
turns payloads into one of the closed set of variants below and returns
None for anything unknown or malformed, so a misbehaving host or sibling
frame can never crash a viewer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, ClassVar, Union

ACTIVATE = "harmony-activate"
DEACTIVATE = "harmony-deactivate"
REQUEST_STEP_COUNT = "harmony-request-step-count"
RESIZE = "harmony-resize"
VIEWER_HEIGHT = "viewer-height"
REVEAL_SLIDE_VISIBLE = "reveal-slide-visible"


@dataclass(frozen=True)
class HarmonyActivate:
    """host → viewer: become the active viewer for slide ``slide_index``."""

    type: ClassVar[str] = ACTIVATE
    slide_index: int

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "slideIndex": self.slide_index}


@dataclass(frozen=True)
class HarmonyDeactivate:
    """host → viewer: stop emitting MIDI."""

    type: ClassVar[str] = DEACTIVATE

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(frozen=True)
class HarmonyRequestStepCount:
    """host → viewer: resend the step count."""

    type: ClassVar[str] = REQUEST_STEP_COUNT

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(frozen=True)
class HarmonyResize:
    """viewer → host: the viewer's content is ``height`` pixels tall."""

    type: ClassVar[str] = RESIZE
    height: float

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "height": self.height}


@dataclass(frozen=True)
class ViewerHeight:
    """viewer → host: alternate name of :class:`HarmonyResize`."""

    type: ClassVar[str] = VIEWER_HEIGHT
    height: float

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "height": self.height}


@dataclass(frozen=True)
class RevealSlideVisible:
    """host → viewer (older plugin protocol): the viewer's slide became visible."""

    type: ClassVar[str] = REVEAL_SLIDE_VISIBLE
    slide_index: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        if self.slide_index is not None:
            payload["slideIndex"] = self.slide_index
        return payload


Message = Union[
    HarmonyActivate,
    HarmonyDeactivate,
    HarmonyRequestStepCount,
    HarmonyResize,
    ViewerHeight,
    RevealSlideVisible,
]


def _slide_index(value: Any) -> int | None:
    # bool is an int subclass; True is not a slide index.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _height(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return float(value)


def parse_message(payload: Any) -> Message | None:
    """Validate a raw payload and return its message variant, or None."""
    if not isinstance(payload, dict):
        return None
    kind = payload.get("type")

    if kind == ACTIVATE:
        index = _slide_index(payload.get("slideIndex"))
        return HarmonyActivate(index) if index is not None else None

    if kind == DEACTIVATE:
        return HarmonyDeactivate()

    if kind == REQUEST_STEP_COUNT:
        return HarmonyRequestStepCount()

    if kind in (RESIZE, VIEWER_HEIGHT):
        height = _height(payload.get("height"))
        if height is None:
            return None
        return HarmonyResize(height) if kind == RESIZE else ViewerHeight(height)

    if kind == REVEAL_SLIDE_VISIBLE:
        if "slideIndex" not in payload:
            return RevealSlideVisible()
        index = _slide_index(payload["slideIndex"])
        return RevealSlideVisible(index) if index is not None else None

    return None
