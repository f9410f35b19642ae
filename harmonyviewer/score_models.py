"""Data models shared by the partitioner, renderers and transport."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from xml.etree.ElementTree import Element


@dataclass(frozen=True)
class BoundingBox:
    """An axis-aligned rectangle in pixel space (y grows downwards)."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2.0

    def union(self, other: BoundingBox) -> BoundingBox:
        return BoundingBox(
            left=min(self.left, other.left),
            top=min(self.top, other.top),
            right=max(self.right, other.right),
            bottom=max(self.bottom, other.bottom),
        )

    def translate(self, dx: float, dy: float) -> BoundingBox:
        return BoundingBox(self.left + dx, self.top + dy, self.right + dx, self.bottom + dy)


@dataclass(frozen=True, eq=False)
class NoteHead:
    """
    Handle to one notehead glyph in the rendered score.

    Attributes:
        element: The ``<use>`` element drawing the glyph.
        note_id: Id of the owning ``note`` group, used for toolkit lookups.
    """

    element: Element
    note_id: str | None


@dataclass(frozen=True)
class Step:
    """
    One harmonic step of the walkthrough.

    Attributes:
        index:     1-based position in the partition (0 is reserved for "nothing").
        noteheads: Notehead handles in document order.
        pitches:   Sorted, de-duplicated MIDI note numbers (may be empty).
    """

    index: int
    noteheads: tuple[NoteHead, ...]
    pitches: tuple[int, ...] = ()

    @property
    def elements(self) -> list[Element]:
        return [head.element for head in self.noteheads]


@dataclass(frozen=True)
class AnalysisEntry:
    """Primary/secondary annotation labels for one step (e.g. "V" / "D")."""

    primary: str
    secondary: str = ""


@dataclass(frozen=True)
class OverlayState:
    """Where and what the annotation overlay currently shows."""

    primary: str = ""
    secondary: str = ""
    x: float = 0.0
    y: float = 0.0
    visible: bool = False


@dataclass
class SessionState:
    """Mutable per-viewer session state, owned by the transport state machine."""

    steps: list[Step] = field(default_factory=list)
    current_step_index: int = 0
    is_active: bool = False
    current_slide_index: int = 0
    baseline_y: float | None = None

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def step(self, index: int) -> Step | None:
        """Return the step with 1-based *index*, or None for 0/out of range."""
        if 1 <= index <= len(self.steps):
            return self.steps[index - 1]
        return None


@dataclass
class MidiPortBinding:
    """Resolved MIDI ports; either side may stay unbound."""

    input: Any | None = None
    output: Any | None = None

    def close(self) -> None:
        for port in (self.input, self.output):
            if port is not None:
                port.close()
