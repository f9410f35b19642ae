"""Highlighting of the current step and placement of its annotation overlay."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Final
from xml.etree.ElementTree import Element

from harmonyviewer.layout import Layout, local_box
from harmonyviewer.partitioner import class_list
from harmonyviewer.score_models import AnalysisEntry, BoundingBox, OverlayState, SessionState

logger = logging.getLogger(__name__)

HIGHLIGHT_CLASS: Final[str] = "hv-highlight"
HIGHLIGHT_COLOR: Final[str] = "#d00"  # red-ish

# Vertical gap in pixels between the lowest notehead and the annotation baseline.
BASELINE_GAP: Final[float] = 24.0


class HighlightRenderer:
    """
    Toggle visual emphasis on the noteheads of one step.

    Both a class and explicit ``fill``/``color`` attributes are set, so the
    highlight shows even where CSS does not reach ``<use>`` elements.
    """

    def __init__(self, session: SessionState, root: Element | None = None) -> None:
        self.session = session
        self.root = root

    def clear(self) -> None:
        if self.root is None:
            return
        for element in self.root.iter():
            classes = class_list(element)
            if HIGHLIGHT_CLASS not in classes:
                continue
            remaining = [c for c in classes if c != HIGHLIGHT_CLASS]
            if remaining:
                element.set("class", " ".join(remaining))
            else:
                element.attrib.pop("class", None)
            element.attrib.pop("fill", None)
            element.attrib.pop("color", None)

    def apply_highlight(self, step_index: int) -> None:
        """Clear previous marks, then mark step *step_index* (0 leaves everything cleared)."""
        self.clear()
        step = self.session.step(step_index)
        if step is None:
            return
        for element in step.elements:
            element.set("class", " ".join([*class_list(element), HIGHLIGHT_CLASS]))
            element.set("fill", HIGHLIGHT_COLOR)
            element.set("color", HIGHLIGHT_COLOR)

    def highlighted(self) -> list[Element]:
        if self.root is None:
            return []
        return [e for e in self.root.iter() if HIGHLIGHT_CLASS in class_list(e)]


class OverlayRenderer:
    """
    Position the analysis label of the current step.

    The baseline (vertical position) is computed once from the lowest
    extent of all notated elements and reused for every step, so labels do
    not jump vertically as the harmony changes. It lives on the session as
    ``baseline_y`` and is reset by :meth:`invalidate_baseline` whenever the
    layout changes. The horizontal position is the centre of the current
    step's noteheads and is recomputed every time.
    """

    def __init__(
        self,
        session: SessionState,
        analysis: Sequence[AnalysisEntry | None] = (),
        layout: Callable[[], Layout | None] = lambda: None,
        gap: float = BASELINE_GAP,
    ) -> None:
        self.session = session
        self.analysis = list(analysis)
        self._layout = layout
        self.gap = gap
        self.state = OverlayState()

    def entry(self, step_index: int) -> AnalysisEntry | None:
        if 1 <= step_index <= len(self.analysis):
            return self.analysis[step_index - 1]
        return None

    def invalidate_baseline(self) -> None:
        self.session.baseline_y = None

    def _baseline(self, layout: Layout) -> float | None:
        if self.session.baseline_y is None:
            boxes = [
                local_box(layout, element)
                for step in self.session.steps
                for element in step.elements
            ]
            if not boxes:
                return None
            self.session.baseline_y = max(box.bottom for box in boxes) + self.gap
            logger.debug("Computed annotation baseline at y=%.1f", self.session.baseline_y)
        return self.session.baseline_y

    def hide(self) -> OverlayState:
        self.state = OverlayState()
        return self.state

    def update(self, step_index: int) -> OverlayState:
        """Show the overlay for *step_index*, or hide it when there is nothing to show."""
        step = self.session.step(step_index)
        entry = self.entry(step_index)
        layout = self._layout()
        if step is None or entry is None or layout is None or not step.noteheads:
            return self.hide()

        baseline = self._baseline(layout)
        if baseline is None:
            return self.hide()

        extent: BoundingBox | None = None
        for element in step.elements:
            box = local_box(layout, element)
            extent = box if extent is None else extent.union(box)
        assert extent is not None

        self.state = OverlayState(
            primary=entry.primary,
            secondary=entry.secondary,
            x=extent.center_x,
            y=baseline,
            visible=True,
        )
        return self.state
