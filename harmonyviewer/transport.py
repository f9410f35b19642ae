"""Transport state machine: which viewer is active, which step is selected, what gets sent.

Exactly one viewer in a deck should be active at a time, and only the active
viewer may sound notes. The deck delivers controller messages to every
embedded viewer, so MIDI emission is gated here explicitly: an inactive
viewer still highlights locally but only ever emits all-notes-off.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum

from harmonyviewer.config import DEFAULT_CC_COUNT, DEFAULT_CC_SELECT, DEFAULT_CC_SLIDE
from harmonyviewer.midi import MidiOutput, clamp_value
from harmonyviewer.overlay import HighlightRenderer, OverlayRenderer
from harmonyviewer.score_models import SessionState, Step

logger = logging.getLogger(__name__)


class TransportState(Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


class TransportStateMachine:
    """
    Owns the session's step index, active flag and slide index.

    Args:
        session:       Session state of this viewer (mutated only here).
        highlighter:   Renders the highlight for the selected step.
        overlay:       Positions the analysis label for the selected step.
        output:        Outbound MIDI (may be unbound).
        report_height: Called when the host should be told the viewer's height.
        embedded:      False for a standalone viewer, which is always active.
    """

    def __init__(
        self,
        session: SessionState,
        highlighter: HighlightRenderer,
        overlay: OverlayRenderer,
        output: MidiOutput,
        report_height: Callable[[], None] = lambda: None,
        embedded: bool = True,
        cc_select: int = DEFAULT_CC_SELECT,
        cc_count: int = DEFAULT_CC_COUNT,
        cc_slide: int = DEFAULT_CC_SLIDE,
    ) -> None:
        self.session = session
        self.highlighter = highlighter
        self.overlay = overlay
        self.output = output
        self.report_height = report_height
        self.embedded = embedded
        self.cc_select = cc_select
        self.cc_count = cc_count
        self.cc_slide = cc_slide
        # MIDI input callbacks arrive on the backend's thread.
        self._lock = threading.RLock()
        self.session.is_active = not embedded

    @property
    def state(self) -> TransportState:
        return TransportState.ACTIVE if self.session.is_active else TransportState.INACTIVE

    @property
    def is_active(self) -> bool:
        return self.session.is_active

    # ------------------------------------------------------------------
    # Outbound helpers
    # ------------------------------------------------------------------

    def _send_step_count(self) -> None:
        self.output.control_change(self.cc_count, clamp_value(self.session.step_count))

    def _send_slide_index(self) -> None:
        self.output.control_change(self.cc_slide, clamp_value(self.session.current_slide_index))

    def _render(self, index: int) -> None:
        self.highlighter.apply_highlight(index)
        self.overlay.update(index)

    def _emit(self, step: Step | None) -> None:
        if step is None or not self.session.is_active:
            self.output.all_notes_off()
        else:
            self.output.play(step.pitches)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def load_steps(self, steps: list[Step]) -> None:
        """Install the steps of a freshly loaded score; nothing is selected afterwards."""
        with self._lock:
            self.session.steps = list(steps)
            self.session.current_step_index = 0
            self.overlay.invalidate_baseline()
            self._render(0)
            if self.session.is_active:
                self._send_step_count()
            logger.debug("Loaded %d harmonic steps", self.session.step_count)

    def activate(self, slide_index: int) -> None:
        """
        Become the active viewer for ``slide_index``.

        Re-activating an already active viewer is safe: it re-sends the
        counters and re-asserts the current step's notes.
        """
        with self._lock:
            self.session.is_active = True
            self.session.current_slide_index = slide_index
            self._send_step_count()
            self._send_slide_index()
            self.select_step(self.session.current_step_index)
            self.report_height()
            logger.debug("Activated on slide %d", slide_index)

    def deactivate(self) -> None:
        """Stop sounding; a no-op when already inactive or when standalone."""
        with self._lock:
            if not self.embedded:
                logger.debug("Ignoring deactivate for standalone viewer")
                return
            if not self.session.is_active:
                return
            self.session.is_active = False
            self.output.all_notes_off()
            logger.debug("Deactivated")

    def select_step(self, n: int) -> int:
        """
        Select step ``n`` (clamped into ``[0, step_count]``) and return the index used.

        The highlight and overlay always follow; notes are only sent while
        active, otherwise (or for step 0) an all-notes-off is sent instead.
        """
        with self._lock:
            index = max(0, min(int(n), self.session.step_count))
            self.session.current_step_index = index
            self._render(index)
            self._emit(self.session.step(index))
            return index

    def request_step_count_resend(self) -> None:
        """Re-send the step count without touching the selection."""
        with self._lock:
            if self.session.is_active:
                self._send_step_count()

    def slide_visible(self, slide_index: int | None = None) -> None:
        """Older host protocol: resend the count, reset the highlight, ask for a resize."""
        with self._lock:
            if slide_index is not None:
                self.session.current_slide_index = slide_index
            self.request_step_count_resend()
            self.select_step(0)
            self.report_height()

    def next_step(self) -> int:
        """Debug control: advance one step, wrapping back to the first."""
        with self._lock:
            following = self.session.current_step_index + 1
            if following > self.session.step_count:
                following = 1
            return self.select_step(following)

    def handle_control_change(self, control: int, value: int) -> None:
        """Inbound CC: the select controller picks a step (0 clears)."""
        if control == self.cc_select:
            self.select_step(value)
