"""Host-side bridge: keep exactly the viewers on the visible slide active.

The deck calls into the bridge on every navigation event (ready, slide
change, fragment shown/hidden), since fragments can change what counts as
the current slide without a full slide change. Viewers report their height
back and the bridge resizes the containing slide, then asks the deck to
recompute its layout.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from harmonyviewer.channels import FrameChannel, LocalFrameChannel
from harmonyviewer.messages import (
    HarmonyActivate,
    HarmonyDeactivate,
    HarmonyResize,
    ViewerHeight,
    parse_message,
)

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ViewerFrame:
    """An embedded viewer frame on a slide."""

    name: str
    channel: FrameChannel | None = None
    height: float | None = None


@dataclass
class Slide:
    frames: list[ViewerFrame] = field(default_factory=list)
    height: float | None = None


@dataclass
class Deck:
    """
    Minimal model of the presentation host.

    Attributes:
        slides:        Slides in deck order.
        current_index: Index of the visible slide.
        on_layout:     Called when slide sizes changed and layout must be recomputed.
    """

    slides: list[Slide] = field(default_factory=list)
    current_index: int = 0
    on_layout: Callable[[], None] | None = None
    layout_count: int = 0

    def current_slide(self) -> Slide | None:
        if 0 <= self.current_index < len(self.slides):
            return self.slides[self.current_index]
        return None

    def layout(self) -> None:
        self.layout_count += 1
        if self.on_layout is not None:
            self.on_layout()

    def slide_of(self, frame: ViewerFrame) -> Slide | None:
        for slide in self.slides:
            if frame in slide.frames:
                return slide
        return None


class DeckBridge:
    """
    Activation and resize relay for all viewer frames in a deck.

    Args:
        deck:    The deck being presented.
        padding: Extra pixels added to a reported viewer height.
    """

    def __init__(self, deck: Deck, padding: float = 0.0) -> None:
        self.deck = deck
        self.padding = padding

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def add_frame(self, slide_index: int, name: str) -> ViewerFrame:
        """Add an (unconnected) viewer frame to slide ``slide_index``, growing the deck if needed."""
        while len(self.deck.slides) <= slide_index:
            self.deck.slides.append(Slide())
        frame = ViewerFrame(name=name)
        self.deck.slides[slide_index].frames.append(frame)
        return frame

    def parent_channel(self, frame: ViewerFrame) -> LocalFrameChannel:
        """Channel a viewer in *frame* uses to message the host."""
        return LocalFrameChannel(lambda payload: self.on_viewer_message(frame, payload))

    def embed(
        self,
        slide_index: int,
        name: str,
        make_viewer: Callable[[FrameChannel], Callable[[Any], None]],
    ) -> ViewerFrame:
        """
        Add a frame and connect a viewer to it.

        *make_viewer* receives the viewer's parent channel and returns the
        viewer's inbound message handler.
        """
        frame = self.add_frame(slide_index, name)
        handler = make_viewer(self.parent_channel(frame))
        frame.channel = LocalFrameChannel(handler)
        return frame

    # ------------------------------------------------------------------
    # Navigation events
    # ------------------------------------------------------------------

    def on_ready(self) -> None:
        self.sync()

    def on_slide_changed(self, index: int) -> None:
        self.deck.current_index = index
        self.sync()

    def on_fragment_shown(self) -> None:
        self.sync()

    def on_fragment_hidden(self) -> None:
        self.sync()

    def sync(self) -> None:
        """
        Deactivate every frame outside the current slide, then activate those inside it.

        Deactivations go out first so no two viewers are active at once.
        """
        current = self.deck.current_slide()
        for slide in self.deck.slides:
            if slide is current:
                continue
            for frame in slide.frames:
                self._post(frame, HarmonyDeactivate().to_payload())

        if current is None:
            return
        activate = HarmonyActivate(self.deck.current_index).to_payload()
        for frame in current.frames:
            self._post(frame, activate)

    def _post(self, frame: ViewerFrame, payload: dict[str, Any]) -> None:
        if frame.channel is None:
            logger.debug("Frame %s has no channel yet", frame.name)
            return
        frame.channel.post_message(payload)

    # ------------------------------------------------------------------
    # Viewer → host
    # ------------------------------------------------------------------

    def on_viewer_message(self, frame: ViewerFrame, payload: Any) -> None:
        """Handle a height report from a viewer; anything else is ignored."""
        message = parse_message(payload)
        if not isinstance(message, (HarmonyResize, ViewerHeight)):
            logger.debug("Ignoring message from %s: %r", frame.name, payload)
            return

        slide = self.deck.slide_of(frame)
        if slide is None:
            logger.debug("Frame %s is not on any slide", frame.name)
            return

        frame.height = message.height + self.padding
        slide.height = max(f.height for f in slide.frames if f.height is not None)
        self.deck.layout()
