"""Viewer-side bridge between cross-frame messages and the transport state machine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from harmonyviewer.channels import FrameChannel
from harmonyviewer.messages import (
    HarmonyActivate,
    HarmonyDeactivate,
    HarmonyRequestStepCount,
    HarmonyResize,
    RevealSlideVisible,
    ViewerHeight,
    parse_message,
)
from harmonyviewer.transport import TransportStateMachine

logger = logging.getLogger(__name__)


class HostBridge:
    """
    Translate host messages into transport transitions and report the viewer height.

    Args:
        transport:     The viewer's transport state machine.
        parent:        Channel to the embedding host, or None when standalone.
        measure:       Returns the height to report, or None before anything is rendered.
        height_type:   ``"harmony-resize"`` (default) or ``"viewer-height"``.
    """

    def __init__(
        self,
        transport: TransportStateMachine,
        parent: FrameChannel | None = None,
        measure: Callable[[], int | None] = lambda: None,
        height_type: str = HarmonyResize.type,
    ) -> None:
        self.transport = transport
        self.parent = parent
        self.measure = measure
        self.height_type = height_type

    def handle_message(self, payload: Any) -> None:
        """Dispatch one inbound payload; malformed or unknown payloads are ignored."""
        message = parse_message(payload)
        if message is None:
            logger.debug("Ignoring unexpected message: %r", payload)
            return

        if isinstance(message, HarmonyActivate):
            self.transport.activate(message.slide_index)
        elif isinstance(message, HarmonyDeactivate):
            self.transport.deactivate()
        elif isinstance(message, HarmonyRequestStepCount):
            self.transport.request_step_count_resend()
        elif isinstance(message, RevealSlideVisible):
            self.transport.slide_visible(message.slide_index)
        else:
            logger.debug("Ignoring host-bound %s message", message.type)

    def report_height(self) -> None:
        """Tell the host how tall the rendered content is (no-op when standalone)."""
        if self.parent is None:
            return
        height = self.measure()
        if height is None:
            return
        if self.height_type == ViewerHeight.type:
            self.parent.post_message(ViewerHeight(height).to_payload())
        else:
            self.parent.post_message(HarmonyResize(height).to_payload())
