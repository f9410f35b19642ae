"""Channels carrying JSON-shaped payloads across the embedding boundary."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Number of recently posted payloads kept for inspection.
SENT_HISTORY = 64


class FrameChannel(ABC):
    """One direction of a host ⇄ viewer link (the ``postMessage`` of a frame)."""

    @abstractmethod
    def post_message(self, payload: dict[str, Any]) -> None:
        """Deliver *payload* to the other side."""


class LocalFrameChannel(FrameChannel):
    """
    In-process channel that hands payloads to a receiver callable.

    Each payload is JSON round-tripped, so the receiver never shares objects
    with the sender. Delivery is synchronous and FIFO for one channel. The
    last ``SENT_HISTORY`` payloads stay available in ``sent``.
    Exceptions raised by the receiver are logged and swallowed, because one
    frame must never be able to take down the frame that messaged it.
    """

    def __init__(self, receiver: Callable[[Any], None] | None = None) -> None:
        self.receiver = receiver
        self.sent: deque[dict[str, Any]] = deque(maxlen=SENT_HISTORY)

    def connect(self, receiver: Callable[[Any], None]) -> None:
        self.receiver = receiver

    def post_message(self, payload: dict[str, Any]) -> None:
        cloned = json.loads(json.dumps(payload))
        self.sent.append(cloned)
        if self.receiver is None:
            logger.debug("Dropping %s: channel not connected", cloned.get("type"))
            return
        try:
            self.receiver(cloned)
        except Exception:
            logger.exception("Receiver failed handling %s", cloned.get("type"))
