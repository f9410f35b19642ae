"""MIDI port resolution and output for the viewer.

Port names differ in punctuation between platforms and virtual-port
drivers ("Max→Browser", "Max->Browser", "Max - Browser 1"), so hints are
matched on a normalised form. Missing ports are never fatal: the viewer
keeps highlighting without MIDI.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Final

import mido

from harmonyviewer.scheduling import Handle, Scheduler, ThreadingScheduler
from harmonyviewer.score_models import MidiPortBinding

logger = logging.getLogger(__name__)

CC_ALL_NOTES_OFF: Final[int] = 123
MIDI_VALUE_MAX: Final[int] = 127

_PUNCT_RE = re.compile(r"[\W_]+")


def clamp_value(value: int) -> int:
    """Clamp a data byte into 0-127."""
    return max(0, min(MIDI_VALUE_MAX, int(value)))


def normalize_port_name(name: str) -> str:
    """
    Fold a port name so punctuation variants compare equal.

    ``"Max→Browser"``, ``"max -> browser"`` and ``"Max->Browser 2"`` all
    normalise to a string starting with ``"maxbrowser"``.
    """
    return _PUNCT_RE.sub("", name.casefold())


def match_port(names: Iterable[str], hint: str) -> str | None:
    """Return the first port name whose normalised form contains the normalised hint."""
    wanted = normalize_port_name(hint)
    if not wanted:
        return None
    for name in names:
        if wanted in normalize_port_name(name):
            return name
    return None


def parse_control_change(message: Any) -> tuple[int, int] | None:
    """
    Extract ``(control, value)`` from a mido message or a raw byte triple.

    Anything that is not a Control Change gives None.
    """
    if isinstance(message, mido.Message):
        if message.type != "control_change":
            return None
        return message.control, message.value

    if isinstance(message, (list, tuple, bytes, bytearray)) and len(message) >= 3:
        status, control, value = message[0], message[1], message[2]
        if (status & 0xF0) != 0xB0:
            return None
        return int(control), int(value)
    return None


def list_ports() -> tuple[list[str], list[str]]:
    """Return ``(input_names, output_names)``; empty lists when no backend is usable."""
    try:
        return list(mido.get_input_names()), list(mido.get_output_names())
    except (ImportError, OSError) as exc:
        logger.warning("MIDI backend unavailable: %s", exc)
        return [], []


def resolve_ports(
    in_hint: str,
    out_hint: str,
    on_message: Callable[[Any], None] | None = None,
) -> MidiPortBinding:
    """
    Open the input and output ports matching the configured name hints.

    Called once at startup. Either side may stay unbound; that is logged,
    not raised.
    """
    binding = MidiPortBinding()
    input_names, output_names = list_ports()

    in_name = match_port(input_names, in_hint)
    if in_name is None:
        logger.warning("No MIDI IN found matching: %s", in_hint)
    else:
        try:
            binding.input = mido.open_input(in_name, callback=on_message)
            logger.info("Bound MIDI input: %s", in_name)
        except OSError as exc:
            logger.warning("Could not open MIDI input %s: %s", in_name, exc)

    out_name = match_port(output_names, out_hint)
    if out_name is None:
        logger.warning("No MIDI OUT found matching: %s", out_hint)
    else:
        try:
            binding.output = mido.open_output(out_name)
            logger.info("Bound MIDI output: %s", out_name)
        except OSError as exc:
            logger.warning("Could not open MIDI output %s: %s", out_name, exc)

    return binding


class MidiOutput:
    """
    Outbound MIDI for one viewer.

    Notes are sent as timed pairs: note-on immediately, note-off after
    ``note_duration`` seconds. Starting a new chord or sending all-notes-off
    terminates whatever is still sounding, which bounds the worst-case
    stuck-note duration under rapid step switching. Without a port every
    method is a silent no-op.
    """

    def __init__(
        self,
        port: Any | None,
        channel: int = 0,
        velocity: int = 80,
        note_duration: float = 0.6,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.port = port
        self.channel = channel
        self.velocity = clamp_value(velocity)
        self.note_duration = note_duration
        self.scheduler = scheduler or ThreadingScheduler()
        self._lock = threading.RLock()
        self._sounding: list[int] = []
        self._pending: Handle | None = None
        self._generation = 0

    @property
    def bound(self) -> bool:
        return self.port is not None

    @property
    def sounding(self) -> list[int]:
        with self._lock:
            return list(self._sounding)

    def _send(self, message: mido.Message) -> None:
        if self.port is None:
            logger.debug("No MIDI output bound; dropping %s", message)
            return
        try:
            self.port.send(message)
        except Exception as exc:
            # A vanished device must not interrupt highlighting.
            logger.warning("MIDI send failed (%s): %s", message, exc)
            return
        logger.debug("MIDI out: %s", message)

    def control_change(self, control: int, value: int) -> None:
        self._send(
            mido.Message(
                "control_change",
                channel=self.channel,
                control=clamp_value(control),
                value=clamp_value(value),
            )
        )

    def _release(self) -> None:
        """Send note-offs for everything sounding and drop the pending timer."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        for note in self._sounding:
            self._send(mido.Message("note_off", channel=self.channel, note=note, velocity=0))
        self._sounding = []

    def play(self, pitches: Sequence[int]) -> None:
        """Sound *pitches* now and schedule their note-offs."""
        with self._lock:
            self._release()
            if not pitches:
                return
            for note in pitches:
                self._send(
                    mido.Message(
                        "note_on",
                        channel=self.channel,
                        note=clamp_value(note),
                        velocity=self.velocity,
                    )
                )
            self._sounding = [clamp_value(note) for note in pitches]
            self._generation += 1
            generation = self._generation
            self._pending = self.scheduler.call_later(
                self.note_duration, lambda: self._expire(generation)
            )

    def _expire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._pending = None
            for note in self._sounding:
                self._send(mido.Message("note_off", channel=self.channel, note=note, velocity=0))
            self._sounding = []

    def all_notes_off(self) -> None:
        """Terminate sounding notes and send CC 123 (All Notes Off)."""
        with self._lock:
            self._release()
            self.control_change(CC_ALL_NOTES_OFF, 0)
