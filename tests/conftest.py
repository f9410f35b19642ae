"""Shared fakes: verovio-shaped SVG, a toolkit stand-in, a MIDI port and a manual scheduler."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from harmonyviewer.config import ViewerConfig
from harmonyviewer.midi import MidiOutput
from harmonyviewer.scheduling import Handle, Scheduler
from harmonyviewer.viewer import HarmonyViewer

# One staff step (half a staff space) in verovio units.
HALF_SPACE = 90
LETTERS = "CDEFGAB"


def _y_for(pitch: str) -> int:
    """Vertical glyph position for a pitch like "E4"; higher pitches sit higher (smaller y)."""
    diatonic = LETTERS.index(pitch[0]) + 7 * int(pitch[1:])
    return 5000 - diatonic * HALF_SPACE


def _note(note_id: str, pitch: str, x: int, decorated: bool = False) -> str:
    accid = (
        f'<g class="accid"><use xlink:href="#E262" x="{x - 300}" y="{_y_for(pitch)}" '
        'height="720px" width="720px"/></g>'
        if decorated
        else ""
    )
    return (
        f'<g id="{note_id}" class="note">'
        f'<g class="notehead"><use xlink:href="#E0A4" x="{x}" y="{_y_for(pitch)}" '
        'height="720px" width="720px"/></g>'
        f"{accid}</g>"
    )


def build_score(events: list[list[str] | str]) -> tuple[str, dict[str, dict[str, str]]]:
    """
    Build a verovio-like SVG page and the matching toolkit attributes.

    Each event is either a list of pitches (a chord) or a single pitch
    string (a standalone note). Events are laid out left to right.
    """
    body: list[str] = []
    attrs: dict[str, dict[str, str]] = {}
    counter = 0
    for position, event in enumerate(events):
        x = 1000 + position * 1500
        if isinstance(event, str):
            counter += 1
            note_id = f"note-{counter}"
            attrs[note_id] = {"pname": event[0].lower(), "oct": event[1:]}
            body.append(_note(note_id, event, x))
            continue
        heads = []
        for pitch in event:
            counter += 1
            note_id = f"note-{counter}"
            attrs[note_id] = {"pname": pitch[0].lower(), "oct": pitch[1:]}
            heads.append(_note(note_id, pitch, x))
        body.append(
            f'<g id="chord-{position + 1}" class="chord">'
            f'<g class="stem"><path d="M0 0"/></g>{"".join(heads)}</g>'
        )

    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
        'width="1000px" height="300px" version="1.1">'
        '<defs><symbol id="E0A4" viewBox="0 0 1000 1000"><path d="M0 0"/></symbol></defs>'
        '<svg class="definition-scale" viewBox="0 0 10000 3000">'
        '<g class="page-margin" transform="translate(0, -2000)">'
        '<g id="m1" class="measure"><g id="s1" class="staff"><g id="l1" class="layer">'
        f'{"".join(body)}'
        "</g></g></g></g></svg></svg>"
    )
    return svg, attrs


class FakeToolkit:
    """Stand-in for :class:`harmonyviewer.toolkit.VerovioToolkit`."""

    def __init__(self, svg: str, attrs: dict[str, dict[str, str]]) -> None:
        self.svg = svg
        self.attrs = attrs
        self.loaded: str | None = None

    def load(self, data: str) -> None:
        self.loaded = data

    def render_svg(self, page_no: int = 1) -> str:
        return self.svg

    def element_attr(self, element_id: str) -> dict[str, Any]:
        return dict(self.attrs.get(element_id, {}))


class FakePort:
    """Records every mido message sent to it."""

    def __init__(self) -> None:
        self.sent: list[Any] = []
        self.closed = False

    def send(self, message: Any) -> None:
        self.sent.append(message)

    def close(self) -> None:
        self.closed = True

    def of_type(self, kind: str) -> list[Any]:
        return [m for m in self.sent if m.type == kind]

    def control_changes(self, control: int | None = None) -> list[tuple[int, int]]:
        return [
            (m.control, m.value)
            for m in self.sent
            if m.type == "control_change" and (control is None or m.control == control)
        ]

    def clear(self) -> None:
        self.sent.clear()


class _ManualHandle(Handle):
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Scheduler whose callbacks only run when the test says so."""

    def __init__(self) -> None:
        self.pending: list[tuple[float, Callable[[], None], _ManualHandle]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        handle = _ManualHandle()
        self.pending.append((delay, callback, handle))
        return handle

    def run_all(self) -> None:
        pending, self.pending = self.pending, []
        for _delay, callback, handle in pending:
            if not handle.cancelled:
                callback()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def port() -> FakePort:
    return FakePort()


@pytest.fixture
def three_chords() -> list[list[str] | str]:
    return [["C4", "E4", "G4"], ["D4", "F4", "A4"], ["C4", "E4", "G4"]]


@pytest.fixture
def make_viewer(
    tmp_path: Path, scheduler: ManualScheduler
) -> Callable[..., tuple[HarmonyViewer, FakePort]]:
    """Factory for loaded viewers backed by fakes; returns ``(viewer, port)``."""

    def _make(
        events: list[list[str] | str],
        analysis: Any = None,
        parent: Any = None,
        name: str = "score",
        query: dict[str, str] | None = None,
    ) -> tuple[HarmonyViewer, FakePort]:
        score_path = tmp_path / f"{name}.mei"
        score_path.write_text("<mei/>", encoding="utf-8")
        if analysis is not None:
            (tmp_path / f"{name}.json").write_text(json.dumps(analysis), encoding="utf-8")

        config = ViewerConfig.from_query({"score": str(score_path), **(query or {})})
        svg, attrs = build_score(events)
        fake_port = FakePort()
        output = MidiOutput(
            fake_port,
            channel=config.channel,
            velocity=config.velocity,
            note_duration=config.note_duration,
            scheduler=scheduler,
        )
        viewer = HarmonyViewer(config, parent=parent, toolkit=FakeToolkit(svg, attrs), output=output)
        viewer.load()
        return viewer, fake_port

    return _make
