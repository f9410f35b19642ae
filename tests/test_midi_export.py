"""Tests for StepMidiExporter."""

from pathlib import Path
from xml.etree.ElementTree import Element

from harmonyviewer.midi_export import StepMidiExporter
from harmonyviewer.score_models import NoteHead, Step


def _step(index: int, *pitches: int) -> Step:
    return Step(index=index, noteheads=(NoteHead(Element("use"), f"n{index}"),), pitches=pitches)


def test_export_writes_standard_midi_file(tmp_path: Path) -> None:
    out = tmp_path / "steps.mid"
    StepMidiExporter().export([_step(1, 60, 64, 67), _step(2), _step(3, 62, 65, 69)], str(out))
    data = out.read_bytes()
    assert data.startswith(b"MThd")
    assert data.count(b"MTrk") >= 2
