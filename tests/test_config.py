"""Unit tests for ViewerConfig query parsing."""

import pytest

from harmonyviewer.config import ViewerConfig
from harmonyviewer.errors import ConfigError


def test_defaults_from_minimal_query() -> None:
    config = ViewerConfig.from_query("score=scores/bach.mei")
    assert config.score == "scores/bach.mei"
    assert config.title == ""
    assert config.debug is False
    assert config.zoom == "fit"
    assert (config.cc_select, config.cc_count, config.cc_slide) == (22, 23, 24)
    assert config.midi_in == "Max→Browser"
    assert config.midi_out == "Browser→Max"
    assert config.height_message == "harmony-resize"


def test_missing_score_is_fatal() -> None:
    with pytest.raises(ConfigError):
        ViewerConfig.from_query("title=Chorale")


def test_overrides() -> None:
    config = ViewerConfig.from_query(
        "?score=a.mei&title=Chorale%201&debug=yes&zoom=1.5&ccSelect=30&ccCount=31"
        "&ccSlide=32&midiIn=IAC%20Bus%201&midiOut=IAC%20Bus%202&channel=3&velocity=100&noteMs=250"
    )
    assert config.title == "Chorale 1"
    assert config.debug is True
    assert config.zoom == 1.5
    assert (config.cc_select, config.cc_count, config.cc_slide) == (30, 31, 32)
    assert config.midi_in == "IAC Bus 1"
    assert config.midi_out == "IAC Bus 2"
    assert config.channel == 3
    assert config.velocity == 100
    assert config.note_duration == pytest.approx(0.25)


def test_mapping_input() -> None:
    config = ViewerConfig.from_query({"score": "a.mei", "debug": "no"})
    assert config.debug is False


@pytest.mark.parametrize(
    "query",
    [
        "score=a.mei&zoom=-1",
        "score=a.mei&zoom=big",
        "score=a.mei&ccSelect=200",
        "score=a.mei&channel=x",
        "score=a.mei&heightMessage=resize",
    ],
)
def test_invalid_values_raise(query: str) -> None:
    with pytest.raises(ConfigError):
        ViewerConfig.from_query(query)


def test_analysis_path_replaces_extension() -> None:
    assert ViewerConfig.from_query("score=scores/bach.mei").analysis_path() == "scores/bach.json"


def test_analysis_path_for_url_keeps_query() -> None:
    config = ViewerConfig(score="https://example.org/s/bach.musicxml?v=2")
    assert config.analysis_path() == "https://example.org/s/bach.json?v=2"


def test_explicit_analysis_path_wins() -> None:
    config = ViewerConfig.from_query("score=a.mei&analysis=notes/a-roman.json")
    assert config.analysis_path() == "notes/a-roman.json"


def test_alternate_height_message() -> None:
    config = ViewerConfig.from_query("score=a.mei&heightMessage=viewer-height")
    assert config.height_message == "viewer-height"
