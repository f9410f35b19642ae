"""ViewerConfig: query-parameter style configuration for one viewer instance."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Final
from urllib.parse import parse_qsl, urlsplit, urlunsplit

from harmonyviewer.errors import ConfigError
from harmonyviewer.messages import RESIZE, VIEWER_HEIGHT

# ── MIDI defaults ───────────────────────────────────────────────────────────
DEFAULT_MIDI_IN: Final[str] = "Max→Browser"
DEFAULT_MIDI_OUT: Final[str] = "Browser→Max"
DEFAULT_CC_SELECT: Final[int] = 22  # in: select step (0 clears)
DEFAULT_CC_COUNT: Final[int] = 23   # out: total step count
DEFAULT_CC_SLIDE: Final[int] = 24   # out: current slide index
DEFAULT_CHANNEL: Final[int] = 0
DEFAULT_VELOCITY: Final[int] = 80
DEFAULT_NOTE_MS: Final[int] = 600

# Extra pixels added to a reported height so the host never shows scrollbars.
DEFAULT_RESIZE_PADDING: Final[int] = 8

# Message type used to report the height to the embedding host.
DEFAULT_HEIGHT_MESSAGE: Final[str] = RESIZE
_HEIGHT_MESSAGES: Final[tuple[str, ...]] = (RESIZE, VIEWER_HEIGHT)

_TRUTHY: Final[set[str]] = {"yes", "true", "1", "on"}


@dataclass(frozen=True)
class ViewerConfig:
    """
    Configuration of a single viewer, normally read from its URL query string.

    Only ``score`` is required. Everything else falls back to the defaults
    above, so ``score=chorale.mei`` alone gives a working viewer.
    """

    score: str
    title: str = ""
    debug: bool = False
    zoom: str | float = "fit"
    analysis: str | None = None
    midi_in: str = DEFAULT_MIDI_IN
    midi_out: str = DEFAULT_MIDI_OUT
    cc_select: int = DEFAULT_CC_SELECT
    cc_count: int = DEFAULT_CC_COUNT
    cc_slide: int = DEFAULT_CC_SLIDE
    channel: int = DEFAULT_CHANNEL
    velocity: int = DEFAULT_VELOCITY
    note_duration_ms: int = DEFAULT_NOTE_MS
    resize_padding: int = DEFAULT_RESIZE_PADDING
    height_message: str = DEFAULT_HEIGHT_MESSAGE

    @property
    def note_duration(self) -> float:
        """Note duration in seconds."""
        return self.note_duration_ms / 1000.0

    @classmethod
    def from_query(cls, query: str | Mapping[str, str]) -> ViewerConfig:
        """
        Build a config from a query string (``"score=a.mei&debug=yes"``) or mapping.

        Raises:
            ConfigError: If ``score`` is missing or a value cannot be parsed.
        """
        if isinstance(query, str):
            params = dict(parse_qsl(query.lstrip("?"), keep_blank_values=True))
        else:
            params = {str(k): str(v) for k, v in query.items()}

        score = params.get("score", "").strip()
        if not score:
            raise ConfigError("No score= parameter provided")

        return cls(
            score=score,
            title=params.get("title", ""),
            debug=params.get("debug", "").strip().lower() in _TRUTHY,
            zoom=_parse_zoom(params.get("zoom")),
            analysis=params.get("analysis") or None,
            midi_in=params.get("midiIn") or DEFAULT_MIDI_IN,
            midi_out=params.get("midiOut") or DEFAULT_MIDI_OUT,
            cc_select=_parse_int(params, "ccSelect", DEFAULT_CC_SELECT, 0, 127),
            cc_count=_parse_int(params, "ccCount", DEFAULT_CC_COUNT, 0, 127),
            cc_slide=_parse_int(params, "ccSlide", DEFAULT_CC_SLIDE, 0, 127),
            channel=_parse_int(params, "channel", DEFAULT_CHANNEL, 0, 15),
            velocity=_parse_int(params, "velocity", DEFAULT_VELOCITY, 1, 127),
            note_duration_ms=_parse_int(params, "noteMs", DEFAULT_NOTE_MS, 1, 60_000),
            resize_padding=_parse_int(params, "padding", DEFAULT_RESIZE_PADDING, 0, 1000),
            height_message=_parse_height_message(params.get("heightMessage")),
        )

    def analysis_path(self) -> str:
        """
        Location of the analysis document.

        Defaults to the score location with its extension replaced by
        ``.json`` (``scores/bach.mei`` -> ``scores/bach.json``). Query strings
        and fragments of URL locations are left untouched.
        """
        if self.analysis:
            return self.analysis

        parts = urlsplit(self.score)
        path = PurePosixPath(parts.path)
        replaced = str(path.with_suffix(".json")) if path.name else parts.path
        return urlunsplit(parts._replace(path=replaced))


def _parse_zoom(raw: str | None) -> str | float:
    if raw is None or raw.strip() == "" or raw.strip().lower() == "fit":
        return "fit"
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"zoom must be 'fit' or a positive number, got {raw!r}") from exc
    if not value > 0:
        raise ConfigError(f"zoom must be positive, got {raw!r}")
    return value


def _parse_height_message(raw: str | None) -> str:
    if raw is None or raw.strip() == "":
        return DEFAULT_HEIGHT_MESSAGE
    if raw.strip() not in _HEIGHT_MESSAGES:
        raise ConfigError(f"heightMessage must be one of {', '.join(_HEIGHT_MESSAGES)}, got {raw!r}")
    return raw.strip()


def _parse_int(params: Mapping[str, str], key: str, default: int, low: int, high: int) -> int:
    raw = params.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc
    if not low <= value <= high:
        raise ConfigError(f"{key} must be between {low} and {high}, got {value}")
    return value
