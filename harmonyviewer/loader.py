"""Fetching score and analysis documents from local paths or HTTP(S) URLs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx

from harmonyviewer.errors import ScoreLoadError
from harmonyviewer.score_models import AnalysisEntry

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = httpx.Timeout(10.0, connect=5.0)

_PRIMARY_KEYS = ("primary", "roman", "label")
_SECONDARY_KEYS = ("secondary", "function", "sub")


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def fetch_text(location: str) -> str:
    """
    Read a document from a local path or an HTTP(S) URL.

    Raises:
        ScoreLoadError: If the document cannot be read.
    """
    if _is_url(location):
        try:
            response = httpx.get(location, timeout=FETCH_TIMEOUT, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ScoreLoadError(f"Failed to load score: {location} ({exc})") from exc
        return response.text

    try:
        return Path(location).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ScoreLoadError(f"Failed to load score: {location} ({exc})") from exc


def load_analysis(location: str) -> list[AnalysisEntry | None]:
    """
    Load the analysis document aligned 1:1 with the partitioned steps.

    A missing or malformed document is not an error: the overlay is simply
    suppressed, so an empty list is returned and the problem is logged.
    """
    try:
        text = fetch_text(location)
    except ScoreLoadError as exc:
        logger.info("No analysis document at %s: %s", location, exc)
        return []

    try:
        document = json.loads(text)
    except ValueError as exc:
        logger.warning("Ignoring malformed analysis document %s: %s", location, exc)
        return []

    return parse_analysis(document)


def parse_analysis(document: Any) -> list[AnalysisEntry | None]:
    """
    Normalise an analysis document into a list of entries.

    Accepts ``{"steps": [...]}`` or a bare list. Entries may be objects with
    primary/secondary labels (``roman``/``function`` aliases accepted) or
    two-item lists. Unusable entries become None and leave that step
    unannotated.
    """
    if isinstance(document, list):
        document = {"steps": document}
    if not isinstance(document, dict):
        logger.warning("Analysis document must be an object or a list")
        return []

    steps = document.get("steps")
    if not isinstance(steps, list):
        logger.warning("Analysis document has no 'steps' list")
        return []

    return [_parse_entry(raw) for raw in steps]


def _parse_entry(raw: Any) -> AnalysisEntry | None:
    if isinstance(raw, dict):
        primary = _first_label(raw, _PRIMARY_KEYS)
        secondary = _first_label(raw, _SECONDARY_KEYS)
    elif isinstance(raw, (list, tuple)) and raw:
        primary = str(raw[0])
        secondary = str(raw[1]) if len(raw) > 1 else ""
    elif isinstance(raw, str):
        primary, secondary = raw, ""
    else:
        return None

    if not primary and not secondary:
        return None
    return AnalysisEntry(primary=primary, secondary=secondary)


def _first_label(raw: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return str(value)
    return ""
