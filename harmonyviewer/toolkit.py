"""VerovioToolkit: thin adapter around the verovio rendering toolkit."""

from __future__ import annotations

import json
import logging
from typing import Any, cast

from harmonyviewer.errors import ScoreLoadError

logger = logging.getLogger(__name__)


class VerovioToolkit:
    """
    Load a score document into verovio, render it to SVG and look up element attributes.

    Layout options are kept conservative so they are accepted by every verovio
    build we have seen in the wild.
    """

    # Verovio layout constants (verovio abstract units; ~1 unit ≈ 0.1 mm)
    _SCALE: int = 40
    _PAGE_WIDTH: int = 3000
    _PAGE_HEIGHT: int = 2000
    _SPACING_STAFF: int = 12
    _SPACING_SYSTEM: int = 18

    def __init__(self, toolkit: Any | None = None) -> None:
        """
        Args:
            toolkit: An already constructed ``verovio.toolkit`` (or a stand-in
                     with the same methods). Created on demand when omitted.

        Raises:
            ScoreLoadError: If verovio is not installed.
        """
        if toolkit is None:
            toolkit = self._create_toolkit()
        self._tk = toolkit

    def _create_toolkit(self) -> Any:
        try:
            import verovio
        except ImportError as exc:
            raise ScoreLoadError("Verovio toolkit not loaded (verovio is not installed)") from exc

        tk = verovio.toolkit()
        tk.setOptions(
            {
                "scale": self._SCALE,
                "pageWidth": self._PAGE_WIDTH,
                "pageHeight": self._PAGE_HEIGHT,
                "adjustPageHeight": True,
                "spacingStaff": self._SPACING_STAFF,
                "spacingSystem": self._SPACING_SYSTEM,
            }
        )
        return tk

    def load(self, data: str) -> None:
        """
        Load a score document (MEI, MusicXML, Humdrum, ...).

        Raises:
            ScoreLoadError: If verovio refuses the data.
        """
        try:
            loaded = bool(self._tk.loadData(data))
        except Exception as exc:
            raise ScoreLoadError(f"verovio could not parse the score: {exc}") from exc
        if not loaded:
            raise ScoreLoadError("verovio could not load the score data.")

    def render_svg(self, page_no: int = 1) -> str:
        """
        Render one page to SVG with compatibility for multiple verovio bindings.

        Some versions accept keyword arguments, while others only accept
        positional arguments.
        """
        try:
            return cast(str, self._tk.renderToSVG(pageNo=page_no, xmlDeclaration=False))
        except TypeError:
            try:
                return cast(str, self._tk.renderToSVG(page_no, False))
            except TypeError:
                return cast(str, self._tk.renderToSVG(page_no))

    def element_attr(self, element_id: str) -> dict[str, Any]:
        """
        Return the toolkit attributes of an element, e.g. ``{"pname": "c", "oct": "4"}``.

        Bindings differ in whether they return a dict or a JSON string; both
        are normalised to a dict. Unknown ids give an empty dict.
        """
        raw = self._tk.getElementAttr(element_id)
        if isinstance(raw, dict):
            return raw
        if isinstance(raw, (str, bytes)):
            try:
                parsed = json.loads(raw or "{}")
            except ValueError:
                logger.debug("Unparseable attributes for %s: %r", element_id, raw)
                return {}
            return parsed if isinstance(parsed, dict) else {}
        return {}
