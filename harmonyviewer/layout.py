"""Layout: screen-space geometry of a rendered score.

Verovio draws every glyph as a ``<use>`` of a font symbol, positioned either
with ``x``/``y`` attributes or with a ``translate(...) scale(...)`` transform,
inside a nested ``<svg class="definition-scale">`` whose viewBox is in
verovio units. The outer ``<svg>`` carries the pixel size, and the viewer
applies its own zoom on top of that. Positions used for overlays are always
viewer-local pixels: screen box minus the container's screen origin.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from typing import Final
from xml.etree.ElementTree import Element

from harmonyviewer.partitioner import ScoreTree, local_name
from harmonyviewer.score_models import BoundingBox

# SMuFL noteheadBlack spans 1.18 x 1 staff spaces; one em is four staff spaces.
NOTEHEAD_EM_WIDTH: Final[float] = 0.295
NOTEHEAD_EM_HALF_HEIGHT: Final[float] = 0.125
DEFAULT_GLYPH_EM: Final[float] = 1000.0

_TRANSFORM_RE = re.compile(r"(translate|scale)\s*\(([^)]*)\)")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

# (sx, sy, tx, ty): x' = sx * x + tx, y' = sy * y + ty
Affine = tuple[float, float, float, float]
IDENTITY: Final[Affine] = (1.0, 1.0, 0.0, 0.0)


def _numbers(raw: str | None) -> list[float]:
    return [float(n) for n in _NUMBER_RE.findall(raw or "")]


def _length(raw: str | None) -> float | None:
    values = _numbers(raw)
    return values[0] if values else None


def parse_transform(raw: str | None, base: Affine = IDENTITY) -> Affine:
    """Compose the ``translate``/``scale`` operations of a transform attribute onto *base*."""
    sx, sy, tx, ty = base
    for op, args in _TRANSFORM_RE.findall(raw or ""):
        values = _numbers(args)
        if not values:
            continue
        if op == "translate":
            dx = values[0]
            dy = values[1] if len(values) > 1 else 0.0
            tx, ty = tx + sx * dx, ty + sy * dy
        else:
            cx = values[0]
            cy = values[1] if len(values) > 1 else cx
            sx, sy = sx * cx, sy * cy
    return sx, sy, tx, ty


class Layout(ABC):
    """Abstract source of screen geometry for score elements."""

    @abstractmethod
    def element_box(self, element: Element) -> BoundingBox:
        """Bounding box of *element* in screen pixels."""

    @abstractmethod
    def container_origin(self) -> tuple[float, float]:
        """Screen position of the viewer container's top-left corner."""

    @abstractmethod
    def content_height(self) -> float:
        """Height of the rendered image in pixels, after zoom."""

    @abstractmethod
    def refit(self, container_width: float) -> None:
        """Recompute the zoom for a new container width."""


def local_box(layout: Layout, element: Element) -> BoundingBox:
    """Element box in viewer-local pixels (screen box minus container origin)."""
    origin_x, origin_y = layout.container_origin()
    return layout.element_box(element).translate(-origin_x, -origin_y)


class SvgLayout(Layout):
    """
    Geometry derived from verovio SVG markup.

    Args:
        root:            Root ``<svg>`` element of the rendered page.
        zoom:            ``"fit"`` to scale the image to the container width,
                         or a positive manual scale factor.
        container_width: Width of the viewer container in pixels (used by fit).
        origin:          Screen position of the viewer container.
    """

    def __init__(
        self,
        root: Element,
        zoom: str | float = "fit",
        container_width: float | None = None,
        origin: tuple[float, float] = (0.0, 0.0),
    ) -> None:
        self.root = root
        self.zoom = zoom
        self.origin = origin
        self._tree = ScoreTree(root)

        self.pixel_width = _length(root.get("width"))
        self.pixel_height = _length(root.get("height"))
        self.view_box = self._find_view_box()
        if self.pixel_width is None:
            self.pixel_width = self.view_box[2]
        if self.pixel_height is None:
            self.pixel_height = self.view_box[3]

        self.scale = 1.0
        self.refit(container_width if container_width is not None else self.pixel_width)

    def _find_view_box(self) -> tuple[float, float, float, float]:
        for element in self.root.iter():
            if local_name(element) == "svg" and element.get("viewBox"):
                values = _numbers(element.get("viewBox"))
                if len(values) == 4 and values[2] > 0 and values[3] > 0:
                    return values[0], values[1], values[2], values[3]
        width = _length(self.root.get("width")) or 1.0
        height = _length(self.root.get("height")) or 1.0
        return 0.0, 0.0, width, height

    def refit(self, container_width: float) -> None:
        if self.zoom == "fit":
            self.scale = container_width / self.pixel_width if self.pixel_width else 1.0
        else:
            self.scale = float(self.zoom)

    def container_origin(self) -> tuple[float, float]:
        return self.origin

    def content_height(self) -> float:
        return (self.pixel_height or 0.0) * self.scale

    def _accumulated(self, element: Element) -> Affine:
        chain = [element, *self._tree.ancestors(element)]
        affine = IDENTITY
        for node in reversed(chain):
            if local_name(node) == "svg":
                continue
            affine = parse_transform(node.get("transform"), affine)
        return affine

    def _to_screen(self, x: float, y: float) -> tuple[float, float]:
        vx, vy, vw, _vh = self.view_box
        units_to_px = (self.pixel_width or vw) / vw
        origin_x, origin_y = self.origin
        return (
            origin_x + (x - vx) * units_to_px * self.scale,
            origin_y + (y - vy) * units_to_px * self.scale,
        )

    def element_box(self, element: Element) -> BoundingBox:
        sx, sy, tx, ty = self._accumulated(element)
        em = _length(element.get("width")) or DEFAULT_GLYPH_EM
        x = _length(element.get("x")) or 0.0
        y = _length(element.get("y")) or 0.0

        half_height = em * NOTEHEAD_EM_HALF_HEIGHT
        corners = [
            (sx * px + tx, sy * py + ty)
            for px, py in (
                (x, y - half_height),
                (x + em * NOTEHEAD_EM_WIDTH, y + half_height),
            )
        ]
        (left, top), (right, bottom) = (self._to_screen(cx, cy) for cx, cy in corners)
        return BoundingBox(
            left=min(left, right),
            top=min(top, bottom),
            right=max(left, right),
            bottom=max(top, bottom),
        )


def reported_height(layout: Layout, padding: int) -> int:
    """Height to report to the host: rendered content rounded up, plus padding."""
    return int(math.ceil(layout.content_height())) + padding
