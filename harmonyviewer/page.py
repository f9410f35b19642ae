"""ViewerPageRenderer: a self-contained HTML snapshot of a viewer's current state."""

from __future__ import annotations

from harmonyviewer.overlay import HIGHLIGHT_CLASS, HIGHLIGHT_COLOR
from harmonyviewer.score_models import OverlayState


def _escape_html(text: str) -> str:
    """Escape the three characters that are unsafe in HTML text content."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class ViewerPageRenderer:
    """
    Wrap a rendered (and possibly highlighted) score SVG in an HTML page.

    The annotation overlay is absolutely positioned in viewer-local pixels,
    so the page reproduces what the viewer shows for the selected step.
    """

    def build_html(self, title: str, svg: str, overlay: OverlayState, scale: float = 1.0) -> str:
        title_safe = _escape_html(title)
        heading = f'  <div id="title">{title_safe}</div>\n' if title else ""
        if overlay.visible:
            label = (
                f'    <div id="overlay" style="left: {overlay.x:.1f}px; top: {overlay.y:.1f}px;">'
                f'<span class="primary">{_escape_html(overlay.primary)}</span>'
                f'<span class="secondary">{_escape_html(overlay.secondary)}</span></div>\n'
            )
        else:
            label = ""

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{title_safe}</title>
  <style>
    html, body {{
      margin: 0;
      overflow: hidden;
      background: #fff;
      font-family: Georgia, serif;
    }}
    #title {{
      text-align: center;
      font-size: 1.4rem;
      margin: 0.5rem 0;
      color: #222;
    }}
    #score {{
      position: relative;
    }}
    #score > svg {{
      display: block;
      transform: scale({scale:.4f});
      transform-origin: 0 0;
    }}
    #overlay {{
      position: absolute;
      transform: translateX(-50%);
      text-align: center;
      line-height: 1.2;
    }}
    #overlay .primary {{
      display: block;
      font-size: 1.3rem;
      font-weight: bold;
    }}
    #overlay .secondary {{
      display: block;
      font-size: 0.9rem;
      color: #555;
    }}
    .{HIGHLIGHT_CLASS} {{ fill: {HIGHLIGHT_COLOR} !important; color: {HIGHLIGHT_COLOR} !important; }}
  </style>
</head>
<body>
{heading}  <div id="score">
    {svg}
{label}  </div>
</body>
</html>"""
