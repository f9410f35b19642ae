"""HarmonyViewer: one viewer instance, from score loading to MIDI routing."""

from __future__ import annotations

import logging
from typing import Any
from xml.etree import ElementTree

from harmonyviewer.channels import FrameChannel
from harmonyviewer.config import ViewerConfig
from harmonyviewer.errors import ScoreLoadError
from harmonyviewer.host_bridge import HostBridge
from harmonyviewer.layout import SvgLayout, reported_height
from harmonyviewer.loader import fetch_text, load_analysis
from harmonyviewer.midi import MidiOutput, parse_control_change, resolve_ports
from harmonyviewer.overlay import HighlightRenderer, OverlayRenderer
from harmonyviewer.partitioner import build_steps
from harmonyviewer.scheduling import Scheduler
from harmonyviewer.score_models import MidiPortBinding, SessionState
from harmonyviewer.toolkit import VerovioToolkit
from harmonyviewer.transport import TransportStateMachine

logger = logging.getLogger(__name__)

ElementTree.register_namespace("", "http://www.w3.org/2000/svg")
ElementTree.register_namespace("xlink", "http://www.w3.org/1999/xlink")


class HarmonyViewer:
    """
    A single score viewer.

    A viewer created with a ``parent`` channel is embedded in a deck and
    starts inactive until the host activates it; without one it is
    standalone and permanently active.

    Usage:

        viewer = HarmonyViewer(ViewerConfig.from_query("score=chorale.mei"))
        viewer.load()
        viewer.bind_midi()
        viewer.select_step(2)
    """

    def __init__(
        self,
        config: ViewerConfig,
        parent: FrameChannel | None = None,
        toolkit: VerovioToolkit | None = None,
        output: MidiOutput | None = None,
        scheduler: Scheduler | None = None,
        container_width: float | None = None,
        origin: tuple[float, float] = (0.0, 0.0),
    ) -> None:
        self.config = config
        self.toolkit = toolkit
        self.container_width = container_width
        self.origin = origin

        self.session = SessionState()
        self.root: ElementTree.Element | None = None
        self.layout: SvgLayout | None = None
        self.painted = False
        self.error: str | None = None
        self.ports = MidiPortBinding()

        self.output = output or MidiOutput(
            None,
            channel=config.channel,
            velocity=config.velocity,
            note_duration=config.note_duration,
            scheduler=scheduler,
        )
        self.highlighter = HighlightRenderer(self.session)
        self.overlay = OverlayRenderer(self.session, layout=lambda: self.layout)
        self.transport = TransportStateMachine(
            self.session,
            self.highlighter,
            self.overlay,
            self.output,
            report_height=self.report_height,
            embedded=parent is not None,
            cc_select=config.cc_select,
            cc_count=config.cc_count,
            cc_slide=config.cc_slide,
        )
        self.host_bridge = HostBridge(
            self.transport,
            parent,
            measure=self.measure_height,
            height_type=config.height_message,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Fetch, render and partition the score, then load its analysis.

        Raises:
            ScoreLoadError: On any fatal load failure. The viewer keeps the
                            message in ``error`` and is unusable afterwards.
        """
        try:
            data = fetch_text(self.config.score)
            if self.toolkit is None:
                self.toolkit = VerovioToolkit()
            self.toolkit.load(data)
            self._paint(self.toolkit.render_svg(1))
        except ScoreLoadError as exc:
            self.error = str(exc)
            logger.error("%s", exc)
            raise

        assert self.root is not None
        steps = build_steps(self.root, self.toolkit)
        logger.info("Total harmonic steps: %d", len(steps))

        self.overlay.analysis = load_analysis(self.config.analysis_path())
        self.highlighter.root = self.root
        self.transport.load_steps(steps)
        self.report_height()

    def _paint(self, svg: str) -> None:
        """Parse the rendered SVG and lay it out; steps may only be read once painted."""
        try:
            root = ElementTree.fromstring(svg)
        except ElementTree.ParseError as exc:
            raise ScoreLoadError(f"Rendered score is not valid SVG: {exc}") from exc

        self.root = root
        self.layout = SvgLayout(
            root,
            zoom=self.config.zoom,
            container_width=self.container_width,
            origin=self.origin,
        )
        self.painted = True

    # ------------------------------------------------------------------
    # MIDI
    # ------------------------------------------------------------------

    def bind_midi(self) -> MidiPortBinding:
        """Resolve the configured MIDI ports; missing ports only disable MIDI."""
        self.ports = resolve_ports(
            self.config.midi_in,
            self.config.midi_out,
            on_message=self.on_midi_message,
        )
        self.output.port = self.ports.output
        if self.ports.output is not None:
            self.transport.request_step_count_resend()
        return self.ports

    def on_midi_message(self, message: Any) -> None:
        control_change = parse_control_change(message)
        if control_change is not None:
            self.transport.handle_control_change(*control_change)

    # ------------------------------------------------------------------
    # Host and layout
    # ------------------------------------------------------------------

    def handle_message(self, payload: Any) -> None:
        """Inbound cross-frame message from the host."""
        self.host_bridge.handle_message(payload)

    def measure_height(self) -> int | None:
        if self.layout is None:
            return None
        return reported_height(self.layout, self.config.resize_padding)

    def report_height(self) -> None:
        self.host_bridge.report_height()

    def resize(self, container_width: float) -> None:
        """Refit to a new container width; safe to call before the score is loaded."""
        self.container_width = container_width
        if self.layout is None:
            return
        self.layout.refit(container_width)
        self.overlay.invalidate_baseline()
        self.overlay.update(self.session.current_step_index)
        self.report_height()

    # ------------------------------------------------------------------
    # Local controls
    # ------------------------------------------------------------------

    def select_step(self, n: int) -> int:
        return self.transport.select_step(n)

    def next_step(self) -> int:
        return self.transport.next_step()

    def svg(self) -> str:
        """Serialise the rendered score, including current highlight marks."""
        if self.root is None:
            return ""
        return ElementTree.tostring(self.root, encoding="unicode")

    def close(self) -> None:
        self.output.all_notes_off()
        self.ports.close()
