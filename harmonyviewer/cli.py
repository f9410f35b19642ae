"""harmonyviewer CLI entry point."""

import logging
import sys
import time
from pathlib import Path

import click

from harmonyviewer import __version__
from harmonyviewer.channels import FrameChannel
from harmonyviewer.config import ViewerConfig
from harmonyviewer.deck_bridge import Deck, DeckBridge
from harmonyviewer.errors import HarmonyViewerError
from harmonyviewer.midi import list_ports
from harmonyviewer.viewer import HarmonyViewer


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _load_viewer(
    config: ViewerConfig,
    container_width: float | None = None,
    parent: FrameChannel | None = None,
) -> HarmonyViewer:
    """Load a viewer, exiting with an error message on fatal load errors."""
    viewer = HarmonyViewer(config, parent=parent, container_width=container_width)
    try:
        viewer.load()
    except HarmonyViewerError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)
    return viewer


def _score_config(score: str, analysis: str | None, debug: bool, **extra: str) -> ViewerConfig:
    params = {"score": score, "debug": "yes" if debug else "no", **extra}
    if analysis:
        params["analysis"] = analysis
    try:
        return ViewerConfig.from_query(params)
    except HarmonyViewerError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="harmonyviewer")
def main() -> None:
    """harmonyviewer — step-by-step harmonic walkthroughs driven by MIDI."""


# ── steps subcommand ───────────────────────────────────────────────────────────

@main.command()
@click.argument("score")
@click.option(
    "--analysis",
    default=None,
    metavar="PATH",
    help="Analysis document. Defaults to SCORE with a .json extension.",
)
@click.option("--debug", is_flag=True, help="Verbose diagnostics.")
def steps(score: str, analysis: str | None, debug: bool) -> None:
    """
    Print the harmonic steps of SCORE with their pitches and labels.

    \b
    Examples:
      harmonyviewer steps chorale.mei
      harmonyviewer steps https://example.org/chorale.mei --analysis chorale-roman.json
    """
    _configure_logging(debug)
    viewer = _load_viewer(_score_config(score, analysis, debug))

    click.echo(f"harmonyviewer v{__version__}")
    click.echo(f"  Score  : {score}")
    click.echo(f"  Steps  : {viewer.session.step_count}")
    click.echo()
    for step in viewer.session.steps:
        entry = viewer.overlay.entry(step.index)
        label = f"{entry.primary} / {entry.secondary}" if entry else "-"
        pitches = " ".join(str(p) for p in step.pitches) or "(unresolved)"
        click.echo(f"  {step.index:4d}  {len(step.noteheads):2d} heads  {pitches:<24}  {label}")


# ── ports subcommand ───────────────────────────────────────────────────────────

@main.command()
def ports() -> None:
    """List the MIDI input and output ports visible to the backend."""
    input_names, output_names = list_ports()
    click.echo("MIDI inputs:")
    for name in input_names or ["(none)"]:
        click.echo(f"  {name}")
    click.echo("MIDI outputs:")
    for name in output_names or ["(none)"]:
        click.echo(f"  {name}")


# ── render subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("score")
@click.option(
    "--step",
    "step_index",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Step to highlight (0 = none).",
)
@click.option(
    "--analysis",
    default=None,
    metavar="PATH",
    help="Analysis document. Defaults to SCORE with a .json extension.",
)
@click.option("--title", default="", help="Title shown above the score.")
@click.option(
    "--width",
    type=click.FloatRange(min=1),
    default=None,
    help="Container width in pixels, used when zoom is 'fit'.",
)
@click.option(
    "--zoom",
    default="fit",
    show_default=True,
    help="'fit' or a positive scale factor.",
)
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination HTML file. Defaults to SCORE with a .html extension.",
)
@click.option("--debug", is_flag=True, help="Verbose diagnostics.")
def render(
    score: str,
    step_index: int,
    analysis: str | None,
    title: str,
    width: float | None,
    zoom: str,
    output: str | None,
    debug: bool,
) -> None:
    """
    Write an HTML snapshot of SCORE with one step highlighted and annotated.

    \b
    Examples:
      harmonyviewer render chorale.mei --step 2
      harmonyviewer render chorale.mei --step 5 --width 1024 -o step5.html
    """
    from harmonyviewer.page import ViewerPageRenderer

    _configure_logging(debug)
    config = _score_config(score, analysis, debug, title=title, zoom=zoom)
    viewer = _load_viewer(config, container_width=width)
    selected = viewer.select_step(step_index)

    resolved_output = output if output is not None else str(Path(score).with_suffix(".html").name)
    assert viewer.layout is not None
    html = ViewerPageRenderer().build_html(config.title, viewer.svg(), viewer.overlay.state, viewer.layout.scale)
    try:
        Path(resolved_output).write_text(html, encoding="utf-8")
    except OSError as exc:
        click.echo(f"  ERROR: Could not write output file — {exc}", err=True)
        sys.exit(1)

    click.echo(f"Step {selected} of {viewer.session.step_count} written to '{resolved_output}'.")


# ── export subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("score")
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file. Defaults to SCORE with a .mid extension.",
)
@click.option(
    "--tempo",
    type=click.IntRange(20, 300),
    default=60,
    show_default=True,
    help="Steps per minute.",
)
@click.option("--debug", is_flag=True, help="Verbose diagnostics.")
def export(score: str, output: str | None, tempo: int, debug: bool) -> None:
    """Export the harmonic steps of SCORE as a MIDI file, one chord per beat."""
    from harmonyviewer.midi_export import StepMidiExporter

    _configure_logging(debug)
    viewer = _load_viewer(_score_config(score, None, debug))

    resolved_output = output if output is not None else str(Path(score).with_suffix(".mid").name)
    try:
        StepMidiExporter(tempo=tempo).export(viewer.session.steps, resolved_output)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write MIDI file — {exc}", err=True)
        sys.exit(1)

    click.echo(f"{viewer.session.step_count} step(s) written to '{resolved_output}'.")


# ── play subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("query")
def play(query: str) -> None:
    """
    Run a standalone viewer bound to MIDI ports until interrupted.

    QUERY holds the viewer options in URL form. With debug=yes, pressing
    Enter advances one step.

    \b
    Examples:
      harmonyviewer play "score=chorale.mei"
      harmonyviewer play "score=chorale.mei&midiIn=IAC Bus 1&midiOut=IAC Bus 2&debug=yes"
    """
    try:
        config = ViewerConfig.from_query(query)
    except HarmonyViewerError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)

    _configure_logging(config.debug)
    viewer = _load_viewer(config)
    binding = viewer.bind_midi()

    click.echo(f"harmonyviewer v{__version__}")
    click.echo(f"  Score  : {config.score}")
    click.echo(f"  Steps  : {viewer.session.step_count}")
    click.echo(f"  In     : {'bound' if binding.input is not None else 'unbound'} ({config.midi_in})")
    click.echo(f"  Out    : {'bound' if binding.output is not None else 'unbound'} ({config.midi_out})")
    click.echo()

    try:
        if config.debug:
            click.echo("Press Enter for the next step, Ctrl-C to quit.")
            for _ in sys.stdin:
                index = viewer.next_step()
                entry = viewer.overlay.entry(index)
                click.echo(f"  step {index}" + (f"  {entry.primary} / {entry.secondary}" if entry else ""))
        else:
            click.echo("Listening for MIDI. Ctrl-C to quit.")
            while True:
                time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        viewer.close()


# ── deck subcommand ────────────────────────────────────────────────────────────

def _echo_deck(presentation: Deck, viewers: list[tuple[str, HarmonyViewer]]) -> None:
    for index, slide in enumerate(presentation.slides):
        marker = ">" if index == presentation.current_index else " "
        names = ", ".join(frame.name for frame in slide.frames)
        height = "-" if slide.height is None else f"{slide.height:g}px"
        click.echo(f"  {marker} slide {index}: {names}  height {height}")
    active = [name for name, viewer in viewers if viewer.session.is_active]
    click.echo(f"  active: {', '.join(active) or '(none)'}")


@main.command()
@click.argument("scores", nargs=-1, required=True)
@click.option(
    "--padding",
    type=click.FloatRange(min=0),
    default=0,
    show_default=True,
    help="Pixels the host adds to every reported viewer height.",
)
@click.option(
    "--midi/--no-midi",
    default=True,
    show_default=True,
    help="Bind each viewer to the default MIDI ports.",
)
@click.option("--debug", is_flag=True, help="Verbose diagnostics.")
def deck(scores: tuple[str, ...], padding: float, midi: bool, debug: bool) -> None:
    """
    Embed each SCORE on its own slide and navigate the deck from standard input.

    Only the viewers on the current slide are active and talk MIDI.

    \b
    Commands, one per line:
      N       go to slide N (counted from 0)
      n / p   next / previous slide
      f / h   fragment shown / hidden
      q       quit

    \b
    Examples:
      harmonyviewer deck intro.mei chorale.mei cadence.mei
    """
    _configure_logging(debug)
    presentation = Deck()
    bridge = DeckBridge(presentation, padding=padding)
    viewers: list[tuple[str, HarmonyViewer]] = []

    for slide_index, score in enumerate(scores):
        name = f"{Path(score).name}@{slide_index}"
        config = _score_config(score, None, debug)

        def make(parent: FrameChannel, config: ViewerConfig = config, name: str = name):
            viewer = _load_viewer(config, parent=parent)
            viewers.append((name, viewer))
            return viewer.handle_message

        bridge.embed(slide_index, name, make)

    try:
        if midi:
            for _, viewer in viewers:
                viewer.bind_midi()
        bridge.on_ready()
        _echo_deck(presentation, viewers)

        last = len(presentation.slides) - 1
        for line in sys.stdin:
            command = line.strip().lower()
            if command.isdigit():
                bridge.on_slide_changed(min(int(command), last))
            elif command == "n":
                bridge.on_slide_changed(min(presentation.current_index + 1, last))
            elif command == "p":
                bridge.on_slide_changed(max(presentation.current_index - 1, 0))
            elif command == "f":
                bridge.on_fragment_shown()
            elif command == "h":
                bridge.on_fragment_hidden()
            elif command == "q":
                break
            else:
                click.echo(f"  Unknown command: {command!r}")
                continue
            _echo_deck(presentation, viewers)
    except KeyboardInterrupt:
        pass
    finally:
        for _, viewer in viewers:
            viewer.close()
