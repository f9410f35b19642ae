"""CLI smoke tests using click's CliRunner with a fake toolkit."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from conftest import FakeToolkit, build_score

from harmonyviewer import cli, viewer as viewer_module
from harmonyviewer.cli import main


@pytest.fixture
def score(tmp_path: Path, monkeypatch, three_chords) -> Path:
    path = tmp_path / "chorale.mei"
    path.write_text("<mei/>", encoding="utf-8")
    (tmp_path / "chorale.json").write_text(json.dumps([["I", "T"], ["V", "D"], ["I", "T"]]), encoding="utf-8")
    svg, attrs = build_score(three_chords)
    monkeypatch.setattr(viewer_module, "VerovioToolkit", lambda: FakeToolkit(svg, attrs))
    return path


def test_steps_lists_pitches_and_labels(score: Path) -> None:
    result = CliRunner().invoke(main, ["steps", str(score)])
    assert result.exit_code == 0
    assert "Steps  : 3" in result.output
    assert "62 65 69" in result.output
    assert "V / D" in result.output


def test_render_writes_html(score: Path, tmp_path: Path) -> None:
    out = tmp_path / "step2.html"
    result = CliRunner().invoke(main, ["render", str(score), "--step", "2", "-o", str(out)])
    assert result.exit_code == 0
    html = out.read_text(encoding="utf-8")
    assert '<span class="primary">V</span>' in html
    assert "hv-highlight" in html


def test_missing_score_exits_with_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, ["steps", str(tmp_path / "nope.mei")])
    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_play_requires_score() -> None:
    result = CliRunner().invoke(main, ["play", "title=Nothing"])
    assert result.exit_code == 1


def test_ports_lists_backend_ports(monkeypatch) -> None:
    monkeypatch.setattr(cli, "list_ports", lambda: (["Max->Browser"], []))
    result = CliRunner().invoke(main, ["ports"])
    assert result.exit_code == 0
    assert "Max->Browser" in result.output
    assert "(none)" in result.output


def test_deck_moves_activation_with_navigation(score: Path) -> None:
    result = CliRunner().invoke(
        main,
        ["deck", str(score), str(score), "--no-midi", "--padding", "4"],
        input="1\nf\nbogus\np\nq\n",
    )
    assert result.exit_code == 0
    blocks = result.output.split("  active: ")[1:]
    assert [block.splitlines()[0] for block in blocks] == [
        "chorale.mei@0",
        "chorale.mei@1",
        "chorale.mei@1",
        "chorale.mei@0",
    ]
    assert "Unknown command: 'bogus'" in result.output
    assert "height -" not in result.output


def test_deck_with_missing_score_exits_with_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, ["deck", str(tmp_path / "nope.mei"), "--no-midi"], input="q\n")
    assert result.exit_code == 1
    assert "ERROR" in result.output
