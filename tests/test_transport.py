"""Tests for the transport state machine: activation, gating, clamping and idempotence."""

import pytest

from harmonyviewer.channels import LocalFrameChannel
from harmonyviewer.transport import TransportState

ANALYSIS = [{"primary": "I", "secondary": "T"}, {"primary": "V", "secondary": "D"}, {"primary": "I", "secondary": "T"}]


@pytest.fixture
def embedded(make_viewer, three_chords):
    parent = LocalFrameChannel()
    viewer, port = make_viewer(three_chords, ANALYSIS, parent=parent)
    port.clear()
    return viewer, port, parent


def test_embedded_viewer_starts_inactive(embedded) -> None:
    viewer, _, _ = embedded
    assert viewer.transport.state is TransportState.INACTIVE


def test_standalone_viewer_is_always_active(make_viewer, three_chords) -> None:
    viewer, port = make_viewer(three_chords)
    assert viewer.transport.is_active
    viewer.transport.deactivate()
    assert viewer.transport.is_active
    assert port.control_changes(123) == []


def test_inactive_select_highlights_but_never_sounds(embedded) -> None:
    viewer, port, _ = embedded
    viewer.select_step(2)

    assert viewer.session.current_step_index == 2
    assert viewer.highlighter.highlighted() == viewer.session.steps[1].elements
    assert port.of_type("note_on") == []
    assert port.control_changes(123) == [(123, 0)]


def test_raw_controller_message_is_gated_when_inactive(embedded) -> None:
    viewer, port, _ = embedded
    viewer.on_midi_message([0xB0, 22, 1])
    assert viewer.session.current_step_index == 1
    assert port.of_type("note_on") == []


@pytest.mark.parametrize("requested,expected", [(-4, 0), (0, 0), (2, 2), (3, 3), (99, 3)])
def test_select_step_clamps(embedded, requested: int, expected: int) -> None:
    viewer, _, _ = embedded
    assert viewer.select_step(requested) == expected
    assert viewer.session.current_step_index == expected


def test_activate_sends_counters_and_reasserts_step(embedded) -> None:
    viewer, port, parent = embedded
    viewer.select_step(2)
    port.clear()

    viewer.transport.activate(4)
    assert viewer.session.is_active
    assert viewer.session.current_slide_index == 4
    assert port.control_changes(23) == [(23, 3)]
    assert port.control_changes(24) == [(24, 4)]
    assert [m.note for m in port.of_type("note_on")] == [62, 65, 69]
    assert parent.sent[-1]["type"] == "harmony-resize"


def test_reactivation_is_idempotent(embedded) -> None:
    viewer, port, _ = embedded
    viewer.transport.activate(1)
    viewer.select_step(1)
    first_state = (viewer.session.is_active, viewer.session.current_step_index)

    viewer.transport.activate(1)
    assert (viewer.session.is_active, viewer.session.current_step_index) == first_state
    assert [m.note for m in port.of_type("note_on")][-3:] == [60, 64, 67]


def test_deactivate_twice_sends_one_all_notes_off(embedded) -> None:
    viewer, port, _ = embedded
    viewer.transport.activate(0)
    viewer.select_step(1)
    port.clear()

    viewer.transport.deactivate()
    state_after_first = (viewer.session.is_active, viewer.session.current_step_index)
    viewer.transport.deactivate()

    assert (viewer.session.is_active, viewer.session.current_step_index) == state_after_first
    assert port.control_changes(123) == [(123, 0)]
    assert not viewer.session.is_active


def test_deactivate_while_inactive_is_a_noop(embedded) -> None:
    viewer, port, _ = embedded
    viewer.transport.deactivate()
    assert port.sent == []


def test_step_zero_sends_all_notes_off_when_active(embedded) -> None:
    viewer, port, _ = embedded
    viewer.transport.activate(0)
    port.clear()
    viewer.select_step(0)
    assert port.of_type("note_on") == []
    assert port.control_changes(123) == [(123, 0)]


def test_request_step_count_resend_keeps_selection(embedded) -> None:
    viewer, port, _ = embedded
    viewer.transport.activate(0)
    viewer.select_step(3)
    port.clear()

    viewer.handle_message({"type": "harmony-request-step-count"})
    assert port.control_changes() == [(23, 3)]
    assert viewer.session.current_step_index == 3


def test_slide_visible_resets_highlight(embedded) -> None:
    viewer, _, parent = embedded
    viewer.select_step(2)
    viewer.handle_message({"type": "reveal-slide-visible", "slideIndex": 5})
    assert viewer.session.current_step_index == 0
    assert viewer.session.current_slide_index == 5
    assert viewer.highlighter.highlighted() == []
    assert parent.sent[-1]["type"] == "harmony-resize"


def test_next_step_wraps(embedded) -> None:
    viewer, _, _ = embedded
    assert [viewer.next_step() for _ in range(4)] == [1, 2, 3, 1]


def test_operations_before_steps_are_safe(scheduler) -> None:
    from harmonyviewer.config import ViewerConfig
    from harmonyviewer.viewer import HarmonyViewer

    viewer = HarmonyViewer(ViewerConfig(score="never-loaded.mei"), parent=LocalFrameChannel(), scheduler=scheduler)
    viewer.handle_message({"type": "harmony-activate", "slideIndex": 0})
    assert viewer.select_step(3) == 0
    assert viewer.next_step() == 0
    viewer.resize(800)
    viewer.handle_message({"type": "harmony-deactivate"})
    assert not viewer.session.is_active


def test_malformed_messages_are_ignored(embedded) -> None:
    viewer, port, _ = embedded
    for payload in (None, "activate", {"type": "harmony-activate"}, {"type": "bogus"}):
        viewer.handle_message(payload)
    assert not viewer.session.is_active
    assert port.sent == []
