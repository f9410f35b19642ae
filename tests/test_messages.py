"""Unit tests for cross-frame message validation."""

import pytest

from harmonyviewer.messages import (
    HarmonyActivate,
    HarmonyDeactivate,
    HarmonyRequestStepCount,
    HarmonyResize,
    RevealSlideVisible,
    ViewerHeight,
    parse_message,
)


def test_activate() -> None:
    assert parse_message({"type": "harmony-activate", "slideIndex": 3}) == HarmonyActivate(3)


def test_simple_variants() -> None:
    assert parse_message({"type": "harmony-deactivate"}) == HarmonyDeactivate()
    assert parse_message({"type": "harmony-request-step-count"}) == HarmonyRequestStepCount()


def test_heights() -> None:
    assert parse_message({"type": "harmony-resize", "height": 412}) == HarmonyResize(412.0)
    assert parse_message({"type": "viewer-height", "height": 98.5}) == ViewerHeight(98.5)


def test_reveal_slide_visible_with_and_without_index() -> None:
    assert parse_message({"type": "reveal-slide-visible"}) == RevealSlideVisible()
    assert parse_message({"type": "reveal-slide-visible", "slideIndex": 2}) == RevealSlideVisible(2)


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "harmony-activate",
        ["harmony-activate"],
        {},
        {"type": "something-else"},
        {"type": "harmony-activate"},
        {"type": "harmony-activate", "slideIndex": "1"},
        {"type": "harmony-activate", "slideIndex": True},
        {"type": "harmony-activate", "slideIndex": -1},
        {"type": "harmony-resize"},
        {"type": "harmony-resize", "height": float("nan")},
        {"type": "harmony-resize", "height": -5},
        {"type": "reveal-slide-visible", "slideIndex": None},
    ],
)
def test_malformed_payloads_are_rejected(payload) -> None:
    assert parse_message(payload) is None


def test_payload_round_trip_shape() -> None:
    assert HarmonyActivate(1).to_payload() == {"type": "harmony-activate", "slideIndex": 1}
    assert RevealSlideVisible().to_payload() == {"type": "reveal-slide-visible"}
