"""Tests for match tier classification and threshold normalization."""

import math

import pytest

from forensics_client.models.face_recognition import CompareFacesMatch
from forensics_client.models.files import FileRecord
from forensics_client.services.match_classifier import (
    THRESHOLD_MIN,
    classify,
    normalize_threshold,
    retier,
    to_match_result,
)


@pytest.mark.parametrize(
    ("score", "threshold", "expected"),
    [
        (65, 50, "strong"),  # exactly threshold + 15
        (99.9, 50, "strong"),
        (64.99, 50, "borderline"),
        (50, 50, "borderline"),  # exactly threshold
        (49.99, 50, "none"),
        (0, 30, "none"),
        (100, 100, "borderline"),
        (100, 85, "strong"),
    ],
)
def test_classify_boundaries(score: float, threshold: float, expected: str) -> None:
    assert classify(score, threshold) == expected


def test_classify_is_total_over_valid_range() -> None:
    """Every score in [0, 100] and threshold in [30, 100] gets exactly one tier."""
    for threshold in range(30, 101, 5):
        for tenth in range(0, 1001, 7):
            tier = classify(tenth / 10, threshold)
            assert tier in {"strong", "borderline", "none"}


def test_classify_handles_nan() -> None:
    assert classify(math.nan, 50) == "none"
    assert classify(80, math.nan) == "none"


@pytest.mark.parametrize("value", [30, 55.5, 100])
def test_normalize_threshold_keeps_valid(value: float) -> None:
    assert normalize_threshold(value) == value


@pytest.mark.parametrize("value", [29.99, 0, -5, 100.01, 250, math.inf, math.nan])
def test_normalize_threshold_replaces_out_of_range(value: float) -> None:
    assert normalize_threshold(value) == THRESHOLD_MIN


def _candidate(name: str) -> FileRecord:
    return FileRecord(
        id=f"comparison-{name}", name=name, media_type="image/png", content_ref="blob:x"
    )


def test_to_match_result_resolves_candidate_by_name() -> None:
    match = CompareFacesMatch(
        input_file="a.jpg",
        compare_file="x.png",
        matched=True,
        distance=0.3,
        threshold=50,
        result=72,
    )
    result = to_match_result(match, {"x.png": _candidate("x.png")}, 50)

    assert result.candidate_id == "comparison-x.png"
    assert result.candidate_name == "x.png"
    assert result.score == 72
    assert result.distance == 0.3
    assert result.tier == "strong"


def test_to_match_result_unknown_candidate_gets_generated_id() -> None:
    match = CompareFacesMatch(
        input_file="a.jpg",
        compare_file="ghost.png",
        matched=True,
        distance=0.5,
        threshold=50,
        result=55,
    )
    result = to_match_result(match, {}, 50)

    assert result.candidate_id.startswith("match-")
    assert result.tier == "borderline"


def test_retier_changes_only_tier() -> None:
    match = CompareFacesMatch(
        input_file="a.jpg",
        compare_file="x.png",
        matched=True,
        distance=0.4,
        threshold=50,
        result=60,
    )
    original = to_match_result(match, {"x.png": _candidate("x.png")}, 50)

    lowered = retier(original, 40)
    raised = retier(original, 70)

    assert original.tier == "borderline"
    assert lowered.tier == "strong"
    assert raised.tier == "none"
    assert raised.score == original.score
    assert raised.candidate_id == original.candidate_id
