"""Display-tier classification of match scores.

Tiers only affect presentation: every match the backend reports is
kept regardless of its tier.
"""

from __future__ import annotations

import logging
import math
import uuid

from forensics_client.models.face_recognition import (
    CompareFacesMatch,
    MatchResult,
    MatchTier,
)
from forensics_client.models.files import FileRecord

logger = logging.getLogger(__name__)

# Points above the threshold a score needs to count as a strong match.
STRONG_MARGIN = 15.0

THRESHOLD_MIN = 30.0
THRESHOLD_MAX = 100.0


def normalize_threshold(value: float) -> float:
    """Return *value* if it lies in ``[30, 100]``, otherwise 30.

    Out-of-range and non-finite values are replaced silently (with a
    warning in the log) rather than rejected.
    """
    value = float(value)
    if math.isfinite(value) and THRESHOLD_MIN <= value <= THRESHOLD_MAX:
        return value
    logger.warning(
        "Threshold %r outside [%g, %g], using %g",
        value,
        THRESHOLD_MIN,
        THRESHOLD_MAX,
        THRESHOLD_MIN,
    )
    return THRESHOLD_MIN


def classify(score: float, threshold: float) -> MatchTier:
    """Map *score* to ``"strong"``, ``"borderline"`` or ``"none"``.

    Total over numeric input; NaN on either side classifies as ``"none"``.
    """
    if math.isnan(score) or math.isnan(threshold):
        return "none"
    if score >= threshold + STRONG_MARGIN:
        return "strong"
    if score >= threshold:
        return "borderline"
    return "none"


def to_match_result(
    match: CompareFacesMatch,
    candidates: dict[str, FileRecord],
    threshold: float,
) -> MatchResult:
    """Build a :class:`MatchResult` from one backend match entry.

    *candidates* maps candidate file names to their records.  A name the
    candidate set does not contain gets a generated ``match-`` id.
    """
    candidate = candidates.get(match.compare_file)
    candidate_id = candidate.id if candidate else f"match-{uuid.uuid4().hex[:9]}"
    return MatchResult(
        candidate_id=candidate_id,
        candidate_name=match.compare_file,
        score=match.result,
        distance=match.distance,
        tier=classify(match.result, threshold),
    )


def retier(match: MatchResult, threshold: float) -> MatchResult:
    """Return *match* re-classified for display at another *threshold*."""
    return match.model_copy(update={"tier": classify(match.score, threshold)})
