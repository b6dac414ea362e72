"""Score extraction: selects and normalizes one decile of a raw result.

The external evaluator reports repeatability for overlap errors 0.1 ... 0.9
on a 0-100 scale. The benchmark reports a single 0-1 score for the
configured overlap error.
"""

from __future__ import annotations

import logging
import math

from config import NUM_OVERLAP_DECILES

from .schemas import DetectorScores, RawEvaluationResult

logger = logging.getLogger(__name__)

# Tolerance for deciding whether overlap_error * 10 is already an integer
# (0.3 * 10 == 3.0000000000000004 in binary floating point).
DECILE_TOLERANCE = 1e-9


# =============================================================================
# Decile selection
# =============================================================================


def _round_half_away_from_zero(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def select_decile(overlap_error: float) -> int:
    """Map an overlap error to a 1-based decile index in [1, 9].

    Non-decile values are rounded to the nearest tenth (half away from zero)
    and values outside the supported range are clamped. Both cases log a
    warning and proceed.
    """
    scaled = overlap_error * 10
    index = _round_half_away_from_zero(scaled)
    clamped = min(max(index, 1), NUM_OVERLAP_DECILES)
    if not math.isclose(scaled, index, rel_tol=0.0, abs_tol=DECILE_TOLERANCE):
        logger.warning(
            "IJCV affine benchmark supports only a limited set of overlap errors "
            "(0.1 ... 0.9). Overlap error %g was rounded to %.1f.",
            overlap_error, clamped / 10,
        )
    if clamped != index:
        logger.warning(
            "Overlap error %g is outside the supported range, using %.1f.",
            overlap_error, clamped / 10,
        )
    return clamped


# =============================================================================
# Extraction
# =============================================================================


def extract_scores(
    raw: RawEvaluationResult,
    decile: int,
    with_matching: bool = True,
) -> DetectorScores:
    """Pick the configured decile and normalize percentages to [0, 1].

    Args:
        raw: Statistics returned by the external evaluator.
        decile: 1-based decile index from select_decile().
        with_matching: When False the matching fields are left as None.

    Returns:
        DetectorScores for the selected overlap error.
    """
    if not 1 <= decile <= NUM_OVERLAP_DECILES:
        raise ValueError(f"Decile index must be in [1, {NUM_OVERLAP_DECILES}], got {decile}")

    idx = decile - 1
    repeatability = float(raw.repeatability[idx]) / 100.0
    num_correspondences = int(raw.num_correspondences[idx])

    if not with_matching:
        return DetectorScores(
            repeatability=repeatability,
            num_correspondences=num_correspondences,
        )

    return DetectorScores(
        repeatability=repeatability,
        num_correspondences=num_correspondences,
        matching_score=float(raw.matching_score) / 100.0,
        num_matches=raw.num_matches,
    )


def format_scores(scores: DetectorScores, title: str = "Scores") -> str:
    """Format scores as a fixed-width block for terminal output."""
    lines = [
        title,
        f"  Repeatability:     {scores.repeatability:.1%}",
        f"  Correspondences:   {scores.num_correspondences}",
    ]
    if scores.has_matching:
        lines.append(f"  Matching score:    {scores.matching_score:.1%}")
        matches = scores.num_matches if scores.num_matches is not None else "not reported"
        lines.append(f"  Matches:           {matches}")
    else:
        lines.append("  Matching score:    not computed")
    return "\n".join(lines)
