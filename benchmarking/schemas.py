"""Pydantic models shared by the benchmark components.

BenchmarkConfig is the user-facing configuration, RawEvaluationResult is the
wire shape returned by the external overlap evaluator, and DetectorScores is
both the benchmark output and the cached value.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import DEFAULT_COMMON_PART, DEFAULT_OVERLAP_ERROR, NUM_OVERLAP_DECILES


class BenchmarkConfig(BaseModel):
    """Options of the repeatability benchmark.

    ``overlap_error`` is normalized to the nearest tenth on construction;
    a non-decile value is accepted with a warning.
    """
    model_config = ConfigDict(frozen=True)

    overlap_error: float = Field(default=DEFAULT_OVERLAP_ERROR, gt=0.0, lt=1.0)
    common_part: bool = DEFAULT_COMMON_PART

    @field_validator("overlap_error")
    @classmethod
    def _round_to_decile(cls, v: float) -> float:
        from .scoring import select_decile
        return select_decile(v) / 10


class RawEvaluationResult(BaseModel):
    """Per-decile statistics returned by the external evaluator.

    Index ``i`` of the lists corresponds to an overlap error of ``(i + 1) / 10``.
    Percentages are on a 0-100 scale. Matching is not bucketed by decile.
    ``num_matches`` is None when the tool reports no match count.
    """
    repeatability: list[float]
    num_correspondences: list[int]
    matching_score: float
    num_matches: int | None = None

    @field_validator("repeatability", "num_correspondences")
    @classmethod
    def _check_decile_count(cls, v: list) -> list:
        if len(v) != NUM_OVERLAP_DECILES:
            raise ValueError(f"Expected {NUM_OVERLAP_DECILES} values, got {len(v)}")
        return v


class DetectorScores(BaseModel):
    """Repeatability and matching score of a detector on one image pair.

    ``matching_score`` and ``num_matches`` are None when matching was not
    computed. Zero is a valid score and never means "missing".
    """
    model_config = ConfigDict(frozen=True)

    repeatability: float
    num_correspondences: int
    matching_score: float | None = None
    num_matches: int | None = None

    @property
    def has_matching(self) -> bool:
        return self.matching_score is not None

    def summary(self) -> str:
        """Return a short human-readable summary of the scores."""
        text = f"rep={self.repeatability:.3f} corr={self.num_correspondences}"
        if self.has_matching:
            text += f" match={self.matching_score:.3f} matches={self.num_matches}"
        return text
