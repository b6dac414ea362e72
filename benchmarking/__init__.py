"""Benchmarking module for affine region detector evaluation."""

from .cache import CacheStats, ResultCache
from .errors import BenchmarkError, EvaluatorError, EvaluatorUnavailableError
from .evaluator import (
    EvaluationRequest,
    OctaveRepeatabilityEvaluator,
    OverlapEvaluator,
)
from .regions import frames_to_ellipses, load_homography, write_features, write_homography
from .runner import RepeatabilityBenchmark
from .schemas import BenchmarkConfig, DetectorScores, RawEvaluationResult
from .scoring import extract_scores, format_scores, select_decile
from .sequence import PairResult, SequenceRun, run_sequence

__all__ = [
    # Cache
    "CacheStats",
    "ResultCache",
    # Errors
    "BenchmarkError",
    "EvaluatorError",
    "EvaluatorUnavailableError",
    # Evaluator
    "EvaluationRequest",
    "OctaveRepeatabilityEvaluator",
    "OverlapEvaluator",
    # Region files
    "frames_to_ellipses",
    "load_homography",
    "write_features",
    "write_homography",
    # Runner
    "RepeatabilityBenchmark",
    # Schemas
    "BenchmarkConfig",
    "DetectorScores",
    "RawEvaluationResult",
    # Scoring
    "extract_scores",
    "format_scores",
    "select_decile",
    # Sequences
    "PairResult",
    "SequenceRun",
    "run_sequence",
]
