"""Pytest configuration and shared test doubles.

Slow tests (real Octave evaluator runs) are skipped unless --slow is passed.
Run the full suite:   pytest --slow
Run fast tests only:  pytest          (default)
"""
from __future__ import annotations

import threading
import time
from pathlib import Path

import numpy as np
import pytest

from benchmarking.cache import ResultCache
from benchmarking.evaluator import EvaluationRequest
from benchmarking.schemas import RawEvaluationResult
from detectors.types import FeatureSet


def pytest_addoption(parser):
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run slow tests that call the external Octave evaluator",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: needs Octave and repeatability.m")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--slow"):
        return  # run everything
    skip_slow = pytest.mark.skip(reason="slow test skipped — pass --slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# =============================================================================
# Test doubles
# =============================================================================


# Typical per-decile output; decile 4 (overlap error 0.4) is 53.2% / 117
RAW_REPEATABILITY = [10.0, 25.5, 41.0, 53.2, 61.0, 68.4, 74.0, 79.9, 83.3]
RAW_CORRESPONDENCES = [20, 51, 88, 117, 134, 150, 162, 175, 181]


def make_raw_result(matching_score: float = 12.0, num_matches: int | None = 42) -> RawEvaluationResult:
    return RawEvaluationResult(
        repeatability=list(RAW_REPEATABILITY),
        num_correspondences=list(RAW_CORRESPONDENCES),
        matching_score=matching_score,
        num_matches=num_matches,
    )


class FakeEvaluator:
    """Returns a fixed raw result and records every request."""

    def __init__(self, raw: RawEvaluationResult | None = None, delay: float = 0.0) -> None:
        self.raw = raw if raw is not None else make_raw_result()
        self.delay = delay
        self.requests: list[EvaluationRequest] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.requests)

    def is_available(self) -> bool:
        return True

    def evaluate(self, request: EvaluationRequest) -> RawEvaluationResult:
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.requests.append(request)
        return self.raw


class FailingEvaluator(FakeEvaluator):
    """Raises the given exception on every call."""

    def __init__(self, exc: Exception) -> None:
        super().__init__()
        self.exc = exc

    def evaluate(self, request: EvaluationRequest) -> RawEvaluationResult:
        self.requests.append(request)
        raise self.exc


class FakeDetector:
    """Deterministic detector returning three disc frames per image."""

    name = "fake"

    def __init__(self, use_cache: bool = True, with_descriptors: bool = True, version: str = "1") -> None:
        self.use_cache = use_cache
        self.with_descriptors = with_descriptors
        self.version = version
        self.frame_calls = 0
        self.feature_calls = 0

    def signature(self) -> str:
        return f"fake(v={self.version})"

    def extract_frames(self, image_path: Path) -> np.ndarray:
        self.frame_calls += 1
        return self._frames()

    def _frames(self) -> np.ndarray:
        return np.array([
            [10.0, 10.0, 2.0],
            [20.0, 30.0, 3.0],
            [40.0, 15.0, 1.5],
        ])

    def extract_features(self, image_path: Path) -> FeatureSet:
        self.feature_calls += 1
        frames = self._frames()
        descriptors = np.arange(12, dtype=np.float32).reshape(3, 4) if self.with_descriptors else None
        return FeatureSet(frames=frames, descriptors=descriptors)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def image_pair(tmp_path: Path) -> tuple[Path, Path]:
    """Two small files standing in for images (only their signatures matter)."""
    image_a = tmp_path / "img1.ppm"
    image_b = tmp_path / "img2.ppm"
    image_a.write_bytes(b"P5 4 4 255\n" + bytes(16))
    image_b.write_bytes(b"P5 4 4 255\n" + bytes(range(16)))
    return image_a, image_b


@pytest.fixture
def result_cache(tmp_path: Path) -> ResultCache:
    return ResultCache(tmp_path / "cache" / "results.db")


@pytest.fixture
def identity() -> np.ndarray:
    return np.eye(3)
