"""Benchmark runner - repeatability and matching score of affine detectors.

Wraps Mikolajczyk's affine region evaluation. For a detector and two images
related by a homography, the runner builds a cache key, serves a cached
result when one exists, and otherwise extracts features, runs the external
overlap evaluator, and stores the normalized scores.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import numpy as np

from config import EVALUATOR_URL, RESULTS_KEY_NAMESPACE
from detectors import FeatureSet, LocalFeatureDetector
from signatures import (
    OutputMode,
    build_key,
    config_signature,
    detector_signature,
    file_signature,
)

from .cache import ResultCache
from .evaluator import EvaluationRequest, OctaveRepeatabilityEvaluator, OverlapEvaluator
from .regions import frames_to_ellipses
from .schemas import BenchmarkConfig, DetectorScores
from .scoring import extract_scores, select_decile

logger = logging.getLogger(__name__)


def _as_homography(homography) -> np.ndarray:
    homography = np.asarray(homography, dtype=np.float64)
    if homography.shape != (3, 3):
        raise ValueError(f"Homography must be 3x3, got shape {homography.shape}")
    return homography


def _descriptors_usable(features: FeatureSet) -> bool:
    if not features.has_descriptors:
        return False
    return features.descriptors.size > 0 or features.num_frames == 0


class RepeatabilityBenchmark:
    """IJCV affine detector benchmark with a persistent result cache.

    Args:
        config: Benchmark options (overlap error, common part).
        evaluator: External overlap evaluator; Octave-backed by default.
        cache: Result cache; the default SQLite file when omitted.
    """

    benchmark_name = "IjcvOriginalBenchmark"
    key_prefix = RESULTS_KEY_NAMESPACE

    def __init__(
        self,
        config: BenchmarkConfig | None = None,
        evaluator: OverlapEvaluator | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.config = config if config is not None else BenchmarkConfig()
        self.evaluator = evaluator if evaluator is not None else OctaveRepeatabilityEvaluator()
        self.cache = cache if cache is not None else ResultCache()
        self.decile = select_decile(self.config.overlap_error)

        if not self.evaluator.is_available():
            logger.warning(
                "IJCV affine benchmark evaluator not found. Install repeatability.m from %s",
                EVALUATOR_URL,
            )

    def signature(self) -> str:
        """Signature of the benchmark configuration."""
        return config_signature(self.config)

    def results_key(
        self,
        detector: LocalFeatureDetector,
        image_a: Path,
        image_b: Path,
        output_mode: OutputMode,
    ) -> str:
        """Build the cache key; raises OSError if an image is unreadable."""
        return build_key(
            self.key_prefix,
            output_mode,
            self.signature(),
            detector_signature(detector),
            file_signature(image_a),
            file_signature(image_b),
        )

    def test_detector(
        self,
        detector: LocalFeatureDetector,
        homography,
        image_a: Path,
        image_b: Path,
        want_matching: bool = True,
    ) -> DetectorScores:
        """Compute repeatability (and matching score) of a detector.

        Features are extracted from both images and compared under the
        homography mapping image A onto image B. Results are cached unless
        the detector disables caching.

        Args:
            detector: Detector under test.
            homography: 3x3 transform from image A to image B.
            image_a: Path to the reference image.
            image_b: Path to the transformed image.
            want_matching: Also compute the matching score from descriptors.
                When False, matching fields are None.

        Returns:
            DetectorScores for the configured overlap error.

        Raises:
            OSError: An image cannot be read.
            BenchmarkError: The external evaluator failed.
        """
        homography = _as_homography(homography)
        output_mode = OutputMode.MATCHING if want_matching else OutputMode.REPEATABILITY
        key = self.results_key(detector, image_a, image_b, output_mode)

        if not detector.use_cache:
            return self._evaluate_detector(detector, homography, image_a, image_b, want_matching)

        # One evaluation per key; concurrent callers wait and read the stored entry
        with self.cache.key_lock(key):
            cached = self.cache.lookup(key)
            if cached is not None:
                logger.debug("Results loaded from cache")
                return cached

            scores = self._evaluate_detector(detector, homography, image_a, image_b, want_matching)
            self.cache.store(key, scores)
            return scores

    def _evaluate_detector(
        self,
        detector: LocalFeatureDetector,
        homography: np.ndarray,
        image_a: Path,
        image_b: Path,
        want_matching: bool,
    ) -> DetectorScores:
        if want_matching:
            logger.info(
                "Comparing frames and descriptors from det. %s and images %s and %s.",
                detector.name, Path(image_a).name, Path(image_b).name,
            )
            features_a = detector.extract_features(image_a)
            features_b = detector.extract_features(image_b)
            return self.test_features(
                homography, image_a, image_b,
                features_a.frames, features_b.frames,
                features_a.descriptors, features_b.descriptors,
                want_matching=True,
            )

        logger.info(
            "Comparing frames from det. %s and images %s and %s.",
            detector.name, Path(image_a).name, Path(image_b).name,
        )
        frames_a = detector.extract_frames(image_a)
        frames_b = detector.extract_frames(image_b)
        return self.test_features(
            homography, image_a, image_b, frames_a, frames_b, want_matching=False,
        )

    def test_features(
        self,
        homography,
        image_a: Path,
        image_b: Path,
        frames_a: np.ndarray,
        frames_b: np.ndarray,
        descriptors_a: np.ndarray | None = None,
        descriptors_b: np.ndarray | None = None,
        want_matching: bool | None = None,
    ) -> DetectorScores:
        """Compute scores of already extracted features. Never cached.

        ``want_matching`` defaults to True when descriptors are passed. If
        matching is requested but descriptors are missing for either image,
        a warning is logged and only repeatability is computed. Descriptors
        not aligned with their frames raise ValueError.
        """
        homography = _as_homography(homography)
        features_a = FeatureSet(frames_a, descriptors_a)
        features_b = FeatureSet(frames_b, descriptors_b)
        if want_matching is None:
            want_matching = features_a.has_descriptors or features_b.has_descriptors

        if want_matching and not (
            _descriptors_usable(features_a) and _descriptors_usable(features_b)
        ):
            logger.warning(
                "Unable to calculate match score without descriptors. "
                "Computing repeatability only."
            )
            want_matching = False

        logger.info(
            "Computing kri benchmark between %d/%d frames.",
            features_a.num_frames, features_b.num_frames,
        )
        start_time = time.time()

        request = EvaluationRequest(
            ellipses_a=frames_to_ellipses(features_a.frames),
            ellipses_b=frames_to_ellipses(features_b.frames),
            homography=homography,
            image_a=Path(image_a),
            image_b=Path(image_b),
            common_part=self.config.common_part,
            descriptors_a=features_a.descriptors if want_matching else None,
            descriptors_b=features_b.descriptors if want_matching else None,
        )
        raw = self.evaluator.evaluate(request)
        scores = extract_scores(raw, self.decile, with_matching=want_matching)

        logger.info(
            "Repeatability: %g \t Num correspondences: %g",
            scores.repeatability, scores.num_correspondences,
        )
        if scores.has_matching:
            logger.info(
                "Match score: %g \t Num matches: %s",
                scores.matching_score, scores.num_matches,
            )
        logger.debug(
            "Score between %d/%d frames comp. in %gs",
            features_a.num_frames, features_b.num_frames, time.time() - start_time,
        )
        return scores
