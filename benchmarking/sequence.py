"""Sequence runs over Oxford affine datasets.

A sequence directory holds ``img1`` ... ``imgN`` (any of the configured
extensions) and homographies ``H1to2p`` ... ``H1toNp`` mapping image 1 onto
each other image. A run compares image 1 with every other image.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from config import SEQUENCE_IMAGE_EXTENSIONS, SEQUENCE_RESULTS_DIR
from detectors import LocalFeatureDetector
from signatures import detector_signature

from .regions import load_homography
from .runner import RepeatabilityBenchmark
from .schemas import BenchmarkConfig, DetectorScores

logger = logging.getLogger(__name__)

_IMAGE_NAME = re.compile(r"^img(\d+)$")


class PairResult(BaseModel):
    """Scores of image 1 against one other image of the sequence."""
    image_a: str
    image_b: str
    scores: DetectorScores


class SequenceMetadata(BaseModel):
    """Metadata about a sequence run."""
    run_id: str
    timestamp: str
    sequence: str
    detector: str
    detector_signature: str
    config: BenchmarkConfig
    want_matching: bool
    total_runtime_seconds: float


class SequenceRun(BaseModel):
    """Complete sequence run results."""
    metadata: SequenceMetadata
    results: list[PairResult] = Field(default_factory=list)

    def mean_repeatability(self) -> float | None:
        if not self.results:
            return None
        return sum(r.scores.repeatability for r in self.results) / len(self.results)

    def save(self, path: Path) -> None:
        """Save sequence run to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "SequenceRun":
        """Load sequence run from JSON file."""
        with open(path, "r") as f:
            return cls.model_validate(json.load(f))


def generate_run_id() -> str:
    """Generate a unique run ID based on timestamp."""
    timestamp = datetime.now().isoformat()
    return hashlib.sha256(timestamp.encode()).hexdigest()[:8]


def find_sequence_images(sequence_dir: Path) -> dict[int, Path]:
    """Map image numbers to paths for ``img<N>.<ext>`` files in a directory."""
    images: dict[int, Path] = {}
    for path in sorted(Path(sequence_dir).iterdir()):
        if path.suffix.lower() not in SEQUENCE_IMAGE_EXTENSIONS:
            continue
        match = _IMAGE_NAME.match(path.stem)
        if match:
            images.setdefault(int(match.group(1)), path)
    return dict(sorted(images.items()))


def run_sequence(
    benchmark: RepeatabilityBenchmark,
    detector: LocalFeatureDetector,
    sequence_dir: Path,
    want_matching: bool = True,
    results_dir: Path | None = SEQUENCE_RESULTS_DIR,
) -> SequenceRun:
    """Evaluate a detector on image 1 vs. every other image of a sequence.

    Pairs whose homography file is missing are skipped with a warning.

    Args:
        benchmark: Configured benchmark (cache, evaluator, overlap error).
        detector: Detector under test.
        sequence_dir: Oxford-style sequence directory.
        want_matching: Also compute matching scores.
        results_dir: Where to save ``<run_id>/run.json``; None to skip saving.

    Returns:
        SequenceRun with one PairResult per evaluated pair.
    """
    start_time = time.time()
    sequence_dir = Path(sequence_dir)
    images = find_sequence_images(sequence_dir)
    if 1 not in images or len(images) < 2:
        raise ValueError(f"No image pairs found in {sequence_dir}")

    reference = images[1]
    results: list[PairResult] = []
    others = [(n, p) for n, p in images.items() if n != 1]
    for i, (number, image_path) in enumerate(others):
        h_path = sequence_dir / f"H1to{number}p"
        if not h_path.exists():
            logger.warning("  [%s/%s] SKIP (homography not found): %s", i + 1, len(others), h_path.name)
            continue

        scores = benchmark.test_detector(
            detector,
            load_homography(h_path),
            reference,
            image_path,
            want_matching=want_matching,
        )
        results.append(PairResult(image_a=reference.name, image_b=image_path.name, scores=scores))
        logger.info("  [%s/%s] %s vs %s: %s", i + 1, len(others), reference.name, image_path.name, scores.summary())

    run = SequenceRun(
        metadata=SequenceMetadata(
            run_id=generate_run_id(),
            timestamp=datetime.now().isoformat(),
            sequence=sequence_dir.name,
            detector=detector.name,
            detector_signature=detector_signature(detector),
            config=benchmark.config,
            want_matching=want_matching,
            total_runtime_seconds=time.time() - start_time,
        ),
        results=results,
    )

    if results_dir is not None:
        run_path = Path(results_dir) / run.metadata.run_id / "run.json"
        run.save(run_path)
        logger.info("Results saved to: %s", run_path.parent)

    return run
