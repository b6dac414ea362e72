"""
Detector interface and local OpenCV implementations.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
import math
from pathlib import Path
from typing import Protocol

import cv2
import numpy as np

import config
from .types import FeatureSet

logger = logging.getLogger(__name__)


class LocalFeatureDetector(Protocol):
    """Interface for detectors under test.

    ``use_cache`` is False for detectors whose output must never be served
    from the result cache (non-deterministic or cheap to recompute).
    """

    name: str
    use_cache: bool

    def signature(self) -> str:
        """Stable identity string; changes whenever the output could change."""

    def extract_frames(self, image_path: Path) -> np.ndarray:
        """Detect frames only."""

    def extract_features(self, image_path: Path) -> FeatureSet:
        """Detect frames and compute their descriptors."""


def load_grayscale(image_path: Path) -> np.ndarray:
    """Read an image file as a single-channel uint8 array."""
    data = Path(image_path).read_bytes()
    image = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise OSError(f"Could not decode image: {image_path}")
    return image


def keypoints_to_frames(keypoints) -> np.ndarray:
    """Convert OpenCV keypoints to oriented disc frames [x, y, s, theta].

    OpenCV reports the diameter of the meaningful neighbourhood, the frame
    scale is its radius. Keypoints without orientation (angle == -1) get
    theta = 0.
    """
    if not keypoints:
        return np.zeros((0, 4), dtype=np.float64)
    frames = np.empty((len(keypoints), 4), dtype=np.float64)
    for i, kp in enumerate(keypoints):
        angle = kp.angle if kp.angle >= 0 else 0.0
        frames[i] = (kp.pt[0], kp.pt[1], kp.size / 2.0, math.radians(angle))
    return frames


@dataclass
class _OpenCVDetector:
    """Shared plumbing for cv2.Feature2D based detectors."""

    use_cache: bool = field(default=True, kw_only=True)

    name = "opencv"

    def _create(self):
        raise NotImplementedError

    def _params(self) -> dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "use_cache"}

    def signature(self) -> str:
        params = ";".join(f"{k}={v}" for k, v in self._params().items())
        return f"{self.name}({params})/opencv-{cv2.__version__}"

    def extract_frames(self, image_path: Path) -> np.ndarray:
        image = load_grayscale(image_path)
        keypoints = self._create().detect(image, None)
        logger.debug("%s: %d frames in %s", self.name, len(keypoints), Path(image_path).name)
        return keypoints_to_frames(keypoints)

    def extract_features(self, image_path: Path) -> FeatureSet:
        image = load_grayscale(image_path)
        keypoints, descriptors = self._create().detectAndCompute(image, None)
        logger.debug(
            "%s: %d frames with descriptors in %s",
            self.name, len(keypoints), Path(image_path).name,
        )
        if descriptors is None:
            descriptors = np.zeros((0, 0), dtype=np.float32)
        return FeatureSet(frames=keypoints_to_frames(keypoints), descriptors=descriptors)


@dataclass
class OpenCVSiftDetector(_OpenCVDetector):
    """Difference-of-Gaussians detector with SIFT descriptors."""

    max_features: int | None = None
    contrast_threshold: float | None = None
    edge_threshold: float | None = None

    name = "sift"

    def __post_init__(self) -> None:
        if self.max_features is None:
            self.max_features = config.SIFT_MAX_FEATURES
        if self.contrast_threshold is None:
            self.contrast_threshold = config.SIFT_CONTRAST_THRESHOLD
        if self.edge_threshold is None:
            self.edge_threshold = config.SIFT_EDGE_THRESHOLD

    def _create(self):
        return cv2.SIFT_create(
            nfeatures=self.max_features,
            contrastThreshold=self.contrast_threshold,
            edgeThreshold=self.edge_threshold,
        )


@dataclass
class OpenCVOrbDetector(_OpenCVDetector):
    """Oriented FAST detector with rBRIEF descriptors."""

    max_features: int | None = None
    scale_factor: float | None = None
    n_levels: int | None = None

    name = "orb"

    def __post_init__(self) -> None:
        if self.max_features is None:
            self.max_features = config.ORB_MAX_FEATURES
        if self.scale_factor is None:
            self.scale_factor = config.ORB_SCALE_FACTOR
        if self.n_levels is None:
            self.n_levels = config.ORB_N_LEVELS

    def _create(self):
        return cv2.ORB_create(
            nfeatures=self.max_features,
            scaleFactor=self.scale_factor,
            nlevels=self.n_levels,
        )


_DETECTORS = {
    "sift": OpenCVSiftDetector,
    "orb": OpenCVOrbDetector,
}


def available_detectors() -> list[str]:
    return sorted(_DETECTORS)


def get_detector_by_name(name: str, **kwargs) -> LocalFeatureDetector:
    """Instantiate a bundled detector by its short name."""
    normalized = name.strip().lower()
    try:
        detector_cls = _DETECTORS[normalized]
    except KeyError:
        raise ValueError(
            f"Unknown detector: {name!r} (available: {', '.join(available_detectors())})"
        ) from None
    return detector_cls(**kwargs)
