"""
Local feature detectors under test.

This package provides the detector interface the benchmark depends on,
bundled OpenCV detectors, and the shared feature data structures.
"""

from .backend import (
    LocalFeatureDetector,
    OpenCVOrbDetector,
    OpenCVSiftDetector,
    available_detectors,
    get_detector_by_name,
)
from .types import FeatureSet, frame_kind

__all__ = [
    "LocalFeatureDetector",
    "OpenCVOrbDetector",
    "OpenCVSiftDetector",
    "available_detectors",
    "get_detector_by_name",
    "FeatureSet",
    "frame_kind",
]
