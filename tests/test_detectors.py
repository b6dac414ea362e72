"""Tests for detectors: bundled OpenCV detectors and the registry."""

from __future__ import annotations

import cv2
import numpy as np
import pytest

from detectors import (
    FeatureSet,
    OpenCVOrbDetector,
    OpenCVSiftDetector,
    available_detectors,
    frame_kind,
    get_detector_by_name,
)
from detectors.backend import keypoints_to_frames, load_grayscale


@pytest.fixture
def textured_image(tmp_path):
    """A blurred noise image with enough structure for blob and corner detectors."""
    rng = np.random.default_rng(42)
    noise = rng.integers(0, 256, size=(64, 64), dtype=np.uint8)
    image = cv2.resize(noise, (256, 256), interpolation=cv2.INTER_NEAREST)
    image = cv2.GaussianBlur(image, (5, 5), 1.5)
    path = tmp_path / "img1.png"
    cv2.imwrite(str(path), image)
    return path


# =============================================================================
# Bundled detectors
# =============================================================================


class TestSift:
    def test_frames_are_oriented_discs(self, textured_image):
        frames = OpenCVSiftDetector().extract_frames(textured_image)
        assert frames.shape[0] > 0
        assert frame_kind(frames) == "oriented_disc"
        assert np.all(frames[:, 2] > 0)

    def test_features_have_aligned_descriptors(self, textured_image):
        features = OpenCVSiftDetector().extract_features(textured_image)
        assert features.has_descriptors
        assert features.descriptors.shape == (features.num_frames, 128)

    def test_deterministic(self, textured_image):
        a = OpenCVSiftDetector().extract_frames(textured_image)
        b = OpenCVSiftDetector().extract_frames(textured_image)
        np.testing.assert_array_equal(a, b)


class TestOrb:
    def test_features(self, textured_image):
        features = OpenCVOrbDetector(max_features=50).extract_features(textured_image)
        assert 0 < features.num_frames <= 50
        assert features.descriptors.shape == (features.num_frames, 32)


class TestSignature:
    def test_stable(self):
        assert OpenCVSiftDetector().signature() == OpenCVSiftDetector().signature()

    def test_includes_parameters_and_version(self):
        sig = OpenCVSiftDetector(contrast_threshold=0.04).signature()
        assert sig.startswith("sift(")
        assert "contrast_threshold=0.04" in sig
        assert cv2.__version__ in sig

    def test_parameter_change_changes_signature(self):
        assert OpenCVSiftDetector(edge_threshold=10.0).signature() != OpenCVSiftDetector(
            edge_threshold=12.0
        ).signature()

    def test_use_cache_not_part_of_signature(self):
        assert OpenCVOrbDetector(use_cache=False).signature() == OpenCVOrbDetector().signature()

    def test_detectors_differ(self):
        assert OpenCVSiftDetector().signature() != OpenCVOrbDetector().signature()


class TestRegistry:
    def test_available(self):
        assert available_detectors() == ["orb", "sift"]

    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_detector_by_name(" SIFT "), OpenCVSiftDetector)

    def test_kwargs_forwarded(self):
        detector = get_detector_by_name("orb", max_features=10, use_cache=False)
        assert detector.max_features == 10
        assert detector.use_cache is False

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown detector"):
            get_detector_by_name("surf")


# =============================================================================
# Helpers and data structures
# =============================================================================


class TestLoadGrayscale:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_grayscale(tmp_path / "absent.png")

    def test_undecodable(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        with pytest.raises(OSError, match="decode"):
            load_grayscale(path)

    def test_grayscale(self, textured_image):
        image = load_grayscale(textured_image)
        assert image.ndim == 2
        assert image.dtype == np.uint8


def test_keypoints_to_frames():
    keypoints = [cv2.KeyPoint(10.0, 20.0, 8.0, 90.0), cv2.KeyPoint(1.0, 2.0, 4.0, -1.0)]
    frames = keypoints_to_frames(keypoints)
    np.testing.assert_allclose(frames, [[10.0, 20.0, 4.0, np.pi / 2], [1.0, 2.0, 2.0, 0.0]])


def test_keypoints_to_frames_empty():
    assert keypoints_to_frames([]).shape == (0, 4)


class TestFeatureSet:
    def test_empty_frames(self):
        assert FeatureSet(frames=np.zeros((0,))).frames.shape == (0, 4)

    def test_descriptor_count_mismatch(self):
        with pytest.raises(ValueError, match="Descriptor count"):
            FeatureSet(frames=np.zeros((2, 3)), descriptors=np.zeros((3, 8)))

    def test_unsupported_frames(self):
        with pytest.raises(ValueError):
            FeatureSet(frames=np.zeros((2, 2)))
