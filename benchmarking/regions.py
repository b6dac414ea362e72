"""Region file helpers for the external overlap evaluator.

Frames are converted to ellipses ``[x, y, S11, S12, S22]`` where ``S`` is the
2x2 shape matrix (the ellipse is ``{p : (p - c)^T S^-1 (p - c) = 1}``). The
evaluator reads Mikolajczyk's text format::

    <descriptor dimension, 1 when there are no descriptors>
    <number of regions>
    u v a b c [d1 ... dn]

where ``a (x-u)^2 + 2 b (x-u)(y-v) + c (y-v)^2 = 1`` i.e. ``[a b; b c] = S^-1``.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np

from detectors.types import frame_kind


def frames_to_ellipses(frames: np.ndarray) -> np.ndarray:
    """Convert (N, k) frames of any supported kind to (N, 5) ellipses."""
    frames = np.asarray(frames, dtype=np.float64)
    if frames.size == 0:
        return np.zeros((0, 5), dtype=np.float64)
    kind = frame_kind(frames)

    ellipses = np.empty((frames.shape[0], 5), dtype=np.float64)
    ellipses[:, :2] = frames[:, :2]

    if kind in ("disc", "oriented_disc"):
        # Orientation does not change the shape of a circle
        s2 = frames[:, 2] ** 2
        ellipses[:, 2] = s2
        ellipses[:, 3] = 0.0
        ellipses[:, 4] = s2
    elif kind == "ellipse":
        ellipses[:, 2:] = frames[:, 2:]
    else:
        # A = [A11 A12; A21 A22] in column-major order, S = A A^T
        a11, a21, a12, a22 = frames[:, 2], frames[:, 3], frames[:, 4], frames[:, 5]
        ellipses[:, 2] = a11 * a11 + a12 * a12
        ellipses[:, 3] = a11 * a21 + a12 * a22
        ellipses[:, 4] = a21 * a21 + a22 * a22
    return ellipses


def ellipses_to_conics(ellipses: np.ndarray) -> np.ndarray:
    """Return (N, 5) rows ``[u, v, a, b, c]`` with ``[a b; b c] = S^-1``."""
    ellipses = np.asarray(ellipses, dtype=np.float64)
    s11, s12, s22 = ellipses[:, 2], ellipses[:, 3], ellipses[:, 4]
    det = s11 * s22 - s12 * s12
    if np.any(det <= 0):
        raise ValueError("Ellipse shape matrices must be positive definite")
    conics = np.empty_like(ellipses)
    conics[:, :2] = ellipses[:, :2]
    conics[:, 2] = s22 / det
    conics[:, 3] = -s12 / det
    conics[:, 4] = s11 / det
    # Adding zero turns -0.0 into 0.0 so files never contain "-0"
    return conics + 0.0


def write_features(
    path: Path,
    ellipses: np.ndarray,
    descriptors: np.ndarray | None = None,
) -> None:
    """Write ellipses (and optional descriptors) in the evaluator's text format."""
    ellipses = np.asarray(ellipses, dtype=np.float64).reshape(-1, 5)
    rows = ellipses_to_conics(ellipses) if len(ellipses) else ellipses

    dim = 1
    if descriptors is not None and descriptors.size > 0:
        descriptors = np.asarray(descriptors, dtype=np.float64).reshape(len(ellipses), -1)
        dim = descriptors.shape[1]
        rows = np.hstack([rows, descriptors])

    with open(path, "w") as f:
        f.write(f"{dim}\n{len(rows)}\n")
        if len(rows):
            np.savetxt(f, rows, fmt="%.10g")


def write_homography(path: Path, homography: np.ndarray) -> None:
    """Write a 3x3 homography as plain ASCII numbers."""
    homography = np.asarray(homography, dtype=np.float64)
    if homography.shape != (3, 3):
        raise ValueError(f"Homography must be 3x3, got shape {homography.shape}")
    np.savetxt(path, homography, fmt="%.16e")


def load_homography(path: Path) -> np.ndarray:
    """Read a 3x3 homography stored as ASCII (Oxford ``H1to2p`` files)."""
    homography = np.loadtxt(path, dtype=np.float64)
    if homography.shape != (3, 3):
        raise ValueError(f"Homography in {path} must be 3x3, got shape {homography.shape}")
    return homography
