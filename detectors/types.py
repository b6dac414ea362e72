"""
Data structures for local features produced by detectors.

Frames follow the VLFeat column conventions, stored one frame per row:

- disc:            [x, y, s]
- oriented disc:   [x, y, s, theta]
- ellipse:         [x, y, S11, S12, S22]
- oriented ellipse [x, y, A11, A21, A12, A22]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np

FrameKind = Literal["disc", "oriented_disc", "ellipse", "oriented_ellipse"]

FRAME_KINDS: dict[int, FrameKind] = {
    3: "disc",
    4: "oriented_disc",
    5: "ellipse",
    6: "oriented_ellipse",
}


def frame_kind(frames: np.ndarray) -> FrameKind:
    """Return the frame kind implied by the number of columns."""
    if frames.ndim != 2 or frames.shape[1] not in FRAME_KINDS:
        raise ValueError(f"Unsupported frame array shape: {frames.shape}")
    return FRAME_KINDS[frames.shape[1]]


@dataclass
class FeatureSet:
    """Frames detected in one image, with optional descriptors.

    Attributes:
        frames: (N, k) float array, k in {3, 4, 5, 6}.
        descriptors: (N, d) array aligned with frames, or None when the
            detector does not compute descriptors.
    """

    frames: np.ndarray
    descriptors: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.frames = np.asarray(self.frames, dtype=np.float64)
        if self.frames.size == 0:
            self.frames = self.frames.reshape(0, 4)
        frame_kind(self.frames)
        if self.descriptors is not None:
            self.descriptors = np.asarray(self.descriptors)
            if self.descriptors.shape[0] != self.frames.shape[0]:
                raise ValueError(
                    f"Descriptor count {self.descriptors.shape[0]} does not match "
                    f"frame count {self.frames.shape[0]}"
                )

    @property
    def num_frames(self) -> int:
        return int(self.frames.shape[0])

    @property
    def has_descriptors(self) -> bool:
        return self.descriptors is not None
