"""
Deterministic identity strings used to build result cache keys.

A signature is a stable string derived from the inputs that define an
entity. Two signatures are equal iff the inputs are equal; nothing here
depends on process state, so keys survive restarts.
"""

from __future__ import annotations

import os
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from benchmarking.schemas import BenchmarkConfig
    from detectors import LocalFeatureDetector

KEY_SEPARATOR = "|"
_ESCAPE_CHAR = "%"


class OutputMode(IntEnum):
    """Shape of an evaluation: 2 values (repeatability) or 4 (plus matching)."""

    REPEATABILITY = 2
    MATCHING = 4


def file_signature(path: str | Path) -> str:
    """Compute a signature from a file's absolute path and modification state.

    The pixel content is not read. The signature changes when the file is
    touched, rewritten or resized.

    Raises:
        FileNotFoundError: The file does not exist.
        IsADirectoryError: The path is a directory.
        PermissionError: The file is not readable.
    """
    resolved = Path(path).resolve()
    stat = resolved.stat()
    if resolved.is_dir():
        raise IsADirectoryError(f"Not a file: {resolved}")
    if not os.access(resolved, os.R_OK):
        raise PermissionError(f"File is not readable: {resolved}")
    return f"{resolved};{stat.st_mtime_ns};{stat.st_size}"


def config_signature(config: "BenchmarkConfig") -> str:
    """Serialize the (already rounded) benchmark configuration."""
    return f"overlap_error={config.overlap_error:.1f};common_part={int(config.common_part)}"


def detector_signature(detector: "LocalFeatureDetector") -> str:
    """Delegate to the detector's own identity string."""
    return detector.signature()


def escape_component(value: str) -> str:
    """Escape the separator so that joined keys stay unambiguous."""
    return value.replace(_ESCAPE_CHAR, "%25").replace(KEY_SEPARATOR, "%7C")


def build_key(
    namespace: str,
    output_mode: OutputMode | int,
    config_sig: str,
    detector_sig: str,
    image_a_sig: str,
    image_b_sig: str,
) -> str:
    """Join key components into one flat, human-readable cache key."""
    parts = (
        namespace,
        str(int(output_mode)),
        config_sig,
        detector_sig,
        image_a_sig,
        image_b_sig,
    )
    return KEY_SEPARATOR.join(escape_component(p) for p in parts)
