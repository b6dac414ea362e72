"""External overlap evaluator interface and the Octave implementation.

The overlap/correspondence computation is Mikolajczyk's ``repeatability.m``
[1]. It exchanges data through text files; those files live in a per-call
temporary directory that is removed on every exit path.

[1] K. Mikolajczyk, T. Tuytelaars, C. Schmid, A. Zisserman, J. Matas,
    F. Schaffalitzky, T. Kadir, and L. Van Gool. A comparison of affine
    region detectors. IJCV, 1(65):43-72, 2005.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import numpy as np
from pydantic import ValidationError

import config
from .errors import EvaluatorError, EvaluatorUnavailableError
from .regions import write_features, write_homography
from .schemas import RawEvaluationResult

logger = logging.getLogger(__name__)

SCRIPT_NAME = "repeatability.m"

# Octave program run for one evaluation. Writes five lines: error code,
# nine repeatability values, nine correspondence counts, matching score,
# number of matches.
_OCTAVE_TEMPLATE = r"""
addpath('{install_dir}');
[err, rep, corresp, match_score, num_matches] = repeatability('{ell_a}', '{ell_b}', '{homography}', '{image_a}', '{image_b}', {common_part});
fid = fopen('{result}', 'w');
fprintf(fid, '%d\n', err);
fprintf(fid, '%.10g ', rep); fprintf(fid, '\n');
fprintf(fid, '%.10g ', corresp); fprintf(fid, '\n');
fprintf(fid, '%.10g\n', match_score);
fprintf(fid, '%.10g\n', num_matches);
fclose(fid);
"""


@dataclass
class EvaluationRequest:
    """Structured input of one overlap evaluation.

    Attributes:
        ellipses_a: (N, 5) ellipses ``[x, y, S11, S12, S22]`` from image A.
        ellipses_b: (M, 5) ellipses from image B.
        homography: 3x3 transform mapping image A onto image B.
        image_a: Path to image A.
        image_b: Path to image B.
        common_part: Restrict comparison to the area visible in both images.
        descriptors_a: Optional (N, d) descriptors aligned with ellipses_a.
        descriptors_b: Optional (M, d) descriptors aligned with ellipses_b.
    """

    ellipses_a: np.ndarray
    ellipses_b: np.ndarray
    homography: np.ndarray
    image_a: Path
    image_b: Path
    common_part: bool
    descriptors_a: np.ndarray | None = None
    descriptors_b: np.ndarray | None = None


class OverlapEvaluator(Protocol):
    """Interface for the external overlap/correspondence computation."""

    def is_available(self) -> bool:
        """Return True when the evaluator can be run."""

    def evaluate(self, request: EvaluationRequest) -> RawEvaluationResult:
        """Compute raw per-decile statistics. Raises EvaluatorError on failure."""


def _octave_str(value: Path | str) -> str:
    """Quote a value for a single-quoted Octave string literal."""
    return str(value).replace("'", "''")


def parse_result_file(path: Path) -> RawEvaluationResult:
    """Parse the five-line result file written by the Octave program."""
    try:
        lines = path.read_text().splitlines()
    except OSError as exc:
        raise EvaluatorError(f"Evaluator produced no result file: {exc}") from exc

    if len(lines) < 5:
        raise EvaluatorError(f"Malformed evaluator output: expected 5 lines, got {len(lines)}")

    try:
        err = int(float(lines[0]))
        repeatability = np.array(lines[1].split(), dtype=np.float64)
        correspondences = np.array(lines[2].split(), dtype=np.float64)
        matching_score = float(lines[3])
        num_matches = float(lines[4])
    except ValueError as exc:
        raise EvaluatorError(f"Malformed evaluator output: {exc}") from exc

    if err != 0:
        raise EvaluatorError("Overlap evaluator reported an error", returncode=err)

    # Match count is NaN when the tool could not match descriptors
    try:
        return RawEvaluationResult(
            repeatability=repeatability.tolist(),
            num_correspondences=correspondences.tolist(),
            matching_score=matching_score,
            num_matches=None if np.isnan(num_matches) else num_matches,
        )
    except ValidationError as exc:
        raise EvaluatorError(f"Malformed evaluator output: {exc}") from exc


@dataclass
class OctaveRepeatabilityEvaluator:
    """Runs ``repeatability.m`` with GNU Octave in a subprocess."""

    install_dir: Path | None = None
    executable: str | None = None
    timeout: float | None = None

    def __post_init__(self) -> None:
        if self.install_dir is None:
            self.install_dir = config.EVALUATOR_INSTALL_DIR
        if self.executable is None:
            self.executable = config.EVALUATOR_EXECUTABLE
        if self.timeout is None:
            self.timeout = config.EVALUATOR_TIMEOUT_SECONDS
        self.install_dir = Path(self.install_dir)

    def is_available(self) -> bool:
        if not (self.install_dir / SCRIPT_NAME).exists():
            return False
        return shutil.which(self.executable) is not None

    def build_command(self, script: str) -> list[str]:
        return [self.executable, "--quiet", "--no-window-system", "--eval", script]

    def evaluate(self, request: EvaluationRequest) -> RawEvaluationResult:
        with tempfile.TemporaryDirectory(prefix="kmeval-") as tmp:
            tmp_dir = Path(tmp)
            ell_a = tmp_dir / "ellA.txt"
            ell_b = tmp_dir / "ellB.txt"
            homography = tmp_dir / "H.txt"
            result = tmp_dir / "result.txt"

            write_features(ell_a, request.ellipses_a, request.descriptors_a)
            write_features(ell_b, request.ellipses_b, request.descriptors_b)
            write_homography(homography, request.homography)

            script = _OCTAVE_TEMPLATE.format(
                install_dir=_octave_str(self.install_dir.resolve()),
                ell_a=_octave_str(ell_a),
                ell_b=_octave_str(ell_b),
                homography=_octave_str(homography),
                image_a=_octave_str(Path(request.image_a).resolve()),
                image_b=_octave_str(Path(request.image_b).resolve()),
                common_part=int(request.common_part),
                result=_octave_str(result),
            )

            logger.debug("Running %s in %s", SCRIPT_NAME, tmp_dir)
            try:
                completed = subprocess.run(
                    self.build_command(script),
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except FileNotFoundError as exc:
                raise EvaluatorUnavailableError(
                    f"Evaluator executable not found: {self.executable}"
                ) from exc
            except subprocess.TimeoutExpired as exc:
                raise EvaluatorError(
                    f"Overlap evaluator timed out after {self.timeout}s"
                ) from exc

            if completed.returncode != 0:
                raise EvaluatorError(
                    "Overlap evaluator failed",
                    returncode=completed.returncode,
                    stderr=completed.stderr or completed.stdout,
                )

            return parse_result_file(result)
