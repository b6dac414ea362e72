"""Exceptions raised by the benchmark."""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for benchmark failures that abort a single evaluation."""


class EvaluatorUnavailableError(BenchmarkError):
    """The external overlap evaluator is not installed or not runnable."""


class EvaluatorError(BenchmarkError):
    """The external overlap evaluator failed.

    Attributes:
        returncode: Process exit status or the tool's own error code, if known.
        stderr: Diagnostic output captured from the evaluator.
    """

    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        text = super().__str__()
        if self.returncode is not None:
            text += f" (code {self.returncode})"
        if self.stderr:
            text += f": {self.stderr.strip()}"
        return text
