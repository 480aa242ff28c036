"""
capture.errors
Exception types for the capture pipeline.

ShotError carries a machine-readable code and the pipeline stage that failed,
so the orchestrator can turn it into a tagged CaptureResult instead of letting
it escape to the caller.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ShotError(Exception):
    """Terminal pipeline error.

    code: error code (INVALID_URL / NAV_TIMEOUT / CAPTURE_ERROR ...)
    stage: stage that failed (resolve / launch / navigate / capture ...)
    message: human readable message
    original: optional underlying exception
    """

    code: str
    stage: str
    message: str
    original: Optional[Exception] = None

    def __str__(self) -> str:  # pragma: no cover
        return f"[{self.code}@{self.stage}] {self.message}"


class InvalidInputError(ShotError):
    """Bad or foreign URL, or a request field outside its allowed set."""


class EngineUninitializedError(ShotError):
    """The automation engine handle is missing, closed or not yet ready."""


class NavigationError(ShotError):
    """Navigation to the target page failed or timed out."""


class CaptureError(ShotError):
    """The final screenshot could not be produced."""


class StaleGeometryError(RuntimeError):
    """A GeometrySnapshot was used after the DOM was mutated."""
