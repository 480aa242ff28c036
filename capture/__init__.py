"""
capture
Market page → social image pipeline (URL resolution, page-mode detection,
layout fitting, capture orchestration and admission control).
"""

from .errors import (
    CaptureError,
    EngineUninitializedError,
    InvalidInputError,
    NavigationError,
    ShotError,
)
from .models import CaptureRequest, CaptureResult, PageMode

__all__ = [
    "CaptureError",
    "CaptureRequest",
    "CaptureResult",
    "EngineUninitializedError",
    "InvalidInputError",
    "NavigationError",
    "PageMode",
    "ShotError",
]
