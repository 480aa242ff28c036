"""
capture.models
Data types that flow through the pipeline.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .constants import (
    ASPECTS,
    DEFAULT_ASPECT,
    DEFAULT_INVESTMENT,
    DEFAULT_TIME_RANGE,
    DEFAULT_WATERMARK,
    MAX_WIDTH,
    MIN_WIDTH,
    TIME_RANGES,
    WATERMARK_MODES,
)
from .errors import InvalidInputError


def normalize_watermark(value: Any) -> str:
    """Map legacy boolean-ish watermark flags onto a watermark mode."""
    if value is None or value is False:
        return "none"
    if value is True:
        return "wordmark"
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return "wordmark"
    if text in ("false", "0", "no", ""):
        return "none"
    return text


@dataclass(frozen=True)
class PayoutOptions:
    show: bool = False
    investment: float = DEFAULT_INVESTMENT


@dataclass(frozen=True)
class CaptureRequest:
    """One capture job. Immutable once admitted."""

    source_url: str
    aspect: str = DEFAULT_ASPECT
    time_range: str = DEFAULT_TIME_RANGE
    watermark_mode: str = DEFAULT_WATERMARK
    debug_layout: bool = False
    payout: PayoutOptions = field(default_factory=PayoutOptions)
    width: Optional[int] = None
    device_scale_factor: Optional[float] = None

    def validate(self) -> None:
        """Raise InvalidInputError when a field is outside its allowed set."""
        checks = (
            ("aspect", self.aspect, ASPECTS),
            ("time_range", self.time_range, TIME_RANGES),
            ("watermark_mode", self.watermark_mode, WATERMARK_MODES),
        )
        for name, value, allowed in checks:
            if value not in allowed:
                raise InvalidInputError(
                    code="INVALID_REQUEST",
                    stage="resolve",
                    message=f"{name}={value!r} is not one of {', '.join(allowed)}",
                )
        if self.width is not None and not (MIN_WIDTH <= int(self.width) <= MAX_WIDTH):
            raise InvalidInputError(
                code="INVALID_REQUEST",
                stage="resolve",
                message=f"width={self.width} must be within [{MIN_WIDTH}, {MAX_WIDTH}]",
            )
        if self.payout.investment <= 0:
            raise InvalidInputError(
                code="INVALID_REQUEST",
                stage="resolve",
                message=f"payout investment must be positive, got {self.payout.investment}",
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptureRequest":
        """Build a request from a loose mapping (camelCase or snake_case keys)."""

        def pick(*keys: str, default: Any = None) -> Any:
            for k in keys:
                if k in data and data[k] is not None:
                    return data[k]
            return default

        def number(kind: type, name: str, value: Any) -> Any:
            if value is None:
                return None
            try:
                return kind(value)
            except (TypeError, ValueError) as e:
                raise InvalidInputError(
                    code="INVALID_REQUEST",
                    stage="resolve",
                    message=f"{name}={value!r} is not a number",
                    original=e,
                ) from e

        payout = PayoutOptions(
            show=bool(pick("showPotentialPayout", "show_payout", default=False)),
            investment=number(float, "investment", pick("payoutInvestment", "investment", default=DEFAULT_INVESTMENT)),
        )
        width = number(int, "width", pick("width"))
        dsf = number(float, "device_scale_factor", pick("deviceScaleFactor", "device_scale_factor"))
        return cls(
            source_url=str(pick("url", "sourceUrl", "source_url", default="")),
            aspect=str(pick("aspect", default=DEFAULT_ASPECT)).lower(),
            time_range=str(pick("timeRange", "time_range", default=DEFAULT_TIME_RANGE)).lower(),
            watermark_mode=normalize_watermark(pick("chartWatermark", "watermark", "watermark_mode")),
            debug_layout=bool(pick("debugLayout", "debug_layout", default=False)),
            payout=payout,
            width=width,
            device_scale_factor=dsf,
        )


@dataclass(frozen=True)
class CanonicalTarget:
    navigation_url: str
    event_slug: str
    nested_outcome_slug: Optional[str] = None

    @property
    def file_slug(self) -> str:
        return self.nested_outcome_slug or self.event_slug


@dataclass(frozen=True)
class PageMode:
    """Page layout variant; NestedOutcome carries the outcome slug."""

    kind: str
    outcome_slug: Optional[str] = None

    SINGLE_MARKET = "single_market"
    MULTI_OUTCOME_EVENT = "multi_outcome_event"
    NESTED_OUTCOME = "nested_outcome"

    @classmethod
    def single_market(cls) -> "PageMode":
        return cls(cls.SINGLE_MARKET)

    @classmethod
    def multi_outcome_event(cls) -> "PageMode":
        return cls(cls.MULTI_OUTCOME_EVENT)

    @classmethod
    def nested_outcome(cls, outcome_slug: str) -> "PageMode":
        return cls(cls.NESTED_OUTCOME, outcome_slug)

    @property
    def is_single(self) -> bool:
        return self.kind == self.SINGLE_MARKET

    @property
    def is_multi(self) -> bool:
        return self.kind == self.MULTI_OUTCOME_EVENT

    @property
    def is_nested(self) -> bool:
        return self.kind == self.NESTED_OUTCOME

    def __str__(self) -> str:
        return f"{self.kind}({self.outcome_slug})" if self.outcome_slug else self.kind


@dataclass(frozen=True)
class Rect:
    top: float
    bottom: float
    left: float
    right: float
    width: float
    height: float

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> Optional["Rect"]:
        if not isinstance(d, dict):
            return None
        try:
            top = float(d.get("top", 0))
            left = float(d.get("left", 0))
            width = float(d.get("width", 0))
            height = float(d.get("height", 0))
            bottom = float(d.get("bottom", top + height))
            right = float(d.get("right", left + width))
        except (TypeError, ValueError):
            return None
        return cls(top=top, bottom=bottom, left=left, right=right, width=width, height=height)


@dataclass(frozen=True)
class RegionProbe:
    """One located region: which strategy matched and where it sits."""

    name: str
    strategy: str
    rect: Rect
    fixed: bool = False


@dataclass(frozen=True)
class GeometrySnapshot:
    """Read-only measurement of the named regions at one mutation epoch."""

    epoch: int
    viewport_width: int
    viewport_height: int
    scroll_y: float
    regions: Dict[str, RegionProbe]
    chart_height: Optional[float] = None
    chip_count: int = 0
    target_card: Optional[Rect] = None

    def get(self, name: str) -> Optional[RegionProbe]:
        return self.regions.get(name)


@dataclass
class FitPlan:
    """Size adjustments derived from one GeometrySnapshot; consumed exactly once."""

    snapshot_epoch: int
    chart_height_px: Optional[int] = None
    viewport_height_px: Optional[int] = None
    clip_rect: Optional[Dict[str, int]] = None
    notes: List[str] = field(default_factory=list)
    consumed: bool = False

    def consume(self) -> None:
        if self.consumed:
            raise RuntimeError("FitPlan already consumed")
        self.consumed = True


@dataclass
class CaptureResult:
    success: bool
    source_url: str
    image_bytes: Optional[bytes] = None
    file_name: Optional[str] = None
    market_title: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    page_mode: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    device_scale_factor: Optional[float] = None
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    timings: Dict[str, int] = field(default_factory=dict)

    def to_dict(self, include_bytes: bool = False) -> Dict[str, Any]:
        data = asdict(self)
        if not include_bytes:
            data.pop("image_bytes", None)
        return data
