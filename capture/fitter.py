"""
capture.fitter
Layout fitter: turn one GeometrySnapshot into a FitPlan, then apply it.

All chart adjustments are shrink-only relative to the base height and never go
below the mode floor (160px for a nested outcome, 300px otherwise). Because the
plan is computed from a single snapshot, later steps project earlier ones: when
the chart shrinks by d, everything laid out below it moves up by d while
fixed-position elements stay put.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from .constants import (
    BASE_CHART_FLOOR,
    BASE_CHART_HEIGHT,
    CHIP_MAX_GAP,
    CHIP_MIN_CLEARANCE,
    CHIP_REDUCE_MAX,
    CHIP_REDUCE_MIN,
    CLIP_PADDING,
    NESTED_BOTTOM_BUFFER,
    NESTED_CHART_FLOOR,
    OVERLAP_BUFFER,
    OVERLAP_MARGIN,
    TRADE_CTA_HEIGHT,
)
from .geometry import ensure_fresh
from .locators import strategies_for
from .models import FitPlan, GeometrySnapshot, PageMode

logger = logging.getLogger(__name__)

APPLY_CHART_HEIGHT_JS = """
(args) => {
  const H = window.ShotHelpers;
  if (!H) return { ok: false, helpers: false };
  const chart = H.locate(args.chart).el;
  if (!chart) return { ok: false };
  const px = `${args.height}px`;
  H.setStyles(chart, { '--chart-height': px, height: px, 'min-height': px });
  const svg = chart.querySelector('svg');
  if (svg) {
    svg.setAttribute('height', String(args.height));
    svg.style.setProperty('height', px, 'important');
  }
  H.markApplied('fit');
  return { ok: true };
}
"""


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def mode_floor(mode: PageMode) -> int:
    return NESTED_CHART_FLOOR if mode.is_nested else BASE_CHART_FLOOR


def chip_strip_reduction(snapshot: GeometrySnapshot) -> int:
    """Chart shrink for a date-chip strip sitting just above the chart (0 if none)."""
    chips = snapshot.get("date_chips")
    chart = snapshot.get("chart")
    if chips is None or chart is None or snapshot.chip_count < 2:
        return 0
    strip, top = chips.rect, chart.rect.top
    if strip.bottom >= top - CHIP_MIN_CLEARANCE:
        return 0
    if top - strip.bottom > CHIP_MAX_GAP:
        return 0
    return int(clamp(round(strip.height), CHIP_REDUCE_MIN, CHIP_REDUCE_MAX))


def _below_chart(snapshot: GeometrySnapshot, top: float) -> bool:
    chart = snapshot.get("chart")
    return chart is not None and top >= chart.rect.top


def resolve_volume_overlap(snapshot: GeometrySnapshot, target: float, delta: float, floor: int) -> float:
    """Shrink further when the volume row would sit under the fixed buy bar."""
    vol = snapshot.get("volume_row")
    buy = snapshot.get("buy_buttons")
    if vol is None or buy is None or not buy.fixed:
        return target
    # the row is in flow and lands at rect + scrollY once scrolled to the top; the bar stays put
    shift = delta if _below_chart(snapshot, vol.rect.top) else 0
    vol_bottom = vol.rect.bottom + snapshot.scroll_y + shift
    limit = buy.rect.top - OVERLAP_BUFFER
    if vol_bottom < limit:
        return target
    overlap = vol_bottom - limit
    return max(floor, target - overlap - OVERLAP_MARGIN)


def fit_nested_card(snapshot: GeometrySnapshot, target: float, delta: float, viewport_height: int, floor: int) -> float:
    """Shrink by exactly the amount the isolated outcome card overflows the canvas."""
    card = snapshot.target_card
    if card is None:
        return target
    bottom = card.bottom + snapshot.scroll_y + (delta if _below_chart(snapshot, card.top) else 0)
    limit = viewport_height - NESTED_BOTTOM_BUFFER
    if bottom <= limit:
        return target
    return max(floor, round(target - (bottom - limit)))


def event_viewport_height(snapshot: GeometrySnapshot, delta: float) -> Optional[int]:
    """Viewport height putting the Trade CTA flush under the content."""
    bottoms: List[float] = []
    chart = snapshot.get("chart")
    if chart is not None:
        bottoms.append(chart.rect.bottom + delta)
    for name in ("volume_row", "legend"):
        region = snapshot.get(name)
        if region is None:
            continue
        shift = delta if _below_chart(snapshot, region.rect.top) else 0
        bottoms.append(region.rect.bottom + shift)
    if not bottoms:
        return None
    return int(math.ceil(max(bottoms) + snapshot.scroll_y + TRADE_CTA_HEIGHT))


def anchored_clip(snapshot: GeometrySnapshot, delta: float, width: int, height: int) -> Optional[Dict[str, int]]:
    """Clip keeping the buy buttons in frame when they are not pinned to the viewport."""
    buy = snapshot.get("buy_buttons")
    title = snapshot.get("title")
    if buy is None or title is None or buy.fixed:
        return None
    scroll = snapshot.scroll_y
    shift = delta if _below_chart(snapshot, buy.rect.top) else 0
    bottom_y = buy.rect.bottom + shift + scroll + CLIP_PADDING
    if bottom_y <= scroll + height:
        return None
    top_y = max(0.0, title.rect.top + scroll - CLIP_PADDING)
    y = top_y if bottom_y - top_y <= height else bottom_y - height
    return {"x": 0, "y": int(math.floor(max(0.0, y))), "width": int(width), "height": int(height)}


def plan_fit(
    snapshot: GeometrySnapshot,
    mode: PageMode,
    *,
    current_epoch: int,
    width: int,
    height: int,
    base_height: int = BASE_CHART_HEIGHT,
) -> FitPlan:
    """Derive the FitPlan for a mode from one fresh snapshot."""
    ensure_fresh(snapshot, current_epoch)
    plan = FitPlan(snapshot_epoch=snapshot.epoch)
    floor = mode_floor(mode)
    chart = snapshot.get("chart")
    if mode.is_multi:
        # the viewport is the tunable here; the chart keeps its rendered height
        plan.viewport_height_px = event_viewport_height(snapshot, 0)
        return plan
    if chart is None:
        plan.notes.append("chart-missing")
        return plan

    current = snapshot.chart_height if snapshot.chart_height is not None else chart.rect.height
    reduce_by = chip_strip_reduction(snapshot)
    if reduce_by:
        plan.notes.append(f"chips:-{reduce_by}")
    target: float = max(floor, base_height - reduce_by)

    before = target
    target = resolve_volume_overlap(snapshot, target, target - current, floor)
    if target != before:
        plan.notes.append(f"volume-overlap:{before - target:.0f}")
    if mode.is_nested:
        before = target
        target = fit_nested_card(snapshot, target, target - current, height, floor)
        if target != before:
            plan.notes.append(f"nested-overflow:{before - target:.0f}")

    target = clamp(round(target), floor, base_height)
    plan.chart_height_px = int(target)
    if mode.is_single:
        plan.clip_rect = anchored_clip(snapshot, target - current, width, height)
    logger.debug("fit plan: %s", plan)
    return plan


async def apply_fit_plan(page, plan: FitPlan, *, width: int) -> Dict[str, Any]:
    """Apply a plan once: chart height first, then the viewport."""
    plan.consume()
    applied: Dict[str, Any] = {"chart_height": None, "viewport_height": None}
    try:
        if plan.chart_height_px is not None:
            res = await page.evaluate(
                APPLY_CHART_HEIGHT_JS, {"chart": strategies_for("chart"), "height": plan.chart_height_px}
            )
            if isinstance(res, dict) and res.get("ok"):
                applied["chart_height"] = plan.chart_height_px
        if plan.viewport_height_px:
            await page.set_viewport(width, plan.viewport_height_px)
            applied["viewport_height"] = plan.viewport_height_px
    finally:
        page.note_mutation()
    return applied
