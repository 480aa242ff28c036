"""
capture.geometry
Read-only measurement of the named page regions.

A GeometrySnapshot records the page's mutation epoch at probe time; it must not
be used once any DOM-mutating rule has run since (see ensure_fresh).
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from .errors import StaleGeometryError
from .locators import FIT_REGIONS, locator_table
from .models import GeometrySnapshot, Rect, RegionProbe

PROBE_JS = """
(args) => {
  const H = window.ShotHelpers;
  if (!H) return null;
  const regions = H.locateAll(args.table);
  const chips = H.chipsRow();
  const chart = args.table.chart ? H.locate(args.table.chart).el : null;
  const card = document.querySelector('[data-shot-target-card]');
  return {
    viewport: { width: window.innerWidth, height: window.innerHeight },
    scrollY: window.scrollY || 0,
    regions,
    chartHeight: chart ? chart.getBoundingClientRect().height : null,
    chipCount: chips ? chips.chipCount : 0,
    targetCard: card ? H.rect(card) : null,
  };
}
"""


def snapshot_from_probe(data: Any, epoch: int) -> GeometrySnapshot:
    """Build a GeometrySnapshot from the probe's JSON payload."""
    data = data if isinstance(data, dict) else {}
    viewport = data.get("viewport") or {}
    regions: Dict[str, RegionProbe] = {}
    for name, raw in (data.get("regions") or {}).items():
        if not isinstance(raw, dict):
            continue
        rect = Rect.from_dict(raw.get("rect"))
        if rect is None:
            continue
        regions[name] = RegionProbe(
            name=name,
            strategy=str(raw.get("strategy") or ""),
            rect=rect,
            fixed=bool(raw.get("fixed")),
        )
    chart_height = data.get("chartHeight")
    return GeometrySnapshot(
        epoch=int(epoch),
        viewport_width=int(viewport.get("width") or 0),
        viewport_height=int(viewport.get("height") or 0),
        scroll_y=float(data.get("scrollY") or 0),
        regions=regions,
        chart_height=float(chart_height) if chart_height is not None else None,
        chip_count=int(data.get("chipCount") or 0),
        target_card=Rect.from_dict(data.get("targetCard")),
    )


async def probe_geometry(page, regions: Optional[Sequence[str]] = None) -> GeometrySnapshot:
    """Measure the fit regions on the live page."""
    table = locator_table(*(regions or FIT_REGIONS))
    if "chart" not in table:
        table.update(locator_table("chart"))
    data = await page.evaluate(PROBE_JS, {"table": table})
    return snapshot_from_probe(data, epoch=page.mutation_epoch)


def ensure_fresh(snapshot: GeometrySnapshot, current_epoch: int) -> None:
    if snapshot.epoch != current_epoch:
        raise StaleGeometryError(
            f"geometry snapshot from epoch {snapshot.epoch} used at epoch {current_epoch}"
        )
