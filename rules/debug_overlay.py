"""
rules.debug_overlay
Outline the fit regions (chips, chart, volume row, buy bar) with labelled badges.
Only runs when the request asks for debugLayout.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from capture.locators import locator_table

logger = logging.getLogger(__name__)

DEBUG_ATTR = "data-shot-debug"
REGION_COLORS = {
    "date_chips": "#b45309",
    "chart": "#2563eb",
    "volume_row": "#16a34a",
    "buy_buttons": "#dc2626",
}

DEBUG_OVERLAY_JS = """
(args) => {
  const H = window.ShotHelpers;
  document.querySelectorAll(`[${args.attr}]`).forEach((n) => n.remove());
  const summary = {};
  for (const [region, strategies] of Object.entries(args.table)) {
    const { el } = H.locate(strategies);
    if (!el) { summary[region] = null; continue; }
    const color = args.colors[region] || '#111827';
    el.style.setProperty('outline', `2px solid ${color}`, 'important');
    const r = el.getBoundingClientRect();
    const badge = document.createElement('div');
    badge.setAttribute(args.attr, region);
    badge.textContent = `${region} ${Math.round(r.height)}px`;
    H.setStyles(badge, {
      position: 'fixed', top: `${Math.max(8, r.top + 4)}px`, left: `${Math.max(8, r.left + 4)}px`,
      background: color, color: '#fff', 'font-size': '12px', 'font-weight': '600',
      padding: '2px 6px', 'border-radius': '4px', 'z-index': '999999', opacity: '0.9',
    });
    document.body.appendChild(badge);
    summary[region] = { top: Math.round(r.top), height: Math.round(r.height) };
  }
  H.markApplied('debug_overlay');
  return { ok: true, summary };
}
"""


async def apply_debug_overlay(page, ctx) -> Dict[str, Any]:
    if not ctx.request.debug_layout:
        return {"ok": True, "skipped": True}
    table = locator_table(*REGION_COLORS.keys())
    res = await page.evaluate(DEBUG_OVERLAY_JS, {"table": table, "colors": REGION_COLORS, "attr": DEBUG_ATTR})
    if isinstance(res, dict):
        logger.info("debug layout: %s", res.get("summary"))
    return res
