"""
rules.volume_row
Drop the "Related" section, enlarge the volume row and the range tabs, and hide
the volume figure for thin markets (under $50,000).

The first pass reads every "Vol." paragraph, the threshold is decided here, and
the second pass hides or restyles each paragraph by index.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

MIN_VISIBLE_VOLUME = 50000
VOLUME_INDEX_ATTR = "data-shot-volume-index"

READ_VOLUME_JS = """
(attr) => {
  const H = window.ShotHelpers;
  let relatedRemoved = 0;
  document.querySelectorAll('h3').forEach((h3) => {
    if (H.text(h3) !== 'Related') return;
    const target = h3.parentElement || h3;
    if (H.hasTrading(target)) return;
    target.remove();
    relatedRemoved += 1;
  });

  const volumes = [];
  Array.from(document.querySelectorAll('p'))
    .filter((p) => (p.textContent || '').includes('Vol.'))
    .forEach((p, index) => {
      p.setAttribute(attr, String(index));
      volumes.push({ index, text: p.textContent || '' });
    });

  const tabs = document.querySelectorAll('button[role="tab"]');
  tabs.forEach((btn) => H.setStyles(btn, { 'font-size': '17px', padding: '6px 8px', 'font-weight': '500' }));
  document.querySelectorAll('svg[viewBox="0 0 18 18"]').forEach((svg) => H.setStyles(svg, { width: '24px', height: '24px' }));
  return { relatedRemoved, volumes, tabs: tabs.length };
}
"""

WRITE_VOLUME_JS = """
(args) => {
  const H = window.ShotHelpers;
  const hide = new Set(args.hide || []);
  let hidden = 0;
  let styled = 0;
  document.querySelectorAll(`[${args.attr}]`).forEach((p) => {
    const index = Number(p.getAttribute(args.attr));
    const volContainer = p.closest('div.flex.items-center.gap-2\\\\.5');
    if (hide.has(index) && volContainer) {
      if (H.hide(volContainer, 'low-volume')) hidden += 1;
      return;
    }
    H.setStyles(p, { 'font-size': '18px', 'font-weight': '600' });
    const row = p.closest('div.flex.w-full.flex-1.box-border.z-1') || p.closest('div.flex.w-full');
    if (row) H.setStyles(row, { 'margin-top': '16px', 'margin-bottom': '6px' });
    styled += 1;
  });
  H.markApplied('volume_row_restyle');
  return { hidden, styled };
}
"""

_AMOUNT_RE = re.compile(r"[^0-9.,]")


def parse_volume(text: str) -> Optional[float]:
    """'$1,234,567 Vol.' -> 1234567.0; None when the digits do not form one number."""
    raw = _AMOUNT_RE.sub("", text or "").replace(",", "")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def volume_visible(text: str) -> bool:
    amount = parse_volume(text)
    return amount is None or amount >= MIN_VISIBLE_VOLUME


def low_volume_indices(volumes: Sequence[Dict[str, Any]]) -> List[int]:
    return [int(v["index"]) for v in volumes if not volume_visible(str(v.get("text") or ""))]


async def apply_volume_row(page, ctx) -> Dict[str, Any]:
    read = await page.evaluate(READ_VOLUME_JS, VOLUME_INDEX_ATTR)
    read = read if isinstance(read, dict) else {}
    volumes = [v for v in read.get("volumes") or [] if isinstance(v, dict) and "index" in v]
    hide = low_volume_indices(volumes)
    written = await page.evaluate(WRITE_VOLUME_JS, {"attr": VOLUME_INDEX_ATTR, "hide": hide})
    written = written if isinstance(written, dict) else {}
    missing = []
    if not volumes:
        missing.append("volume_row")
    if not read.get("tabs"):
        missing.append("range_tabs")
    return {
        "ok": True,
        "relatedRemoved": read.get("relatedRemoved", 0),
        "volumes": [parse_volume(str(v.get("text") or "")) for v in volumes],
        "hidden": written.get("hidden", 0),
        "styled": written.get("styled", 0),
        "missing": missing,
    }
