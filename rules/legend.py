"""
rules.legend
Outcome legend restyle: bigger colour dots and labels, wider gaps.
"""

from __future__ import annotations

from typing import Any, Dict

from capture.constants import LEGEND_DOT_SELECTOR

OUTCOME_LEGEND_JS = """
(dotSelector) => {
  const H = window.ShotHelpers;
  let dots = 0;
  document.querySelectorAll(dotSelector).forEach((dot) => {
    const parent = dot.parentElement;
    if (!parent || !parent.querySelector('p')) return;
    H.setStyles(dot, { width: '12px', height: '12px', 'min-width': '12px', 'min-height': '12px' });
    dots += 1;
  });
  document.querySelectorAll('p.text-\\\\[13px\\\\]').forEach((p) => {
    const pct = p.querySelector('span.font-medium');
    if (!pct) return;
    H.setStyles(p, { 'font-size': '17px', 'line-height': '1.3' });
    H.setStyles(pct, { 'font-size': '17px', 'font-weight': '600' });
  });
  document.querySelectorAll('.flex.items-center.gap-1\\\\.5.whitespace-nowrap').forEach((item) => {
    if (item.querySelector('.rounded-full') && item.querySelector('p')) H.setStyles(item, { gap: '8px' });
  });
  document.querySelectorAll('.flex.items-center.gap-x-3.gap-y-1.flex-wrap').forEach((wrap) => {
    H.setStyles(wrap, { gap: '16px', 'row-gap': '8px' });
  });
  H.markApplied('outcome_legend_restyle');
  return { ok: true, dots };
}
"""


async def apply_outcome_legend(page, ctx) -> Dict[str, Any]:
    return await page.evaluate(OUTCOME_LEGEND_JS, LEGEND_DOT_SELECTOR)
