"""
rules.time_range
Select the requested chart range tab and wait until the chart has repainted.

Network idle alone does not mean the SVG was redrawn, so after the click the page
is polled for axis ticks or path data inside the chart.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from capture.constants import (
    POLL_INTERVAL_MS,
    RERENDER_TIMEOUT_MS,
    TAB_TARGET_ATTR,
    WARN_RERENDER_TIMEOUT,
    WARN_TIME_RANGE_NOT_FOUND,
)

logger = logging.getLogger(__name__)

FIND_TAB_JS = """
(args) => {
  document.querySelectorAll(`[${args.attr}]`).forEach((el) => el.removeAttribute(args.attr));
  const tabs = Array.from(document.querySelectorAll('button[role="tab"]'));
  const tab = tabs.find((el) => (el.textContent || '').trim().toLowerCase() === args.range);
  if (!tab) return { found: false, available: tabs.map((el) => (el.textContent || '').trim().toLowerCase()) };
  tab.setAttribute(args.attr, args.range);
  tab.scrollIntoView({ block: 'center', inline: 'center' });
  return { found: true, selected: tab.getAttribute('aria-selected') === 'true' };
}
"""

DOM_CLICK_JS = """
(args) => {
  const tab = document.querySelector(`[${args.attr}="${args.range}"]`);
  if (!tab) return false;
  tab.click();
  return true;
}
"""

CHART_RENDERED_JS = """
() => {
  const ticks = document.querySelectorAll('.visx-axis-tick').length;
  const paths = Array.from(document.querySelectorAll('#group-chart-container svg path, svg[class*="chart"] path, svg[class*="visx"] path'))
    .filter((p) => (p.getAttribute('d') || '').length > 10).length;
  return ticks > 0 || paths > 0;
}
"""


def tab_selector(time_range: str) -> str:
    return f'[{TAB_TARGET_ATTR}="{time_range}"]'


async def apply_time_range(page, ctx) -> Dict[str, Any]:
    time_range = ctx.request.time_range.lower()
    args = {"range": time_range, "attr": TAB_TARGET_ATTR}
    found = await page.evaluate(FIND_TAB_JS, args)
    found = found if isinstance(found, dict) else {}
    if not found.get("found"):
        logger.warning("time range tab %r not found (tabs: %s)", time_range, found.get("available"))
        ctx.warn(WARN_TIME_RANGE_NOT_FOUND, "time_range_selection", time_range=time_range)
        return {"ok": True, "clicked": False}

    method = "native"
    if not await page.click(tab_selector(time_range)):
        method = "dom"
        if not await page.evaluate(DOM_CLICK_JS, args):
            ctx.warn(WARN_TIME_RANGE_NOT_FOUND, "time_range_selection", time_range=time_range, reason="click")
            return {"ok": True, "clicked": False}
    ctx.state["rerendered"] = True

    rendered = await page.wait_for_function(CHART_RENDERED_JS, timeout_ms=RERENDER_TIMEOUT_MS, polling=POLL_INTERVAL_MS)
    if not rendered:
        logger.warning("chart did not repaint within %dms after selecting %s", RERENDER_TIMEOUT_MS, time_range)
        ctx.warn(WARN_RERENDER_TIMEOUT, "time_range_selection", time_range=time_range)
    return {"ok": True, "clicked": True, "method": method, "rendered": rendered}
