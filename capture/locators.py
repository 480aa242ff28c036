"""
capture.locators
Ranked, named locator strategies per logical page region.

Each region maps to an ordered list of strategies; the browser-side helper
(ShotHelpers.locate) tries them in order and the first match wins. A strategy
is plain data so it can be serialized into page.evaluate and inspected in tests:

- css: selector whose first (text-filtered) match is the anchor element
- text: optional filter on the anchor's trimmed text
  ({"equals"|"startsWith"|"contains"|"regex": value}, case-insensitive)
- has: optional selector the anchor must contain
- closest: selectors tried in order via el.closest(); the strategy fails when none match
- fixedAncestor: walk up at most N levels to a position:fixed ancestor; fails when none
- helper: name of a dedicated ShotHelpers finder (e.g. chipsRow)
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List

Strategy = Dict[str, Any]

CHART_SVG_SELECTOR = 'svg[class*="chart"], svg[class*="recharts"], svg[class*="visx"]'

LOCATORS: Dict[str, List[Strategy]] = {
    "title": [
        {"name": "main-h1", "css": "main h1"},
        {"name": "h1", "css": "h1"},
    ],
    "chart": [
        {"name": "group-chart-container", "css": "#group-chart-container"},
        {"name": "chart-testid", "css": '[data-testid="chart-container"]'},
        {"name": "chart-class", "css": '[class*="chart-container"]'},
        {"name": "chart-svg-parent", "css": CHART_SVG_SELECTOR, "closest": ["div"]},
    ],
    "buy_buttons": [
        {"name": "fixed-ancestor", "css": ".trading-button", "fixedAncestor": 12},
        {"name": "nav", "css": ".trading-button", "closest": ["nav"]},
        {"name": "button-row", "css": ".trading-button", "closest": ["div"]},
    ],
    "volume_row": [
        {
            "name": "vol-row",
            "css": "p",
            "text": {"contains": "vol."},
            "closest": ["div.flex.w-full.flex-1.box-border.z-1", "div.flex.w-full"],
        },
        {"name": "vol-parent", "css": "p", "text": {"contains": "vol."}, "closest": ["div"]},
    ],
    "date_chips": [
        {"name": "chip-strip", "helper": "chipsRow"},
    ],
    "legend": [
        {"name": "legend-wrap", "css": "div.flex.items-center.gap-x-3.gap-y-1.flex-wrap"},
        {"name": "legend-row", "css": "div.flex.items-center.gap-1", "has": ".size-2.rounded-full"},
        {"name": "legend-dot-parent", "css": ".size-2.rounded-full", "closest": ["div.flex"]},
    ],
}

FIT_REGIONS = ("title", "chart", "buy_buttons", "volume_row", "date_chips", "legend")


def strategies_for(region: str) -> List[Strategy]:
    """Deep copy of the ranked strategies for a region (KeyError if unknown)."""
    return copy.deepcopy(LOCATORS[region])


def locator_table(*regions: str) -> Dict[str, List[Strategy]]:
    """Serializable {region: strategies} payload for ShotHelpers.locateAll."""
    names = regions or tuple(LOCATORS.keys())
    return {r: strategies_for(r) for r in names}
