"""
rules
The transformation rule set: ordered, idempotent DOM passes run through page.evaluate.

Every rule is an async callable (page, ctx) -> summary dict. Rules tolerate missing
targets: a summary may list "missing" element names, which become ELEMENT_NOT_FOUND
warnings, and an exception inside a rule becomes a RULE_ERROR warning. Neither stops
the pipeline. Each run advances the page's mutation epoch.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Sequence

from capture.constants import WARN_ELEMENT_NOT_FOUND, WARN_RULE_ERROR
from capture.models import CanonicalTarget, CaptureRequest, PageMode

logger = logging.getLogger(__name__)

HELPERS_FILE = os.path.join(os.path.dirname(__file__), "shot_helpers.js")


@dataclass
class RuleContext:
    request: CaptureRequest
    target: CanonicalTarget
    mode: PageMode
    width: int
    height: int
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    state: Dict[str, Any] = field(default_factory=dict)

    def warn(self, code: str, stage: str, **extra: Any) -> None:
        self.warnings.append({"code": code, "stage": stage, **extra})


@dataclass(frozen=True)
class Rule:
    name: str
    apply: Callable[[Any, RuleContext], Awaitable[Dict[str, Any]]]


async def run_rule(page, rule: Rule, ctx: RuleContext) -> Dict[str, Any]:
    """Run one rule, converting failures and missing targets into warnings."""
    try:
        result = await rule.apply(page, ctx)
    except Exception as e:
        logger.warning("rule %s failed: %s", rule.name, e)
        ctx.warn(WARN_RULE_ERROR, rule.name, error=str(e))
        result = {"ok": False, "error": str(e)}
    finally:
        page.note_mutation()
    result = result if isinstance(result, dict) else {}
    for element in result.get("missing") or []:
        logger.info("rule %s: %s not found", rule.name, element)
        ctx.warn(WARN_ELEMENT_NOT_FOUND, rule.name, element=element)
    return result


async def run_rules(page, rules: Sequence[Rule], ctx: RuleContext) -> Dict[str, Dict[str, Any]]:
    """Run rules strictly in order; returns {rule name: summary}."""
    summaries: Dict[str, Dict[str, Any]] = {}
    for rule in rules:
        summaries[rule.name] = await run_rule(page, rule, ctx)
    return summaries


def load_helpers_source() -> str:
    with open(HELPERS_FILE, "r", encoding="utf-8") as f:
        return f.read()


from .axis import apply_axis_restyle  # noqa: E402
from .banner import apply_banner_removal  # noqa: E402
from .buttons import apply_button_restyle  # noqa: E402
from .chrome import apply_chrome_removal, apply_theme_lock  # noqa: E402
from .debug_overlay import apply_debug_overlay  # noqa: E402
from .header import apply_header_restyle  # noqa: E402
from .legend import apply_outcome_legend  # noqa: E402
from .outcome_layout import (  # noqa: E402
    apply_chart_outcome_filter,
    apply_event_crop,
    apply_nested_normalize,
    apply_outcome_isolation,
    apply_title_override,
)
from .time_range import apply_time_range  # noqa: E402
from .volume_row import apply_volume_row  # noqa: E402
from .watermark import apply_watermark  # noqa: E402

THEME_LOCK = Rule("theme_lock", apply_theme_lock)
CHROME_REMOVAL = Rule("chrome_removal", apply_chrome_removal)
HEADER_RESTYLE = Rule("header_restyle", apply_header_restyle)
AXIS_RESTYLE = Rule("axis_restyle", apply_axis_restyle)
VOLUME_ROW_RESTYLE = Rule("volume_row_restyle", apply_volume_row)
BUTTON_RESTYLE = Rule("button_restyle", apply_button_restyle)
WATERMARK_INJECTION = Rule("watermark_injection", apply_watermark)
TIME_RANGE_SELECTION = Rule("time_range_selection", apply_time_range)
BANNER_REMOVAL = Rule("banner_removal", apply_banner_removal)
OUTCOME_LEGEND_RESTYLE = Rule("outcome_legend_restyle", apply_outcome_legend)
NESTED_NORMALIZE = Rule("nested_normalize", apply_nested_normalize)
TITLE_OVERRIDE = Rule("title_override", apply_title_override)
CHART_OUTCOME_FILTER = Rule("chart_outcome_filter", apply_chart_outcome_filter)
OUTCOME_ISOLATION = Rule("outcome_isolation", apply_outcome_isolation)
EVENT_CROP = Rule("event_crop", apply_event_crop)
DEBUG_OVERLAY = Rule("debug_overlay", apply_debug_overlay)

BASE_RULES = (
    THEME_LOCK,
    CHROME_REMOVAL,
    HEADER_RESTYLE,
    AXIS_RESTYLE,
    VOLUME_ROW_RESTYLE,
    BUTTON_RESTYLE,
    WATERMARK_INJECTION,
    TIME_RANGE_SELECTION,
    BANNER_REMOVAL,
    OUTCOME_LEGEND_RESTYLE,
)

# Re-applied after the chart re-renders (time range click, outcome filter).
REAPPLY_RULES = (AXIS_RESTYLE, WATERMARK_INJECTION)


def mode_rules(mode: PageMode, target: CanonicalTarget) -> List[Rule]:
    """Mode-specific passes, run after the base rules and before fitting."""
    rules: List[Rule] = []
    if target.nested_outcome_slug:
        rules.append(NESTED_NORMALIZE)
    if mode.is_nested:
        rules.extend([TITLE_OVERRIDE, CHART_OUTCOME_FILTER, OUTCOME_ISOLATION])
    elif mode.is_multi:
        rules.append(EVENT_CROP)
    return rules


def rule_source_files() -> List[str]:
    """Files whose content defines the rule set (used for the development version key)."""
    here = os.path.dirname(__file__)
    names = sorted(n for n in os.listdir(here) if n.endswith(".py") or n.endswith(".js"))
    return [os.path.join(here, n) for n in names]


HELPERS_PRESENT_JS = "() => !!(window.ShotHelpers && window.ShotHelpers.version === 1)"


async def ensure_helpers(page) -> bool:
    """Make sure window.ShotHelpers exists in the current document."""
    if await page.evaluate(HELPERS_PRESENT_JS):
        return True
    await page.install_script(load_helpers_source())
    return bool(await page.evaluate(HELPERS_PRESENT_JS))
