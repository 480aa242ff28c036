"""
capture.page_mode
Classify the loaded page from observed structure (not the URL alone).

Decision order:
1. nested slug present: a single market render (≥2 direct buy affordances and no
   multi-outcome legend) stays SingleMarket; a matching outcome makes it
   NestedOutcome; otherwise degrade to MultiOutcomeEvent with a warning.
2. ≥2 direct "Buy <label>" affordances → SingleMarket.
3. a legend with more than two colored entries → MultiOutcomeEvent.
4. nothing recognisable → SingleMarket with an ELEMENT_NOT_FOUND warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .constants import (
    LEGEND_DOT_SELECTOR,
    WARN_ELEMENT_NOT_FOUND,
    WARN_OUTCOME_MATCH_AMBIGUOUS,
)
from .models import CanonicalTarget, PageMode
from .outcomes import OutcomeCandidate, legend_candidates, match_outcome

logger = logging.getLogger(__name__)

MIN_DIRECT_BUY = 2
MULTI_LEGEND_THRESHOLD = 2

OBSERVE_PAGE_JS = """
(legendSelector) => {
  const H = window.ShotHelpers;
  const buyLabels = Array.from(document.querySelectorAll('.trading-button-text'))
    .map((el) => (el.textContent || '').trim().toLowerCase())
    .filter((t) => t.startsWith('buy '));
  const dots = Array.from(document.querySelectorAll(legendSelector));
  const legendLabels = dots.map((dot) => {
    const item = dot.parentElement;
    const p = item ? item.querySelector('p') : null;
    return ((p || item || dot).textContent || '').trim();
  }).filter(Boolean);
  const checkboxIds = Array.from(document.querySelectorAll('button[role="checkbox"]'))
    .map((c) => c.id || '').filter(Boolean);
  const cards = H && H.outcomeCards ? H.outcomeCards() : [];
  return { buyLabels, legendCount: dots.length, legendLabels, checkboxIds, cards };
}
"""


@dataclass(frozen=True)
class PageObservation:
    buy_labels: Tuple[str, ...] = ()
    legend_count: int = 0
    legend_labels: Tuple[str, ...] = ()
    checkbox_ids: Tuple[str, ...] = ()
    cards: Tuple[OutcomeCandidate, ...] = ()

    @classmethod
    def from_probe(cls, data: Any) -> "PageObservation":
        if not isinstance(data, dict):
            return cls()
        cards = tuple(
            OutcomeCandidate.from_dict(c, i) for i, c in enumerate(data.get("cards") or []) if isinstance(c, dict)
        )
        return cls(
            buy_labels=tuple(str(x) for x in data.get("buyLabels") or []),
            legend_count=int(data.get("legendCount") or 0),
            legend_labels=tuple(str(x) for x in data.get("legendLabels") or []),
            checkbox_ids=tuple(str(x) for x in data.get("checkboxIds") or []),
            cards=cards,
        )

    @property
    def has_direct_buy(self) -> bool:
        return len(self.buy_labels) >= MIN_DIRECT_BUY

    @property
    def has_multi_legend(self) -> bool:
        return self.legend_count > MULTI_LEGEND_THRESHOLD


async def observe_page(page) -> PageObservation:
    data = await page.evaluate(OBSERVE_PAGE_JS, LEGEND_DOT_SELECTOR)
    return PageObservation.from_probe(data)


def outcome_present(slug: str, obs: PageObservation) -> bool:
    """Whether the page shows a legend entry / card / checkbox for the outcome slug."""
    if f"{slug}-checkbox" in obs.checkbox_ids:
        return True
    if match_outcome(slug, legend_candidates(obs.legend_labels)) is not None:
        return True
    return match_outcome(slug, obs.cards) is not None


def resolve_page_mode(obs: PageObservation, target: CanonicalTarget) -> Tuple[PageMode, List[Dict[str, Any]]]:
    """Pick the page mode; returns (mode, structured warnings)."""
    warnings: List[Dict[str, Any]] = []
    slug = target.nested_outcome_slug
    if slug:
        if obs.has_direct_buy and not obs.has_multi_legend:
            return PageMode.single_market(), warnings
        if outcome_present(slug, obs):
            return PageMode.nested_outcome(slug), warnings
        logger.warning("no legend entry matches outcome %r; using event layout", slug)
        warnings.append({"code": WARN_OUTCOME_MATCH_AMBIGUOUS, "stage": "page_mode", "slug": slug})
        return PageMode.multi_outcome_event(), warnings
    if obs.has_direct_buy:
        return PageMode.single_market(), warnings
    if obs.has_multi_legend:
        return PageMode.multi_outcome_event(), warnings
    logger.warning("no trading affordances or outcome legend found; assuming single market")
    warnings.append({"code": WARN_ELEMENT_NOT_FOUND, "stage": "page_mode", "element": "buy_buttons"})
    return PageMode.single_market(), warnings
