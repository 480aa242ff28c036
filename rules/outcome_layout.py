"""
rules.outcome_layout
Mode-specific passes for multi-outcome pages.

NestedOutcome (a URL naming one outcome of an event):
  - nested_normalize: drop the drawer header, embed button and top volume strip
  - title_override: show the outcome's own question as the title
  - chart_outcome_filter: untick every outcome but the target in the chart settings
  - outcome_isolation: hide the other outcome cards and enlarge the target card

MultiOutcomeEvent:
  - event_crop: hide the outcome cards and pin one full-width "Trade" CTA to the bottom
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from capture.constants import (
    LEGEND_DOT_SELECTOR,
    PANEL_TIMEOUT_MS,
    POLL_INTERVAL_MS,
    TRADE_CTA_ID,
    WARN_ELEMENT_NOT_FOUND,
    WARN_OUTCOME_MATCH_AMBIGUOUS,
)
from capture.locators import strategies_for
from capture.outcomes import OutcomeCandidate, first_candidate, match_outcome
from capture.utils import format_title_from_slug

logger = logging.getLogger(__name__)

NESTED_NORMALIZE_JS = """
() => {
  const H = window.ShotHelpers;
  let removed = 0;
  document.querySelectorAll('button').forEach((btn) => {
    const svg = btn.querySelector('svg');
    if (!svg || !svg.classList.contains('rotate-90')) return;
    let header = btn;
    for (let i = 0; i < 8 && header; i++) {
      header = header.parentElement;
      if (!header) break;
      const cls = String(header.className || '');
      if (cls.includes('justify-between') && cls.includes('items-center')) {
        if (!H.hasTrading(header) && !header.querySelector('h1')) { header.remove(); removed += 1; }
        break;
      }
    }
  });
  document.querySelectorAll('button').forEach((btn) => {
    if (btn.querySelector('svg.lucide-code') || btn.innerHTML.includes('polyline points="16 18 22 12 16 6"')) {
      btn.remove();
      removed += 1;
    }
  });
  Array.from(document.querySelectorAll('p, span, div')).forEach((el) => {
    if (!el.isConnected) return;
    if (!/^\\$[\\d,]+\\s+Vol\\.?$/i.test(H.text(el))) return;
    if (el.getBoundingClientRect().top > 200) return;
    let c = el;
    for (let i = 0; i < 6 && c; i++) {
      c = c.parentElement;
      if (!c) break;
      const cls = String(c.className || '');
      if (cls.includes('flex') && cls.includes('items-center')) {
        if (!H.hasTrading(c)) { c.remove(); removed += 1; }
        break;
      }
    }
  });
  const main = document.querySelector('main');
  if (main) H.setStyles(main, { 'margin-top': '0', 'padding-top': '8px' });
  H.setStyles(document.body, { 'padding-top': '0', 'margin-top': '0' });
  H.markApplied('nested_normalize');
  return { ok: true, removed };
}
"""

TITLE_OVERRIDE_JS = """
(title) => {
  const h1 = document.querySelector('h1');
  if (!h1) return { ok: true, missing: ['title'] };
  if (h1.textContent !== title) h1.textContent = title;
  window.ShotHelpers.markApplied('title_override');
  return { ok: true, title };
}
"""

OPEN_SETTINGS_JS = """
() => {
  const gear = Array.from(document.querySelectorAll('svg[viewBox="0 0 18 18"]')).find((svg) => {
    const paths = svg.querySelectorAll('path');
    if (paths.length !== 2) return false;
    const d = paths[1].getAttribute('d') || '';
    return d.includes('16.25') && d.includes('9.35449');
  });
  const button = gear ? gear.closest('button') : null;
  if (!button) return false;
  button.click();
  return true;
}
"""

CHART_OPTIONS_VISIBLE_JS = """
() => Array.from(document.querySelectorAll('span')).some((s) => (s.textContent || '').trim() === 'Chart Options')
"""

CLICK_CHART_OPTIONS_JS = """
() => {
  const span = Array.from(document.querySelectorAll('span')).find((s) => (s.textContent || '').trim() === 'Chart Options');
  if (!span) return false;
  const clickable = span.closest('button') || span.closest('div[role="button"]')
    || span.closest('div.cursor-pointer') || span.parentElement;
  if (!clickable) return false;
  clickable.click();
  return true;
}
"""

CHECKBOXES_PRESENT_JS = """
() => document.querySelectorAll('button[role="checkbox"]').length > 0
"""

TOGGLE_OUTCOMES_JS = """
(targetId) => {
  const boxes = Array.from(document.querySelectorAll('button[role="checkbox"]'));
  if (!boxes.length) return { success: false, reason: 'no-checkboxes' };
  let foundTarget = false;
  let unchecked = 0;
  for (const box of boxes) {
    const checked = box.getAttribute('aria-checked') === 'true' || box.getAttribute('data-state') === 'checked';
    if ((box.id || '') === targetId) {
      foundTarget = true;
      if (!checked) box.click();
      continue;
    }
    if (!checked) continue;
    (box.querySelector('button') || box).click();
    unchecked += 1;
  }
  return { success: true, foundTarget, unchecked, total: boxes.length };
}
"""

CLOSE_PANEL_JS = """
() => {
  const H = window.ShotHelpers;
  const title = document.querySelector('h1');
  (title || document.body).click();
  let hidden = 0;
  document.querySelectorAll('[vaul-drawer], [role="dialog"][data-state="open"], [class*="drawer"], [class*="bottom-sheet"], [class*="backdrop"]')
    .forEach((el) => {
      if (H.hasTrading(el) || el.querySelector('h1')) return;
      if (H.hide(el, 'panel')) hidden += 1;
    });
  return { ok: true, hidden };
}
"""

LIST_CARDS_JS = """
() => window.ShotHelpers.outcomeCards()
"""

ISOLATE_CARD_JS = """
(index) => {
  const H = window.ShotHelpers;
  const cards = Array.from(document.querySelectorAll('[data-shot-card-index]'));
  const target = cards.find((c) => c.getAttribute('data-shot-card-index') === String(index));
  if (!target) return { ok: true, missing: ['outcome_card'] };
  document.querySelectorAll('[data-shot-target-card]').forEach((c) => c.removeAttribute('data-shot-target-card'));
  target.setAttribute('data-shot-target-card', '1');
  let hidden = 0;
  cards.forEach((c) => { if (c !== target && H.hide(c, 'outcome')) hidden += 1; });
  let sib = target.nextElementSibling;
  while (sib) {
    if (H.hide(sib, 'after-target')) hidden += 1;
    sib = sib.nextElementSibling;
  }

  const img = target.querySelector('img[alt="Market icon"]');
  const imgBox = img ? img.closest('div.relative.rounded-sm.overflow-hidden') : null;
  if (imgBox) H.setStyles(imgBox, { width: '64px', height: '64px', 'min-width': '64px' });
  const title = target.querySelector('p.font-semibold');
  if (title) H.setStyles(title, { 'font-size': '24px', 'line-height': '1.2' });
  const pct = target.querySelector('p[class*="text-[28px]"]');
  if (pct) H.setStyles(pct, { 'font-size': '40px', 'line-height': '1.1' });
  const vol = Array.from(target.querySelectorAll('span')).find((s) => (s.textContent || '').includes('Vol.'));
  if (vol) H.setStyles(vol, { 'font-size': '15px' });
  const buys = target.querySelector('div.flex.justify-end.gap-3');
  if (buys) {
    buys.querySelectorAll('button').forEach((b) => H.setStyles(b, {
      height: '56px', 'font-size': '18px', 'font-weight': '600', padding: '0 24px',
    }));
  }
  H.setStyles(target, { 'padding-top': '20px', 'padding-bottom': '20px' });
  H.markApplied('outcome_isolation');
  return { ok: true, hidden, rect: H.rect(target) };
}
"""

EVENT_CROP_JS = """
(args) => {
  const H = window.ShotHelpers;
  const volRow = H.locate(args.volumeRow).el;
  const chart = H.locate(args.chart).el;
  const anchor = volRow || chart;
  if (!anchor) return { ok: true, missing: ['chart_section'] };

  let section = anchor;
  for (let i = 0; i < 8 && section.parentElement; i++) {
    const cls = String(section.className || '');
    if (cls.includes('min-h-[var(--chart-height)]')) break;
    const hasChart = section.querySelector('canvas, svg[class*="recharts"], #group-chart-container');
    const hasLegend = section.querySelectorAll(args.dot).length > 0;
    if (hasChart && hasLegend && section.contains(anchor)) break;
    section = section.parentElement;
  }

  let hidden = 0;
  let sib = section.nextElementSibling;
  while (sib) {
    if (H.hide(sib, 'after-chart')) hidden += 1;
    sib = sib.nextElementSibling;
  }
  Array.from(document.querySelectorAll('nav, div[class*="fixed"]')).forEach((bar) => {
    if (bar.id === args.ctaId || bar.closest(`#${args.ctaId}`)) return;
    const style = getComputedStyle(bar);
    if (style.position === 'fixed' && style.bottom === '0px' && bar.querySelector('button')) {
      if (H.hide(bar, 'fixed-bar')) hidden += 1;
    }
  });
  const chartBottom = section.getBoundingClientRect().bottom;
  let cards = 0;
  document.querySelectorAll('div.flex.justify-between.z-1').forEach((card) => {
    if (card.getBoundingClientRect().top <= chartBottom - 50) return;
    const outer = card.closest('div.group.border-b') || card.closest('div.group') || card;
    if (H.hide(outer, 'outcome')) cards += 1;
  });
  document.querySelectorAll('main > div > div > div').forEach((el) => {
    if (el.contains(section)) return;
    if (el.getBoundingClientRect().top > chartBottom + 20 && H.hide(el, 'below-chart')) hidden += 1;
  });

  let created = false;
  if (!document.getElementById(args.ctaId)) {
    const bar = document.createElement('div');
    bar.id = args.ctaId;
    bar.style.cssText = [
      'position: fixed !important', 'bottom: 0 !important', 'left: 0 !important', 'right: 0 !important',
      'background: white !important', 'padding: 20px 20px 32px 20px !important', 'display: flex !important',
      'justify-content: center !important', 'align-items: center !important', 'z-index: 99999 !important',
      'box-shadow: 0 -4px 20px rgba(0, 0, 0, 0.08) !important',
    ].join('; ');
    const wrap = document.createElement('span');
    wrap.style.cssText = 'display: flex !important; height: 72px !important; flex: 1 1 0% !important; width: 100% !important';
    const btn = document.createElement('button');
    btn.type = 'button';
    btn.className = 'trading-button';
    btn.setAttribute('data-color', 'blue');
    btn.setAttribute('data-selected', 'true');
    btn.style.cssText = 'height: 72px !important; min-height: 72px !important; width: 100% !important';
    const text = document.createElement('span');
    text.className = 'trading-button-text';
    text.setAttribute('data-shot-cta', '1');
    const label = document.createElement('span');
    label.className = 'whitespace-nowrap font-semibold';
    label.style.setProperty('font-size', '22px', 'important');
    label.textContent = 'Trade';
    text.appendChild(label);
    btn.appendChild(text);
    wrap.appendChild(btn);
    bar.appendChild(wrap);
    document.body.appendChild(bar);
    created = true;
  }
  H.markApplied('event_crop');
  return { ok: true, hidden, cards, created, ctas: document.querySelectorAll(`#${args.ctaId}`).length };
}
"""


async def apply_nested_normalize(page, ctx) -> Dict[str, Any]:
    return await page.evaluate(NESTED_NORMALIZE_JS)


async def apply_title_override(page, ctx) -> Dict[str, Any]:
    slug = ctx.mode.outcome_slug or ctx.target.nested_outcome_slug
    if not slug:
        return {"ok": True, "skipped": True}
    title = format_title_from_slug(slug)
    ctx.state["title"] = title
    return await page.evaluate(TITLE_OVERRIDE_JS, title)


async def apply_chart_outcome_filter(page, ctx) -> Dict[str, Any]:
    slug = ctx.mode.outcome_slug
    if not await page.evaluate(OPEN_SETTINGS_JS):
        return {"ok": True, "filtered": False, "missing": ["chart_settings"]}
    await page.wait_for_function(CHART_OPTIONS_VISIBLE_JS, timeout_ms=PANEL_TIMEOUT_MS, polling=POLL_INTERVAL_MS)
    if not await page.evaluate(CLICK_CHART_OPTIONS_JS):
        await page.evaluate(CLOSE_PANEL_JS)
        return {"ok": True, "filtered": False, "missing": ["chart_options"]}
    await page.wait_for_function(CHECKBOXES_PRESENT_JS, timeout_ms=PANEL_TIMEOUT_MS, polling=POLL_INTERVAL_MS)
    result = await page.evaluate(TOGGLE_OUTCOMES_JS, f"{slug}-checkbox")
    result = result if isinstance(result, dict) else {}
    await page.evaluate(CLOSE_PANEL_JS)
    filtered = bool(result.get("success"))
    if filtered:
        ctx.state["rerendered"] = True
    if filtered and not result.get("foundTarget"):
        logger.warning("no chart checkbox for outcome %r; other outcomes were still unticked", slug)
        ctx.warn(WARN_ELEMENT_NOT_FOUND, "chart_outcome_filter", element="outcome_checkbox", slug=slug)
    ctx.state["outcome_filter"] = filtered
    return {"ok": True, "filtered": filtered, **result}


async def apply_outcome_isolation(page, ctx) -> Dict[str, Any]:
    slug = ctx.mode.outcome_slug or ""
    raw = await page.evaluate(LIST_CARDS_JS)
    cards = [OutcomeCandidate.from_dict(c, i) for i, c in enumerate(raw or []) if isinstance(c, dict)]
    if not cards:
        return {"ok": True, "isolated": False, "missing": ["outcome_cards"]}
    match = match_outcome(slug, cards)
    if match is None:
        match = first_candidate(cards)
    if match.ambiguous:
        logger.warning("outcome %r matched ambiguously (%s); using card %d", slug, match.method, match.index)
        ctx.warn(WARN_OUTCOME_MATCH_AMBIGUOUS, "outcome_isolation", slug=slug, method=match.method, index=match.index)
    res = await page.evaluate(ISOLATE_CARD_JS, match.index)
    res = res if isinstance(res, dict) else {}
    return {"ok": True, "isolated": not res.get("missing"), "index": match.index, "method": match.method, **res}


async def apply_event_crop(page, ctx) -> Dict[str, Any]:
    return await page.evaluate(
        EVENT_CROP_JS,
        {
            "volumeRow": strategies_for("volume_row"),
            "chart": strategies_for("chart"),
            "dot": LEGEND_DOT_SELECTOR,
            "ctaId": TRADE_CTA_ID,
        },
    )
