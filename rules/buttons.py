"""
rules.buttons
Trading affordance restyle.

Runs in two passes: the first enlarges the buttons and reads the priced labels,
the price arithmetic happens here in Python, and the second pass writes the
corrected label and the optional payout annotations back. Only the second of two
complementary labels is ever rewritten, so "Buy Yes 37.3¢" / "Buy No 62.8¢"
becomes "Buy No 62.7¢" and the pair sums to exactly 100.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

BUTTON_HEIGHT_PX = 72
PAYOUT_ATTR = "data-shot-payout"

_CENTS_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)¢")

STYLE_AND_READ_JS = """
(args) => {
  const H = window.ShotHelpers;
  const px = `${args.height}px`;
  const buttons = document.querySelectorAll('.trading-button');
  buttons.forEach((btn) => {
    H.setStyles(btn, { height: px, 'min-height': px, 'padding-top': '20px', 'padding-bottom': '20px' });
    const parent = btn.parentElement;
    if (parent && parent.tagName === 'SPAN') H.setStyles(parent, { height: px });
  });
  const labels = [];
  document.querySelectorAll('.trading-button-text').forEach((el, index) => {
    el.setAttribute('data-shot-label-index', String(index));
    H.setStyles(el, { 'font-size': '18px', 'font-weight': '600' });
    labels.push({ index, text: H.text(el) });
  });

  const first = buttons[0];
  if (first) {
    let container = first;
    for (let i = 0; i < 10 && container; i++) {
      container = container.parentElement;
      if (!container) break;
      const cls = String(container.className || '');
      if (cls.includes('h-20') || cls.includes('bg-background')) {
        H.setStyles(container, { 'padding-top': '20px', 'padding-bottom': '16px', height: 'auto', 'min-height': '100px' });
        break;
      }
    }
    const bar = H.fixedAncestor(first, 12) || first.closest('nav');
    if (bar) {
      H.setStyles(bar, {
        display: 'flex', visibility: 'visible', opacity: '1', position: 'fixed',
        left: '0', right: '0', bottom: '0', 'z-index': '99999',
      });
    }
  }
  return { ok: true, buttons: buttons.length, labels, missing: buttons.length ? [] : ['buy_buttons'] };
}
"""

WRITE_LABELS_JS = """
(args) => {
  const H = window.ShotHelpers;
  const byIndex = (i) => document.querySelector(`[data-shot-label-index="${i}"]`);
  let corrected = false;
  if (args.fix) {
    const el = byIndex(args.fix.index);
    if (el) {
      // rewrite the text node carrying the price so nested markup survives
      const walker = document.createTreeWalker(el, NodeFilter.SHOW_TEXT);
      let node = walker.nextNode();
      while (node) {
        if (/[0-9]+(?:\\.[0-9]+)?¢/.test(node.nodeValue || '')) {
          node.nodeValue = node.nodeValue.replace(/[0-9]+(?:\\.[0-9]+)?¢/, args.fix.cents);
          corrected = true;
          break;
        }
        node = walker.nextNode();
      }
      if (!corrected) {
        el.textContent = args.fix.text;
        corrected = true;
      }
    }
  }
  document.querySelectorAll(`[${args.attr}]`).forEach((n) => n.remove());
  let annotated = 0;
  for (const p of args.payouts || []) {
    const label = byIndex(p.index);
    const button = label && (label.closest('.trading-button') || label);
    const host = button && button.parentElement;
    if (!host) continue;
    const note = document.createElement('div');
    note.setAttribute(args.attr, String(p.index));
    note.textContent = p.label;
    H.setStyles(note, {
      'text-align': 'center', 'font-size': '15px', 'font-weight': '600',
      color: '#6b7280', 'margin-top': '6px', 'white-space': 'nowrap',
    });
    host.appendChild(note);
    annotated += 1;
  }
  H.markApplied('button_restyle');
  return { ok: true, corrected, annotated };
}
"""


def parse_cents(text: str) -> Optional[Decimal]:
    m = _CENTS_RE.search(text or "")
    if not m:
        return None
    try:
        return Decimal(m.group(1))
    except InvalidOperation:
        return None


def _decimals(value: Decimal) -> int:
    exponent = value.as_tuple().exponent
    return max(1, -exponent) if isinstance(exponent, int) else 1


def complement_cents(first: Decimal) -> Decimal:
    """100 - first, never negative, carrying at least one decimal place."""
    places = _decimals(first)
    rest = max(Decimal(0), Decimal(100) - first)
    return rest.quantize(Decimal(1).scaleb(-places))


def priced_labels(labels: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Direct 'Buy <label>' texts that carry a cents price, in page order."""
    out = []
    for item in labels:
        text = str(item.get("text") or "")
        if text.lower().startswith("buy ") and parse_cents(text) is not None:
            out.append({"index": int(item.get("index", len(out))), "text": text})
    return out


def complementary_fix(labels: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Rewrite for the second of two complementary price labels, or None when nothing to do."""
    priced = priced_labels(labels)
    if len(priced) != 2:
        return None
    first, second = priced
    first_cents = parse_cents(first["text"])
    second_cents = parse_cents(second["text"])
    target = complement_cents(first_cents)
    if second_cents == target:
        return None
    cents = f"{target}¢"
    return {
        "index": second["index"],
        "cents": cents,
        "text": _CENTS_RE.sub(cents, second["text"], count=1),
    }


def payout_amount(investment: float, cents: Decimal) -> Optional[int]:
    """Payout for buying at a price: round(investment / (cents / 100)), half rounding up."""
    if cents is None or cents <= 0:
        return None
    return int(math.floor(float(investment) / (float(cents) / 100.0) + 0.5))


def _money(value: float) -> str:
    if float(value).is_integer():
        return f"${int(value):,}"
    return f"${value:,.2f}"


def payout_labels(labels: Sequence[Dict[str, Any]], investment: float) -> List[Dict[str, Any]]:
    out = []
    for item in priced_labels(labels):
        payout = payout_amount(investment, parse_cents(item["text"]))
        if payout is None:
            continue
        out.append({"index": item["index"], "label": f"{_money(investment)} → {_money(payout)}"})
    return out


async def apply_button_restyle(page, ctx) -> Dict[str, Any]:
    read = await page.evaluate(STYLE_AND_READ_JS, {"height": BUTTON_HEIGHT_PX})
    read = read if isinstance(read, dict) else {}
    labels = list(read.get("labels") or [])
    fix = complementary_fix(labels)
    if fix is not None:
        labels = [
            {"index": item.get("index"), "text": fix["text"]} if item.get("index") == fix["index"] else item
            for item in labels
        ]
    payouts = payout_labels(labels, ctx.request.payout.investment) if ctx.request.payout.show else []
    written = await page.evaluate(WRITE_LABELS_JS, {"fix": fix, "payouts": payouts, "attr": PAYOUT_ATTR})
    written = written if isinstance(written, dict) else {}
    return {
        "ok": True,
        "buttons": read.get("buttons", 0),
        "fix": fix,
        "payouts": payouts,
        "corrected": bool(written.get("corrected")),
        "missing": read.get("missing") or [],
    }
