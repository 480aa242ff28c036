"""
rules.banner
Remove the "How it works" banner.

The banner is sometimes injected after first paint, so the pass runs once
immediately and again if a visible banner shows up within a short bounded poll.
When the banner shares a container with the trading buttons only the banner
subtree is hidden, never the shared container.
"""

from __future__ import annotations

from typing import Any, Dict

from capture.constants import BANNER_REPOLL_TIMEOUT_MS, POLL_INTERVAL_MS

BANNER_TEXT = "How it works"

BANNER_REMOVAL_JS = """
(label) => {
  const H = window.ShotHelpers;
  const re = new RegExp(label, 'i');
  let hidden = 0;
  let removed = 0;
  let surgical = 0;
  const hide = (el) => { if (H.hide(el, 'banner')) hidden += 1; };

  Array.from(document.querySelectorAll('button, a, span'))
    .filter((el) => re.test(el.textContent || '') && !el.closest('[data-shot-hidden]'))
    .forEach((target) => {
      // a match wrapping the buy buttons is left to the surgical pass below
      if (H.hasTrading(target)) return;
      const candidate = target.closest('button') || target.closest('a') || target;
      if (H.hasTrading(candidate)) {
        hide(target);
        surgical += 1;
      } else {
        hide(candidate);
      }
    });

  Array.from(document.querySelectorAll('span'))
    .filter((s) => H.text(s) === label)
    .forEach((span) => {
      let el = span;
      for (let i = 0; i < 10 && el; i++) {
        el = el.parentElement;
        if (!el) break;
        const cls = String(el.className || '');
        const looksLikeBanner = cls.includes('rounded-t-lg') || cls.includes('lg:hidden')
          || (cls.includes('border-t') && cls.includes('py-3'))
          || ((el.textContent || '').includes(label) && cls.includes('bg-background'));
        if (!looksLikeBanner) continue;
        if (H.hasTrading(el)) {
          // shared with the buy bar: hide the nearest wrapper without trading buttons
          let p = span.parentElement;
          for (let j = 0; j < 4 && p && p !== el; j++) {
            if (!H.hasTrading(p)) { hide(p); surgical += 1; break; }
            p = p.parentElement;
          }
          break;
        }
        el.remove();
        removed += 1;
        break;
      }
    });

  const ME = document.querySelector('#middle-east-warning-banner');
  if (ME) { ME.remove(); removed += 1; }
  H.markApplied('banner_removal');
  return { ok: true, hidden, removed, surgical };
}
"""

BANNER_VISIBLE_JS = """
(label) => Array.from(document.querySelectorAll('span, button, a')).some((el) => {
  if ((el.textContent || '').trim() !== label) return false;
  if (el.closest('[data-shot-hidden]')) return false;
  const r = el.getBoundingClientRect();
  return r.width > 0 && r.height > 0;
})
"""


async def apply_banner_removal(page, ctx) -> Dict[str, Any]:
    first = await page.evaluate(BANNER_REMOVAL_JS, BANNER_TEXT)
    first = first if isinstance(first, dict) else {}
    late = await page.wait_for_function(
        BANNER_VISIBLE_JS, BANNER_TEXT, timeout_ms=BANNER_REPOLL_TIMEOUT_MS, polling=POLL_INTERVAL_MS
    )
    second: Dict[str, Any] = {}
    if late:
        second = await page.evaluate(BANNER_REMOVAL_JS, BANNER_TEXT)
        second = second if isinstance(second, dict) else {}
    return {"ok": True, "first": first, "second": second, "late_banner": bool(late)}
