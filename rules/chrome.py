"""
rules.chrome
Theme lock and chrome removal.

Chrome removal hides navigation, auth prompts, modals, comment composers and the
sections below the chart. Section headings are matched against a small fixed
vocabulary, and the container hidden for a heading must be between 30 and 200px
tall; anything taller is probably a layout wrapper and is left alone.
"""

from __future__ import annotations

from typing import Any, Dict

SECTION_LABELS = ("Order Book", "Market Context", "About", "Comments", "Top Holders", "Activity")
AUTH_LABELS = ("Log In", "Sign Up")
NAV_LABELS = ("Trending", "Breaking")
SECTION_MIN_HEIGHT = 30
SECTION_MAX_HEIGHT = 200
SECTION_MAX_DEPTH = 5

THEME_LOCK_JS = """
(mode) => {
  const root = document.documentElement;
  root.classList.remove('dark');
  document.body && document.body.classList.remove('dark');
  root.setAttribute('data-theme', 'light');
  root.style.setProperty('color-scheme', 'light');
  root.setAttribute('data-chart-watermark', mode);
  try { localStorage.setItem('theme', 'light'); } catch (e) {}
  window.ShotHelpers.markApplied('theme_lock');
  return { ok: true };
}
"""

CHROME_REMOVAL_JS = """
(args) => {
  const H = window.ShotHelpers;
  let hidden = 0;
  const hide = (el, tag) => { if (H.hide(el, tag)) hidden += 1; };

  document.querySelectorAll('header').forEach((header) => {
    const t = header.textContent || '';
    if (args.authLabels.some((l) => t.includes(l))) hide(header, 'auth');
  });

  document.querySelectorAll('nav').forEach((nav) => {
    const style = getComputedStyle(nav);
    const t = nav.textContent || '';
    if (style.position === 'sticky' && args.navLabels.some((l) => t.includes(l))) hide(nav, 'nav');
  });

  document.querySelectorAll('main button, main div, main h2, main h3').forEach((el) => {
    const t = H.text(el);
    if (!args.sections.some((s) => t === s || t.startsWith(s))) return;
    let parent = el.parentElement;
    for (let i = 0; i < args.maxDepth && parent; i++) {
      const h = parent.getBoundingClientRect().height;
      if (h > args.minHeight && h < args.maxHeight) {
        if (!H.hasTrading(parent)) hide(parent, 'section');
        break;
      }
      parent = parent.parentElement;
    }
  });

  const composerOf = (el) => el.closest('div[role="group"]') || el.closest('form') || el.closest('div');
  document.querySelectorAll('input[placeholder*="comment" i], textarea[placeholder*="comment" i]').forEach((input) => {
    const c = composerOf(input);
    if (c && !H.hasTrading(c)) hide(c, 'composer');
  });
  document.querySelectorAll('div, span, p').forEach((el) => {
    if (H.text(el).toLowerCase() !== 'add a comment') return;
    const c = composerOf(el);
    if (c && !H.hasTrading(c)) hide(c, 'composer');
  });

  let buyNav = false;
  Array.from(document.querySelectorAll('nav'))
    .filter((nav) => getComputedStyle(nav).position === 'fixed')
    .forEach((nav) => {
      if (!H.hasTrading(nav)) { hide(nav, 'fixed-nav'); return; }
      buyNav = true;
      nav.querySelectorAll('a[href="/"], a[href*="search"], a[href*="breaking"]').forEach((tab) => {
        let parent = tab.parentElement;
        while (parent && parent !== nav) {
          if (H.hasTrading(parent)) break;
          if (parent.parentElement === nav || (parent.parentElement && parent.parentElement.parentElement === nav)) {
            hide(parent, 'tab-bar');
            break;
          }
          parent = parent.parentElement;
        }
      });
    });

  document.querySelectorAll('[role="dialog"], [class*="modal"], [class*="popup"]').forEach((el) => {
    if (!H.hasTrading(el)) hide(el, 'modal');
  });

  const main = document.querySelector('main');
  if (main) H.setStyles(main, { 'margin-top': '0', 'padding-top': '8px' });
  H.setStyles(document.body, { 'padding-top': '0', 'margin-top': '0' });
  document.querySelectorAll('main .px-4.pt-4').forEach((el) => H.setStyles(el, { 'padding-top': '10px' }));
  document.querySelectorAll('main .sticky').forEach((el) => {
    if (el.querySelector('h1')) {
      H.setStyles(el, { 'padding-top': '8px', 'padding-bottom': '8px', position: 'relative', top: '0' });
    }
  });

  H.markApplied('chrome_removal');
  return { ok: true, hidden, missing: main ? [] : ['main'], buyNav };
}
"""


async def apply_theme_lock(page, ctx) -> Dict[str, Any]:
    return await page.evaluate(THEME_LOCK_JS, ctx.request.watermark_mode)


def chrome_removal_args() -> Dict[str, Any]:
    return {
        "sections": list(SECTION_LABELS),
        "authLabels": list(AUTH_LABELS),
        "navLabels": list(NAV_LABELS),
        "minHeight": SECTION_MIN_HEIGHT,
        "maxHeight": SECTION_MAX_HEIGHT,
        "maxDepth": SECTION_MAX_DEPTH,
    }


async def apply_chrome_removal(page, ctx) -> Dict[str, Any]:
    return await page.evaluate(CHROME_REMOVAL_JS, chrome_removal_args())
