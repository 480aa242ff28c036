"""
rules.header
Enlarge the title, market icon, probability figure, delta indicator and brand mark
to fixed export sizes, independent of the native mobile sizing.
"""

from __future__ import annotations

from typing import Any, Dict

HEADER_SIZES = {
    "titleFont": "30px",
    "iconSize": "80px",
    "chanceFont": "30px",
    "deltaArrow": "16px",
    "deltaScale": "1.35",
    "logoHeight": "32px",
    "actionButton": "24px",
    "actionIcon": "22px",
}

HEADER_RESTYLE_JS = """
(sizes) => {
  const H = window.ShotHelpers;
  const missing = [];

  const title = document.querySelector('h1');
  if (title) {
    H.setStyles(title, {
      'font-size': sizes.titleFont, 'line-height': '1.15',
      'margin-top': '0px', 'margin-bottom': '10px', 'padding-top': '0px',
    });
  } else {
    missing.push('title');
  }

  const icon = document.querySelector('img[alt="Market icon"]');
  if (icon) {
    const box = icon.closest('div.rounded-sm.overflow-hidden.relative')
      || icon.closest('div.rounded-sm.overflow-hidden') || icon.parentElement;
    const boxes = [];
    if (box) boxes.push(box);
    if (box && box.parentElement) boxes.push(box.parentElement);
    if (box && box.parentElement && box.parentElement.parentElement) boxes.push(box.parentElement.parentElement);
    boxes.forEach((el) => {
      H.setStyles(el, {
        width: sizes.iconSize, height: sizes.iconSize,
        'min-width': sizes.iconSize, 'min-height': sizes.iconSize,
      });
      if (getComputedStyle(el).position === 'static') H.setStyles(el, { position: 'relative' });
    });
    if (box) H.setStyles(box, { transform: 'none' });
  } else {
    missing.push('market_icon');
  }

  const chance = document.querySelector('number-flow-react');
  if (chance) {
    H.setStyles(chance, { 'font-size': sizes.chanceFont, 'line-height': '1.1' });
    const wrap = chance.closest('div');
    const scopes = [chance.parentElement, wrap && wrap.parentElement, wrap && wrap.parentElement && wrap.parentElement.parentElement];
    for (const scope of scopes) {
      if (!scope) continue;
      scope.querySelectorAll('svg').forEach((svg) => {
        const vb = svg.getAttribute('viewBox') || '';
        if (vb === '0 0 12 12' || svg.getAttribute('width') === '12' || svg.getAttribute('height') === '12') {
          H.setStyles(svg, { width: sizes.deltaArrow, height: sizes.deltaArrow });
        }
      });
      const delta = scope.querySelector('div.flex.items-center.w-auto');
      if (delta) {
        const target = delta.closest('div.overflow-hidden') || delta;
        H.setStyles(target, { transform: `scale(${sizes.deltaScale})`, 'transform-origin': 'left center' });
      }
    }
  }

  const logos = document.querySelectorAll('svg[viewBox="0 0 911 168"]');
  logos.forEach((logo) => H.setStyles(logo, { height: sizes.logoHeight, width: 'auto' }));
  if (!logos.length) missing.push('brand_mark');

  ['button[aria-label="Share"]', 'button[aria-label="Add to favorites"]'].forEach((sel) => {
    const btn = document.querySelector(sel);
    if (!btn) return;
    H.setStyles(btn, { width: sizes.actionButton, height: sizes.actionButton, padding: '2px' });
    btn.querySelectorAll('svg, .bookmarkButton').forEach((el) => {
      H.setStyles(el, { width: sizes.actionIcon, height: sizes.actionIcon });
    });
  });

  H.markApplied('header_restyle');
  return { ok: true, missing };
}
"""


async def apply_header_restyle(page, ctx) -> Dict[str, Any]:
    return await page.evaluate(HEADER_RESTYLE_JS, dict(HEADER_SIZES))
