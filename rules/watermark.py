"""
rules.watermark
Low-opacity brand mark centred on the chart container.

The overlay always carries the same fixed id and any existing one is removed
before inserting, so repeated runs leave exactly one overlay. Mode "none" removes
a leftover overlay and inserts nothing.
"""

from __future__ import annotations

from typing import Any, Dict

from capture.constants import WATERMARK_ID
from capture.locators import strategies_for

WATERMARK_OPACITY = "0.08"
ICON_PATH = (
    "M136.267 152.495c0 7.265 0 10.897-2.376 12.697-2.375 1.801-5.872.82-12.867-1.143L8.632 132.51"
    "c-4.214-1.182-6.321-1.773-7.54-3.381-1.218-1.607-1.218-3.796-1.218-8.172V47.043c0-4.376 0-6.565 "
    "1.218-8.172 1.219-1.608 3.326-2.199 7.54-3.381L121.024 3.95c6.995-1.963 10.492-2.944 12.867-1.143"
    "s2.376 5.432 2.376 12.697zM27.904 122.228l93.062 26.117V96.113zm-12.73-12.117L108.217 84 15.174 "
    "57.889zm12.73-64.339 93.062 26.116V19.655z"
)

REMOVE_WATERMARK_JS = """
(id) => {
  const nodes = document.querySelectorAll(`#${id}`);
  nodes.forEach((n) => n.remove());
  return { ok: true, removed: nodes.length, present: false };
}
"""

INSERT_WATERMARK_JS = """
(args) => {
  const H = window.ShotHelpers;
  const chart = H.locate(args.chart).el;
  document.querySelectorAll(`#${args.id}`).forEach((n) => n.remove());
  if (!chart) return { ok: true, present: false, missing: ['chart'] };
  if (getComputedStyle(chart).position === 'static') H.setStyles(chart, { position: 'relative' });

  const overlay = document.createElement('div');
  overlay.id = args.id;
  overlay.setAttribute('data-mode', args.mode);
  H.setStyles(overlay, {
    position: 'absolute', inset: '0', display: 'flex',
    'align-items': 'center', 'justify-content': 'center',
    'pointer-events': 'none', 'z-index': '2', opacity: args.opacity, transform: 'none',
  });

  const wordmark = () => {
    const logo = document.querySelector('div.ml-auto.self-end svg[viewBox="0 0 911 168"]')
      || document.querySelector('svg[viewBox="0 0 911 168"]');
    if (logo) {
      const clone = logo.cloneNode(true);
      clone.removeAttribute('height');
      clone.removeAttribute('width');
      H.setStyles(clone, { height: '90px', width: 'auto', opacity: '1', color: '#9ca3af' });
      return clone;
    }
    const text = document.createElement('div');
    text.textContent = 'Polymarket';
    H.setStyles(text, { 'font-size': '36px', 'font-weight': '700', color: '#9ca3af' });
    return text;
  };
  const icon = () => {
    const ns = 'http://www.w3.org/2000/svg';
    const svg = document.createElementNS(ns, 'svg');
    svg.setAttribute('viewBox', '0 0 137 165');
    svg.setAttribute('fill', 'none');
    H.setStyles(svg, { height: '330px', width: '330px', opacity: '1', color: '#9ca3af' });
    const path = document.createElementNS(ns, 'path');
    path.setAttribute('d', args.iconPath);
    path.setAttribute('fill', 'currentColor');
    svg.appendChild(path);
    return svg;
  };
  overlay.appendChild(args.mode === 'icon' ? icon() : wordmark());
  chart.appendChild(overlay);

  const c = chart.getBoundingClientRect();
  const mark = overlay.firstElementChild.getBoundingClientRect();
  const dx = Math.abs((mark.left + mark.width / 2) - (c.left + c.width / 2));
  const dy = Math.abs((mark.top + mark.height / 2) - (c.top + c.height / 2));
  H.markApplied('watermark_injection');
  return { ok: true, present: true, mode: args.mode, centered: dx <= 1 && dy <= 1 };
}
"""


async def apply_watermark(page, ctx) -> Dict[str, Any]:
    mode = ctx.request.watermark_mode
    if mode == "none":
        return await page.evaluate(REMOVE_WATERMARK_JS, WATERMARK_ID)
    return await page.evaluate(
        INSERT_WATERMARK_JS,
        {
            "id": WATERMARK_ID,
            "mode": mode,
            "chart": strategies_for("chart"),
            "opacity": WATERMARK_OPACITY,
            "iconPath": ICON_PATH,
        },
    )
