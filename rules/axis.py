"""
rules.axis
Force chart tick labels visible at a readable size and pull the leftmost time
label inward so it is not clipped at the chart edge.
"""

from __future__ import annotations

from typing import Any, Dict

AXIS_STYLE = {
    "tickColor": "#9ca3af",
    "bottomFont": 13,
    "rightFont": 14,
    "weight": 500,
    "edgeOffset": 6,
    "edgeDrop": 12,
}

AXIS_RESTYLE_JS = """
(s) => {
  const H = window.ShotHelpers;
  document.documentElement.style.setProperty('--neutral-200', s.tickColor, 'important');

  const show = (el) => {
    el.setAttribute('opacity', '1');
    el.style.opacity = '1';
    el.style.display = 'block';
    el.style.visibility = 'visible';
  };
  const ticks = document.querySelectorAll('.visx-axis-tick, .visx-axis');
  ticks.forEach(show);

  document.querySelectorAll('.visx-axis-tick text, .visx-axis-bottom text').forEach((t) => {
    show(t);
    t.setAttribute('font-size', String(s.bottomFont));
    t.setAttribute('font-weight', String(s.weight));
    t.style.fontSize = `${s.bottomFont}px`;
    t.style.fontWeight = String(s.weight);
  });
  document.querySelectorAll('.visx-axis-right text').forEach((t) => {
    t.setAttribute('font-size', String(s.rightFont));
    t.setAttribute('font-weight', String(s.weight));
    t.style.fontSize = `${s.rightFont}px`;
    t.style.fontWeight = String(s.weight);
  });

  // Leftmost time label: anchor at start and nudge right. Absolute transform, so repeat runs land in the same place.
  const timeTicks = Array.from(document.querySelectorAll('.visx-axis-bottom .visx-axis-tick')).filter((tick) => {
    const txt = (tick.querySelector('tspan') || {}).textContent || '';
    return txt.includes('am') || txt.includes('pm');
  });
  let shifted = false;
  if (timeTicks.length) {
    const xOf = (tick) => parseFloat((tick.querySelector('line') || { getAttribute: () => '0' }).getAttribute('x1') || '0');
    const xs = timeTicks.map(xOf).filter((n) => !Number.isNaN(n));
    const minX = Math.min(...xs);
    timeTicks.forEach((tick) => {
      const x = xOf(tick);
      if (x !== minX) return;
      const text = tick.querySelector('text');
      if (!text) return;
      text.setAttribute('text-anchor', 'start');
      text.style.setProperty('transform', `translateX(${x + s.edgeOffset}px) translateY(${s.edgeDrop}px)`);
      shifted = true;
    });
  }

  document.querySelectorAll('.visx-axis-tick > svg').forEach((svg) => {
    svg.style.overflow = 'visible';
    svg.setAttribute('overflow', 'visible');
  });
  const chartSvg = document.querySelector('#group-chart-container svg');
  if (chartSvg) {
    chartSvg.style.overflow = 'visible';
    chartSvg.setAttribute('overflow', 'visible');
  }

  H.markApplied('axis_restyle');
  return { ok: true, ticks: ticks.length, shifted, missing: ticks.length ? [] : ['axis_ticks'] };
}
"""


async def apply_axis_restyle(page, ctx) -> Dict[str, Any]:
    return await page.evaluate(AXIS_RESTYLE_JS, dict(AXIS_STYLE))
