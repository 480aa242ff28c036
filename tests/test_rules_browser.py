"""
Rule passes executed in real Chromium against small fixture pages.

Skipped when Playwright or its Chromium build is not installed
(`playwright install chromium`).
"""

import asyncio

import pytest

async_api = pytest.importorskip("playwright.async_api")

from browser.env import PWPage
from capture.constants import TRADE_CTA_ID, WATERMARK_ID
from capture.models import CanonicalTarget, CaptureRequest, PageMode, PayoutOptions
from rules import (
    AXIS_RESTYLE,
    BANNER_REMOVAL,
    BUTTON_RESTYLE,
    CHROME_REMOVAL,
    EVENT_CROP,
    HEADER_RESTYLE,
    OUTCOME_LEGEND_RESTYLE,
    THEME_LOCK,
    VOLUME_ROW_RESTYLE,
    WATERMARK_INJECTION,
    RuleContext,
    load_helpers_source,
    run_rule,
)

SINGLE_MARKET_HTML = """
<html><head><style>body { margin: 0; font-family: sans-serif; }</style></head><body>
<main>
  <div class="sticky"><h1>Will X happen?</h1></div>
  <div class="flex"><div class="flex items-center"><div class="flex">
    <div class="rounded-sm overflow-hidden relative"><img alt="Market icon" width="40" height="40"></div>
  </div></div></div>
  <div><div><number-flow-react>37%</number-flow-react></div></div>
  <div id="group-chart-container" style="height: 400px; width: 800px;">
    <svg class="recharts-surface" width="800" height="400">
      <g class="visx-axis-bottom">
        <g class="visx-axis-tick"><line x1="10"></line><text><tspan>9am</tspan></text></g>
        <g class="visx-axis-tick"><line x1="200"></line><text><tspan>3pm</tspan></text></g>
      </g>
      <g class="visx-axis-right"><g class="visx-axis-tick"><text>50%</text></g></g>
    </svg>
  </div>
  <div class="flex w-full flex-1 box-border z-1">
    <div class="flex items-center gap-2.5"><p>$1,234,567 Vol.</p></div>
    <button role="tab">1D</button><button role="tab">ALL</button>
  </div>
  <div><h3>Related</h3><p>Other markets</p></div>
  <div style="height: 60px;"><h2>Comments</h2></div>
</main>
<nav style="position: fixed; bottom: 0; left: 0; right: 0;">
  <div class="h-20 bg-background">
    <span><button class="trading-button"><span class="trading-button-text">Buy Yes 37.3¢</span></button></span>
    <span><button class="trading-button"><span class="trading-button-text">Buy No 62.8¢</span></button></span>
  </div>
</nav>
</body></html>
"""

EVENT_HTML = """
<html><head><style>body { margin: 0; font-family: sans-serif; }</style></head><body>
<main><div><div>
  <div class="min-h-[var(--chart-height)]">
    <div id="group-chart-container" style="height: 300px;"><svg class="recharts-surface" width="800" height="300"></svg></div>
    <div class="flex items-center gap-1"><span class="size-2 rounded-full"></span><p>Outcome A</p></div>
    <div class="flex w-full"><p>$2,000,000 Vol.</p></div>
  </div>
  <div class="group border-b py-4" style="height: 80px;">
    <div class="flex justify-between z-1"><p class="font-semibold">Outcome A</p><button>Buy Yes 40¢</button></div>
  </div>
  <div class="group border-b py-4" style="height: 80px;">
    <div class="flex justify-between z-1"><p class="font-semibold">Outcome B</p><button>Buy Yes 35¢</button></div>
  </div>
  <div class="group border-b py-4" style="height: 80px;">
    <div class="flex justify-between z-1"><p class="font-semibold">Outcome C</p><button>Buy Yes 25¢</button></div>
  </div>
</div></div></main>
<nav style="position: fixed; bottom: 0; left: 0; right: 0;"><button>Trade</button></nav>
</body></html>
"""

SHARED_BANNER_HTML = """
<html><body>
<main><h1>Will X happen?</h1></main>
<div id="shared" class="bg-background" style="position: fixed; bottom: 0; left: 0; right: 0;">
  <span id="wrapper">
    <span id="banner-text"><span>How it works</span></span>
    <button class="trading-button"><span class="trading-button-text">Buy Yes 40¢</span></button>
  </span>
</div>
</body></html>
"""

BODY_HTML_JS = "() => document.documentElement.outerHTML"

DISPLAY_NONE_JS = """
(selector) => Array.from(document.querySelectorAll(selector))
  .map((el) => getComputedStyle(el).display === 'none')
"""

WATERMARK_CENTER_JS = """
(id) => {
  const overlays = document.querySelectorAll(`#${id}`);
  const chart = document.querySelector('#group-chart-container');
  const mark = overlays.length ? overlays[0].firstElementChild.getBoundingClientRect() : null;
  const c = chart.getBoundingClientRect();
  return {
    count: overlays.length,
    inChart: overlays.length ? chart.contains(overlays[0]) : false,
    dx: mark ? (mark.left + mark.width / 2) - (c.left + c.width / 2) : null,
    dy: mark ? (mark.top + mark.height / 2) - (c.top + c.height / 2) : null,
  };
}
"""

BANNER_STATE_JS = """
() => ({
  bannerHidden: !!document.querySelector('#banner-text').closest('[data-shot-hidden]'),
  buttonHidden: !!document.querySelector('.trading-button').closest('[data-shot-hidden]'),
  buttonDisplayed: getComputedStyle(document.querySelector('.trading-button')).display !== 'none',
})
"""


def in_browser(html, scenario):
    """Load html into a fresh Chromium page with the helpers installed and run scenario(page)."""

    async def main():
        async with async_api.async_playwright() as pw:
            try:
                browser = await pw.chromium.launch(headless=True)
            except async_api.Error as e:
                pytest.skip(f"chromium not available: {e}")
            try:
                context = await browser.new_context(viewport={"width": 800, "height": 914})
                raw = await context.new_page()
                await raw.set_content(html)
                await raw.add_script_tag(content=load_helpers_source())
                return await scenario(PWPage(raw, context, device_scale_factor=1))
            finally:
                await browser.close()

    return asyncio.run(main())


def make_ctx(mode=None, **request):
    url = "https://polymarket.com/event/will-x-happen"
    req = CaptureRequest(source_url=url, **request)
    return RuleContext(req, CanonicalTarget(url, "will-x-happen"), mode or PageMode.single_market(), 800, 914)


def test_base_rules_are_idempotent_in_the_browser():
    rules = (
        THEME_LOCK,
        CHROME_REMOVAL,
        HEADER_RESTYLE,
        AXIS_RESTYLE,
        VOLUME_ROW_RESTYLE,
        BUTTON_RESTYLE,
        WATERMARK_INJECTION,
        OUTCOME_LEGEND_RESTYLE,
    )
    ctx = make_ctx(watermark_mode="wordmark", payout=PayoutOptions(show=True, investment=150))

    async def scenario(page):
        changed = []
        for rule in rules:
            await run_rule(page, rule, ctx)
            once = await page.evaluate(BODY_HTML_JS)
            await run_rule(page, rule, ctx)
            if await page.evaluate(BODY_HTML_JS) != once:
                changed.append(rule.name)
        return changed, await page.evaluate(BODY_HTML_JS)

    changed, html = in_browser(SINGLE_MARKET_HTML, scenario)
    assert changed == []
    assert [w for w in ctx.warnings if w["code"] == "RULE_ERROR"] == []
    # the complementary label was rewritten once, and the payout notes were not duplicated
    assert "Buy No 62.7¢" in html
    assert html.count("$150 → ") == 2
    assert "Related" not in html


@pytest.mark.parametrize("mode", ["wordmark", "icon"])
def test_watermark_overlay_is_single_and_centered(mode):
    ctx = make_ctx(watermark_mode=mode)

    async def scenario(page):
        first = await run_rule(page, WATERMARK_INJECTION, ctx)
        second = await run_rule(page, WATERMARK_INJECTION, ctx)
        return first, second, await page.evaluate(WATERMARK_CENTER_JS, WATERMARK_ID)

    first, second, state = in_browser(SINGLE_MARKET_HTML, scenario)
    assert first["centered"] and second["centered"]
    assert state["count"] == 1
    assert state["inChart"]
    assert abs(state["dx"]) <= 1 and abs(state["dy"]) <= 1


def test_watermark_none_removes_leftover_overlay():
    async def scenario(page):
        await run_rule(page, WATERMARK_INJECTION, make_ctx(watermark_mode="icon"))
        await run_rule(page, WATERMARK_INJECTION, make_ctx(watermark_mode="none"))
        return await page.evaluate(WATERMARK_CENTER_JS, WATERMARK_ID)

    assert in_browser(SINGLE_MARKET_HTML, scenario)["count"] == 0


def test_event_crop_leaves_one_cta_and_hides_outcome_cards():
    ctx = make_ctx(mode=PageMode.multi_outcome_event())

    async def scenario(page):
        first = await run_rule(page, EVENT_CROP, ctx)
        once = await page.evaluate(BODY_HTML_JS)
        second = await run_rule(page, EVENT_CROP, ctx)
        twice = await page.evaluate(BODY_HTML_JS)
        cards = await page.evaluate(DISPLAY_NONE_JS, "div.group.border-b")
        native_bar = await page.evaluate(DISPLAY_NONE_JS, "nav")
        return first, second, once == twice, cards, native_bar

    first, second, stable, cards, native_bar = in_browser(EVENT_HTML, scenario)
    assert first["created"] is True and first["ctas"] == 1
    assert second["created"] is False and second["ctas"] == 1
    assert stable
    assert cards == [True, True, True]
    assert native_bar == [True]


def test_banner_sharing_the_buy_bar_is_removed_surgically():
    async def scenario(page):
        await run_rule(page, BANNER_REMOVAL, make_ctx())
        return await page.evaluate(BANNER_STATE_JS)

    state = in_browser(SHARED_BANNER_HTML, scenario)
    assert state["bannerHidden"]
    assert not state["buttonHidden"]
    assert state["buttonDisplayed"]
