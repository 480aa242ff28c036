import asyncio

import pytest

from capture.errors import StaleGeometryError
from capture.fitter import APPLY_CHART_HEIGHT_JS, apply_fit_plan, plan_fit
from capture.geometry import snapshot_from_probe
from capture.models import PageMode

from fakes import FakePage

SINGLE = PageMode.single_market()
NESTED = PageMode.nested_outcome("outcome-a")
MULTI = PageMode.multi_outcome_event()


def region(top, height, *, fixed=False, left=0, width=800):
    return {
        "strategy": "test",
        "fixed": fixed,
        "rect": {"top": top, "bottom": top + height, "left": left, "right": left + width, "width": width, "height": height},
    }


def snapshot(regions, *, epoch=1, scroll_y=0, chip_count=0, target_card=None, chart_height=None):
    return snapshot_from_probe(
        {
            "viewport": {"width": 800, "height": 914},
            "scrollY": scroll_y,
            "regions": regions,
            "chartHeight": chart_height,
            "chipCount": chip_count,
            "targetCard": target_card,
        },
        epoch,
    )


def plan(snap, mode, height=914):
    return plan_fit(snap, mode, current_epoch=snap.epoch, width=800, height=height)


def test_untouched_layout_keeps_base_height():
    p = plan(snapshot({"chart": region(200, 400)}), SINGLE)
    assert p.chart_height_px == 400
    assert p.clip_rect is None
    assert p.viewport_height_px is None


def test_chip_strip_shrinks_chart_by_its_height():
    snap = snapshot({"chart": region(200, 400), "date_chips": region(150, 36)}, chip_count=5)
    assert plan(snap, SINGLE).chart_height_px == 364


def test_chip_strip_reduction_is_clamped():
    snap = snapshot({"chart": region(200, 400), "date_chips": region(40, 150)}, chip_count=5)
    assert plan(snap, SINGLE).chart_height_px == 310


def test_single_chip_is_not_a_strip():
    snap = snapshot({"chart": region(200, 400), "date_chips": region(150, 36)}, chip_count=1)
    assert plan(snap, SINGLE).chart_height_px == 400


def test_volume_row_overlapping_fixed_buy_bar():
    snap = snapshot(
        {
            "chart": region(200, 400),
            "volume_row": region(610, 40),
            "buy_buttons": region(640, 72, fixed=True),
        }
    )
    p = plan(snap, SINGLE)
    assert p.chart_height_px == 368
    assert any(n.startswith("volume-overlap") for n in p.notes)


def test_base_floor_holds():
    snap = snapshot(
        {
            "chart": region(200, 400),
            "volume_row": region(610, 40),
            "buy_buttons": region(300, 72, fixed=True),
        }
    )
    assert plan(snap, SINGLE).chart_height_px == 300


def test_nested_card_overflow_respects_nested_floor():
    card = {"top": 700, "bottom": 2000, "left": 0, "right": 800, "width": 800, "height": 1300}
    snap = snapshot({"chart": region(200, 400)}, target_card=card)
    assert plan(snap, NESTED).chart_height_px == 160


def test_nested_card_shrinks_by_exact_overflow():
    card = {"top": 700, "bottom": 950, "left": 0, "right": 800, "width": 800, "height": 250}
    snap = snapshot({"chart": region(200, 400)}, target_card=card)
    # limit is 914 - 8 = 906, overflow 44
    assert plan(snap, NESTED).chart_height_px == 356


def test_multi_outcome_tunes_viewport_only():
    snap = snapshot(
        {"chart": region(100, 400), "volume_row": region(520, 40.4), "legend": region(60, 30)},
        scroll_y=10,
    )
    p = plan(snap, MULTI)
    assert p.chart_height_px is None
    assert p.viewport_height_px == 695


def test_clip_keeps_unpinned_buy_buttons_in_frame():
    snap = snapshot(
        {"chart": region(200, 400), "title": region(100, 40), "buy_buttons": region(1000, 72)}
    )
    p = plan(snap, SINGLE)
    assert p.clip_rect == {"x": 0, "y": 182, "width": 800, "height": 914}


def test_fixed_buy_bar_needs_no_clip():
    snap = snapshot(
        {"chart": region(200, 400), "title": region(100, 40), "buy_buttons": region(1000, 72, fixed=True)}
    )
    assert plan(snap, SINGLE).clip_rect is None


def test_stale_snapshot_is_refused():
    snap = snapshot({"chart": region(200, 400)}, epoch=1)
    with pytest.raises(StaleGeometryError):
        plan_fit(snap, SINGLE, current_epoch=2, width=800, height=914)


def test_plan_applies_once():
    page = FakePage({APPLY_CHART_HEIGHT_JS: {"ok": True}})
    snap = snapshot({"chart": region(100, 400), "volume_row": region(520, 40)}, scroll_y=0)
    multi = plan(snap, MULTI)
    single = plan(snapshot({"chart": region(200, 400), "date_chips": region(150, 36)}, chip_count=3), SINGLE)

    async def scenario():
        applied = await apply_fit_plan(page, single, width=800)
        await apply_fit_plan(page, multi, width=800)
        with pytest.raises(RuntimeError):
            await apply_fit_plan(page, multi, width=800)
        return applied

    applied = asyncio.run(scenario())
    assert applied["chart_height"] == 364
    assert page.evaluated(APPLY_CHART_HEIGHT_JS)[0]["height"] == 364
    assert page.viewport == (800, 684)
    assert page.mutation_epoch >= 2


def test_scrolled_snapshot_still_finds_volume_overlap():
    # same layout as the unscrolled overlap case, measured 200px down the page
    snap = snapshot(
        {
            "chart": region(0, 400),
            "volume_row": region(410, 40),
            "buy_buttons": region(640, 72, fixed=True),
        },
        scroll_y=200,
    )
    assert plan(snap, SINGLE).chart_height_px == 368


def test_scrolled_snapshot_still_finds_nested_overflow():
    card = {"top": 500, "bottom": 750, "left": 0, "right": 800, "width": 800, "height": 250}
    snap = snapshot({"chart": region(0, 400)}, target_card=card, scroll_y=200)
    assert plan(snap, NESTED).chart_height_px == 356
