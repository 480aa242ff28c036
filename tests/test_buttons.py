import asyncio
from decimal import Decimal

from capture.models import CanonicalTarget, CaptureRequest, PageMode, PayoutOptions
from rules import RuleContext
from rules.buttons import (
    STYLE_AND_READ_JS,
    WRITE_LABELS_JS,
    apply_button_restyle,
    complementary_fix,
    parse_cents,
    payout_amount,
    payout_labels,
)

from fakes import FakePage


def labels(*texts):
    return [{"index": i, "text": t} for i, t in enumerate(texts)]


def test_complementary_pair_sums_to_exactly_100():
    fix = complementary_fix(labels("Buy Yes 37.3¢", "Buy No 62.8¢"))
    assert fix == {"index": 1, "cents": "62.7¢", "text": "Buy No 62.7¢"}
    assert parse_cents("Buy Yes 37.3¢") + parse_cents(fix["text"]) == Decimal("100.0")


def test_whole_cent_prices_get_one_decimal():
    fix = complementary_fix(labels("Buy Yes 37¢", "Buy No 64¢"))
    assert fix["text"] == "Buy No 63.0¢"


def test_consistent_pair_needs_no_fix():
    assert complementary_fix(labels("Buy Yes 37.3¢", "Buy No 62.7¢")) is None
    assert complementary_fix(labels("Buy Yes 37¢")) is None
    assert complementary_fix(labels("Sell Yes 37¢", "Buy No 64¢")) is None


def test_payout_labels():
    assert payout_amount(150, Decimal("37.3")) == 402
    assert payout_amount(150, Decimal("0")) is None
    out = payout_labels(labels("Buy Yes 37.3¢", "Buy No 62.7¢"), 150)
    assert [p["label"] for p in out] == ["$150 → $402", "$150 → $239"]
    assert payout_labels(labels("Buy Yes 50¢"), 1000)[0]["label"] == "$1,000 → $2,000"


class ButtonDom:
    """Minimal label store standing in for the button DOM."""

    def __init__(self, *texts):
        self.texts = list(texts)
        self.notes = {}

    def read(self, arg):
        return {"ok": True, "buttons": len(self.texts), "labels": labels(*self.texts), "missing": []}

    def write(self, arg):
        corrected = False
        if arg["fix"]:
            self.texts[arg["fix"]["index"]] = arg["fix"]["text"]
            corrected = True
        self.notes = {p["index"]: p["label"] for p in arg["payouts"]}
        return {"ok": True, "corrected": corrected, "annotated": len(self.notes)}


def ctx_for(show_payout=False):
    req = CaptureRequest(
        source_url="https://polymarket.com/event/x", payout=PayoutOptions(show=show_payout, investment=150)
    )
    target = CanonicalTarget("https://polymarket.com/event/x", "x")
    return RuleContext(req, target, PageMode.single_market(), 800, 914)


def test_restyle_is_idempotent():
    dom = ButtonDom("Buy Yes 37.3¢", "Buy No 62.8¢")
    page = FakePage({STYLE_AND_READ_JS: dom.read, WRITE_LABELS_JS: dom.write})
    ctx = ctx_for(show_payout=True)

    first = asyncio.run(apply_button_restyle(page, ctx))
    notes_after_first = dict(dom.notes)
    second = asyncio.run(apply_button_restyle(page, ctx))

    assert first["corrected"] is True
    assert second["fix"] is None
    assert second["corrected"] is False
    assert dom.texts == ["Buy Yes 37.3¢", "Buy No 62.7¢"]
    assert dom.notes == notes_after_first == {0: "$150 → $402", 1: "$150 → $239"}


def test_payouts_only_when_requested():
    dom = ButtonDom("Buy Yes 50¢", "Buy No 50¢")
    page = FakePage({STYLE_AND_READ_JS: dom.read, WRITE_LABELS_JS: dom.write})
    result = asyncio.run(apply_button_restyle(page, ctx_for(show_payout=False)))
    assert result["payouts"] == []
    assert dom.notes == {}
