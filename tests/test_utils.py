import re
from datetime import datetime, timezone

import pytest

from capture.errors import InvalidInputError
from capture.models import CanonicalTarget, CaptureRequest
from capture.utils import (
    build_file_name,
    clean_page_title,
    compute_dimensions,
    format_title_from_slug,
    iso_file_timestamp,
    resolve_target,
    working_viewport_height,
)


def test_event_url_is_canonical():
    t = resolve_target("https://polymarket.com/event/will-x-happen?tid=123#chart")
    assert t.navigation_url == "https://polymarket.com/event/will-x-happen"
    assert t.event_slug == "will-x-happen"
    assert t.nested_outcome_slug is None


def test_market_url_maps_to_event_form():
    t = resolve_target("https://www.polymarket.com/market/big-event/outcome-a")
    assert t.navigation_url == "https://polymarket.com/event/big-event/outcome-a"
    assert t.nested_outcome_slug == "outcome-a"
    assert t.file_slug == "outcome-a"


@pytest.mark.parametrize(
    "url",
    [
        "",
        "not a url",
        "ftp://polymarket.com/event/x",
        "https://example.com/event/x",
        "https://polymarket.com.evil.io/event/x",
        "https://polymarket.com/profile/x",
        "https://polymarket.com/event/",
    ],
)
def test_invalid_urls_are_rejected(url):
    with pytest.raises(InvalidInputError) as exc:
        resolve_target(url)
    assert exc.value.code == "INVALID_URL"


def test_dimensions():
    assert compute_dimensions("twitter", 800) == (800, 914)
    assert compute_dimensions("square", 800) == (800, 800)
    assert compute_dimensions("twitter", 700) == (700, 800)
    assert working_viewport_height(914) == 1414
    assert working_viewport_height(400) == 1200


def test_file_name_patterns():
    now = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    target = CanonicalTarget("https://polymarket.com/event/will-x-happen", "will-x-happen")
    assert iso_file_timestamp(now) == "2024-01-02T03-04-05-678Z"
    assert build_file_name(target, "twitter", now) == "polymarket-will-x-happen-2024-01-02T03-04-05-678Z.png"
    assert build_file_name(target, "square", now).startswith("polymarket-square-will-x-happen-")
    nested = CanonicalTarget("https://polymarket.com/event/e/outcome-a", "e", "outcome-a")
    assert re.match(r"^polymarket-outcome-a-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z\.png$", build_file_name(nested, "twitter"))


def test_titles():
    assert clean_page_title("Will X happen? Betting Odds & Predictions | Polymarket") == "Will X happen?"
    assert clean_page_title("Fed decision | Polymarket") == "Fed decision"
    assert format_title_from_slug("will-the-us-win-the-cup-A-1b2c") == "Will the US win the cup?"
    assert format_title_from_slug("election-winner") == "Election winner"


def test_request_validation_and_loose_parsing():
    req = CaptureRequest.from_dict(
        {"url": "https://polymarket.com/event/x", "aspect": "Square", "chartWatermark": "true", "timeRange": "1D"}
    )
    assert req.aspect == "square"
    assert req.watermark_mode == "wordmark"
    assert req.time_range == "1d"
    req.validate()
    assert CaptureRequest.from_dict({"url": "u", "chartWatermark": "false"}).watermark_mode == "none"

    with pytest.raises(InvalidInputError):
        CaptureRequest(source_url="u", aspect="portrait").validate()
    with pytest.raises(InvalidInputError):
        CaptureRequest(source_url="u", width=100).validate()


def test_loose_request_rejects_non_numeric_fields():
    for data in (
        {"url": "u", "width": "wide"},
        {"url": "u", "deviceScaleFactor": "retina"},
        {"url": "u", "payoutInvestment": "lots"},
        {"url": "u", "width": [800]},
    ):
        with pytest.raises(InvalidInputError) as info:
            CaptureRequest.from_dict(data)
        assert info.value.code == "INVALID_REQUEST"
    assert CaptureRequest.from_dict({"url": "u", "width": "640"}).width == 640
