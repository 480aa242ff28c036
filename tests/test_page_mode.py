from capture.models import CanonicalTarget
from capture.page_mode import PageObservation, resolve_page_mode


def target(nested=None):
    slug = "big-event"
    url = f"https://polymarket.com/event/{slug}" + (f"/{nested}" if nested else "")
    return CanonicalTarget(url, slug, nested)


def obs(**probe):
    return PageObservation.from_probe(probe)


def test_direct_buy_page_is_single_market():
    mode, warnings = resolve_page_mode(obs(buyLabels=["buy yes 37¢", "buy no 64¢"]), target())
    assert mode.is_single
    assert warnings == []


def test_legend_with_many_entries_is_multi_outcome():
    mode, _ = resolve_page_mode(obs(legendCount=5, legendLabels=["A", "B", "C", "D", "E"]), target())
    assert mode.is_multi


def test_nested_slug_with_matching_checkbox():
    probe = obs(legendCount=3, legendLabels=["Outcome A 40%", "Outcome B", "Outcome C"], checkboxIds=["outcome-a-checkbox"])
    mode, warnings = resolve_page_mode(probe, target("outcome-a"))
    assert mode.is_nested
    assert mode.outcome_slug == "outcome-a"
    assert warnings == []


def test_nested_slug_matched_by_legend_label():
    probe = obs(legendCount=3, legendLabels=["Outcome A 40%", "Outcome B 35%", "Outcome C 25%"])
    mode, _ = resolve_page_mode(probe, target("outcome-a"))
    assert mode.is_nested


def test_nested_slug_on_single_market_render_stays_single():
    mode, _ = resolve_page_mode(obs(buyLabels=["buy yes 10¢", "buy no 90¢"], legendCount=0), target("outcome-a"))
    assert mode.is_single


def test_unmatched_nested_slug_degrades_to_event_layout():
    probe = obs(legendCount=3, legendLabels=["Alpha", "Beta", "Gamma"])
    mode, warnings = resolve_page_mode(probe, target("outcome-z"))
    assert mode.is_multi
    assert warnings[0]["code"] == "OUTCOME_MATCH_AMBIGUOUS"


def test_unrecognised_page_defaults_to_single_with_warning():
    mode, warnings = resolve_page_mode(obs(), target())
    assert mode.is_single
    assert warnings == [{"code": "ELEMENT_NOT_FOUND", "stage": "page_mode", "element": "buy_buttons"}]
    assert PageObservation.from_probe(None) == PageObservation()
