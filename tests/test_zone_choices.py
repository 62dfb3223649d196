from zonedefense.models import ZoneSnapshot
from zonedefense.zone_choices import ZoneChoice, build_zone_choices


def test_default_entry_first_and_preselected():
    snapshot = ZoneSnapshot(frozenset({"public", "home", "work"}), "public")
    choices, selected = build_zone_choices(snapshot)

    assert choices[0] == ZoneChoice("Default (public)", None)
    assert [c.zone for c in choices[1:]] == ["home", "public", "work"]
    assert selected == 0


def test_current_zone_is_preselected():
    snapshot = ZoneSnapshot(frozenset({"public", "home"}), "public", current_zone="home")
    choices, selected = build_zone_choices(snapshot)
    assert choices[selected].zone == "home"


def test_unlisted_current_zone_is_still_offered():
    snapshot = ZoneSnapshot(frozenset({"public"}), "public", current_zone="legacy")
    choices, selected = build_zone_choices(snapshot)
    assert choices[-1] == ZoneChoice("legacy", "legacy")
    assert selected == len(choices) - 1
