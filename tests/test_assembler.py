"""Tests for linking, grouping and ordering in the result assembler."""

from agents.importer.assembler import assemble, dedupe_locations, timezone_note
from agents.importer.models import ParsedLocation, ScheduleItem


def _location(name, **kwargs):
    return ParsedLocation(name=name, lat=3.1, lng=101.7, **kwargs)


def _item(name, date, start, end):
    return ScheduleItem(location_name=name, start_time=start, end_time=end, date=date)


def test_dedupe_keeps_first_occurrence():
    locations = [_location("KLCC", category="attraction"), _location("klcc ", category="shopping"), _location("Zoo")]
    unique = dedupe_locations(locations)
    assert [location.name for location in unique] == ["KLCC", "Zoo"]
    assert unique[0].category == "attraction"


def test_assemble_assigns_unique_ids_and_links_by_name():
    result = assemble(
        [_location("Batu Caves"), _location("Aeon Mall")],
        [
            _item("batu caves", "2025-12-21", "09:00", "11:00"),
            _item("Aeon Mall", "2025-12-21", "12:00", "14:00"),
            _item("Somewhere Else", "2025-12-21", "15:00", "16:00"),
        ],
    )

    ids = [location.id for location in result.locations] + [
        activity.id for day in result.days for activity in day.activities
    ]
    assert all(ids)
    assert len(set(ids)) == len(ids)

    by_name = {activity.location_name: activity for activity in result.days[0].activities}
    assert result.location_by_id(by_name["batu caves"].location_id).name == "Batu Caves"
    assert result.location_by_id(by_name["Aeon Mall"].location_id).name == "Aeon Mall"
    assert by_name["Somewhere Else"].location_id == ""


def test_days_and_activities_are_sorted():
    result = assemble(
        [],
        [
            _item("C", "2025-12-22", "14:00", "15:00"),
            _item("B", "2025-12-21", "16:30", "18:30"),
            _item("A", "2025-12-21", "09:00", "10:00"),
            _item("D", "2026-01-02", "08:00", "09:00"),
        ],
    )

    assert [day.date for day in result.days] == ["2025-12-21", "2025-12-22", "2026-01-02"]
    assert [activity.location_name for activity in result.days[0].activities] == ["A", "B"]
    assert result.activity_count == 4
    assert len({day.date for day in result.days}) == len(result.days)


def test_activity_without_date_is_dropped_with_warning():
    result = assemble([], [_item("Mystery", "", "10:00", "11:00")], warnings=["earlier"])
    assert result.days == []
    assert result.warnings == ["earlier", 'Skipped "Mystery" - no date could be determined']


def test_end_before_start_is_clamped():
    result = assemble([], [_item("Night Market", "2025-12-21", "22:00", "01:00")])
    activity = result.days[0].activities[0]
    assert activity.end_time == "23:59"
    assert "runs past midnight" in result.warnings[0]


def test_day_titles_are_applied():
    result = assemble(
        [],
        [_item("A", "2025-12-21", "09:00", "10:00"), _item("B", "2025-12-22", "09:00", "10:00")],
        day_titles={"2025-12-21": "Arrival"},
    )
    assert result.days[0].title == "Arrival"
    assert result.days[1].title is None


def test_timezone_note_leads_suggestions():
    result = assemble(
        [], [], suggestions=["Parsed 0 activities"], timezone="Asia/Kuala_Lumpur", gmt_offset="GMT+8",
    )
    assert result.suggestions[0] == "Detected timezone: GMT+8 (Asia/Kuala_Lumpur)"
    assert result.detected_timezone == "Asia/Kuala_Lumpur"
    assert result.detected_gmt_offset == "GMT+8"


def test_timezone_note_variants():
    assert timezone_note(None, None) is None
    assert timezone_note(None, "GMT+5:30") == "Detected timezone: GMT+5:30"


def test_to_dict_uses_camel_case_keys():
    result = assemble([_location("Zoo Negara")], [_item("Zoo Negara", "2025-12-21", "09:00", "11:00")])
    data = result.to_dict()
    activity = data["days"][0]["activities"][0]
    assert activity["locationName"] == "Zoo Negara"
    assert activity["locationId"] == data["locations"][0]["id"]
    assert activity["startTime"] == "09:00"
    assert activity["isFlexible"] is True
    assert data["locations"][0]["originalText"] == ""
