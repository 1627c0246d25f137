import pytest

from timetabler.models import AFTERNOON, MORNING, SlotDescriptor
from timetabler.slot_calendar import SlotCalendar

from factories import make_slots


def ids(blocks):
    return [tuple(s.id for s in block) for block in blocks]


def test_breaks_and_inactive_slots_are_dropped():
    slots = make_slots(days=["MONDAY"], periods=4, breaks=(3,))
    slots.append(SlotDescriptor(id="MON-5", day="MONDAY", period=5, active=False))
    calendar = SlotCalendar(slots)

    assert len(calendar) == 3
    assert "MON-3" not in calendar
    assert "MON-5" not in calendar
    assert [s.id for s in calendar.candidate_slots()] == ["MON-1", "MON-2", "MON-4"]


def test_slots_are_ordered_by_weekday_then_period():
    slots = make_slots(days=["WEDNESDAY", "MONDAY", "TUESDAY"], periods=2)
    calendar = SlotCalendar(reversed(slots))

    assert calendar.days() == ["MONDAY", "TUESDAY", "WEDNESDAY"]
    assert [s.id for s in calendar.candidate_slots("tuesday")] == ["TUE-1", "TUE-2"]
    assert calendar.position("MON-1") == 0
    assert calendar.position("WED-2") == 5


def test_pairs_stay_within_one_session():
    slots = make_slots(days=["MONDAY"], periods=4, afternoon=(3, 4))
    calendar = SlotCalendar(slots)

    assert ids(calendar.blocks(2)) == [("MON-1", "MON-2"), ("MON-3", "MON-4")]
    assert calendar.sessions("MONDAY") == [MORNING, AFTERNOON]
    assert [(a.id, b.id) for a, b in calendar.adjacent_pairs("MONDAY", "afternoon")] == [("MON-3", "MON-4")]


def test_break_splits_adjacency():
    slots = make_slots(days=["MONDAY"], periods=3, breaks=(2,))
    calendar = SlotCalendar(slots)

    assert calendar.blocks(2) == []
    assert ids(calendar.blocks(1)) == [("MON-1",), ("MON-3",)]


def test_gaps_in_period_numbers_are_not_adjacent():
    slots = [
        SlotDescriptor(id="a", day="MONDAY", period=1),
        SlotDescriptor(id="b", day="MONDAY", period=3),
        SlotDescriptor(id="c", day="TUESDAY", period=1),
        SlotDescriptor(id="d", day="TUESDAY", period=2),
    ]
    calendar = SlotCalendar(slots)

    assert ids(calendar.blocks(2)) == [("c", "d")]


def test_blocks_of_three_and_per_day_lookup():
    calendar = SlotCalendar(make_slots(days=["MONDAY", "TUESDAY"], periods=4))

    assert ids(calendar.blocks(3, day="TUESDAY")) == [("TUE-1", "TUE-2", "TUE-3"), ("TUE-2", "TUE-3", "TUE-4")]
    assert len(calendar.blocks(3)) == 4
    assert calendar.blocks(2, day="SUNDAY") == []
    assert calendar.days() == ["MONDAY", "TUESDAY"]


def test_non_positive_block_size_is_rejected():
    calendar = SlotCalendar(make_slots(days=["MONDAY"]))
    with pytest.raises(ValueError):
        calendar.blocks(0)
