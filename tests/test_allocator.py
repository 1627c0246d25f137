from collections import Counter

import pytest

from timetabler.allocator import AllocationEngine
from timetabler.config import EngineSettings
from timetabler.conflicts import ConflictReporter
from timetabler.drivers import generate_timetable
from timetabler.errors import PlacementIntegrityError
from timetabler.grid import ScheduleGrid
from timetabler.models import AFTERNOON, ConflictType, Module, ModuleCategory, Placement, SlotDescriptor, StaffMember, Subject
from timetabler.requirements import resolve_requirements
from timetabler.samples import build_sample_school
from timetabler.slot_calendar import SlotCalendar

from factories import blocks_of, make_slots, make_snapshot


def engine_for(snapshot, settings, grid=None):
    grid = grid or ScheduleGrid()
    reporter = ConflictReporter()
    engine = AllocationEngine(SlotCalendar(snapshot.slots), grid, reporter, settings)
    requirements = resolve_requirements(snapshot, settings.paired_categories, reporter)
    return engine, requirements


def test_pairs_fill_two_distinct_days(settings):
    snapshot = make_snapshot(
        units=[Subject(id="PHY", periods_per_week=4, block_size=2)],
        assignments=[("A", "PHY", "T1")],
        slots=make_slots(days=["MONDAY", "TUESDAY", "WEDNESDAY"], periods=2),
    )
    result = generate_timetable(snapshot, settings)

    assert result.success
    assert result.conflicts == []
    assert blocks_of(result.placements) == {
        ("A", "PHY", 0): ["MON-1", "MON-2"],
        ("A", "PHY", 1): ["TUE-1", "TUE-2"],
    }


def test_unavailable_staff_gives_one_unassignable_conflict(settings):
    snapshot = make_snapshot(
        units=[Subject(id="PHY", periods_per_week=2, block_size=2)],
        assignments=[("A", "PHY", "T1")],
        staff=[StaffMember(id="T1", name="Dana", unavailable_days=["MONDAY", "TUESDAY"])],
        slots=make_slots(days=["MONDAY", "TUESDAY"], periods=2),
    )
    result = generate_timetable(snapshot, settings)

    assert not result.success
    assert result.placements == []
    assert len(result.conflicts) == 1
    conflict = result.conflicts[0]
    assert conflict.type == ConflictType.UNASSIGNABLE
    assert conflict.periods == 2
    assert "Could not schedule PHY block 1 (2 consecutive periods) for Dana" in conflict.message
    assert conflict.suggestions


def test_capacity_shortfall_goes_to_the_lower_priority_requirement(settings):
    snapshot = make_snapshot(
        units=[Subject(id="MATH", periods_per_week=4), Subject(id="ENG", periods_per_week=3)],
        assignments=[("A", "MATH", "T1"), ("B", "ENG", "T1")],
        staff=[StaffMember(id="T1", max_weekly_periods=5)],
        slots=make_slots(periods=4),
    )
    result = generate_timetable(snapshot, settings)

    placed = Counter((p.class_id, p.unit_id) for p in result.placements)
    assert placed == {("A", "MATH"): 4, ("B", "ENG"): 1}
    assert [c.type for c in result.conflicts] == [ConflictType.CAPACITY_EXCEEDED] * 2
    assert all(c.class_id == "B" for c in result.conflicts)


def test_order_puts_constrained_staff_and_long_blocks_first(settings):
    snapshot = make_snapshot(
        units=[
            Subject(id="ART", periods_per_week=6),
            Subject(id="PHY", periods_per_week=2, block_size=2),
            Module(id="NET", total_hours=2, category=ModuleCategory.SPECIFIC),
            Subject(id="MATH", periods_per_week=2),
        ],
        assignments=[("A", "ART", "T1"), ("A", "PHY", "T1"), ("A", "NET", "T1"), ("A", "MATH", "T2")],
        staff=[StaffMember(id="T1"), StaffMember(id="T2", max_weekly_periods=4)],
        slots=make_slots(),
    )
    engine, requirements = engine_for(snapshot, settings)

    assert [r.unit.id for r in engine.order(requirements)] == ["MATH", "NET", "PHY", "ART"]


def test_paired_module_prefers_the_morning_session(settings):
    slots = [
        SlotDescriptor(id="MON-5", day="MONDAY", period=5, session=AFTERNOON),
        SlotDescriptor(id="MON-6", day="MONDAY", period=6, session=AFTERNOON),
        SlotDescriptor(id="TUE-1", day="TUESDAY", period=1),
        SlotDescriptor(id="TUE-2", day="TUESDAY", period=2),
    ]
    snapshot = make_snapshot(
        units=[
            Module(id="NET", total_hours=2, category=ModuleCategory.SPECIFIC),
            Subject(id="PHY", periods_per_week=2, block_size=2),
        ],
        assignments=[("A", "NET", "T1"), ("B", "PHY", "T2")],
        slots=slots,
    )
    result = generate_timetable(snapshot, settings)

    blocks = blocks_of(result.placements)
    assert blocks[("A", "NET", 0)] == ["TUE-1", "TUE-2"]
    assert blocks[("B", "PHY", 0)] == ["MON-5", "MON-6"]


def test_singles_spread_over_days(settings):
    snapshot = make_snapshot(
        units=[Subject(id="MATH", periods_per_week=3)],
        assignments=[("A", "MATH", "T1")],
        slots=make_slots(days=["MONDAY", "TUESDAY", "WEDNESDAY"]),
    )
    result = generate_timetable(snapshot, settings)

    assert sorted(p.slot_id for p in result.placements) == ["MON-1", "TUE-1", "WED-1"]


def test_lessons_spread_over_the_lightest_days(settings):
    subjects = ["MATH", "ENG", "HIST", "GEO", "ART"]
    snapshot = make_snapshot(
        units=[Subject(id=s, periods_per_week=1) for s in subjects],
        assignments=[("A", s, f"T{i}") for i, s in enumerate(subjects)],
        slots=make_slots(periods=6),
    )
    result = generate_timetable(snapshot, settings)

    per_day = Counter(p.slot_id[:3] for p in result.placements)
    assert per_day == {"MON": 1, "TUE": 1, "WED": 1, "THU": 1, "FRI": 1}


def test_lighter_day_counts_the_staff_members_other_classes(settings):
    snapshot = make_snapshot(
        units=[Subject(id="MATH", periods_per_week=2)],
        assignments=[("A", "MATH", "T1"), ("B", "MATH", "T1")],
        slots=make_slots(days=["MONDAY", "TUESDAY", "WEDNESDAY"], periods=4),
    )
    result = generate_timetable(snapshot, settings)

    b_days = sorted(p.slot_id[:3] for p in result.placements if p.class_id == "B")
    assert b_days == ["MON", "WED"]


def test_daily_cap_limits_one_unit_per_day():
    snapshot = make_snapshot(
        units=[Subject(id="MATH", periods_per_week=3)],
        assignments=[("A", "MATH", "T1")],
        slots=make_slots(days=["MONDAY", "TUESDAY"]),
    )
    result = generate_timetable(snapshot, EngineSettings(max_daily_periods_per_unit=1))

    assert len(result.placements) == 2
    assert [c.type for c in result.conflicts] == [ConflictType.UNASSIGNABLE]


def test_invalid_preassigned_block_aborts_only_that_class(settings):
    snapshot = make_snapshot(
        units=[Subject(id="MATH", periods_per_week=2), Subject(id="ENG", periods_per_week=1)],
        assignments=[("A", "MATH", "T1"), ("C", "ENG", "T2")],
        slots=make_slots(days=["MONDAY", "TUESDAY"]),
    )
    grid = ScheduleGrid()
    grid.seed([Placement(class_id="B", slot_id="TUE-1", staff_id="T1", unit_id="ART")])
    engine, requirements = engine_for(snapshot, settings, grid)
    units = engine.plan(requirements)
    calendar = engine.calendar
    preassigned = {}
    for position, unit in enumerate(units):
        if unit.requirement.class_unit.id == "A":
            # the second MATH period is pointed at the slot T1 already teaches B in
            preassigned[position] = (calendar.slot("MON-1" if unit.index == 0 else "TUE-1"),)
        else:
            preassigned[position] = (calendar.slot("MON-2"),)

    placements = engine.allocate(units, preassigned)

    assert [(p.class_id, p.slot_id) for p in placements] == [("C", "MON-2")]
    conflicts = engine.reporter.conflicts
    assert len(conflicts) == 1
    assert conflicts[0].type == ConflictType.GENERATION_ERROR
    assert conflicts[0].class_id == "A"
    assert conflicts[0].periods == 2
    assert grid.class_free("MON-1", "A")


def test_missing_preassigned_unit_reports_capacity_held_by_later_blocks(settings):
    snapshot = make_snapshot(
        units=[Subject(id="MATH", periods_per_week=2)],
        assignments=[("A", "MATH", "T1")],
        staff=[StaffMember(id="T1", max_weekly_periods=1)],
        slots=make_slots(days=["MONDAY", "TUESDAY"]),
    )
    engine, requirements = engine_for(snapshot, settings)
    units = engine.plan(requirements)

    placements = engine.allocate(units, {1: (engine.calendar.slot("MON-1"),)})

    assert [(p.slot_id, p.block_index) for p in placements] == [("MON-1", 1)]
    conflicts = engine.reporter.conflicts
    assert [c.type for c in conflicts] == [ConflictType.CAPACITY_EXCEEDED]
    assert conflicts[0].periods == 1


def test_engine_error_in_one_class_rolls_back_only_that_class(monkeypatch, settings):
    snapshot = make_snapshot(
        units=[Subject(id="MATH", periods_per_week=2), Subject(id="ENG", periods_per_week=2)],
        assignments=[("A", "MATH", "T1"), ("A", "ENG", "T2"), ("B", "ENG", "T3")],
        slots=make_slots(),
    )
    engine, requirements = engine_for(snapshot, settings)
    commit = engine.commit

    def failing_commit(unit, block):
        req = unit.requirement
        if req.class_unit.id == "A" and req.unit.id == "ENG":
            raise PlacementIntegrityError("duplicate placement")
        return commit(unit, block)

    monkeypatch.setattr(engine, "commit", failing_commit)
    placements = engine.allocate(engine.plan(requirements))

    assert {p.class_id for p in placements} == {"B"}
    assert len(placements) == 2
    conflicts = engine.reporter.conflicts
    assert [(c.type, c.class_id, c.periods) for c in conflicts] == [(ConflictType.GENERATION_ERROR, "A", 4)]
    assert "duplicate placement" in conflicts[0].message


@pytest.mark.parametrize("size, seed", [("small", 0), ("small", 3), ("medium", 1)])
def test_generated_timetables_hold_the_invariants(size, seed, settings):
    snapshot = build_sample_school(size, seed)
    result = generate_timetable(snapshot, settings)
    calendar = SlotCalendar(snapshot.slots)
    staff = snapshot.staff_by_id()

    # exclusivity
    assert len({(p.slot_id, p.class_id) for p in result.placements}) == len(result.placements)
    assert len({(p.slot_id, p.staff_id) for p in result.placements}) == len(result.placements)

    # blocks are consecutive periods of one day and session
    for slot_ids in blocks_of(result.placements).values():
        slots = sorted((calendar.slot(s) for s in slot_ids), key=lambda s: s.period)
        assert len({(s.day, s.session) for s in slots}) == 1
        assert [s.period for s in slots] == list(range(slots[0].period, slots[0].period + len(slots)))

    # capacity
    load = Counter(p.staff_id for p in result.placements)
    for staff_id, count in load.items():
        limit = staff[staff_id].max_weekly_periods
        assert limit is None or count <= limit

    # conservation
    placed = Counter((p.class_id, p.unit_id) for p in result.placements)
    missing = Counter()
    for conflict in result.conflicts:
        missing[(conflict.class_id, conflict.unit_id)] += conflict.periods
    units = snapshot.units_by_id()
    for assignment in snapshot.assignments:
        key = (assignment.class_id, assignment.unit_id)
        assert placed[key] + missing[key] == units[assignment.unit_id].weekly_periods
