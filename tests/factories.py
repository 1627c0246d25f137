"""Small builders for hand-made schools used across the tests."""

from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from timetabler.models import (
    AFTERNOON,
    MORNING,
    Assignment,
    ClassUnit,
    Placement,
    SchoolSnapshot,
    SlotDescriptor,
    StaffMember,
)

WEEKDAYS = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY")


def slot_id(day: str, period: int) -> str:
    return f"{day[:3]}-{period}"


def make_slots(
    days: Sequence[str] = WEEKDAYS,
    periods: int = 4,
    afternoon: Iterable[int] = (),
    breaks: Iterable[int] = (),
) -> List[SlotDescriptor]:
    afternoon = set(afternoon)
    breaks = set(breaks)
    return [
        SlotDescriptor(
            id=slot_id(day, period),
            day=day,
            period=period,
            session=AFTERNOON if period in afternoon else MORNING,
            is_break=period in breaks,
        )
        for day in days
        for period in range(1, periods + 1)
    ]


def make_snapshot(
    units,
    assignments: Sequence[Tuple[str, str, str]],
    slots: Sequence[SlotDescriptor],
    staff: Sequence[StaffMember] = (),
    classes: Sequence[ClassUnit] = (),
    placements: Sequence[Placement] = (),
    school_id: str = "school-1",
) -> SchoolSnapshot:
    """Build a snapshot; classes and staff named in ``assignments`` are created when missing."""
    classes = list(classes)
    staff = list(staff)
    known_classes = {c.id for c in classes}
    known_staff = {s.id for s in staff}
    for class_id, _, staff_id in assignments:
        if class_id not in known_classes:
            classes.append(ClassUnit(id=class_id, name=f"Class {class_id}", level="S1"))
            known_classes.add(class_id)
        if staff_id not in known_staff:
            staff.append(StaffMember(id=staff_id, name=f"Staff {staff_id}"))
            known_staff.add(staff_id)
    return SchoolSnapshot(
        school_id=school_id,
        classes=classes,
        staff=staff,
        units=list(units),
        assignments=[Assignment(class_id=c, unit_id=u, staff_id=s) for c, u, s in assignments],
        slots=list(slots),
        placements=list(placements),
    )


def blocks_of(placements: Iterable[Placement]) -> Dict[Tuple[str, str, int], List[str]]:
    """Slot ids grouped by (class, unit, block index)."""
    grouped: Dict[Tuple[str, str, int], List[str]] = defaultdict(list)
    for p in placements:
        grouped[(p.class_id, p.unit_id, p.block_index)].append(p.slot_id)
    return dict(grouped)
