"""Synthetic schools for the example endpoint, benchmarks and tests."""

import random
from typing import Dict, List, Union

from .models import (
    AFTERNOON,
    DAYS_OF_WEEK,
    MORNING,
    Assignment,
    ClassUnit,
    Module,
    ModuleCategory,
    SchoolSnapshot,
    SlotDescriptor,
    StaffMember,
    StaffKind,
    Subject,
)

SIZES: Dict[str, Dict[str, int]] = {
    "small": {"classes": 3, "staff": 5, "units_per_class": 5},
    "medium": {"classes": 8, "staff": 12, "units_per_class": 6},
    "large": {"classes": 16, "staff": 24, "units_per_class": 7},
}

LEVELS = ["S1", "S2", "S3", "L3", "L4", "L5"]

# (start, end) per period; period 5 is the lunch break
PERIOD_TIMES = {
    1: ("08:00", "08:40"),
    2: ("08:40", "09:20"),
    3: ("09:40", "10:20"),
    4: ("10:20", "11:00"),
    5: ("11:00", "12:00"),
    6: ("12:00", "12:40"),
    7: ("12:40", "13:20"),
    8: ("13:40", "14:20"),
    9: ("14:20", "15:00"),
}
BREAK_PERIOD = 5


def weekly_slots(days: int = 5) -> List[SlotDescriptor]:
    slots = []
    for day in DAYS_OF_WEEK[:days]:
        for period, (start, end) in PERIOD_TIMES.items():
            slots.append(SlotDescriptor(
                id=f"{day[:3]}-{period}",
                day=day,
                period=period,
                session=MORNING if period <= BREAK_PERIOD else AFTERNOON,
                start=start,
                end=end,
                is_break=period == BREAK_PERIOD,
            ))
    return slots


def build_sample_school(size: str = "small", seed: int = 0, school_id: str = "") -> SchoolSnapshot:
    """A reproducible school of the given size with no placements yet."""
    if size not in SIZES:
        raise ValueError(f"Unknown sample size {size!r}; expected one of {sorted(SIZES)}")
    shape = SIZES[size]
    rng = random.Random(seed)

    classes = [
        ClassUnit(id=f"C{i + 1}", name=f"{LEVELS[i % len(LEVELS)]} {chr(ord('A') + i // len(LEVELS))}",
                  level=LEVELS[i % len(LEVELS)])
        for i in range(shape["classes"])
    ]

    staff = []
    for i in range(shape["staff"]):
        unavailable_days = frozenset()
        if rng.random() < 0.3:
            unavailable_days = frozenset({rng.choice(DAYS_OF_WEEK[:5])})
        staff.append(StaffMember(
            id=f"T{i + 1}",
            name=f"Staff {i + 1}",
            kind=StaffKind.TRAINER if i % 3 == 2 else StaffKind.TEACHER,
            max_weekly_periods=rng.choice([20, 24, 28, None]),
            unavailable_days=unavailable_days,
        ))

    units: List[Union[Subject, Module]] = [
        Subject(id="MATH", name="Mathematics", periods_per_week=5, block_size=1),
        Subject(id="ENG", name="English", periods_per_week=4, block_size=1),
        Subject(id="PHY", name="Physics", periods_per_week=4, block_size=2),
        Subject(id="CHEM", name="Chemistry", periods_per_week=3, block_size=2),
        Subject(id="HIST", name="History", periods_per_week=2, block_size=1),
        Module(id="NET", name="Networking", total_hours=6, category=ModuleCategory.SPECIFIC),
        Module(id="PROG", name="Programming", total_hours=5, category=ModuleCategory.SPECIFIC),
        Module(id="ENTR", name="Entrepreneurship", total_hours=3, category=ModuleCategory.GENERAL),
        Module(id="COMM", name="Communication", total_hours=2, category=ModuleCategory.COMPLEMENTARY),
    ]

    assignments = []
    for class_unit in classes:
        picks = rng.sample(units, shape["units_per_class"])
        for unit in picks:
            assignments.append(Assignment(
                class_id=class_unit.id,
                unit_id=unit.id,
                staff_id=rng.choice(staff).id,
            ))

    return SchoolSnapshot(
        school_id=school_id or f"{size}-{seed}",
        classes=classes,
        staff=staff,
        units=units,
        assignments=assignments,
        slots=weekly_slots(),
    )
