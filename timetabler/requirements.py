"""Expands class/unit/staff assignments into placement units.

A requirement is one resolved assignment with its weekly periods target and
block size. Each requirement becomes ``ceil(periods / block_size)`` placement
units: full blocks plus, when the target is not a multiple of the block
size, one shorter block holding the remainder.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Any, Collection, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple, Union

from .availability import staff_available
from .conflicts import ConflictReporter
from .models import (
    ClassUnit,
    Module,
    ModuleCategory,
    SchoolSnapshot,
    StaffMember,
    Subject,
)
from .slot_calendar import SlotCalendar

logger = logging.getLogger(__name__)

# Scheduling order among requirements that tie on capacity and block size.
CATEGORY_RANK: Dict[str, int] = {
    ModuleCategory.SPECIFIC.value: 1,
    ModuleCategory.GENERAL.value: 2,
    "SUBJECT": 3,
    ModuleCategory.COMPLEMENTARY.value: 4,
}

# Classes with fewer placement units than this are flagged in validation.
LOW_LESSON_THRESHOLD = 5


@dataclass(frozen=True)
class Requirement:
    class_unit: ClassUnit
    unit: Union[Subject, Module]
    staff: StaffMember
    periods_per_week: int
    block_size: int
    prefers_morning: bool = False

    @property
    def key(self) -> Tuple[str, str]:
        return (self.class_unit.id, self.unit.id)

    @property
    def category(self) -> str:
        if isinstance(self.unit, Module):
            return self.unit.category.value
        return "SUBJECT"

    @property
    def category_rank(self) -> int:
        return CATEGORY_RANK.get(self.category, len(CATEGORY_RANK) + 1)

    @property
    def class_name(self) -> str:
        return self.class_unit.name or self.class_unit.id

    @property
    def unit_name(self) -> str:
        return self.unit.name or self.unit.id

    @property
    def staff_name(self) -> str:
        return self.staff.name or self.staff.id


@dataclass(frozen=True)
class PlacementUnit:
    requirement: Requirement
    index: int
    size: int


def block_size_for(unit: Union[Subject, Module], paired_categories: FrozenSet[str]) -> int:
    if isinstance(unit, Module):
        return 2 if unit.category.value in paired_categories else 1
    return unit.block_size


def split_periods(periods: int, block_size: int, policy: str = "trailing") -> List[int]:
    """Block sizes covering ``periods``, e.g. 5 periods in pairs -> [2, 2, 1]."""
    if periods <= 0:
        return []
    full, remainder = divmod(periods, block_size)
    sizes = [block_size] * full
    if remainder:
        if policy == "leading":
            sizes.insert(0, remainder)
        else:
            sizes.append(remainder)
    return sizes


def resolve_requirements(
    snapshot: SchoolSnapshot,
    paired_categories: FrozenSet[str],
    reporter: ConflictReporter,
) -> List[Requirement]:
    """Turn assignments into requirements, reporting malformed ones.

    An assignment that references an unknown class, unit or staff member, or
    repeats a (class, unit) pair, is skipped with a generation-error.
    """
    classes = snapshot.classes_by_id()
    staff = snapshot.staff_by_id()
    units = snapshot.units_by_id()

    requirements: List[Requirement] = []
    seen: Dict[Tuple[str, str], str] = {}
    for assignment in snapshot.assignments:
        missing = [
            f"{label} {ref}"
            for label, ref, table in (
                ("class", assignment.class_id, classes),
                ("teaching unit", assignment.unit_id, units),
                ("staff member", assignment.staff_id, staff),
            )
            if ref not in table
        ]
        if missing:
            reporter.generation_error(
                f"Assignment references unknown {', '.join(missing)}",
                class_id=assignment.class_id,
                unit_id=assignment.unit_id,
                staff_id=assignment.staff_id,
            )
            continue

        key = (assignment.class_id, assignment.unit_id)
        if key in seen:
            reporter.generation_error(
                f"Class {assignment.class_id} has {assignment.unit_id} assigned to both "
                f"{seen[key]} and {assignment.staff_id}; keeping {seen[key]}",
                class_id=assignment.class_id,
                unit_id=assignment.unit_id,
                staff_id=assignment.staff_id,
            )
            continue
        seen[key] = assignment.staff_id

        unit = units[assignment.unit_id]
        block_size = block_size_for(unit, paired_categories)
        requirements.append(Requirement(
            class_unit=classes[assignment.class_id],
            unit=unit,
            staff=staff[assignment.staff_id],
            periods_per_week=unit.weekly_periods,
            block_size=block_size,
            # paired modules go to the morning session first
            prefers_morning=isinstance(unit, Module) and block_size > 1,
        ))
    return requirements


def expand(
    requirement: Requirement,
    policy: str = "trailing",
    already_placed: int = 0,
    first_index: int = 0,
) -> List[PlacementUnit]:
    remaining = max(0, requirement.periods_per_week - already_placed)
    return [
        PlacementUnit(requirement=requirement, index=first_index + i, size=size)
        for i, size in enumerate(split_periods(remaining, requirement.block_size, policy))
    ]


def staff_scope(requirements: Iterable[Requirement]) -> Dict[str, Dict[str, int]]:
    """Distinct classes and units each staff member teaches."""
    classes: Dict[str, Set[str]] = defaultdict(set)
    units: Dict[str, Set[str]] = defaultdict(set)
    for req in requirements:
        classes[req.staff.id].add(req.class_unit.id)
        units[req.staff.id].add(req.unit.id)
    return {sid: {"classes": len(classes[sid]), "units": len(units[sid])} for sid in classes}


def requirement_statistics(requirements: Iterable[Requirement], policy: str = "trailing") -> Dict[str, Any]:
    requirements = list(requirements)
    by_stream: Counter = Counter()
    by_level: Counter = Counter()
    by_staff: Counter = Counter()
    total_periods = 0
    total_units = 0
    for req in requirements:
        units = len(split_periods(req.periods_per_week, req.block_size, policy))
        total_units += units
        total_periods += req.periods_per_week
        by_stream[req.class_unit.resolved_stream.value] += units
        by_level[req.class_unit.level or "Unknown"] += units
        by_staff[req.staff.id] += units

    staff_counts = list(by_staff.values())
    return {
        "requirements": len(requirements),
        "placement_units": total_units,
        "periods": total_periods,
        "by_stream": dict(by_stream),
        "by_level": dict(by_level),
        "by_staff": dict(by_staff),
        "average_units_per_staff": (sum(staff_counts) / len(staff_counts)) if staff_counts else 0.0,
        "max_units_per_staff": max(staff_counts) if staff_counts else 0,
    }


def validate_snapshot(
    snapshot: SchoolSnapshot,
    requirements: List[Requirement],
    calendar: SlotCalendar,
    policy: str = "trailing",
    class_ids: Optional[Collection[str]] = None,
    staff_ids: Optional[Collection[str]] = None,
) -> List[str]:
    """Advisory warnings about the inputs; none of them stops a run.

    ``class_ids`` and ``staff_ids`` narrow the checks to the classes and staff
    a scoped run is about; None checks the whole school.
    """
    warnings: List[str] = []
    classes = [c for c in snapshot.classes if class_ids is None or c.id in class_ids]
    staff = [s for s in snapshot.staff if staff_ids is None or s.id in staff_ids]

    assigned_staff = {r.staff.id for r in requirements}
    idle = [s.id for s in staff if s.id not in assigned_staff]
    if idle:
        warnings.append(f"{len(idle)} staff members have no class assignments: {', '.join(sorted(idle))}")

    units_by_class: Counter = Counter()
    periods_by_class: Counter = Counter()
    for req in requirements:
        if class_ids is not None and req.class_unit.id not in class_ids:
            continue
        units_by_class[req.class_unit.id] += len(split_periods(req.periods_per_week, req.block_size, policy))
        periods_by_class[req.class_unit.id] += req.periods_per_week

    empty = [c.id for c in classes if c.id not in units_by_class]
    if empty:
        warnings.append(f"{len(empty)} classes have no lessons to schedule: {', '.join(sorted(empty))}")

    low = sorted(
        f"{class_id} ({count} lessons)"
        for class_id, count in units_by_class.items()
        if count < LOW_LESSON_THRESHOLD
    )
    if low:
        warnings.append(f"Some classes have very few lessons: {', '.join(low)}")

    for class_id, periods in sorted(periods_by_class.items()):
        if periods > len(calendar):
            warnings.append(
                f"Class {class_id} needs {periods} periods but the calendar has only {len(calendar)} slots"
            )

    for staff_member in staff:
        if staff_member.id in assigned_staff and not any(
            staff_available(staff_member, slot) for slot in calendar.candidate_slots()
        ):
            warnings.append(f"Staff member {staff_member.id} is unavailable for every slot in the calendar")

    for warning in warnings:
        logger.warning(warning)
    return warnings
