"""Scope drivers: whole school, one class, one staff member.

Each driver takes a snapshot, decides which earlier placements it supersedes
and which stay as fixed obstacles, runs the allocation on a fresh grid and
returns a ``GenerationResult``. Nothing here touches storage; callers persist
``result.placements`` after deleting ``result.superseded``.
"""

import logging
from collections import Counter, defaultdict
from typing import Callable, Collection, Dict, Iterable, List, Optional, Tuple

from .allocator import AllocationEngine
from .config import EngineSettings, get_settings
from .conflicts import ConflictReporter
from .grid import ScheduleGrid
from .models import Conflict, GenerationResult, Placement, SchoolSnapshot
from .requirements import Requirement, requirement_statistics, resolve_requirements, validate_snapshot
from .slot_calendar import SlotCalendar
from .solver import solve_placement_units

logger = logging.getLogger(__name__)


def clears_prior(regenerate: bool, incremental: bool) -> bool:
    """Prior placements in scope are dropped unless the run tops them up."""
    return regenerate or not incremental


def placed_counts(placements: Iterable[Placement]) -> Dict[Tuple[str, str], Tuple[int, int]]:
    """(class_id, unit_id) -> (periods placed, next unused block index)."""
    periods: Dict[Tuple[str, str], int] = defaultdict(int)
    next_index: Dict[Tuple[str, str], int] = defaultdict(int)
    for p in placements:
        key = (p.class_id, p.unit_id)
        periods[key] += 1
        next_index[key] = max(next_index[key], p.block_index + 1)
    return {key: (periods[key], next_index[key]) for key in periods}


class GenerationRun:
    """State of one invocation: calendar, grid, reporter and engine."""

    def __init__(
        self,
        snapshot: SchoolSnapshot,
        settings: EngineSettings,
        in_scope: Callable[[Conflict], bool] = lambda conflict: True,
    ):
        self.snapshot = snapshot
        self.settings = settings
        self.in_scope = in_scope
        self.reporter = ConflictReporter()
        self.calendar = SlotCalendar(snapshot.slots)
        self.grid = ScheduleGrid()
        self.engine: Optional[AllocationEngine] = None
        self.solver_stats: List[Dict] = []

        # malformed assignments outside the scope do not fail this run
        input_reporter = ConflictReporter()
        self.requirements = resolve_requirements(snapshot, settings.paired_categories, input_reporter)
        for conflict in input_reporter.conflicts:
            if in_scope(conflict):
                self.reporter.add(conflict)

    def seed(self, kept: List[Placement]) -> None:
        rejected = self.grid.seed(kept)
        scratch = ConflictReporter()
        for placement in rejected:
            conflict = scratch.double_booking(placement)
            if self.in_scope(conflict):
                self.reporter.add(conflict)
        self.engine = AllocationEngine(self.calendar, self.grid, self.reporter, self.settings)

    def allocate(
        self,
        requirements: List[Requirement],
        placed: Optional[Dict[Tuple[str, str], Tuple[int, int]]] = None,
    ) -> int:
        """Place ``requirements``; returns the number of conflicts it added."""
        before = len(self.reporter)
        units = self.engine.plan(requirements, placed)
        if self.settings.strategy == "cpsat":
            assignment, stats = solve_placement_units(
                self.engine,
                units,
                time_limit_seconds=self.settings.time_limit_seconds,
                random_seed=self.settings.random_seed,
            )
            self.solver_stats.append(stats)
            if assignment is None:
                logger.warning("CP-SAT found no solution (%s); falling back to greedy", stats.get("status"))
                self.engine.allocate(units)
            else:
                self.engine.allocate(units, assignment)
        else:
            self.engine.allocate(units)
        return len(self.reporter) - before

    def fail(self, message: str, **refs) -> None:
        self.reporter.generation_error(message, **refs)

    def result(
        self,
        success: bool,
        superseded: List[Placement],
        scope_requirements: List[Requirement],
        class_ids: Optional[Collection[str]] = None,
        staff_ids: Optional[Collection[str]] = None,
        **extra_stats,
    ) -> GenerationResult:
        placements = self.grid.placements()
        conflicts = self.reporter.conflicts
        statistics = requirement_statistics(scope_requirements, self.settings.remainder_policy)
        statistics.update({
            "strategy": self.settings.strategy,
            "placed_periods": len(placements),
            "conflicts_by_type": dict(Counter(c.type.value for c in conflicts)),
        })
        if self.solver_stats:
            statistics["solver"] = self.solver_stats
        statistics.update(extra_stats)
        warnings = validate_snapshot(
            self.snapshot,
            self.requirements,
            self.calendar,
            self.settings.remainder_policy,
            class_ids=class_ids,
            staff_ids=staff_ids,
        )
        logger.info(
            "Generation for school %s: %d placements, %d conflicts, success=%s",
            self.snapshot.school_id, len(placements), len(conflicts), success,
        )
        return GenerationResult(
            success=success,
            conflicts=conflicts,
            placements=placements,
            superseded=superseded,
            warnings=warnings,
            statistics=statistics,
        )


def generate_timetable(
    snapshot: SchoolSnapshot,
    settings: Optional[EngineSettings] = None,
) -> GenerationResult:
    """Regenerate the whole school in one pass over a shared grid."""
    run = GenerationRun(snapshot, settings or get_settings())
    run.seed([])
    run.allocate(run.requirements)
    return run.result(
        success=len(run.reporter) == 0,
        superseded=list(snapshot.placements),
        scope_requirements=run.requirements,
    )


def generate_timetable_for_class(
    snapshot: SchoolSnapshot,
    class_id: str,
    *,
    regenerate: bool = False,
    incremental: bool = False,
    settings: Optional[EngineSettings] = None,
) -> GenerationResult:
    """Regenerate one class; other classes' placements stay as obstacles."""
    run = GenerationRun(
        snapshot,
        settings or get_settings(),
        in_scope=lambda conflict: conflict.class_id == class_id,
    )
    if class_id not in snapshot.classes_by_id():
        run.fail(f"Class not found: {class_id}", class_id=class_id)
        return run.result(
            success=False, superseded=[], scope_requirements=[], class_ids={class_id}, staff_ids=set()
        )

    requirements = [r for r in run.requirements if r.class_unit.id == class_id]
    if not requirements:
        run.fail("No lessons found for the selected class", class_id=class_id)
        return run.result(
            success=False, superseded=[], scope_requirements=[], class_ids={class_id}, staff_ids=set()
        )

    own = [p for p in snapshot.placements if p.class_id == class_id]
    others = [p for p in snapshot.placements if p.class_id != class_id]
    if clears_prior(regenerate, incremental):
        superseded, kept, placed = own, others, {}
    else:
        superseded, kept, placed = [], others + own, placed_counts(own)

    run.seed(kept)
    run.allocate(requirements, placed)
    return run.result(
        success=len(run.reporter) == 0,
        superseded=superseded,
        scope_requirements=requirements,
        class_ids={class_id},
        staff_ids={r.staff.id for r in requirements},
    )


def generate_timetable_for_teacher(
    snapshot: SchoolSnapshot,
    teacher_id: str,
    *,
    incremental: bool = False,
    regenerate: bool = False,
    settings: Optional[EngineSettings] = None,
) -> GenerationResult:
    """Regenerate one staff member's lessons, class by class.

    Every class the staff member teaches is a separate sub-run on one shared
    grid. The run succeeds when at least one of those sub-runs placed
    everything it was asked to.
    """
    run = GenerationRun(
        snapshot,
        settings or get_settings(),
        in_scope=lambda conflict: conflict.staff_id == teacher_id,
    )
    if teacher_id not in snapshot.staff_by_id():
        run.fail(f"Staff member not found: {teacher_id}", staff_id=teacher_id)
        return run.result(
            success=False, superseded=[], scope_requirements=[], class_ids=set(), staff_ids={teacher_id}
        )

    requirements = [r for r in run.requirements if r.staff.id == teacher_id]
    if not requirements:
        run.fail("No lessons found for the selected teacher", staff_id=teacher_id)
        return run.result(
            success=False, superseded=[], scope_requirements=[], class_ids=set(), staff_ids={teacher_id}
        )

    own = [p for p in snapshot.placements if p.staff_id == teacher_id]
    others = [p for p in snapshot.placements if p.staff_id != teacher_id]
    if clears_prior(regenerate, incremental):
        superseded, kept, placed = own, others, {}
    else:
        superseded, kept, placed = [], others + own, placed_counts(own)

    run.seed(kept)
    subruns: Dict[str, bool] = {}
    for class_id in sorted({r.class_unit.id for r in requirements}):
        class_requirements = [r for r in requirements if r.class_unit.id == class_id]
        added = run.allocate(class_requirements, placed)
        subruns[class_id] = added == 0
        logger.debug("Teacher %s, class %s: %d conflicts", teacher_id, class_id, added)

    return run.result(
        success=any(subruns.values()),
        superseded=superseded,
        scope_requirements=requirements,
        class_ids={r.class_unit.id for r in requirements},
        staff_ids={teacher_id},
        subruns=subruns,
    )
