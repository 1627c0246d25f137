"""Greedy most-constrained-first lesson allocation.

Requirements are ordered so that staff with the least remaining weekly
capacity and units needing longer blocks go first. Each placement unit then
takes the best legal block available at that moment, and a unit that finds
none is reported instead of triggering backtracking. Run time is therefore
bounded by units x blocks examined.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .availability import AvailabilityModel
from .config import EngineSettings
from .conflicts import ConflictReporter
from .errors import GridInvariantError, TimetableError
from .grid import ScheduleGrid
from .models import MORNING, Placement, SlotDescriptor, StaffMember
from .requirements import PlacementUnit, Requirement, expand, staff_scope
from .slot_calendar import Block, SlotCalendar

logger = logging.getLogger(__name__)


class AllocationEngine:
    def __init__(
        self,
        calendar: SlotCalendar,
        grid: ScheduleGrid,
        reporter: ConflictReporter,
        settings: EngineSettings,
    ):
        self.calendar = calendar
        self.grid = grid
        self.reporter = reporter
        self.settings = settings
        self.availability = AvailabilityModel(grid)
        # periods per (class_id, unit_id, day), fixed obstacles included
        self._day_load: Dict[Tuple[str, str, str], int] = defaultdict(int)
        # lessons per (class_id, day) and per (staff_id, day)
        self._class_day: Dict[Tuple[str, str], int] = defaultdict(int)
        self._staff_day: Dict[Tuple[str, str], int] = defaultdict(int)
        for placement in grid.placements(include_fixed=True):
            self._count(placement, 1)
        self._scope: Dict[str, Dict[str, int]] = {}

    def _count(self, placement: Placement, delta: int) -> None:
        if placement.slot_id not in self.calendar:
            return
        day = self.calendar.slot(placement.slot_id).day
        self._day_load[(placement.class_id, placement.unit_id, day)] += delta
        self._class_day[(placement.class_id, day)] += delta
        self._staff_day[(placement.staff_id, day)] += delta

    def day_load(self, class_id: str, unit_id: str, day: str) -> int:
        return self._day_load.get((class_id, unit_id, day), 0)

    def lessons_on(self, class_id: str, staff_id: str, day: str) -> int:
        """Lessons the class and the staff member already have on ``day``."""
        return self._class_day.get((class_id, day), 0) + self._staff_day.get((staff_id, day), 0)

    def order(self, requirements: Sequence[Requirement]) -> List[Requirement]:
        return sorted(
            requirements,
            key=lambda r: (
                self.availability.remaining_weekly_capacity(r.staff),
                -r.block_size,
                r.category_rank,
                -r.periods_per_week,
                r.class_unit.id,
                r.unit.id,
            ),
        )

    def plan(
        self,
        requirements: Sequence[Requirement],
        placed: Optional[Mapping[Tuple[str, str], Tuple[int, int]]] = None,
    ) -> List[PlacementUnit]:
        """Placement units for ``requirements`` in scheduling order.

        ``placed`` maps a requirement key to (periods already placed, next
        free block index) for incremental runs; only the shortfall is planned.
        """
        placed = placed or {}
        self._scope = staff_scope(requirements)
        units: List[PlacementUnit] = []
        for req in self.order(requirements):
            already, first_index = placed.get(req.key, (0, 0))
            units.extend(expand(req, self.settings.remainder_policy, already, first_index))
        return units

    def candidate_blocks(self, unit: PlacementUnit, respect_daily_cap: bool = True) -> List[Block]:
        req = unit.requirement
        class_id = req.class_unit.id
        cap = self.settings.max_daily_periods_per_unit
        candidates = []
        for block in self.calendar.blocks(unit.size):
            if respect_daily_cap and cap is not None:
                if self.day_load(class_id, req.unit.id, block[0].day) + unit.size > cap:
                    continue
            if all(self._slot_open(slot, class_id, req.staff) for slot in block):
                candidates.append(block)
        return candidates

    def _slot_open(self, slot: SlotDescriptor, class_id: str, staff: StaffMember) -> bool:
        return (
            self.grid.class_free(slot.id, class_id)
            and self.grid.staff_free(slot.id, staff.id)
            and self.availability.is_available(staff, slot)
        )

    def rank(self, unit: PlacementUnit, block: Block) -> Tuple[int, int, int, int]:
        """Unused days first, then the preferred session, then the lighter day, then calendar order."""
        req = unit.requirement
        day = block[0].day
        day_used = self.day_load(req.class_unit.id, req.unit.id, day) > 0
        off_session = req.prefers_morning and block[0].session != MORNING
        return (
            int(day_used),
            int(off_session),
            self.lessons_on(req.class_unit.id, req.staff.id, day),
            self.calendar.position(block[0].id),
        )

    def choose(self, unit: PlacementUnit) -> Optional[Block]:
        candidates = self.candidate_blocks(unit)
        if not candidates:
            return None
        return min(candidates, key=lambda block: self.rank(unit, block))

    def commit(self, unit: PlacementUnit, block: Block) -> List[Placement]:
        req = unit.requirement
        placements = []
        for slot in block:
            placement = Placement(
                class_id=req.class_unit.id,
                slot_id=slot.id,
                staff_id=req.staff.id,
                unit_id=req.unit.id,
                block_index=unit.index,
            )
            self.grid.commit(placement)
            self._count(placement, 1)
            placements.append(placement)
        return placements

    def allocate(
        self,
        units: Sequence[PlacementUnit],
        preassigned: Optional[Mapping[int, Block]] = None,
    ) -> List[Placement]:
        """Place ``units`` in order and return the placements made by this run.

        With ``preassigned`` (unit position -> block, e.g. from the CP-SAT
        strategy) the blocks are checked and committed instead of searched for;
        a unit missing from the mapping is reported as a conflict. It is a
        capacity conflict when the blocks still to be committed for the same
        staff member leave less than the unit's size.

        Each class is a sub-run: an engine error rolls back that class's
        placements from this run and records a generation-error, while other
        classes carry on.
        """
        # periods each staff member still has coming from preassigned blocks
        pending: Dict[str, int] = defaultdict(int)
        if preassigned is not None:
            for position, block in preassigned.items():
                pending[units[position].requirement.staff.id] += len(block)

        aborted: Set[str] = set()
        subrun_start: Dict[str, int] = {}
        for position, unit in enumerate(units):
            class_id = unit.requirement.class_unit.id
            staff_id = unit.requirement.staff.id
            if preassigned is not None and position in preassigned:
                pending[staff_id] -= len(preassigned[position])
            if class_id in aborted:
                continue
            subrun_start.setdefault(class_id, len(self.reporter))
            try:
                if preassigned is None:
                    self._place(unit, self.choose)
                else:
                    self._place(
                        unit,
                        lambda u: self._checked(u, preassigned.get(position)),
                        reserved=pending[staff_id],
                    )
            except TimetableError as e:
                logger.error("Aborting generation for class %s: %s", class_id, e)
                periods = sum(u.size for u in units if u.requirement.class_unit.id == class_id)
                self._abort_class(class_id, subrun_start[class_id], e, periods)
                aborted.add(class_id)
        return self.grid.placements()

    def _place(self, unit: PlacementUnit, pick, reserved: int = 0) -> None:
        req = unit.requirement
        remaining = self.availability.remaining_weekly_capacity(req.staff)
        if remaining < unit.size:
            self.reporter.capacity_exceeded(unit, remaining)
            return
        block = pick(unit)
        if block is None:
            if remaining - reserved < unit.size:
                self.reporter.capacity_exceeded(unit, max(0, remaining - reserved))
            else:
                self.reporter.unassignable(unit, self._scope.get(req.staff.id))
            return
        self.commit(unit, block)
        logger.debug(
            "Placed %s for %s with %s at %s",
            req.unit.id, req.class_unit.id, req.staff.id, ", ".join(s.id for s in block),
        )

    def _checked(self, unit: PlacementUnit, block: Optional[Block]) -> Optional[Block]:
        if block is None:
            return None
        req = unit.requirement
        if not all(self._slot_open(slot, req.class_unit.id, req.staff) for slot in block):
            raise GridInvariantError(
                f"Proposed block {[s.id for s in block]} for {req.unit.id} in {req.class_unit.id} is not free"
            )
        return block

    def _abort_class(self, class_id: str, since: int, error: TimetableError, periods: int) -> None:
        for placement in [p for p in self.grid.placements() if p.class_id == class_id]:
            self.grid.release(placement)
            self._count(placement, -1)
        self.reporter.discard_class(class_id, since)
        self.reporter.generation_error(
            f"Generation for class {class_id} was aborted: {error}",
            class_id=class_id,
            periods=periods,
        )
