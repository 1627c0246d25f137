"""CP-SAT placement strategy.

Places the same placement units as the greedy engine under the same hard
rules, but lets OR-Tools search the whole assignment at once:

  Hard constraints (must hold):
      • Each placement unit uses at most one candidate block.
      • No overlaps for classes or staff at any slot (fixed obstacles are
        already excluded from the candidates).
      • Staff weekly capacity.
      • Per-day ceiling for each (class, unit) pair.

  Objective (maximized):
      • Placed periods, weighted by scheduling order so that earlier units
        win any trade-off, and to dominate everything else.
      • One point per distinct day used by each (class, unit) pair.
      • Minus one point per morning-preferring block outside the morning.

The solver runs single-threaded with a fixed seed so identical inputs give
identical timetables, and ``time_limit_seconds`` bounds the run.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from ortools.sat.python import cp_model
from ortools.sat.python.cp_model import IntVar

from .allocator import AllocationEngine
from .availability import UNLIMITED_CAPACITY
from .models import MORNING, StaffMember
from .requirements import PlacementUnit
from .slot_calendar import Block

logger = logging.getLogger(__name__)


def solve_placement_units(
    engine: AllocationEngine,
    units: List[PlacementUnit],
    *,
    time_limit_seconds: float = 10.0,
    random_seed: int = 0,
) -> Tuple[Optional[Dict[int, Block]], Dict[str, Any]]:
    """Choose a block for each unit.

    Returns (assignment, stats). The assignment maps a unit's position in
    ``units`` to its block; units left out could not be placed. It is None
    when the solver found no feasible solution in time, in which case the
    caller falls back to the greedy engine.
    """
    stats: Dict[str, Any] = {"variables": 0.0}
    if not units:
        return {}, stats

    model = cp_model.CpModel()

    # unit_block[(u, b)] = 1 means unit u takes candidate block b
    unit_block: Dict[Tuple[int, int], IntVar] = {}
    candidates: Dict[int, List[Block]] = {}

    # Buckets for the no-double-booking constraints, filled as variables are made.
    class_time: Dict[Tuple[str, str], List[IntVar]] = defaultdict(list)
    staff_time: Dict[Tuple[str, str], List[IntVar]] = defaultdict(list)
    # (size, var) terms per staff member and per (class, unit, day)
    staff_periods: Dict[str, List[Tuple[int, IntVar]]] = defaultdict(list)
    day_periods: Dict[Tuple[str, str, str], List[Tuple[int, IntVar]]] = defaultdict(list)
    staff_by_id: Dict[str, StaffMember] = {}

    placed_terms = []
    off_session_vars: List[IntVar] = []

    for u_idx, unit in enumerate(units):
        req = unit.requirement
        staff_by_id[req.staff.id] = req.staff
        blocks = engine.candidate_blocks(unit, respect_daily_cap=False)
        candidates[u_idx] = blocks
        unit_vars = []
        for b_idx, block in enumerate(blocks):
            var = model.NewBoolVar(f"unit{u_idx}_block{b_idx}")
            unit_block[(u_idx, b_idx)] = var
            unit_vars.append(var)
            for slot in block:
                class_time[(slot.id, req.class_unit.id)].append(var)
                staff_time[(slot.id, req.staff.id)].append(var)
            staff_periods[req.staff.id].append((unit.size, var))
            day_periods[(req.class_unit.id, req.unit.id, block[0].day)].append((unit.size, var))
            placed_terms.append(unit.size * (len(units) - u_idx) * var)
            if req.prefers_morning and block[0].session != MORNING:
                off_session_vars.append(var)
        if len(unit_vars) > 1:
            model.AddAtMostOne(unit_vars)

    stats["variables"] = float(len(unit_block))
    if not unit_block:
        return {}, stats

    for bucket in list(class_time.values()) + list(staff_time.values()):
        if len(bucket) > 1:
            model.AddAtMostOne(bucket)

    for staff_id, terms in staff_periods.items():
        remaining = engine.availability.remaining_weekly_capacity(staff_by_id[staff_id])
        if remaining != UNLIMITED_CAPACITY:
            model.Add(sum(size * var for size, var in terms) <= remaining)

    cap = engine.settings.max_daily_periods_per_unit
    spread_vars: List[IntVar] = []
    for (class_id, unit_id, day), terms in day_periods.items():
        if cap is not None:
            already = engine.day_load(class_id, unit_id, day)
            model.Add(sum(size * var for size, var in terms) <= max(0, cap - already))
        # used = 1 only if some block of this pair lands on this day
        used = model.NewBoolVar(f"used_{class_id}_{unit_id}_{day}")
        model.Add(used <= sum(var for _, var in terms))
        spread_vars.append(used)

    weight = len(spread_vars) + len(off_session_vars) + 1
    model.Maximize(weight * sum(placed_terms) + sum(spread_vars) - sum(off_session_vars))

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = time_limit_seconds
    solver.parameters.random_seed = random_seed
    # one worker keeps the search order, and so the result, repeatable
    solver.parameters.num_search_workers = 1
    status = solver.Solve(model)

    stats.update({
        "status": solver.StatusName(status),
        "conflicts": float(solver.NumConflicts()),
        "branches": float(solver.NumBranches()),
        "wall_time_s": float(solver.WallTime()),
    })
    logger.info(
        "CP-SAT finished with %s after %.2fs (%d variables)",
        stats["status"], stats["wall_time_s"], len(unit_block),
    )

    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        return None, stats

    assignment: Dict[int, Block] = {}
    for (u_idx, b_idx), var in unit_block.items():
        if solver.Value(var) == 1:
            assignment[u_idx] = candidates[u_idx][b_idx]
    return assignment, stats
