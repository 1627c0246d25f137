from collections import defaultdict
from typing import Dict, Iterable, List, Set, Tuple

from .errors import GridInvariantError
from .models import Placement


class ScheduleGrid:
    """Slot occupancy for a single generation run.

    Cells are keyed by (slot_id, class_id) and (slot_id, staff_id); each
    holds at most one placement. A grid is created per run and passed to the
    pieces that need it. Placements committed through ``seed`` are fixed
    obstacles from earlier runs; everything else was placed by this run.
    """

    def __init__(self) -> None:
        self._class_cells: Dict[Tuple[str, str], Placement] = {}
        self._staff_cells: Dict[Tuple[str, str], Placement] = {}
        self._staff_load: Dict[str, int] = defaultdict(int)
        self._fixed: Set[Placement] = set()
        self._placed: List[Placement] = []

    def seed(self, placements: Iterable[Placement]) -> List[Placement]:
        """Commit earlier placements as fixed obstacles.

        Returns the placements that clash with one already seeded; those are
        left out of the grid so the caller can report them.
        """
        rejected = []
        for placement in placements:
            try:
                self.commit(placement)
            except GridInvariantError:
                rejected.append(placement)
                continue
            self._fixed.add(placement)
        return rejected

    def class_free(self, slot_id: str, class_id: str) -> bool:
        return (slot_id, class_id) not in self._class_cells

    def staff_free(self, slot_id: str, staff_id: str) -> bool:
        return (slot_id, staff_id) not in self._staff_cells

    def staff_load(self, staff_id: str) -> int:
        return self._staff_load.get(staff_id, 0)

    def commit(self, placement: Placement) -> None:
        class_key = (placement.slot_id, placement.class_id)
        staff_key = (placement.slot_id, placement.staff_id)
        if class_key in self._class_cells:
            raise GridInvariantError(
                f"Class {placement.class_id} already placed at slot {placement.slot_id}"
            )
        if staff_key in self._staff_cells:
            raise GridInvariantError(
                f"Staff {placement.staff_id} already placed at slot {placement.slot_id}"
            )
        self._class_cells[class_key] = placement
        self._staff_cells[staff_key] = placement
        self._staff_load[placement.staff_id] += 1
        self._placed.append(placement)

    def release(self, placement: Placement) -> None:
        class_key = (placement.slot_id, placement.class_id)
        if self._class_cells.get(class_key) != placement:
            raise GridInvariantError(f"Placement was never committed: {placement}")
        if self.is_fixed(placement):
            raise GridInvariantError(f"Cannot release a fixed placement: {placement}")
        del self._class_cells[class_key]
        del self._staff_cells[(placement.slot_id, placement.staff_id)]
        self._staff_load[placement.staff_id] -= 1
        self._placed.remove(placement)

    def is_fixed(self, placement: Placement) -> bool:
        return placement in self._fixed

    def placements(self, include_fixed: bool = False) -> List[Placement]:
        if include_fixed:
            return list(self._placed)
        return [p for p in self._placed if not self.is_fixed(p)]
