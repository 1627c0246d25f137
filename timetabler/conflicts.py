import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from .models import Conflict, ConflictType, Placement

if TYPE_CHECKING:
    from .requirements import PlacementUnit

logger = logging.getLogger(__name__)


class ConflictReporter:
    """Accumulates conflicts for one run. Nothing here ever raises."""

    def __init__(self) -> None:
        self._conflicts: List[Conflict] = []

    def __len__(self) -> int:
        return len(self._conflicts)

    @property
    def conflicts(self) -> List[Conflict]:
        return list(self._conflicts)

    def add(self, conflict: Conflict) -> Conflict:
        self._conflicts.append(conflict)
        logger.info("Conflict (%s): %s", conflict.type.value, conflict.message)
        return conflict

    def unassignable(self, unit: "PlacementUnit", staff_scope: Optional[Dict[str, int]] = None) -> Conflict:
        req = unit.requirement
        scope_detail = ""
        suggestions = [
            "Add more free time slots to the calendar",
            "Check the staff member's unavailable days and periods",
            "Reduce the staff member's load or reassign the lesson",
        ]
        if unit.size > 1:
            suggestions.insert(0, f"{req.unit_name} requires {unit.size} consecutive periods without a break")
        if staff_scope and (staff_scope.get("classes", 0) > 1 or staff_scope.get("units", 0) > 1):
            scope_detail = (
                f" - staff scope: {staff_scope['classes']} classes, {staff_scope['units']} subjects/modules"
            )
            suggestions.append("Consider redistributing this staff member's assignments")
        return self.add(Conflict(
            type=ConflictType.UNASSIGNABLE,
            message=(
                f"Could not schedule {req.unit_name} block {unit.index + 1} "
                f"({unit.size} consecutive period{'s' if unit.size > 1 else ''}) "
                f"for {req.staff_name} in {req.class_name}{scope_detail}"
            ),
            class_id=req.class_unit.id,
            unit_id=req.unit.id,
            staff_id=req.staff.id,
            periods=unit.size,
            suggestions=suggestions,
        ))

    def capacity_exceeded(self, unit: "PlacementUnit", remaining: int) -> Conflict:
        req = unit.requirement
        return self.add(Conflict(
            type=ConflictType.CAPACITY_EXCEEDED,
            message=(
                f"{req.staff_name} has {remaining} of {req.staff.max_weekly_periods} weekly periods left; "
                f"cannot place {req.unit_name} block {unit.index + 1} ({unit.size} periods) in {req.class_name}"
            ),
            class_id=req.class_unit.id,
            unit_id=req.unit.id,
            staff_id=req.staff.id,
            periods=unit.size,
            suggestions=[
                "Raise the staff member's maximum weekly periods",
                "Assign some of these lessons to another staff member",
            ],
        ))

    def generation_error(
        self,
        message: str,
        class_id: Optional[str] = None,
        unit_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        periods: int = 0,
    ) -> Conflict:
        return self.add(Conflict(
            type=ConflictType.GENERATION_ERROR,
            message=message,
            class_id=class_id,
            unit_id=unit_id,
            staff_id=staff_id,
            periods=periods,
        ))

    def double_booking(self, placement: Placement) -> Conflict:
        return self.generation_error(
            f"Existing placement of {placement.unit_id} for class {placement.class_id} "
            f"with staff {placement.staff_id} at slot {placement.slot_id} double-books the slot",
            class_id=placement.class_id,
            unit_id=placement.unit_id,
            staff_id=placement.staff_id,
        )

    def discard_class(self, class_id: str, since: int = 0) -> None:
        """Drop conflicts for ``class_id`` recorded at or after index ``since``."""
        self._conflicts = self._conflicts[:since] + [
            c for c in self._conflicts[since:] if c.class_id != class_id
        ]
