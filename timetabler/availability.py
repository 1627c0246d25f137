import sys

from .grid import ScheduleGrid
from .models import SlotDescriptor, StaffMember

UNLIMITED_CAPACITY = sys.maxsize


def staff_available(staff: StaffMember, slot: SlotDescriptor) -> bool:
    if slot.day in staff.unavailable_days:
        return False
    if (slot.day, slot.period) in staff.unavailable_periods:
        return False
    return slot.period not in staff.blocked_periods


class AvailabilityModel:
    """Read-only view of when a staff member can teach and how much more."""

    def __init__(self, grid: ScheduleGrid):
        self._grid = grid

    def is_available(self, staff: StaffMember, slot: SlotDescriptor) -> bool:
        return staff_available(staff, slot)

    def remaining_weekly_capacity(self, staff: StaffMember) -> int:
        if staff.max_weekly_periods is None:
            return UNLIMITED_CAPACITY
        return max(0, staff.max_weekly_periods - self._grid.staff_load(staff.id))
