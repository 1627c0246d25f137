class TimetableError(Exception):
    """Base class for errors raised by the timetable engine."""


class ConfigurationError(TimetableError, ValueError):
    """An engine setting could not be parsed or is out of range."""


class SchoolNotFoundError(TimetableError, KeyError):
    """The store holds no snapshot for the requested school."""

    def __init__(self, school_id: str):
        super().__init__(school_id)
        self.school_id = school_id

    def __str__(self) -> str:
        return f"School not found: {self.school_id}"


class GridInvariantError(TimetableError):
    """A commit or release would corrupt the schedule grid.

    Raised for double bookings and for releasing placements that were never
    committed. Aborts the scoped sub-run that triggered it.
    """


class PlacementIntegrityError(TimetableError, ValueError):
    """A placement set violates the (class, slot) or (staff, slot) uniqueness."""
