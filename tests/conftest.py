import pytest

from timetabler.config import EngineSettings
from timetabler.conflicts import ConflictReporter
from timetabler.grid import ScheduleGrid
from timetabler.models import Module, ModuleCategory, StaffMember, Subject

from factories import make_slots, make_snapshot


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def cpsat_settings():
    return EngineSettings(strategy="cpsat", time_limit_seconds=5.0)


@pytest.fixture
def grid():
    return ScheduleGrid()


@pytest.fixture
def reporter():
    return ConflictReporter()


@pytest.fixture
def two_class_school():
    """Two classes sharing one math teacher; a paired module for class A."""
    units = [
        Subject(id="MATH", name="Mathematics", periods_per_week=3),
        Subject(id="ENG", name="English", periods_per_week=2),
        Module(id="NET", name="Networking", total_hours=4, category=ModuleCategory.SPECIFIC),
    ]
    staff = [
        StaffMember(id="T1", name="Alice", max_weekly_periods=10),
        StaffMember(id="T2", name="Bob"),
        StaffMember(id="T3", name="Chris", unavailable_days=["friday"]),
    ]
    return make_snapshot(
        units=units,
        staff=staff,
        assignments=[
            ("A", "MATH", "T1"),
            ("B", "MATH", "T1"),
            ("A", "ENG", "T2"),
            ("B", "ENG", "T2"),
            ("A", "NET", "T3"),
        ],
        slots=make_slots(periods=6, afternoon=(5, 6), breaks=(3,)),
    )
