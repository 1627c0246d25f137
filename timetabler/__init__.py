from .config import EngineSettings, configure_logging, get_settings
from .drivers import generate_timetable, generate_timetable_for_class, generate_timetable_for_teacher
from .errors import (
    ConfigurationError,
    GridInvariantError,
    PlacementIntegrityError,
    SchoolNotFoundError,
    TimetableError,
)
from .models import (
    Assignment,
    ClassUnit,
    Conflict,
    ConflictType,
    GenerationResult,
    Module,
    ModuleCategory,
    Placement,
    SchoolSnapshot,
    SlotDescriptor,
    StaffMember,
    Subject,
)
from .service import TimetableService
from .store import InMemoryTimetableStore, TimetableStore, load_snapshot_file

__all__ = [
    "Assignment",
    "ClassUnit",
    "Conflict",
    "ConflictType",
    "ConfigurationError",
    "EngineSettings",
    "GenerationResult",
    "GridInvariantError",
    "InMemoryTimetableStore",
    "Module",
    "ModuleCategory",
    "Placement",
    "PlacementIntegrityError",
    "SchoolNotFoundError",
    "SchoolSnapshot",
    "SlotDescriptor",
    "StaffMember",
    "Subject",
    "TimetableError",
    "TimetableService",
    "TimetableStore",
    "configure_logging",
    "generate_timetable",
    "generate_timetable_for_class",
    "generate_timetable_for_teacher",
    "get_settings",
    "load_snapshot_file",
]
