"""Scheduling snapshot and engine output records.

A snapshot is everything one generation run reads: classes, staff with their
availability, teaching units (subjects and modules), the class/unit/staff
assignments and the slot calendar, plus the placements persisted by earlier
runs. Placements and conflicts are what a run hands back.
"""

from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DAYS_OF_WEEK: Tuple[str, ...] = (
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
)

MORNING = "MORNING"
AFTERNOON = "AFTERNOON"


def day_index(day: str) -> int:
    """Position of ``day`` in the week; unknown names sort after Sunday."""
    try:
        return DAYS_OF_WEEK.index(day)
    except ValueError:
        return len(DAYS_OF_WEEK)


def _normalize_day(day: Any) -> Any:
    return day.strip().upper() if isinstance(day, str) else day


class Stream(str, Enum):
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    TSS = "TSS"


class StaffKind(str, Enum):
    TEACHER = "teacher"
    TRAINER = "trainer"


class ModuleCategory(str, Enum):
    SPECIFIC = "SPECIFIC"
    GENERAL = "GENERAL"
    COMPLEMENTARY = "COMPLEMENTARY"


class ConflictType(str, Enum):
    UNASSIGNABLE = "unassignable"
    CAPACITY_EXCEEDED = "capacity-exceeded"
    GENERATION_ERROR = "generation-error"


def stream_for_level(level: str) -> Stream:
    """Technical levels L3-L5 are TSS, S* secondary, P* primary."""
    level = (level or "").strip().upper()
    if level in ("L3", "L4", "L5"):
        return Stream.TSS
    if level.startswith("S"):
        return Stream.SECONDARY
    if level.startswith("P"):
        return Stream.PRIMARY
    return Stream.SECONDARY


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class ClassUnit(_Record):
    id: str
    name: str = ""
    level: str = ""
    stream: Optional[Stream] = None

    @property
    def resolved_stream(self) -> Stream:
        return self.stream if self.stream is not None else stream_for_level(self.level)


class StaffMember(_Record):
    id: str
    name: str = ""
    kind: StaffKind = StaffKind.TEACHER
    # None means the staff member has no weekly ceiling
    max_weekly_periods: Optional[int] = Field(default=None, ge=0)
    unavailable_days: FrozenSet[str] = frozenset()
    unavailable_periods: FrozenSet[Tuple[str, int]] = frozenset()
    # period numbers blocked on every day of the week
    blocked_periods: FrozenSet[int] = frozenset()

    @field_validator("unavailable_days", mode="before")
    @classmethod
    def _upper_days(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        return frozenset(_normalize_day(day) for day in value)

    @field_validator("unavailable_periods", mode="before")
    @classmethod
    def _upper_period_days(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        return frozenset((_normalize_day(day), int(period)) for day, period in value)


class Subject(_Record):
    kind: Literal["subject"] = "subject"
    id: str
    name: str = ""
    periods_per_week: int = Field(ge=0)
    block_size: int = Field(default=1, ge=1, le=2)

    @property
    def weekly_periods(self) -> int:
        return self.periods_per_week


class Module(_Record):
    kind: Literal["module"] = "module"
    id: str
    name: str = ""
    # weekly contact hours, one period each
    total_hours: int = Field(ge=0)
    category: ModuleCategory = ModuleCategory.GENERAL

    @property
    def weekly_periods(self) -> int:
        return self.total_hours


TeachingUnit = Annotated[Union[Subject, Module], Field(discriminator="kind")]


class Assignment(_Record):
    class_id: str
    unit_id: str
    staff_id: str


class SlotDescriptor(_Record):
    id: str
    day: str
    period: int
    session: str = MORNING
    start: Optional[str] = None
    end: Optional[str] = None
    is_break: bool = False
    active: bool = True

    @field_validator("day", "session", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return _normalize_day(value)

    @property
    def schedulable(self) -> bool:
        return self.active and not self.is_break


class Placement(_Record):
    class_id: str
    slot_id: str
    staff_id: str
    unit_id: str
    # which placement unit of its (class, unit) requirement this period belongs to
    block_index: int = 0


class Conflict(BaseModel):
    type: ConflictType
    message: str
    class_id: Optional[str] = None
    unit_id: Optional[str] = None
    staff_id: Optional[str] = None
    # periods this conflict leaves unplaced
    periods: int = 0
    suggestions: List[str] = Field(default_factory=list)


class SchoolSnapshot(BaseModel):
    school_id: str
    classes: List[ClassUnit] = Field(default_factory=list)
    staff: List[StaffMember] = Field(default_factory=list)
    units: List[TeachingUnit] = Field(default_factory=list)
    assignments: List[Assignment] = Field(default_factory=list)
    slots: List[SlotDescriptor] = Field(default_factory=list)
    # placements persisted by earlier runs
    placements: List[Placement] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "SchoolSnapshot":
        for label, records in (
            ("class", self.classes),
            ("staff", self.staff),
            ("teaching unit", self.units),
            ("slot", self.slots),
        ):
            seen = set()
            for record in records:
                if record.id in seen:
                    raise ValueError(f"Duplicate {label} id: {record.id}")
                seen.add(record.id)
        return self

    def classes_by_id(self) -> Dict[str, ClassUnit]:
        return {c.id: c for c in self.classes}

    def staff_by_id(self) -> Dict[str, StaffMember]:
        return {s.id: s for s in self.staff}

    def units_by_id(self) -> Dict[str, Union[Subject, Module]]:
        return {u.id: u for u in self.units}

    def slots_by_id(self) -> Dict[str, SlotDescriptor]:
        return {s.id: s for s in self.slots}


class GenerationResult(BaseModel):
    success: bool
    conflicts: List[Conflict] = Field(default_factory=list)
    # placements created by this run, to be inserted by the caller
    placements: List[Placement] = Field(default_factory=list)
    # previously persisted placements the caller must delete first
    superseded: List[Placement] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    statistics: Dict[str, Any] = Field(default_factory=dict)
