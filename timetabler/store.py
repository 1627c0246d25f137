import json
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Union

from .errors import PlacementIntegrityError, SchoolNotFoundError
from .models import Placement, SchoolSnapshot


def check_unique(placements: Iterable[Placement]) -> None:
    """Raise if two placements share a (class, slot) or (staff, slot) cell."""
    classes = set()
    staff = set()
    for p in placements:
        if (p.class_id, p.slot_id) in classes:
            raise PlacementIntegrityError(f"Class {p.class_id} is placed twice at slot {p.slot_id}")
        if (p.staff_id, p.slot_id) in staff:
            raise PlacementIntegrityError(f"Staff {p.staff_id} is placed twice at slot {p.slot_id}")
        classes.add((p.class_id, p.slot_id))
        staff.add((p.staff_id, p.slot_id))


class TimetableStore(ABC):
    """Where snapshots come from and placements go to."""

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def lock(self, school_id: str) -> threading.Lock:
        """Per-school lock, held by callers for a whole load-generate-persist cycle."""
        with self._locks_guard:
            return self._locks[school_id]

    @abstractmethod
    def load(self, school_id: str) -> SchoolSnapshot:
        ...

    @abstractmethod
    def replace_placements(
        self,
        school_id: str,
        superseded: List[Placement],
        placements: List[Placement],
    ) -> None:
        """Delete ``superseded`` and insert ``placements`` as one step.

        Nothing changes when the resulting set would break slot uniqueness.
        """


class InMemoryTimetableStore(TimetableStore):
    def __init__(self) -> None:
        super().__init__()
        self._schools: Dict[str, SchoolSnapshot] = {}

    def put(self, snapshot: SchoolSnapshot) -> None:
        check_unique(snapshot.placements)
        self._schools[snapshot.school_id] = snapshot.model_copy(deep=True)

    def load(self, school_id: str) -> SchoolSnapshot:
        if school_id not in self._schools:
            raise SchoolNotFoundError(school_id)
        return self._schools[school_id].model_copy(deep=True)

    def placements(self, school_id: str) -> List[Placement]:
        return list(self.load(school_id).placements)

    def replace_placements(
        self,
        school_id: str,
        superseded: List[Placement],
        placements: List[Placement],
    ) -> None:
        snapshot = self.load(school_id)
        dropped = set(superseded)
        updated = [p for p in snapshot.placements if p not in dropped] + list(placements)
        check_unique(updated)
        self._schools[school_id] = snapshot.model_copy(update={"placements": updated})


def load_snapshot_file(path: Union[str, Path]) -> SchoolSnapshot:
    with Path(path).open("r", encoding="utf-8") as f:
        return SchoolSnapshot.model_validate(json.load(f))
