import logging
from typing import Optional

from .config import EngineSettings, get_settings
from .drivers import generate_timetable, generate_timetable_for_class, generate_timetable_for_teacher
from .models import GenerationResult
from .store import TimetableStore

logger = logging.getLogger(__name__)


class TimetableService:
    """Store-backed entry points.

    Each call holds the school's lock while it loads the snapshot, runs the
    engine and writes the new placements back, so two generations for the
    same school never interleave.
    """

    def __init__(self, store: TimetableStore, settings: Optional[EngineSettings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def _persist(self, school_id: str, result: GenerationResult) -> GenerationResult:
        self.store.replace_placements(school_id, result.superseded, result.placements)
        logger.info(
            "School %s: removed %d placements, stored %d",
            school_id, len(result.superseded), len(result.placements),
        )
        return result

    def generate_timetable(self, school_id: str) -> GenerationResult:
        with self.store.lock(school_id):
            snapshot = self.store.load(school_id)
            return self._persist(school_id, generate_timetable(snapshot, self.settings))

    def generate_timetable_for_class(
        self,
        school_id: str,
        class_id: str,
        regenerate: bool = False,
        incremental: bool = False,
    ) -> GenerationResult:
        with self.store.lock(school_id):
            snapshot = self.store.load(school_id)
            result = generate_timetable_for_class(
                snapshot, class_id, regenerate=regenerate, incremental=incremental, settings=self.settings
            )
            return self._persist(school_id, result)

    def generate_timetable_for_teacher(
        self,
        school_id: str,
        teacher_id: str,
        incremental: bool = False,
        regenerate: bool = False,
    ) -> GenerationResult:
        with self.store.lock(school_id):
            snapshot = self.store.load(school_id)
            result = generate_timetable_for_teacher(
                snapshot, teacher_id, incremental=incremental, regenerate=regenerate, settings=self.settings
            )
            return self._persist(school_id, result)
