from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from .models import SlotDescriptor, day_index

Block = Tuple[SlotDescriptor, ...]


def slot_sort_key(slot: SlotDescriptor) -> Tuple[int, str, int, str]:
    return (day_index(slot.day), slot.day, slot.period, slot.id)


class SlotCalendar:
    """Ordered schedulable slots of one school.

    Break and inactive slots are dropped up front, so nothing downstream can
    place a lesson on them. Orderings are fixed at construction, which keeps
    generation reproducible for identical inputs.
    """

    def __init__(self, slots: Iterable[SlotDescriptor]):
        self._slots: List[SlotDescriptor] = sorted((s for s in slots if s.schedulable), key=slot_sort_key)
        self._position: Dict[str, int] = {s.id: i for i, s in enumerate(self._slots)}
        self._by_day: Dict[str, List[SlotDescriptor]] = defaultdict(list)
        for slot in self._slots:
            self._by_day[slot.day].append(slot)
        self._block_cache: Dict[Tuple[int, Optional[str]], List[Block]] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._position

    def slot(self, slot_id: str) -> SlotDescriptor:
        return self._slots[self._position[slot_id]]

    def position(self, slot_id: str) -> int:
        return self._position[slot_id]

    def days(self) -> List[str]:
        return list(self._by_day)

    def sessions(self, day: str) -> List[str]:
        seen: List[str] = []
        for slot in self._by_day.get(day, []):
            if slot.session not in seen:
                seen.append(slot.session)
        return seen

    def candidate_slots(self, day: Optional[str] = None) -> List[SlotDescriptor]:
        if day is None:
            return list(self._slots)
        return list(self._by_day.get(day.upper(), []))

    def adjacent_pairs(self, day: str, session: str) -> List[Tuple[SlotDescriptor, SlotDescriptor]]:
        """Consecutive-period pairs within one day and session."""
        session = session.upper()
        in_session = [s for s in self._by_day.get(day.upper(), []) if s.session == session]
        pairs = []
        for i, first in enumerate(in_session):
            for second in in_session[i + 1:]:
                if second.period == first.period + 1:
                    pairs.append((first, second))
        return pairs

    def blocks(self, size: int, day: Optional[str] = None) -> List[Block]:
        """Every run of ``size`` mutually adjacent slots, in calendar order."""
        key = (size, day)
        if key in self._block_cache:
            return self._block_cache[key]
        if size < 1:
            raise ValueError(f"Block size must be positive, got {size}")

        days = [day.upper()] if day is not None else self.days()
        result: List[Block] = []
        for d in days:
            runs: List[Block] = [(s,) for s in self._by_day.get(d, [])]
            for _ in range(size - 1):
                runs = [
                    run + (nxt,)
                    for run in runs
                    for nxt in self._by_day.get(d, [])
                    if nxt.session == run[-1].session and nxt.period == run[-1].period + 1
                ]
            result.extend(runs)
        result.sort(key=lambda block: self._position[block[0].id])
        self._block_cache[key] = result
        return result
