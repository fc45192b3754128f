# timetable_engine/core/solution.py

"""
Timetable value types: ScheduleSlot, Timetable, Conflict and the record kept
for activities that could not be placed.

Slots are frozen. A Timetable owns a tuple of slots, so building a child
timetable never aliases a parent's slot list; unchanged slots are shared.
"""

from typing import Dict, Optional, Any, Iterable, Iterator, Sequence, Tuple, FrozenSet
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
import logging

from deap import base

from .problem_model import Activity, Room, TimeSlot, EntityId

logger = logging.getLogger(__name__)


class TimetableFitness(base.Fitness):
    """Single objective, maximised."""

    weights = (1.0,)


class ConflictKind(Enum):
    ROOM = "room"
    TEACHER = "teacher"
    EXAM_SUBJECT = "exam_subject"


class UnplaceableReason(Enum):
    NO_QUALIFIED_TEACHER = "no_qualified_teacher"
    NO_CANDIDATE_SLOT = "no_candidate_slot"


@dataclass(frozen=True)
class ScheduleSlot:
    """One activity assigned to a teacher, a room, a grid cell and a date."""

    activity: Activity
    teacher_id: EntityId
    room: Room
    timeslot: TimeSlot
    date: Optional[date] = None
    score: Optional[float] = None

    @property
    def exam_id(self) -> EntityId:
        return self.activity.exam_id

    @property
    def subject_id(self) -> EntityId:
        return self.activity.subject_id

    @property
    def class_id(self) -> EntityId:
        return self.activity.class_id

    @property
    def room_id(self) -> EntityId:
        return self.room.id

    @property
    def key(self) -> str:
        return self.timeslot.key

    @property
    def day(self) -> str:
        return self.timeslot.day

    @property
    def entity_ids(self) -> FrozenSet[EntityId]:
        """Plain ids plus ``(kind, id)`` tags of every entity the slot uses."""
        tagged = (
            ("teacher", self.teacher_id),
            ("room", self.room.id),
            ("subject", self.subject_id),
            ("class", self.class_id),
            ("exam", self.exam_id),
        )
        return frozenset(tagged) | frozenset(entity for _, entity in tagged)

    def with_assignment_of(self, other: "ScheduleSlot") -> "ScheduleSlot":
        """Copy of this slot moved to ``other``'s room, time and date."""
        return replace(
            self, room=other.room, timeslot=other.timeslot, date=other.date, score=None
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exam_id": self.exam_id,
            "subject_id": self.subject_id,
            "class_id": self.class_id,
            "teacher_id": self.teacher_id,
            "room_id": self.room.id,
            "day": self.timeslot.day,
            "time_slot": self.timeslot.label,
            "slot_key": self.key,
            "date": self.date.isoformat() if self.date else None,
            "score": self.score,
        }


@dataclass(frozen=True)
class Conflict:
    """Two slots sharing a room, teacher or (exam, subject) at overlapping times.

    ``first_index`` is -1 when the first slot is a candidate that is not part of
    the timetable yet.
    """

    first_index: int
    second_index: int
    first: ScheduleSlot
    second: ScheduleSlot
    kinds: Tuple[ConflictKind, ...]

    @property
    def pair(self) -> Tuple[int, int]:
        return (self.first_index, self.second_index)

    def describe(self) -> str:
        parts = []
        if ConflictKind.ROOM in self.kinds:
            parts.append(f"room {self.first.room_id} double-booked")
        if ConflictKind.TEACHER in self.kinds:
            parts.append(f"teacher {self.first.teacher_id} double-booked")
        if ConflictKind.EXAM_SUBJECT in self.kinds:
            parts.append(
                f"subject {self.first.subject_id} of exam {self.first.exam_id} overlaps itself"
            )
        return (
            f"{'; '.join(parts)} on {self.first.day} "
            f"{self.first.timeslot.label} / {self.second.timeslot.label}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "first_index": self.first_index,
            "second_index": self.second_index,
            "kinds": [kind.value for kind in self.kinds],
            "description": self.describe(),
        }


@dataclass(frozen=True)
class UnplaceableActivity:
    activity: Activity
    reason: UnplaceableReason
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activity": self.activity.to_dict(),
            "reason": self.reason.value,
            "detail": self.detail,
        }


class Timetable:
    """An ordered, immutable collection of ScheduleSlots.

    Slot ``i`` of every timetable derived from the same seed carries the same
    activity; genetic operators only move assignments between indices.
    Conflicts are derived on first access and cached, and ``fitness`` is a
    DEAP fitness object filled in by the optimizer.
    """

    def __init__(
        self,
        slots: Iterable[ScheduleSlot] = (),
        unplaceable: Iterable[UnplaceableActivity] = (),
    ):
        self._slots: Tuple[ScheduleSlot, ...] = tuple(slots)
        self._unplaceable: Tuple[UnplaceableActivity, ...] = tuple(unplaceable)
        self._conflicts: Optional[Tuple[Conflict, ...]] = None
        self.fitness = TimetableFitness()
        self.quality_score: Optional[float] = None

    @property
    def slots(self) -> Tuple[ScheduleSlot, ...]:
        return self._slots

    @property
    def unplaceable(self) -> Tuple[UnplaceableActivity, ...]:
        return self._unplaceable

    @property
    def conflicts(self) -> Tuple[Conflict, ...]:
        if self._conflicts is None:
            from .conflicts import find_conflicts

            self._conflicts = tuple(find_conflicts(self._slots))
        return self._conflicts

    @property
    def conflict_count(self) -> int:
        return len(self.conflicts)

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[ScheduleSlot]:
        return iter(self._slots)

    def __getitem__(self, index: int) -> ScheduleSlot:
        return self._slots[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Timetable):
            return NotImplemented
        return self._slots == other._slots and self._unplaceable == other._unplaceable

    def with_slots(self, slots: Sequence[ScheduleSlot]) -> "Timetable":
        """New timetable over ``slots`` sharing this one's unplaceable list."""
        return Timetable(slots, self._unplaceable)

    @classmethod
    def empty(cls) -> "Timetable":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slots": [slot.to_dict() for slot in self._slots],
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
            "unplaceable": [item.to_dict() for item in self._unplaceable],
            "fitness": self.fitness.values[0] if self.fitness.valid else None,
            "quality_score": self.quality_score,
        }
