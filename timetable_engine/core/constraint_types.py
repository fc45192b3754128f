# timetable_engine/core/constraint_types.py

"""
The six constraint kinds that shape placement and fitness.

Each kind is its own frozen dataclass carrying a non-negative weight and the
id of the entity it constrains. ConstraintSet indexes a collection of them
once per run; any object that is not one of the six kinds is rejected there.
"""

from __future__ import annotations
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Optional, Tuple, FrozenSet
from dataclasses import dataclass
from enum import Enum

from .problem_model import EntityId


class ConstraintKind(Enum):
    TEACHER_AVAILABILITY = "teacher_availability"
    ROOM_CAPACITY = "room_capacity"
    SUBJECT_REQUIREMENT = "subject_requirement"
    CLASS_SCHEDULE_LOAD = "class_schedule_load"
    LEARNED_TEACHER_PREFERENCE = "learned_teacher_preference"
    LEARNED_CONFLICT_AVOIDANCE = "learned_conflict_avoidance"


def normalize_pair(entity_a: EntityId, entity_b: EntityId) -> Tuple[EntityId, EntityId]:
    """Order-independent key for a pair of entity ids."""
    if (str(entity_b), repr(entity_b)) < (str(entity_a), repr(entity_a)):
        return (entity_b, entity_a)
    return (entity_a, entity_b)


class Constraint:
    """Common behaviour of every constraint kind."""

    kind: ClassVar[ConstraintKind]

    def __post_init__(self):
        if self.weight < 0:
            raise ValueError(
                f"{type(self).__name__} weight must be non-negative, got {self.weight}"
            )

    @property
    def entity_id(self) -> Any:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "entity": self.entity_id, "weight": self.weight}


@dataclass(frozen=True)
class TeacherAvailability(Constraint):
    kind: ClassVar[ConstraintKind] = ConstraintKind.TEACHER_AVAILABILITY

    teacher_id: EntityId
    available_slots: FrozenSet[str]
    weight: float = 10.0

    def __post_init__(self):
        object.__setattr__(self, "available_slots", frozenset(self.available_slots))
        super().__post_init__()

    @property
    def entity_id(self) -> EntityId:
        return self.teacher_id


@dataclass(frozen=True)
class RoomCapacity(Constraint):
    kind: ClassVar[ConstraintKind] = ConstraintKind.ROOM_CAPACITY

    room_id: EntityId
    capacity: int
    weight: float = 8.0

    @property
    def entity_id(self) -> EntityId:
        return self.room_id


@dataclass(frozen=True)
class SubjectRequirement(Constraint):
    kind: ClassVar[ConstraintKind] = ConstraintKind.SUBJECT_REQUIREMENT

    subject_id: EntityId
    room_type: Optional[str] = None
    min_capacity: Optional[int] = None
    weight: float = 7.0

    @property
    def entity_id(self) -> EntityId:
        return self.subject_id


@dataclass(frozen=True)
class ClassScheduleLoad(Constraint):
    """A class sits at most one exam at a time and ``max_per_day`` per day."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.CLASS_SCHEDULE_LOAD

    class_id: EntityId
    max_per_day: int = 2
    weight: float = 9.0

    @property
    def entity_id(self) -> EntityId:
        return self.class_id


@dataclass(frozen=True)
class LearnedTeacherPreference(Constraint):
    kind: ClassVar[ConstraintKind] = ConstraintKind.LEARNED_TEACHER_PREFERENCE

    teacher_id: EntityId
    preferred_slots: Tuple[str, ...] = ()
    avoided_slots: Tuple[str, ...] = ()
    confidence: int = 0
    weight: float = 5.0

    def __post_init__(self):
        object.__setattr__(self, "preferred_slots", tuple(self.preferred_slots))
        object.__setattr__(self, "avoided_slots", tuple(self.avoided_slots))
        super().__post_init__()

    @property
    def entity_id(self) -> EntityId:
        return self.teacher_id

    def adjustment_for(self, slot_key: str) -> float:
        """+confidence on a preferred key, -confidence on an avoided one."""
        adjustment = 0.0
        if slot_key in self.preferred_slots:
            adjustment += self.confidence
        if slot_key in self.avoided_slots:
            adjustment -= self.confidence
        return adjustment


@dataclass(frozen=True)
class LearnedConflictAvoidance(Constraint):
    """Two entities that should not be placed at overlapping times."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.LEARNED_CONFLICT_AVOIDANCE

    entity_a: EntityId
    entity_b: EntityId
    weight: float = 1.0

    @property
    def entity_id(self) -> Tuple[EntityId, EntityId]:
        return normalize_pair(self.entity_a, self.entity_b)


CONSTRAINT_CLASSES = {
    TeacherAvailability: ConstraintKind.TEACHER_AVAILABILITY,
    RoomCapacity: ConstraintKind.ROOM_CAPACITY,
    SubjectRequirement: ConstraintKind.SUBJECT_REQUIREMENT,
    ClassScheduleLoad: ConstraintKind.CLASS_SCHEDULE_LOAD,
    LearnedTeacherPreference: ConstraintKind.LEARNED_TEACHER_PREFERENCE,
    LearnedConflictAvoidance: ConstraintKind.LEARNED_CONFLICT_AVOIDANCE,
}


def kind_of(constraint: Any) -> ConstraintKind:
    try:
        return CONSTRAINT_CLASSES[type(constraint)]
    except KeyError:
        raise TypeError(
            f"Unsupported constraint type: {type(constraint).__name__}"
        ) from None


class ConstraintSet:
    """Immutable, indexed view over the constraints active for one run."""

    def __init__(self, constraints: Iterable[Constraint] = ()):
        self._constraints: Tuple[Constraint, ...] = tuple(constraints)
        self._by_kind: Dict[ConstraintKind, List[Constraint]] = {
            kind: [] for kind in ConstraintKind
        }
        self._by_entity: Dict[Tuple[ConstraintKind, Any], List[Constraint]] = {}
        for constraint in self._constraints:
            kind = kind_of(constraint)
            self._by_kind[kind].append(constraint)
            self._by_entity.setdefault((kind, constraint.entity_id), []).append(
                constraint
            )

    def __iter__(self) -> Iterator[Constraint]:
        return iter(self._constraints)

    def __len__(self) -> int:
        return len(self._constraints)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ConstraintSet) and self._constraints == other._constraints

    def __hash__(self) -> int:
        return hash(self._constraints)

    def of_kind(self, kind: ConstraintKind) -> Tuple[Constraint, ...]:
        return tuple(self._by_kind[kind])

    def for_entity(self, kind: ConstraintKind, entity_id: Any) -> Tuple[Constraint, ...]:
        return tuple(self._by_entity.get((kind, entity_id), ()))

    @property
    def total_weight(self) -> float:
        return sum(c.weight for c in self._constraints)

    def extended(self, constraints: Iterable[Constraint]) -> "ConstraintSet":
        return ConstraintSet(self._constraints + tuple(constraints))

    def counts(self) -> Dict[str, int]:
        return {kind.value: len(items) for kind, items in self._by_kind.items()}
