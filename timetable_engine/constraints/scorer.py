# timetable_engine/constraints/scorer.py

"""
Constraint scoring at two levels.

Placement level (``score_slot``) is what the greedy builder maximises: a base
score adjusted by every constraint touching the slot and by conflicts with
slots already placed, floored at zero.

Timetable level (``fitness``) is what the optimizer maximises: satisfied
constraint weights plus the learned preference bonus, minus a fixed penalty
per conflict.

Both levels dispatch on the six constraint classes; anything else raises
TypeError instead of being ignored.
"""

from functools import singledispatchmethod
from typing import Dict, List, Optional, Sequence, Tuple, Union
from collections import Counter
import logging

from ..config import ScoringConfig
from ..core.conflicts import concurrent, conflicts_with, same_date
from ..core.constraint_types import (
    ClassScheduleLoad,
    Constraint,
    ConstraintKind,
    ConstraintSet,
    LearnedConflictAvoidance,
    LearnedTeacherPreference,
    RoomCapacity,
    SubjectRequirement,
    TeacherAvailability,
)
from ..core.solution import ScheduleSlot, Timetable

logger = logging.getLogger(__name__)

SlotSource = Union[Timetable, Sequence[ScheduleSlot]]

# Entity a slot exposes to each per-entity constraint kind
_SLOT_ENTITY = {
    ConstraintKind.TEACHER_AVAILABILITY: lambda slot: slot.teacher_id,
    ConstraintKind.ROOM_CAPACITY: lambda slot: slot.room_id,
    ConstraintKind.SUBJECT_REQUIREMENT: lambda slot: slot.subject_id,
    ConstraintKind.CLASS_SCHEDULE_LOAD: lambda slot: slot.class_id,
    ConstraintKind.LEARNED_TEACHER_PREFERENCE: lambda slot: slot.teacher_id,
}


def _same_day(a: ScheduleSlot, b: ScheduleSlot) -> bool:
    return same_date(a, b) and a.day == b.day


def _pairs_entities(
    constraint: LearnedConflictAvoidance, a: ScheduleSlot, b: ScheduleSlot
) -> bool:
    left, right = a.entity_ids, b.entity_ids
    return (constraint.entity_a in left and constraint.entity_b in right) or (
        constraint.entity_b in left and constraint.entity_a in right
    )


def _meets_requirement(constraint: SubjectRequirement, slot: ScheduleSlot) -> bool:
    if constraint.room_type is not None and slot.room.room_type != constraint.room_type:
        return False
    if constraint.min_capacity is not None and slot.room.capacity < constraint.min_capacity:
        return False
    return True


class ConstraintScorer:
    """Scores placements and timetables against a ConstraintSet."""

    def __init__(
        self, scoring: Optional[ScoringConfig] = None, conflict_weight: float = 10.0
    ):
        self.scoring = scoring or ScoringConfig()
        self.conflict_weight = conflict_weight

    # ------------------------------------------------------------------
    # Placement level
    # ------------------------------------------------------------------

    def relevant_constraints(
        self, slot: ScheduleSlot, constraints: ConstraintSet
    ) -> List[Constraint]:
        relevant: List[Constraint] = []
        for kind in ConstraintKind:
            if kind is ConstraintKind.LEARNED_CONFLICT_AVOIDANCE:
                relevant.extend(
                    c
                    for c in constraints.of_kind(kind)
                    if c.entity_a in slot.entity_ids or c.entity_b in slot.entity_ids
                )
            else:
                relevant.extend(constraints.for_entity(kind, _SLOT_ENTITY[kind](slot)))
        return relevant

    def score_slot(
        self,
        slot: ScheduleSlot,
        constraints: ConstraintSet,
        placed: Sequence[ScheduleSlot] = (),
    ) -> float:
        score = self.scoring.base_score
        for constraint in self.relevant_constraints(slot, constraints):
            score += self.slot_effect(constraint, slot, placed)
        score -= self.scoring.conflict_penalty * len(conflicts_with(slot, placed))
        return max(self.scoring.min_score, score)

    def score_timetable(self, timetable: SlotSource, constraints: ConstraintSet) -> float:
        """Sum of slot scores, each slot scored against all the others."""
        slots = _slots(timetable)
        total = 0.0
        for index, slot in enumerate(slots):
            others = slots[:index] + slots[index + 1:]
            total += self.score_slot(slot, constraints, others)
        return total

    @singledispatchmethod
    def slot_effect(self, constraint, slot: ScheduleSlot, placed: Sequence[ScheduleSlot]) -> float:
        raise TypeError(f"Unsupported constraint type: {type(constraint).__name__}")

    @slot_effect.register(TeacherAvailability)
    def _(self, constraint, slot, placed):
        if slot.key in constraint.available_slots:
            return 0.0
        return -self.scoring.availability_penalty

    @slot_effect.register(RoomCapacity)
    def _(self, constraint, slot, placed):
        if slot.activity.student_count <= constraint.capacity:
            return 0.0
        return -self.scoring.capacity_penalty

    @slot_effect.register(SubjectRequirement)
    def _(self, constraint, slot, placed):
        if _meets_requirement(constraint, slot):
            return 0.0
        return -self.scoring.subject_requirement_penalty

    @slot_effect.register(ClassScheduleLoad)
    def _(self, constraint, slot, placed):
        same_class = [p for p in placed if p.class_id == constraint.class_id]
        clashes = sum(1 for p in same_class if concurrent(slot, p))
        penalty = clashes * self.scoring.class_load_penalty
        if sum(1 for p in same_class if _same_day(slot, p)) + 1 > constraint.max_per_day:
            penalty += self.scoring.class_load_penalty
        return -penalty

    @slot_effect.register(LearnedTeacherPreference)
    def _(self, constraint, slot, placed):
        return constraint.adjustment_for(slot.key)

    @slot_effect.register(LearnedConflictAvoidance)
    def _(self, constraint, slot, placed):
        hits = sum(
            1
            for p in placed
            if concurrent(slot, p) and _pairs_entities(constraint, slot, p)
        )
        return -constraint.weight * hits

    # ------------------------------------------------------------------
    # Timetable level
    # ------------------------------------------------------------------

    @singledispatchmethod
    def satisfies(self, constraint, slots: Sequence[ScheduleSlot]) -> bool:
        raise TypeError(f"Unsupported constraint type: {type(constraint).__name__}")

    @satisfies.register(TeacherAvailability)
    def _(self, constraint, slots):
        return all(
            slot.key in constraint.available_slots
            for slot in slots
            if slot.teacher_id == constraint.teacher_id
        )

    @satisfies.register(RoomCapacity)
    def _(self, constraint, slots):
        return all(
            slot.activity.student_count <= constraint.capacity
            for slot in slots
            if slot.room_id == constraint.room_id
        )

    @satisfies.register(SubjectRequirement)
    def _(self, constraint, slots):
        return all(
            _meets_requirement(constraint, slot)
            for slot in slots
            if slot.subject_id == constraint.subject_id
        )

    @satisfies.register(ClassScheduleLoad)
    def _(self, constraint, slots):
        own = [slot for slot in slots if slot.class_id == constraint.class_id]
        per_day = Counter((slot.date, slot.day) for slot in own)
        if any(count > constraint.max_per_day for count in per_day.values()):
            return False
        for i in range(len(own)):
            for j in range(i + 1, len(own)):
                if concurrent(own[i], own[j]):
                    return False
        return True

    @satisfies.register(LearnedTeacherPreference)
    def _(self, constraint, slots):
        return all(
            constraint.adjustment_for(slot.key) >= 0
            for slot in slots
            if slot.teacher_id == constraint.teacher_id
        )

    @satisfies.register(LearnedConflictAvoidance)
    def _(self, constraint, slots):
        for i in range(len(slots)):
            for j in range(i + 1, len(slots)):
                if concurrent(slots[i], slots[j]) and _pairs_entities(
                    constraint, slots[i], slots[j]
                ):
                    return False
        return True

    def constraint_status(
        self, timetable: SlotSource, constraints: ConstraintSet
    ) -> Tuple[List[Constraint], List[Constraint]]:
        """Split constraints into (satisfied, unsatisfied)."""
        slots = _slots(timetable)
        satisfied, unsatisfied = [], []
        for constraint in constraints:
            (satisfied if self.satisfies(constraint, slots) else unsatisfied).append(
                constraint
            )
        return satisfied, unsatisfied

    def satisfied_weight(self, timetable: SlotSource, constraints: ConstraintSet) -> float:
        satisfied, _ = self.constraint_status(timetable, constraints)
        return sum(c.weight for c in satisfied)

    def learned_bonus(self, timetable: SlotSource, constraints: ConstraintSet) -> float:
        """+confidence per slot on a preferred key, -confidence per avoided key."""
        bonus = 0.0
        for slot in _slots(timetable):
            for preference in constraints.for_entity(
                ConstraintKind.LEARNED_TEACHER_PREFERENCE, slot.teacher_id
            ):
                bonus += preference.adjustment_for(slot.key)
        return bonus

    def fitness(self, timetable: Timetable, constraints: ConstraintSet) -> float:
        return (
            -self.conflict_weight * timetable.conflict_count
            + self.satisfied_weight(timetable, constraints)
            + self.learned_bonus(timetable, constraints)
        )

    def breakdown(self, timetable: Timetable, constraints: ConstraintSet) -> Dict[str, float]:
        return {
            "conflicts": timetable.conflict_count,
            "satisfied_weight": self.satisfied_weight(timetable, constraints),
            "learned_bonus": self.learned_bonus(timetable, constraints),
            "fitness": self.fitness(timetable, constraints),
        }


def _slots(source: SlotSource) -> Tuple[ScheduleSlot, ...]:
    if isinstance(source, Timetable):
        return source.slots
    return tuple(source)
