# timetable_engine/learning/learning_store.py

"""
Feedback learning store.

Holds what the engine has learned from human corrections: per-teacher slot
preferences and aversions, weights for pairs of entities that should not be
scheduled together, and a count of reported constraint violations.

The store is an ordinary object handed to the engine. Writes happen under a
re-entrant lock; scheduling runs read an immutable LearningSnapshot taken at
the start of the run and never observe later writes.
"""

import threading
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import singledispatchmethod
from types import MappingProxyType
from typing import Any, Deque, Dict, List, Mapping, Optional, Sequence, Tuple
import logging

from ..config import LearningConfig
from ..core.constraint_types import normalize_pair
from ..core.problem_model import EntityId, entity_ref
from ..core.solution import Timetable
from ..exceptions import FeedbackError
from .corrections import (
    ConflictAvoidanceCorrection,
    ConstraintViolationCorrection,
    Correction,
    TeacherPreferenceCorrection,
    parse_correction,
    parse_corrections,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LearnedPattern:
    teacher_id: EntityId
    preferred_slots: Tuple[str, ...] = ()
    avoided_slots: Tuple[str, ...] = ()
    confidence: int = 0
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "teacher_id": self.teacher_id,
            "preferred_slots": list(self.preferred_slots),
            "avoided_slots": list(self.avoided_slots),
            "confidence": self.confidence,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class FeedbackRecord:
    """One submission of corrections; never modified after creation."""

    id: str
    corrections: Tuple[Correction, ...]
    learning_points: Tuple[Dict[str, Any], ...]
    generation_id: Optional[str] = None
    timetable: Optional[Timetable] = field(default=None, compare=False)
    quality_score: Optional[float] = None
    comment: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "generation_id": self.generation_id,
            "corrections": [c.model_dump() for c in self.corrections],
            "learning_points": [dict(point) for point in self.learning_points],
            "quality_score": self.quality_score,
            "comment": self.comment,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class LearningSnapshot:
    """Read-only view of learned state at one point in time."""

    patterns: Mapping[EntityId, LearnedPattern]
    conflict_weights: Mapping[Tuple[EntityId, EntityId], float]
    version: int = 0
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def empty(cls) -> "LearningSnapshot":
        return cls(MappingProxyType({}), MappingProxyType({}))


class LearningStore:
    def __init__(self, learning_config: Optional[LearningConfig] = None):
        self.config = learning_config or LearningConfig()
        self._lock = threading.RLock()
        self._patterns: Dict[EntityId, LearnedPattern] = {}
        self._conflict_weights: Dict[Tuple[EntityId, EntityId], float] = {}
        self._violations: Counter = Counter()
        self._history: Deque[FeedbackRecord] = deque(
            maxlen=self.config.max_feedback_history
        )
        self._total_corrections = 0
        self._version = 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_correction(self, correction: Any) -> Correction:
        """Validate and apply a single correction."""
        parsed = parse_correction(correction)
        with self._lock:
            self._decay_conflict_weights()
            self._apply(parsed)
            self._total_corrections += 1
            self._version += 1
        return parsed

    def submit_feedback(
        self,
        corrections: Any,
        *,
        generation_id: Optional[str] = None,
        timetable: Optional[Timetable] = None,
        quality_score: Optional[float] = None,
        comment: Optional[str] = None,
    ) -> FeedbackRecord:
        """Validate a batch, then apply it and append one FeedbackRecord.

        Nothing is applied if any correction in the batch is malformed.
        """
        parsed = parse_corrections(corrections)
        record = FeedbackRecord(
            id=str(uuid.uuid4()),
            corrections=tuple(parsed),
            learning_points=tuple(c.learning_point() for c in parsed),
            generation_id=generation_id,
            timetable=timetable,
            quality_score=quality_score,
            comment=comment,
        )
        with self._lock:
            self._decay_conflict_weights()
            for correction in parsed:
                self._apply(correction)
            self._total_corrections += len(parsed)
            self._history.append(record)
            self._version += 1

        logger.info(
            f"Feedback {record.id} applied: {len(parsed)} correction(s)"
            + (f" for generation {generation_id}" if generation_id else "")
        )
        return record

    @singledispatchmethod
    def _apply(self, correction) -> None:
        raise TypeError(f"Unsupported correction type: {type(correction).__name__}")

    @_apply.register(TeacherPreferenceCorrection)
    def _(self, correction) -> None:
        current = self._patterns.get(correction.teacher_id) or LearnedPattern(
            correction.teacher_id
        )
        preferred = current.preferred_slots
        if correction.new_slot not in preferred:
            preferred = preferred + (correction.new_slot,)
        avoided = current.avoided_slots
        if correction.old_slot not in avoided:
            avoided = avoided + (correction.old_slot,)
        self._patterns[correction.teacher_id] = LearnedPattern(
            correction.teacher_id,
            preferred,
            avoided,
            min(self.config.max_confidence, current.confidence + 1),
            datetime.now(timezone.utc),
        )

    @_apply.register(ConflictAvoidanceCorrection)
    def _(self, correction) -> None:
        pair = normalize_pair(correction.entity_a, correction.entity_b)
        weight = self._conflict_weights.get(pair, 0.0) + 1.0
        if self.config.conflict_weight_cap is not None:
            weight = min(weight, self.config.conflict_weight_cap)
        self._conflict_weights[pair] = weight

    @_apply.register(ConstraintViolationCorrection)
    def _(self, correction) -> None:
        self._violations[correction.constraint] += 1
        logger.info(
            f"Constraint violation reported: {correction.constraint} "
            f"(severity {correction.severity})"
        )

    def _decay_conflict_weights(self) -> None:
        decay = self.config.conflict_weight_decay
        if decay >= 1.0:
            return
        for pair in list(self._conflict_weights):
            self._conflict_weights[pair] *= decay

    def reset(self) -> None:
        """Forget everything learned, including feedback history."""
        with self._lock:
            self._patterns.clear()
            self._conflict_weights.clear()
            self._violations.clear()
            self._history.clear()
            self._total_corrections = 0
            self._version += 1
        logger.warning("Learning store reset")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> LearningSnapshot:
        with self._lock:
            return LearningSnapshot(
                MappingProxyType(dict(self._patterns)),
                MappingProxyType(dict(self._conflict_weights)),
                self._version,
            )

    def pattern_for(self, teacher_id: EntityId) -> Optional[LearnedPattern]:
        with self._lock:
            return self._patterns.get(teacher_id)

    def conflict_weight(self, entity_a: EntityId, entity_b: EntityId) -> float:
        with self._lock:
            return self._conflict_weights.get(normalize_pair(entity_a, entity_b), 0.0)

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def history(self) -> List[FeedbackRecord]:
        with self._lock:
            return list(self._history)

    def get_learning_analytics(self) -> Dict[str, Any]:
        with self._lock:
            history = list(self._history)
            patterns = list(self._patterns.values())
            conflict_count = len(self._conflict_weights)
            violations = dict(self._violations)
            total_corrections = self._total_corrections

        recent = history[-self.config.recent_feedback_limit:][::-1]
        recent_patterns = sorted(
            patterns,
            key=lambda p: p.updated_at or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )[: self.config.recent_feedback_limit]
        return {
            "total_patterns": len(patterns),
            "total_feedback": len(history),
            "total_corrections": total_corrections,
            "recent_patterns": [p.to_dict() for p in recent_patterns],
            "recent_feedback": [record.to_dict() for record in recent],
            "constraint_violations": violations,
            "learning_progress": {
                "average_quality": _average_quality(history),
                "improvement_rate": improvement_rate(history),
                "patterns_learned": len(patterns),
                "constraint_weights": conflict_count,
                "average_confidence": (
                    sum(p.confidence for p in patterns) / len(patterns)
                    if patterns
                    else 0.0
                ),
            },
        }

    # ------------------------------------------------------------------
    # Persistence hooks for the caller
    # ------------------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": self._version,
                "patterns": [p.to_dict() for p in self._patterns.values()],
                "conflict_weights": [
                    [a, b, weight] for (a, b), weight in self._conflict_weights.items()
                ],
                "constraint_violations": dict(self._violations),
            }

    def load_state(self, state: Mapping[str, Any]) -> None:
        """Replace learned state with an exported one; history is not restored."""
        try:
            patterns = {}
            for item in state.get("patterns", []):
                confidence = int(item.get("confidence", 0))
                if confidence < 0:
                    raise ValueError("confidence must be non-negative")
                patterns[item["teacher_id"]] = LearnedPattern(
                    item["teacher_id"],
                    tuple(item.get("preferred_slots", ())),
                    tuple(item.get("avoided_slots", ())),
                    min(self.config.max_confidence, confidence),
                )
            weights = {}
            for entity_a, entity_b, weight in state.get("conflict_weights", []):
                if float(weight) < 0:
                    raise ValueError("conflict weights must be non-negative")
                pair = normalize_pair(entity_ref(entity_a), entity_ref(entity_b))
                weights[pair] = float(weight)
            violations = Counter(
                {str(k): int(v) for k, v in state.get("constraint_violations", {}).items()}
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise FeedbackError("Malformed learning state", cause=exc) from exc

        with self._lock:
            self._patterns = patterns
            self._conflict_weights = weights
            self._violations = violations
            self._version += 1
        logger.info(
            f"Loaded learning state: {len(patterns)} patterns, {len(weights)} conflict weights"
        )


def _average_quality(history: Sequence[FeedbackRecord]) -> float:
    scores = [record.quality_score or 0.0 for record in history]
    return sum(scores) / len(scores) if scores else 0.0


def improvement_rate(history: Sequence[FeedbackRecord]) -> float:
    """Percentage change in average quality between the older and newer half."""
    if len(history) < 2:
        return 0.0
    middle = len(history) // 2
    first = _average_quality(history[:middle])
    second = _average_quality(history[middle:])
    if first == 0:
        return 0.0
    return (second - first) / first * 100
