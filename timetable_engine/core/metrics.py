# timetable_engine/core/metrics.py

"""
Timetable quality metrics.

QualityReporter rolls conflicts, constraint satisfaction and learned
preference alignment into one 0-100 score and produces the distribution
breakdowns that downstream reporting renders.
"""

from typing import Dict, List, Optional, Any, TYPE_CHECKING
from dataclasses import dataclass, field, asdict
from collections import defaultdict
import logging

from .conflicts import conflict_breakdown
from .constraint_types import ConstraintKind, ConstraintSet
from .problem_model import minutes_of
from .solution import Timetable

if TYPE_CHECKING:
    from ..constraints.scorer import ConstraintScorer


logger = logging.getLogger(__name__)

MORNING_END_HOUR = 12
AFTERNOON_END_HOUR = 17


@dataclass
class QualityReport:
    """All KPIs for one timetable. Serializes to plain data with to_dict."""

    # --- Headline ---
    overall: float = 100.0
    conflicts: int = 0
    constraint_satisfaction: float = 0.0  # minus the weight of unsatisfied constraints
    optimization_score: float = 0.0  # learned preference alignment in [-10, 10]

    # --- Constraint report ---
    satisfied_weight: float = 0.0
    total_weight: float = 0.0
    satisfaction_rate: float = 1.0
    unsatisfied_constraints: List[Dict[str, Any]] = field(default_factory=list)
    conflict_breakdown: Dict[str, int] = field(default_factory=dict)

    # --- Coverage ---
    scheduled_count: int = 0
    unplaceable_count: int = 0

    # --- Distributions ---
    room_utilization: Dict[Any, Dict[str, float]] = field(default_factory=dict)
    subject_distribution: Dict[Any, int] = field(default_factory=dict)
    exam_distribution: Dict[Any, int] = field(default_factory=dict)
    day_distribution: Dict[str, int] = field(default_factory=dict)
    slot_distribution: Dict[str, int] = field(default_factory=dict)
    time_slot_analysis: Dict[str, int] = field(default_factory=dict)
    teacher_workload: Dict[Any, Dict[str, int]] = field(default_factory=dict)

    @property
    def is_conflict_free(self) -> bool:
        return self.conflicts == 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def summary(self) -> str:
        lines = [
            f"Overall quality: {self.overall:.1f}/100",
            f"Scheduled: {self.scheduled_count}, unplaceable: {self.unplaceable_count}",
            f"Conflicts: {self.conflicts} "
            + ", ".join(f"{k}={v}" for k, v in self.conflict_breakdown.items()),
            f"Constraints satisfied: {self.satisfaction_rate:.0%} "
            f"({self.satisfied_weight:g}/{self.total_weight:g} weight)",
            f"Learned preference alignment: {self.optimization_score:+.1f}",
        ]
        if self.time_slot_analysis:
            lines.append(
                "Time of day: "
                + ", ".join(f"{k}={v}" for k, v in self.time_slot_analysis.items())
            )
        for item in self.unsatisfied_constraints:
            lines.append(f"  unsatisfied {item['type']} for {item['entity']}")
        return "\n".join(lines)


def time_of_day(hour: int) -> str:
    if hour < MORNING_END_HOUR:
        return "morning"
    if hour < AFTERNOON_END_HOUR:
        return "afternoon"
    return "evening"


class QualityReporter:
    """Pure function object: the same (timetable, constraints) gives the same report."""

    def __init__(self, scorer: Optional["ConstraintScorer"] = None):
        if scorer is None:
            from ..constraints.scorer import ConstraintScorer

            scorer = ConstraintScorer()
        self.scorer = scorer

    def report(self, timetable: Timetable, constraints: ConstraintSet) -> QualityReport:
        conflicts = timetable.conflicts
        satisfied, unsatisfied = self.scorer.constraint_status(timetable, constraints)
        satisfied_weight = sum(c.weight for c in satisfied)
        total_weight = satisfied_weight + sum(c.weight for c in unsatisfied)
        constraint_satisfaction = -sum(c.weight for c in unsatisfied)
        optimization = self.optimization_score(timetable, constraints)

        overall = 100 - len(conflicts) * 10 + constraint_satisfaction + optimization
        overall = min(100.0, max(0.0, overall))

        report = QualityReport(
            overall=overall,
            conflicts=len(conflicts),
            constraint_satisfaction=constraint_satisfaction,
            optimization_score=optimization,
            satisfied_weight=satisfied_weight,
            total_weight=total_weight,
            satisfaction_rate=(satisfied_weight / total_weight) if total_weight else 1.0,
            unsatisfied_constraints=[c.to_dict() for c in unsatisfied],
            conflict_breakdown=conflict_breakdown(conflicts),
            scheduled_count=len(timetable),
            unplaceable_count=len(timetable.unplaceable),
        )
        self._fill_distributions(report, timetable)
        return report

    def optimization_score(self, timetable: Timetable, constraints: ConstraintSet) -> float:
        """Net share of slots on learned-preferred keys, scaled to [-10, 10]."""
        if not len(timetable):
            return 0.0
        net = 0
        for slot in timetable:
            for preference in constraints.for_entity(
                ConstraintKind.LEARNED_TEACHER_PREFERENCE, slot.teacher_id
            ):
                if slot.key in preference.preferred_slots:
                    net += 1
                if slot.key in preference.avoided_slots:
                    net -= 1
        return max(-10.0, min(10.0, 10.0 * net / len(timetable)))

    def _fill_distributions(self, report: QualityReport, timetable: Timetable) -> None:
        rooms: Dict[Any, Dict[str, float]] = {}
        subjects: Dict[Any, int] = defaultdict(int)
        exams: Dict[Any, int] = defaultdict(int)
        days: Dict[str, int] = defaultdict(int)
        slot_keys: Dict[str, int] = defaultdict(int)
        periods = {"morning": 0, "afternoon": 0, "evening": 0}
        workload: Dict[Any, Dict[str, int]] = {}

        for slot in timetable:
            usage = rooms.setdefault(slot.room_id, {"total_exams": 0, "total_hours": 0.0})
            usage["total_exams"] += 1
            usage["total_hours"] += slot.timeslot.duration_minutes / 60.0
            subjects[slot.subject_id] += 1
            exams[slot.exam_id] += 1
            days[slot.day] += 1
            slot_keys[slot.key] += 1
            periods[time_of_day(minutes_of(slot.timeslot.start) // 60)] += 1
            teacher_days = workload.setdefault(slot.teacher_id, {})
            teacher_days[slot.day] = teacher_days.get(slot.day, 0) + 1

        for usage in rooms.values():
            usage["average_hours_per_exam"] = (
                usage["total_hours"] / usage["total_exams"] if usage["total_exams"] else 0.0
            )

        report.room_utilization = rooms
        report.subject_distribution = dict(subjects)
        report.exam_distribution = dict(exams)
        report.day_distribution = dict(days)
        report.slot_distribution = dict(slot_keys)
        report.time_slot_analysis = periods
        report.teacher_workload = workload
