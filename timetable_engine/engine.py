# timetable_engine/engine.py

"""
TimetableEngine: the operations callers use.

- generate_schedule: validate input, build constraints (entity rules plus a
  snapshot of learned patterns), place activities greedily, refine with the
  genetic optimizer and report quality.
- check_conflicts: pre-flight check of a single manual edit.
- submit_feedback: feed human corrections into the learning store.

The engine owns no global state; its LearningStore is injected and may be
shared between engines.
"""

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from .config import SchedulingEngineConfig, config as default_config
from .constraints.constraint_builder import apply_learned_patterns, build_constraints
from .constraints.scorer import ConstraintScorer
from .core.conflicts import check_conflicts, validate_timetable, ValidationResult
from .core.constraint_types import Constraint, ConstraintSet, kind_of
from .core.metrics import QualityReport, QualityReporter
from .core.problem_model import (
    Activity,
    ExamDay,
    Period,
    Room,
    Subject,
    Teacher,
    default_days,
    default_periods,
)
from .core.solution import Conflict, ScheduleSlot, Timetable, UnplaceableActivity
from .exceptions import FeedbackError, InputError
from .genetic_algorithm.evolution_manager import (
    GeneticOptimizer,
    OptimizationReport,
    OptimizerParameters,
)
from .learning.learning_store import FeedbackRecord, LearningStore
from .scheduling.initial_builder import InitialScheduleBuilder
from .utils.logging import SchedulingLogger, SchedulingPhase, log_level_from_name

logger = logging.getLogger(__name__)

ALGORITHM_NAME = "genetic_algorithm"


@dataclass
class GenerateOptions:
    """Per-request overrides; ``None`` falls back to the engine config."""

    population_size: Optional[int] = None
    generations: Optional[int] = None
    selection_ratio: Optional[float] = None
    elite_count: Optional[int] = None
    seed: Optional[int] = None
    max_workers: Optional[int] = None
    timeout_seconds: Optional[float] = None
    stagnation_limit: Optional[int] = None
    max_exams_per_day: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerateOptions":
        aliases = {
            "populationSize": "population_size",
            "selectionRatio": "selection_ratio",
            "eliteCount": "elite_count",
            "maxWorkers": "max_workers",
            "timeoutSeconds": "timeout_seconds",
            "stagnationLimit": "stagnation_limit",
            "maxExamsPerDay": "max_exams_per_day",
        }
        known = set(cls.__dataclass_fields__)
        values = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in known:
                raise InputError(f"Unknown option '{key}'", field="options")
            values[name] = value
        return cls(**values)

    def to_parameters(self, engine_config: SchedulingEngineConfig) -> OptimizerParameters:
        params = OptimizerParameters.from_config(engine_config.genetic_algorithm)
        for name in (
            "population_size",
            "generations",
            "selection_ratio",
            "elite_count",
            "seed",
            "max_workers",
            "timeout_seconds",
            "stagnation_limit",
        ):
            value = getattr(self, name)
            if value is not None:
                setattr(params, name, value)
        return params

    def daily_limit(self, engine_config: SchedulingEngineConfig) -> int:
        """Per-class exam limit per day; an explicit value wins over the grid default."""
        if self.max_exams_per_day is None:
            return engine_config.grid.max_exams_per_day
        limit = self.max_exams_per_day
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InputError(
                "Invalid optimizer parameters",
                field="options",
                details=["max_exams_per_day must be a positive integer"],
            )
        return limit


@dataclass
class GenerationResult:
    generation_id: str
    timetable: Timetable
    report: QualityReport
    constraints: ConstraintSet
    optimization: Optional[OptimizationReport] = None
    validation: Optional[ValidationResult] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def unplaceable(self) -> Sequence[UnplaceableActivity]:
        return self.timetable.unplaceable

    @property
    def conflicts(self) -> Sequence[Conflict]:
        return self.timetable.conflicts

    @property
    def quality_score(self) -> float:
        return self.report.overall

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation_id": self.generation_id,
            "timetable": self.timetable.to_dict(),
            "report": self.report.to_dict(),
            "optimization": self.optimization.to_dict() if self.optimization else None,
            "validation": self.validation.to_dict() if self.validation else None,
            "metadata": dict(self.metadata),
        }


class TimetableEngine:
    def __init__(
        self,
        learning_store: Optional[LearningStore] = None,
        engine_config: Optional[SchedulingEngineConfig] = None,
    ):
        self.config = engine_config or default_config
        self.learning_store = learning_store or LearningStore(self.config.learning)
        self.scorer = ConstraintScorer(
            self.config.scoring, self.config.genetic_algorithm.conflict_weight
        )
        self.builder = InitialScheduleBuilder(self.scorer)
        self.reporter = QualityReporter(self.scorer)
        self._recent: "OrderedDict[str, GenerationResult]" = OrderedDict()
        self._recent_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_schedule(
        self,
        activities: Sequence[Activity],
        teachers: Sequence[Teacher],
        rooms: Sequence[Room],
        constraints: Optional[Iterable[Constraint]] = None,
        options: Optional[Any] = None,
        *,
        days: Optional[Sequence[ExamDay]] = None,
        periods: Optional[Sequence[Period]] = None,
        subjects: Optional[Sequence[Subject]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> GenerationResult:
        """Build and optimize a timetable.

        Raises InputError for malformed input. Unplaceable activities and
        residual conflicts are part of the returned result.
        """
        generation_id = str(uuid.uuid4())
        started = time.monotonic()
        slog = SchedulingLogger(
            name="timetable_engine.runs",
            level=log_level_from_name(self.config.log_level),
            correlation_id=generation_id,
        )

        with slog.phase_context(SchedulingPhase.INPUT_VALIDATION):
            opts = self._coerce_options(options)
            params = opts.to_parameters(self.config)
            params.validate()
            daily_limit = opts.daily_limit(self.config)
            activities = _as_list(activities, Activity, "activities")
            extra_constraints = _as_constraints(constraints)
            if not activities:
                logger.info("No activities supplied; returning an empty timetable")
                return self._finish(
                    generation_id,
                    Timetable.empty(),
                    ConstraintSet(extra_constraints),
                    None,
                    slog,
                    params,
                    learning_version=self.learning_store.version,
                )
            teachers = _as_list(teachers, Teacher, "teachers", required=True)
            rooms = _as_list(rooms, Room, "rooms", required=True)
            subjects = _as_list(subjects or [], Subject, "subjects")
            days = self._grid_days(days)
            periods = self._grid_periods(periods)
            _check_activities(activities)

        deadline = (
            started + params.timeout_seconds if params.timeout_seconds is not None else None
        )

        with slog.phase_context(SchedulingPhase.CONSTRAINT_BUILDING):
            snapshot = self.learning_store.snapshot()
            entity_constraints = build_constraints(
                teachers,
                rooms,
                subjects,
                activities,
                weights=self.config.constraint_weights,
                max_exams_per_day=daily_limit,
            )
            constraint_set = apply_learned_patterns(
                entity_constraints + extra_constraints, snapshot, self.config.learning
            )
            slog.info(
                "Constraint set ready",
                phase=SchedulingPhase.CONSTRAINT_BUILDING,
                context=constraint_set.counts(),
            )

        with slog.phase_context(SchedulingPhase.INITIAL_PLACEMENT):
            with slog.operation_timer("initial_build"):
                seed = self.builder.build(
                    activities, teachers, rooms, constraint_set, days, periods
                )

        optimization: Optional[OptimizationReport] = None
        best = seed
        if len(seed):
            with slog.phase_context(
                SchedulingPhase.GA_OPTIMIZATION,
                {"population_size": params.population_size, "generations": params.generations},
            ):
                optimizer = GeneticOptimizer(self.scorer, params, slog)
                optimization = optimizer.optimize(
                    seed, constraint_set, cancel_event=cancel_event, deadline=deadline
                )
                best = optimization.best
        else:
            slog.warn(
                "Nothing was placed; skipping optimization",
                phase=SchedulingPhase.GA_OPTIMIZATION,
                context={"unplaceable": len(seed.unplaceable)},
            )

        return self._finish(
            generation_id,
            best,
            constraint_set,
            optimization,
            slog,
            params,
            learning_version=snapshot.version,
            activity_count=len(activities),
            learned_patterns=len(snapshot.patterns) + len(snapshot.conflict_weights),
        )

    def _finish(
        self,
        generation_id: str,
        timetable: Timetable,
        constraint_set: ConstraintSet,
        optimization: Optional[OptimizationReport],
        slog: SchedulingLogger,
        params: OptimizerParameters,
        learning_version: int,
        activity_count: int = 0,
        learned_patterns: int = 0,
    ) -> GenerationResult:
        with slog.phase_context(SchedulingPhase.QUALITY_REPORTING):
            report = self.reporter.report(timetable, constraint_set)
            timetable.quality_score = report.overall
            validation = validate_timetable(
                timetable, self.config.grid.max_teacher_slots_per_day
            )
            slog.log_solution_quality(
                {
                    "overall": report.overall,
                    "conflicts": report.conflicts,
                    "unplaceable": report.unplaceable_count,
                }
            )

        result = GenerationResult(
            generation_id=generation_id,
            timetable=timetable,
            report=report,
            constraints=constraint_set,
            optimization=optimization,
            validation=validation,
            metadata={
                "algorithm": ALGORITHM_NAME,
                "generations": params.generations,
                "generations_run": optimization.generations_run if optimization else 0,
                "population_size": params.population_size,
                "selection_ratio": params.selection_ratio,
                "activities": activity_count,
                "total_slots": len(timetable),
                "constraints_applied": len(constraint_set),
                "learning_patterns_applied": learned_patterns,
                "learning_version": learning_version,
                "stopped_early": optimization.stopped_early if optimization else False,
                "generated_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        self._remember(result)
        logger.info(
            f"Generation {generation_id}: {len(timetable)} slots, "
            f"{report.conflicts} conflicts, quality {report.overall:.1f}"
        )
        return result

    def _remember(self, result: GenerationResult) -> None:
        with self._recent_lock:
            self._recent[result.generation_id] = result
            while len(self._recent) > self.config.recent_generations_kept:
                self._recent.popitem(last=False)

    def get_generation(self, generation_id: str) -> Optional[GenerationResult]:
        with self._recent_lock:
            return self._recent.get(generation_id)

    # ------------------------------------------------------------------
    # Conflicts and feedback
    # ------------------------------------------------------------------

    def check_conflicts(
        self, candidate_slot: ScheduleSlot, existing_timetable: Any
    ) -> List[Conflict]:
        if not isinstance(candidate_slot, ScheduleSlot):
            raise InputError(
                f"Candidate must be a ScheduleSlot, got {type(candidate_slot).__name__}",
                field="candidate_slot",
            )
        if isinstance(existing_timetable, Timetable):
            slots = existing_timetable.slots
        else:
            slots = _as_list(existing_timetable, ScheduleSlot, "existing_timetable")
        return check_conflicts(candidate_slot, slots)

    def validate(self, timetable: Timetable) -> ValidationResult:
        return validate_timetable(timetable, self.config.grid.max_teacher_slots_per_day)

    def submit_feedback(
        self,
        corrections: Any,
        *,
        generation_id: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> FeedbackRecord:
        """Apply one correction or a batch; raises FeedbackError if malformed."""
        timetable = None
        quality_score = None
        if generation_id is not None:
            previous = self.get_generation(generation_id)
            if previous is None:
                logger.warning(
                    f"Feedback references unknown generation {generation_id}"
                )
            else:
                timetable = previous.timetable
                quality_score = previous.report.overall
        if comment is not None and not isinstance(comment, str):
            raise FeedbackError("Comment must be text", details={"comment": repr(comment)})
        return self.learning_store.submit_feedback(
            corrections,
            generation_id=generation_id,
            timetable=timetable,
            quality_score=quality_score,
            comment=comment,
        )

    def get_learning_analytics(self) -> Dict[str, Any]:
        return self.learning_store.get_learning_analytics()

    # ------------------------------------------------------------------
    # Input helpers
    # ------------------------------------------------------------------

    def _coerce_options(self, options: Any) -> GenerateOptions:
        if options is None:
            return GenerateOptions()
        if isinstance(options, GenerateOptions):
            return options
        if isinstance(options, dict):
            return GenerateOptions.from_dict(options)
        raise InputError(
            f"Options must be GenerateOptions or a dict, got {type(options).__name__}",
            field="options",
        )

    def _grid_days(self, days: Optional[Sequence[ExamDay]]) -> List[ExamDay]:
        if days is None:
            return default_days(self.config.grid.days)
        days = _as_list(days, ExamDay, "days", required=True)
        seen = set()
        for day in days:
            if (day.name, day.date) in seen:
                raise InputError(f"Duplicate grid day {day.name}", field="days")
            seen.add((day.name, day.date))
        return days

    def _grid_periods(self, periods: Optional[Sequence[Period]]) -> List[Period]:
        if periods is None:
            grid = self.config.grid
            return default_periods(
                grid.first_period_start, grid.period_minutes, grid.periods_per_day
            )
        periods = _as_list(periods, Period, "periods", required=True)
        for period in periods:
            if period.duration_minutes <= 0:
                raise InputError(
                    f"Period {period.start}-{period.end} is empty or reversed",
                    field="periods",
                )
        return sorted(periods, key=lambda p: (p.start, p.end))


def _as_list(items: Any, expected: type, name: str, required: bool = False) -> List[Any]:
    if items is None or isinstance(items, (str, bytes, dict)):
        raise InputError(f"{name} must be a sequence", field=name)
    try:
        items = list(items)
    except TypeError as exc:
        raise InputError(f"{name} must be a sequence", field=name, cause=exc) from exc
    if required and not items:
        raise InputError(f"{name} must not be empty", field=name)
    for index, item in enumerate(items):
        if not isinstance(item, expected):
            raise InputError(
                f"{name}[{index}] must be {expected.__name__}, got {type(item).__name__}",
                field=name,
            )
    ids = [getattr(item, "id") for item in items if hasattr(item, "id")]
    if len(ids) != len(set(ids)):
        raise InputError(f"{name} contains duplicate ids", field=name)
    return items


def _as_constraints(constraints: Optional[Iterable[Constraint]]) -> List[Constraint]:
    if constraints is None:
        return []
    if isinstance(constraints, ConstraintSet):
        return list(constraints)
    result = []
    for index, constraint in enumerate(constraints):
        try:
            kind_of(constraint)
        except TypeError as exc:
            raise InputError(
                f"constraints[{index}] is not a supported constraint",
                field="constraints",
                cause=exc,
            ) from exc
        result.append(constraint)
    return result


def _check_activities(activities: Sequence[Activity]) -> None:
    seen = set()
    for index, activity in enumerate(activities):
        if activity.student_count < 0:
            raise InputError(
                f"activities[{index}] has a negative student count", field="activities"
            )
        if activity.duration_minutes is not None and activity.duration_minutes <= 0:
            raise InputError(
                f"activities[{index}] has a non-positive duration", field="activities"
            )
        if activity.key in seen:
            raise InputError(
                f"activities[{index}] duplicates {activity.key}", field="activities"
            )
        seen.add(activity.key)
