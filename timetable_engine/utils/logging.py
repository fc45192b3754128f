# timetable_engine/utils/logging.py

"""
Structured run logging for the timetable engine.

A SchedulingLogger is created per generation request and tagged with the
generation id. Every entry is kept in a bounded buffer and forwarded to a
standard ``logging.Logger`` as a JSON document; StructuredFormatter turns
that document back into one readable console line. Phase durations and
per-generation GA metrics are aggregated as they arrive.
"""

import json
import logging
import statistics
import threading
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import IntEnum, Enum
from typing import Any, Deque, Dict, Iterator, List, Optional, Union

Number = Union[int, float]


class LogLevel(IntEnum):
    """Run log levels; values are standard ``logging`` levels"""

    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    NOTICE = 25
    WARN = logging.WARNING
    ERROR = logging.ERROR
    FATAL = logging.CRITICAL


logging.addLevelName(LogLevel.TRACE, "TRACE")
logging.addLevelName(LogLevel.NOTICE, "NOTICE")


class SchedulingPhase(Enum):
    """Stages of one generation request"""

    INITIALIZATION = "initialization"
    INPUT_VALIDATION = "input_validation"
    CONSTRAINT_BUILDING = "constraint_building"
    INITIAL_PLACEMENT = "initial_placement"
    GA_OPTIMIZATION = "ga_optimization"
    QUALITY_REPORTING = "quality_reporting"
    FEEDBACK_LEARNING = "feedback_learning"


@dataclass
class LogEntry:
    timestamp: datetime
    level: LogLevel
    message: str
    phase: Optional[SchedulingPhase] = None
    component: str = "engine"
    context: Dict[str, Any] = field(default_factory=dict)
    performance_metrics: Dict[str, Number] = field(default_factory=dict)
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["level"] = self.level.name
        data["phase"] = self.phase.value if self.phase else None
        return data


@dataclass
class GALogMetrics:
    """Statistics for one GA generation"""

    generation: int = 0
    population_size: int = 0
    best_fitness: float = 0.0
    average_fitness: float = 0.0
    worst_fitness: float = 0.0
    fitness_std: float = 0.0
    diversity_score: float = 0.0
    elite_count: int = 0
    evaluations: int = 0


class SchedulingLogger:
    """Per-run structured logger.

    Entries are buffered (newest ``max_log_entries`` kept) so a caller can
    inspect or export the log of a run after it finishes.
    """

    def __init__(
        self,
        name: str = "timetable_engine",
        level: LogLevel = LogLevel.INFO,
        correlation_id: Optional[str] = None,
        max_log_entries: int = 10000,
    ):
        self.name = name
        self.level = level
        self.correlation_id = correlation_id

        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredFormatter())
            self._logger.addHandler(handler)

        self._lock = threading.Lock()
        self._entries: Deque[LogEntry] = deque(maxlen=max_log_entries)
        self._open_phases: Dict[SchedulingPhase, float] = {}
        self._phase_durations: Dict[SchedulingPhase, List[float]] = defaultdict(list)
        self._operation_durations: Dict[str, List[float]] = defaultdict(list)
        self._counters: Dict[str, int] = defaultdict(int)
        self._generations: List[GALogMetrics] = []

    def log(
        self,
        level: LogLevel,
        message: str,
        phase: Optional[SchedulingPhase] = None,
        component: str = "engine",
        context: Optional[Dict[str, Any]] = None,
        performance_metrics: Optional[Dict[str, Number]] = None,
    ) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(),
            level=level,
            message=message,
            phase=phase,
            component=component,
            context=dict(context or {}),
            performance_metrics=dict(performance_metrics or {}),
            correlation_id=self.correlation_id,
        )
        with self._lock:
            self._entries.append(entry)
        if self._logger.isEnabledFor(level):
            self._logger.log(level, json.dumps(entry.to_dict(), default=str))
        return entry

    def trace(self, message: str, **kwargs):
        self.log(LogLevel.TRACE, message, **kwargs)

    def debug(self, message: str, **kwargs):
        self.log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self.log(LogLevel.INFO, message, **kwargs)

    def notice(self, message: str, **kwargs):
        self.log(LogLevel.NOTICE, message, **kwargs)

    def warn(self, message: str, **kwargs):
        self.log(LogLevel.WARN, message, **kwargs)

    def error(self, message: str, **kwargs):
        self.log(LogLevel.ERROR, message, **kwargs)

    def fatal(self, message: str, **kwargs):
        self.log(LogLevel.FATAL, message, **kwargs)

    # Phases and timers

    def log_phase_start(
        self, phase: SchedulingPhase, context: Optional[Dict[str, Any]] = None
    ):
        self._open_phases[phase] = time.perf_counter()
        self.info(f"{phase.value} started", phase=phase, context=context)

    def log_phase_end(
        self, phase: SchedulingPhase, context: Optional[Dict[str, Any]] = None
    ):
        started = self._open_phases.pop(phase, None)
        if started is None:
            self.warn(f"{phase.value} ended but was never started", phase=phase)
            return
        elapsed = time.perf_counter() - started
        with self._lock:
            self._phase_durations[phase].append(elapsed)
        self.info(
            f"{phase.value} finished",
            phase=phase,
            context=context,
            performance_metrics={"duration_seconds": elapsed},
        )

    @contextmanager
    def phase_context(
        self, phase: SchedulingPhase, context: Optional[Dict[str, Any]] = None
    ) -> Iterator[None]:
        self.log_phase_start(phase, context)
        try:
            yield
        finally:
            self.log_phase_end(phase, context)

    @contextmanager
    def operation_timer(self, operation_name: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            with self._lock:
                self._operation_durations[operation_name].append(elapsed)
            self.debug(
                f"{operation_name} took {elapsed:.4f}s",
                performance_metrics={"duration_seconds": elapsed},
            )

    def increment_counter(self, counter_name: str, value: int = 1):
        with self._lock:
            self._counters[counter_name] += value

    def get_counters(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)

    # Genetic algorithm events

    def log_ga_generation(self, metrics: GALogMetrics):
        with self._lock:
            self._generations.append(metrics)
        self.debug(
            f"generation {metrics.generation}: best={metrics.best_fitness:.2f} "
            f"avg={metrics.average_fitness:.2f}",
            phase=SchedulingPhase.GA_OPTIMIZATION,
            component="genetic_algorithm",
            context={"generation": metrics.generation, "evaluations": metrics.evaluations},
            performance_metrics={
                "best_fitness": metrics.best_fitness,
                "average_fitness": metrics.average_fitness,
                "diversity_score": metrics.diversity_score,
            },
        )

    def log_ga_stop(self, generation: int, reason: str):
        self.notice(
            f"GA stopped after generation {generation}: {reason}",
            phase=SchedulingPhase.GA_OPTIMIZATION,
            component="genetic_algorithm",
            context={"generation": generation, "reason": reason},
        )

    def log_solution_quality(self, solution_metrics: Dict[str, Any]):
        self.info(
            "timetable quality",
            phase=SchedulingPhase.QUALITY_REPORTING,
            component="quality_reporter",
            context=solution_metrics,
        )

    # Summaries

    def get_phase_performance_summary(self) -> Dict[str, Dict[str, Number]]:
        with self._lock:
            durations = {phase: list(values) for phase, values in self._phase_durations.items()}
        return {
            phase.value: {
                "total_time": sum(values),
                "average_time": statistics.mean(values),
                "count": len(values),
            }
            for phase, values in durations.items()
        }

    def get_ga_metrics_summary(self) -> Dict[str, Any]:
        with self._lock:
            generations = list(self._generations)
        if not generations:
            return {}
        first, last = generations[0], generations[-1]
        return {
            "generations": len(generations),
            "final_best_fitness": last.best_fitness,
            "final_diversity": last.diversity_score,
            "fitness_improvement": last.best_fitness - first.best_fitness,
        }

    def entries(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def export_logs(self, filepath: str):
        """Dump buffered entries to ``filepath`` as a JSON array"""
        payload = [entry.to_dict() for entry in self.entries()]
        with open(filepath, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, default=str)

    def clear_logs(self):
        with self._lock:
            self._entries.clear()
            self._phase_durations.clear()
            self._operation_durations.clear()
            self._counters.clear()
            self._generations.clear()


class StructuredFormatter(logging.Formatter):
    """One console line per JSON entry: bracketed tags, message, metrics"""

    TAGS = ("timestamp", "level", "correlation_id", "phase", "component")

    def format(self, record):
        try:
            data = json.loads(record.getMessage())
        except (TypeError, ValueError):
            return super().format(record)
        if not isinstance(data, dict):
            return super().format(record)

        parts = [f"[{data[tag]}]" for tag in self.TAGS if data.get(tag)]
        parts.append(str(data.get("message", "")))
        metrics = data.get("performance_metrics") or {}
        if metrics:
            parts.append("| " + " | ".join(f"{k}={v}" for k, v in metrics.items()))
        return " ".join(parts)


def log_level_from_name(name: str) -> LogLevel:
    """``warning`` -> WARN, ``critical`` -> FATAL, others by name"""
    aliases = {"WARNING": "WARN", "CRITICAL": "FATAL"}
    key = name.upper()
    return LogLevel[aliases.get(key, key)]
