# timetable_engine/utils/__init__.py

"""
Utilities package for the timetable engine.
Provides structured logging for generation runs.
"""

from .logging import (
    SchedulingLogger,
    LogLevel,
    SchedulingPhase,
    LogEntry,
    GALogMetrics,
    StructuredFormatter,
    log_level_from_name,
)

__all__ = [
    "SchedulingLogger",
    "LogLevel",
    "SchedulingPhase",
    "LogEntry",
    "GALogMetrics",
    "StructuredFormatter",
    "log_level_from_name",
]
