# timetable_engine/core/problem_model.py

"""
Time and resource model for timetable generation.

Entities here are read-only snapshots supplied by the caller. A scheduling
grid is a list of ExamDay values crossed with a list of Period values; every
cell of the grid becomes a TimeSlot.
"""

from __future__ import annotations
import re
from typing import Dict, List, Optional, Any, Tuple, FrozenSet, Hashable, Iterable, Union
from dataclasses import dataclass, field
from datetime import time, date, datetime, timedelta
import logging

logger = logging.getLogger(__name__)

EntityId = Hashable

# Kinds a learned conflict pair can name explicitly, e.g. ("teacher", 7)
ENTITY_KINDS = ("teacher", "room", "subject", "class", "exam")

SLOT_KEY_PATTERN = re.compile(r"^(?P<day>[A-Za-z]+)-(?P<start>\d{2}:\d{2})$")


def parse_time(value: Any) -> time:
    """Accept ``time`` values or ``HH:MM`` strings."""
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        return datetime.strptime(value.strip(), "%H:%M").time()
    raise ValueError(f"Cannot interpret {value!r} as a time of day")


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def entity_ref(value: Any) -> EntityId:
    """Plain ids pass through; ``[kind, id]`` becomes a hashable ``(kind, id)`` tag."""
    if isinstance(value, (list, tuple)):
        if len(value) != 2 or value[0] not in ENTITY_KINDS:
            raise ValueError(f"{value!r} is not a (kind, id) entity reference")
        return (value[0], value[1])
    return value


def describe_entity(ref: EntityId) -> str:
    if isinstance(ref, tuple):
        return f"{ref[0]}:{ref[1]}"
    return str(ref)


def make_slot_key(day: str, start: time) -> str:
    return f"{day}-{start.strftime('%H:%M')}"


def is_slot_key(value: Any) -> bool:
    return isinstance(value, str) and SLOT_KEY_PATTERN.match(value) is not None


@dataclass(frozen=True)
class TimeSlot:
    """Half-open interval ``[start, end)`` on a named grid day."""

    day: str
    start: time
    end: time

    def __post_init__(self):
        object.__setattr__(self, "start", parse_time(self.start))
        object.__setattr__(self, "end", parse_time(self.end))
        if self.start > self.end:
            raise ValueError(
                f"TimeSlot on {self.day} ends ({self.end}) before it starts ({self.start})"
            )

    @property
    def key(self) -> str:
        return make_slot_key(self.day, self.start)

    @property
    def duration_minutes(self) -> int:
        return minutes_of(self.end) - minutes_of(self.start)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    @property
    def label(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "start": self.start.strftime("%H:%M"),
            "end": self.end.strftime("%H:%M"),
            "key": self.key,
        }


@dataclass(frozen=True)
class Period:
    """A column of the grid, repeated on every day."""

    start: time
    end: time

    def __post_init__(self):
        object.__setattr__(self, "start", parse_time(self.start))
        object.__setattr__(self, "end", parse_time(self.end))

    @property
    def duration_minutes(self) -> int:
        return minutes_of(self.end) - minutes_of(self.start)

    def on(self, day: str) -> TimeSlot:
        return TimeSlot(day, self.start, self.end)


@dataclass(frozen=True)
class ExamDay:
    """A row of the grid. ``date`` is optional; undated days match by weekday."""

    name: str
    date: Optional[date] = None

    def matches(self, target: date) -> bool:
        if self.date is not None:
            return self.date == target
        return self.name == target.strftime("%a")


@dataclass(frozen=True)
class Room:
    id: EntityId
    name: str = ""
    capacity: int = 0
    room_type: str = "classroom"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "capacity": self.capacity,
            "room_type": self.room_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Room":
        return cls(
            id=data["id"],
            name=data.get("name", str(data["id"])),
            capacity=int(data.get("capacity", 0)),
            room_type=data.get("room_type", data.get("type", "classroom")),
        )


@dataclass(frozen=True)
class Teacher:
    """An invigilating teacher.

    ``availability`` holds slot keys such as ``"Mon-09:00"``; ``None`` means the
    teacher has not declared availability and is treated as always available.
    """

    id: EntityId
    name: str = ""
    subject_ids: FrozenSet[EntityId] = field(default_factory=frozenset)
    availability: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        object.__setattr__(self, "subject_ids", frozenset(self.subject_ids))
        if self.availability is not None:
            object.__setattr__(self, "availability", frozenset(self.availability))

    def can_teach(self, subject_id: EntityId) -> bool:
        return subject_id in self.subject_ids

    def is_available(self, slot: TimeSlot) -> bool:
        return self.availability is None or slot.key in self.availability

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Teacher":
        availability = data.get("availability", data.get("available_slots"))
        return cls(
            id=data["id"],
            name=data.get("name", str(data["id"])),
            subject_ids=frozenset(data.get("subject_ids", data.get("subjects", ()))),
            availability=frozenset(availability) if availability is not None else None,
        )


@dataclass(frozen=True)
class Subject:
    id: EntityId
    name: str = ""
    room_type: Optional[str] = None
    min_capacity: Optional[int] = None

    @property
    def has_requirements(self) -> bool:
        return self.room_type is not None or self.min_capacity is not None


@dataclass(frozen=True)
class SchoolClass:
    id: EntityId
    name: str = ""
    student_count: int = 0
    subject_ids: Tuple[EntityId, ...] = ()


@dataclass(frozen=True)
class Exam:
    id: EntityId
    name: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class Activity:
    """One exam sitting: an (exam, subject, class) triple to be placed."""

    exam_id: EntityId
    subject_id: EntityId
    class_id: EntityId
    student_count: int = 0
    teacher_id: Optional[EntityId] = None
    date: Optional[date] = None
    duration_minutes: Optional[int] = None

    @property
    def key(self) -> Tuple[EntityId, EntityId, EntityId]:
        return (self.exam_id, self.subject_id, self.class_id)

    def fits(self, slot: Union[TimeSlot, Period]) -> bool:
        """True when the slot is long enough for the sitting."""
        if self.duration_minutes is None:
            return True
        return slot.duration_minutes >= self.duration_minutes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exam_id": self.exam_id,
            "subject_id": self.subject_id,
            "class_id": self.class_id,
            "student_count": self.student_count,
            "teacher_id": self.teacher_id,
            "date": self.date.isoformat() if self.date else None,
            "duration_minutes": self.duration_minutes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Activity":
        raw_date = data.get("date")
        if isinstance(raw_date, str):
            raw_date = date.fromisoformat(raw_date)
        return cls(
            exam_id=data["exam_id"],
            subject_id=data["subject_id"],
            class_id=data["class_id"],
            student_count=int(data.get("student_count", 0)),
            teacher_id=data.get("teacher_id"),
            date=raw_date,
            duration_minutes=data.get("duration_minutes"),
        )


def activities_for_exam(
    exam: Exam,
    classes: Iterable[SchoolClass],
    subject_dates: Optional[Dict[EntityId, date]] = None,
    duration_minutes: Optional[int] = None,
) -> List[Activity]:
    """Expand an exam into one activity per class and subject the class takes."""
    subject_dates = subject_dates or {}
    activities = []
    for school_class in classes:
        for subject_id in school_class.subject_ids:
            activities.append(
                Activity(
                    exam_id=exam.id,
                    subject_id=subject_id,
                    class_id=school_class.id,
                    student_count=school_class.student_count,
                    date=subject_dates.get(subject_id),
                    duration_minutes=duration_minutes,
                )
            )
    logger.debug(f"Exam {exam.id} expanded into {len(activities)} activities")
    return activities


def default_days(names: Iterable[str] = ("Mon", "Tue", "Wed", "Thu", "Fri")) -> List[ExamDay]:
    return [ExamDay(name) for name in names]


def dated_days(start: date, end: date, skip_weekends: bool = True) -> List[ExamDay]:
    """One ExamDay per calendar date in ``[start, end]``."""
    days = []
    current = start
    while current <= end:
        if not (skip_weekends and current.weekday() >= 5):
            days.append(ExamDay(current.strftime("%a"), current))
        current += timedelta(days=1)
    return days


def default_periods(
    first_start: str = "08:00", minutes: int = 60, count: int = 8
) -> List[Period]:
    """Hourly periods 08:00-16:00 unless told otherwise."""
    start = datetime.combine(date.min, parse_time(first_start))
    periods = []
    for index in range(count):
        period_start = start + timedelta(minutes=index * minutes)
        period_end = period_start + timedelta(minutes=minutes)
        periods.append(Period(period_start.time(), period_end.time()))
    return periods
