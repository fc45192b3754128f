# timetable_engine/tests/conftest.py

"""
Pytest configuration and fixtures for timetable engine tests.
"""

import pytest
import logging
from datetime import date

from timetable_engine.config import SchedulingEngineConfig
from timetable_engine.core.problem_model import (
    Activity,
    ExamDay,
    Period,
    Room,
    Teacher,
    TimeSlot,
    default_periods,
)
from timetable_engine.core.solution import ScheduleSlot
from timetable_engine.engine import GenerateOptions, TimetableEngine
from timetable_engine.learning.learning_store import LearningStore

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@pytest.fixture
def rooms():
    """Two equal rooms; room 1 sorts first"""
    return [
        Room(1, "Hall A", capacity=30),
        Room(2, "Hall B", capacity=30),
    ]


@pytest.fixture
def teachers():
    return [
        Teacher(7, "Ada Obi", subject_ids={"math"}),
        Teacher(8, "Bayo Lawal", subject_ids={"math", "physics"}),
    ]


@pytest.fixture
def days():
    return [ExamDay("Mon"), ExamDay("Tue")]


@pytest.fixture
def periods():
    """Hourly periods 08:00-12:00"""
    return default_periods("08:00", 60, 4)


@pytest.fixture
def activities():
    return [
        Activity("midterm", "math", "SS1", student_count=25),
        Activity("midterm", "physics", "SS1", student_count=25),
        Activity("midterm", "math", "SS2", student_count=20),
    ]


@pytest.fixture
def make_slot():
    """Factory for schedule slots with sensible defaults"""

    def _make(
        exam_id="midterm",
        subject_id="math",
        class_id="SS1",
        teacher_id=7,
        room=None,
        day="Mon",
        start="09:00",
        end="10:00",
        slot_date=None,
        student_count=25,
        activity_date=None,
    ):
        activity = Activity(
            exam_id,
            subject_id,
            class_id,
            student_count=student_count,
            date=activity_date,
        )
        return ScheduleSlot(
            activity,
            teacher_id,
            room or Room(1, "Hall A", capacity=30),
            TimeSlot(day, start, end),
            slot_date,
        )

    return _make


@pytest.fixture
def engine_config():
    return SchedulingEngineConfig()


@pytest.fixture
def learning_store(engine_config):
    return LearningStore(engine_config.learning)


@pytest.fixture
def engine(learning_store, engine_config):
    """Engine with its own learning store"""
    return TimetableEngine(learning_store, engine_config)


@pytest.fixture
def small_options():
    """Small, seeded GA run"""
    return GenerateOptions(
        population_size=6, generations=5, seed=42, max_workers=2
    )


@pytest.fixture
def exam_date():
    """A Monday"""
    return date(2025, 3, 3)
