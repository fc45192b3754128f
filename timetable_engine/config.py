# timetable_engine/config.py

"""
Configuration module for the timetable engine.

Scoring penalties, genetic algorithm defaults, learning-store bounds and the
default constraint weights all live here so that a run can be reproduced from
one SchedulingEngineConfig value.
"""

from typing import Dict, Optional
from dataclasses import dataclass, field
import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass
class ScoringConfig:
    """Placement-level scoring used by the greedy builder"""

    base_score: float = 100.0
    availability_penalty: float = 50.0
    capacity_penalty: float = 30.0
    subject_requirement_penalty: float = 20.0
    class_load_penalty: float = 10.0
    conflict_penalty: float = 10.0
    min_score: float = 0.0


@dataclass
class GeneticAlgorithmConfig:
    """Configuration for the genetic refinement phase"""

    population_size: int = 10
    num_generations: int = 50
    selection_ratio: float = 0.3
    elite_count: int = 1
    conflict_weight: float = 10.0
    max_workers: Optional[int] = None  # None -> os.cpu_count()
    stagnation_limit: Optional[int] = None  # None -> run all generations
    random_seed: Optional[int] = None


@dataclass
class LearningConfig:
    """Bounds applied by the feedback learning store"""

    max_confidence: int = 10
    default_preference_weight: float = 5.0
    conflict_weight_cap: Optional[float] = None  # None -> unbounded
    conflict_weight_decay: float = 1.0  # multiplier applied per submission
    max_feedback_history: int = 1000
    recent_feedback_limit: int = 10


@dataclass
class GridConfig:
    """Default day x period grid"""

    days: tuple = ("Mon", "Tue", "Wed", "Thu", "Fri")
    first_period_start: str = "08:00"
    period_minutes: int = 60
    periods_per_day: int = 8
    max_exams_per_day: int = 2
    max_teacher_slots_per_day: int = 8


@dataclass
class SchedulingEngineConfig:
    """Main configuration for the timetable engine"""

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    genetic_algorithm: GeneticAlgorithmConfig = field(
        default_factory=GeneticAlgorithmConfig
    )
    learning: LearningConfig = field(default_factory=LearningConfig)
    grid: GridConfig = field(default_factory=GridConfig)

    enable_logging: bool = True
    log_level: str = "INFO"
    recent_generations_kept: int = 20

    # Default weights for constraints built from entity snapshots
    constraint_weights: Dict[str, float] | None = None

    def __post_init__(self):
        if self.constraint_weights is None:
            self.constraint_weights = {
                "teacher_availability": 10.0,
                "room_capacity": 8.0,
                "subject_requirement": 7.0,
                "class_schedule_load": 9.0,
            }

    @classmethod
    def from_settings(
        cls, settings: Optional["EngineSettings"] = None
    ) -> "SchedulingEngineConfig":
        """Build a config with environment overrides applied"""
        settings = settings or EngineSettings()
        engine_config = cls(
            enable_logging=settings.ENABLE_LOGGING,
            log_level=settings.LOG_LEVEL.upper(),
        )
        ga = engine_config.genetic_algorithm
        ga.population_size = settings.POPULATION_SIZE
        ga.num_generations = settings.GENERATIONS
        ga.selection_ratio = settings.SELECTION_RATIO
        ga.max_workers = settings.MAX_WORKERS
        ga.random_seed = settings.RANDOM_SEED
        learning = engine_config.learning
        learning.max_confidence = settings.MAX_CONFIDENCE
        learning.conflict_weight_cap = settings.CONFLICT_WEIGHT_CAP
        learning.conflict_weight_decay = settings.CONFLICT_WEIGHT_DECAY
        return engine_config


class EngineSettings(BaseSettings):
    """Environment overrides, read from TIMETABLE_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="TIMETABLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    LOG_LEVEL: str = "INFO"
    ENABLE_LOGGING: bool = True

    POPULATION_SIZE: int = Field(default=10, ge=2)
    GENERATIONS: int = Field(default=50, ge=0)
    SELECTION_RATIO: float = Field(default=0.3, gt=0.0, le=1.0)
    MAX_WORKERS: Optional[int] = Field(default=None, ge=1)
    RANDOM_SEED: Optional[int] = None

    MAX_CONFIDENCE: int = Field(default=10, ge=1)
    CONFLICT_WEIGHT_CAP: Optional[float] = Field(default=None, gt=0.0)
    CONFLICT_WEIGHT_DECAY: float = Field(default=1.0, gt=0.0, le=1.0)


# Global configuration instance (defaults only; engines receive their own copy)
config = SchedulingEngineConfig()


def get_logger(name: str) -> logging.Logger:
    """Get configured logger for the timetable engine"""
    logger = logging.getLogger(f"timetable_engine.{name}")
    if config.enable_logging and not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, config.log_level))
    return logger
