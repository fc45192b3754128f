# timetable_engine/constraints/__init__.py

"""
Constraint building and scoring.

Constraints are built from the entity snapshot, extended with learned
patterns, and scored by ConstraintScorer at placement and timetable level.
"""

from .constraint_builder import apply_learned_patterns, build_constraints
from .scorer import ConstraintScorer

__all__ = ["apply_learned_patterns", "build_constraints", "ConstraintScorer"]
