# timetable_engine/learning/corrections.py
"""Pydantic v2 schemas for human corrections fed back into the engine."""

from __future__ import annotations
from typing import Annotated, Any, Dict, List, Literal, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ..core.problem_model import describe_entity, is_slot_key
from ..exceptions import FeedbackError

CORRECTION_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)

EntityRef = Union[int, str]
EntityKind = Literal["teacher", "room", "subject", "class", "exam"]
# A bare id matches an entity of any kind; a (kind, id) tag only that kind
ConflictEntity = Union[int, str, Tuple[EntityKind, EntityRef]]


class TeacherPreferenceCorrection(BaseModel):
    """A teacher's sitting was moved by hand from ``old_slot`` to ``new_slot``."""

    model_config = CORRECTION_CONFIG

    type: Literal["teacher_preference"] = "teacher_preference"
    teacher_id: EntityRef
    old_slot: str
    new_slot: str

    @field_validator("old_slot", "new_slot")
    @classmethod
    def _slot_key(cls, value: str) -> str:
        if not is_slot_key(value):
            raise ValueError(f"'{value}' is not a slot key like 'Mon-09:00'")
        return value

    @model_validator(mode="after")
    def _distinct_slots(self) -> "TeacherPreferenceCorrection":
        if self.old_slot == self.new_slot:
            raise ValueError("old_slot and new_slot must differ")
        return self

    def learning_point(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "teacher_id": self.teacher_id,
            "preferred_slot": self.new_slot,
            "avoided_slot": self.old_slot,
            "confidence": 1,
        }


class ConflictAvoidanceCorrection(BaseModel):
    """Two entities that a person separated because they clashed."""

    model_config = CORRECTION_CONFIG

    type: Literal["conflict_avoidance"] = "conflict_avoidance"
    entity_a: ConflictEntity = Field(
        validation_alias=AliasChoices("entity_a", "entityA", "entity1")
    )
    entity_b: ConflictEntity = Field(
        validation_alias=AliasChoices("entity_b", "entityB", "entity2")
    )

    @model_validator(mode="after")
    def _distinct_entities(self) -> "ConflictAvoidanceCorrection":
        if self.entity_a == self.entity_b:
            raise ValueError("a conflict needs two different entities")
        return self

    def learning_point(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "pattern": f"{describe_entity(self.entity_a)}-{describe_entity(self.entity_b)}",
            "weight": 1,
        }


class ConstraintViolationCorrection(BaseModel):
    model_config = CORRECTION_CONFIG

    type: Literal["constraint_violation"] = "constraint_violation"
    constraint: str = Field(min_length=1)
    severity: float = Field(ge=0)

    def learning_point(self) -> Dict[str, Any]:
        return {
            "type": "constraint_learning",
            "constraint": self.constraint,
            "weight": self.severity,
        }


Correction = Annotated[
    Union[
        TeacherPreferenceCorrection,
        ConflictAvoidanceCorrection,
        ConstraintViolationCorrection,
    ],
    Field(discriminator="type"),
]

_CORRECTION_ADAPTER: TypeAdapter = TypeAdapter(Correction)

_TYPE_NAMES = {
    "teacherpreference": "teacher_preference",
    "conflictavoidance": "conflict_avoidance",
    "constraintviolation": "constraint_violation",
}


def normalize_type_tag(value: Any) -> Any:
    """Map TEACHER_PREFERENCE, TeacherPreference and teacher-preference to one tag."""
    if not isinstance(value, str):
        return value
    squashed = value.replace("_", "").replace("-", "").lower()
    return _TYPE_NAMES.get(squashed, value)


def parse_correction(payload: Any, index: int = 0) -> Correction:
    """Validate one correction, raising FeedbackError on any problem."""
    if isinstance(
        payload,
        (
            TeacherPreferenceCorrection,
            ConflictAvoidanceCorrection,
            ConstraintViolationCorrection,
        ),
    ):
        return payload
    if not isinstance(payload, dict):
        raise FeedbackError(
            f"Correction must be a mapping, got {type(payload).__name__}",
            correction_index=index,
        )
    data = dict(payload)
    data["type"] = normalize_type_tag(data.get("type"))
    try:
        return _CORRECTION_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise FeedbackError(
            f"Invalid correction: {exc.error_count()} validation error(s)",
            correction_index=index,
            details=[
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in exc.errors()
            ],
            cause=exc,
        ) from exc


def parse_corrections(payloads: Any) -> List[Correction]:
    """Validate a whole batch before anything is applied."""
    if isinstance(payloads, (dict, BaseModel)):
        payloads = [payloads]
    if not isinstance(payloads, (list, tuple)):
        raise FeedbackError(
            f"Corrections must be a list, got {type(payloads).__name__}"
        )
    if not payloads:
        raise FeedbackError("At least one correction is required")
    return [parse_correction(payload, index) for index, payload in enumerate(payloads)]
