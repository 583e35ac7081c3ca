from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator, model_validator
from datetime import datetime, date
from typing import Optional, List, Dict, Union, Any

from services.checkin_constants import (
    QuestionType,
    QUESTION_TYPE_ALIASES,
    CheckInStatus,
    MAX_WEIGHT,
    MAX_SUB_SCORE,
)


# Raw answer value as stored: boolean | number | string | string-list
RawAnswerValue = Optional[Union[bool, int, float, str, List[str]]]


class QuestionAnswer(BaseModel):
    """One respondent answer to one question, as stored on a submission."""
    question_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("question_id", "questionId")
    )
    question_text: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("question_text", "questionText", "question")
    )
    value: RawAnswerValue = Field(
        default=None, validation_alias=AliasChoices("value", "answer")
    )
    declared_type: QuestionType = Field(
        default=QuestionType.TEXT, validation_alias=AliasChoices("declared_type", "declaredType", "type")
    )
    weight: int = Field(
        default=5, validation_alias=AliasChoices("weight", "questionWeight")
    )  # 0 = context only
    option_weights: Optional[Dict[str, float]] = Field(
        default=None, validation_alias=AliasChoices("option_weights", "optionWeights")
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)

    @field_validator("question_id", "question_text", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_choices(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [str(item) for item in v]
        return v

    @field_validator("declared_type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> Any:
        if v is None:
            return QuestionType.TEXT
        if isinstance(v, str):
            key = v.strip().lower()
            if key in QUESTION_TYPE_ALIASES:
                return QUESTION_TYPE_ALIASES[key]
            try:
                return QuestionType(key)
            except ValueError:
                # Unknown types are shown but never scored
                return QuestionType.TEXT
        return v

    @field_validator("weight", mode="before")
    @classmethod
    def _clamp_weight(cls, v: Any) -> int:
        if v is None or isinstance(v, bool):
            return 0
        try:
            weight = int(round(float(v)))
        except (TypeError, ValueError):
            return 0
        return max(0, min(MAX_WEIGHT, weight))

    @field_validator("option_weights", mode="before")
    @classmethod
    def _clamp_option_weights(cls, v: Any) -> Any:
        if not v:
            return None
        clamped = {}
        for option, weight in dict(v).items():
            try:
                clamped[str(option)] = max(1.0, min(float(MAX_SUB_SCORE), float(weight)))
            except (TypeError, ValueError):
                continue
        return clamped or None


class CheckInRecord(BaseModel):
    """One submission instance of a (possibly recurring) check-in."""
    id: str
    schedule_assignment_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("schedule_assignment_id", "scheduleAssignmentId", "assignmentId"),
    )
    form_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("form_id", "formId"))
    due_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("due_date", "dueDate"))
    submitted_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("submitted_at", "submittedAt")
    )
    answers: List[QuestionAnswer] = Field(
        default_factory=list, validation_alias=AliasChoices("answers", "responses")
    )
    score: Optional[float] = None  # 0-100, present once computed
    status: Optional[CheckInStatus] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @field_validator("schedule_assignment_id", "form_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date_to_day(cls, v: Any) -> Any:
        # Document stores often keep due dates as midnight timestamps
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v) > 10:
            return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
        return v

    @field_validator("answers", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return v or []


class RecurringWindow(BaseModel):
    """
    Weekly availability rule attached to a check-in schedule.

    Missing start_day or start_time falls back to the configured engine defaults.
    """
    enabled: bool = False
    start_day: Optional[Union[int, str]] = Field(
        default=None, validation_alias=AliasChoices("start_day", "startDay")
    )
    start_time: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("start_time", "startTime")
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)


class ScoringThresholds(BaseModel):
    """
    Canonical classification boundaries.

    Red: 0..red_max, Orange: red_max+1..orange_max, Green: orange_max+1..100
    """
    red_max: int = Field(validation_alias=AliasChoices("red_max", "redMax"), ge=0, le=98)
    orange_max: int = Field(validation_alias=AliasChoices("orange_max", "orangeMax"), ge=1, le=99)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def _check_ordering(self) -> "ScoringThresholds":
        if self.red_max >= self.orange_max:
            raise ValueError("red_max must be lower than orange_max")
        return self


class LegacyScoringThresholds(BaseModel):
    """Old red/yellow/green cut points kept on early client records."""
    red: Optional[float] = None
    yellow: Optional[float] = None
    green: Optional[float] = None


class ThresholdConfig(BaseModel):
    """
    Threshold configuration as stored on a client or form.

    Custom values are kept unvalidated here; the classifier decides whether
    they are usable or must fall back to the profile default.
    """
    profile: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("profile", "scoringProfile")
    )
    red_max: Optional[int] = Field(default=None, validation_alias=AliasChoices("red_max", "redMax"))
    orange_max: Optional[int] = Field(default=None, validation_alias=AliasChoices("orange_max", "orangeMax"))
    legacy: Optional[LegacyScoringThresholds] = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _flatten_stored_thresholds(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        nested = data.pop("scoringThresholds", None) or data.pop("thresholds", None)
        if isinstance(nested, dict):
            for key in ("redMax", "red_max", "orangeMax", "orange_max"):
                if key in nested:
                    data.setdefault(key, nested[key])
            if "red" in nested or "yellow" in nested:
                data.setdefault("legacy", {k: nested.get(k) for k in ("red", "yellow", "green")})
        elif "red" in data or "yellow" in data:
            data.setdefault("legacy", {k: data.pop(k, None) for k in ("red", "yellow", "green")})
        return data

    @property
    def has_custom_values(self) -> bool:
        return self.red_max is not None and self.orange_max is not None
