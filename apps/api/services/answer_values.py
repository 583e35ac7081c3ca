"""
Answer Value Variants

Stored answers arrive loosely typed (True, "yes", 7, "7", ["a", "b"], "free text").
This module turns them into one of four explicit variants so the score
calculator dispatches on a closed set of types instead of sniffing strings.

    BooleanAnswer   yes/no questions
    NumericAnswer   scale, rating and number questions
    ChoiceAnswer    select (one choice) and multiselect (many)
    TextAnswer      everything shown for context only
"""

import math
from dataclasses import dataclass
from typing import Tuple, Union

from core.exceptions import AnswerValueError
from services.checkin_constants import QuestionType, UNSCORED_TYPES
from schemas import QuestionAnswer, RawAnswerValue


_TRUE_STRINGS = frozenset({"yes", "true", "y", "1"})
_FALSE_STRINGS = frozenset({"no", "false", "n", "0"})


@dataclass(frozen=True)
class BooleanAnswer:
    value: bool

    @property
    def option_key(self) -> str:
        return "yes" if self.value else "no"


@dataclass(frozen=True)
class NumericAnswer:
    value: float


@dataclass(frozen=True)
class ChoiceAnswer:
    choices: Tuple[str, ...]


@dataclass(frozen=True)
class TextAnswer:
    text: str


AnswerValue = Union[BooleanAnswer, NumericAnswer, ChoiceAnswer, TextAnswer]


def _parse_boolean(raw: RawAnswerValue) -> BooleanAnswer:
    if isinstance(raw, bool):
        return BooleanAnswer(raw)
    if isinstance(raw, str):
        key = raw.strip().lower()
        if key in _TRUE_STRINGS:
            return BooleanAnswer(True)
        if key in _FALSE_STRINGS:
            return BooleanAnswer(False)
    raise AnswerValueError(f"Not a yes/no answer: {raw!r}")


def _parse_number(raw: RawAnswerValue) -> NumericAnswer:
    if isinstance(raw, bool) or raw is None or isinstance(raw, list):
        raise AnswerValueError(f"Not a numeric answer: {raw!r}")
    try:
        number = float(raw)
    except (TypeError, ValueError) as e:
        raise AnswerValueError(f"Not a numeric answer: {raw!r}") from e
    if math.isnan(number) or math.isinf(number):
        raise AnswerValueError(f"Not a finite numeric answer: {raw!r}")
    return NumericAnswer(number)


def _parse_choices(raw: RawAnswerValue, multiple: bool) -> ChoiceAnswer:
    if isinstance(raw, list):
        choices = tuple(c for c in (str(item).strip() for item in raw) if c)
    elif isinstance(raw, bool) or raw is None:
        raise AnswerValueError(f"Not a choice answer: {raw!r}")
    else:
        text = str(raw).strip()
        # Some forms store multiselect answers comma-joined
        if multiple and "," in text:
            choices = tuple(c.strip() for c in text.split(",") if c.strip())
        else:
            choices = (text,) if text else ()
    if not choices:
        raise AnswerValueError("No option chosen")
    return ChoiceAnswer(choices)


def parse_answer_value(answer: QuestionAnswer) -> AnswerValue:
    """
    Build the typed variant for an answer from its declared type.

    Raises:
        AnswerValueError: when the stored value does not fit the declared type
    """
    declared = answer.declared_type
    raw = answer.value

    if declared in UNSCORED_TYPES:
        if isinstance(raw, list):
            return TextAnswer(", ".join(raw))
        return TextAnswer("" if raw is None else str(raw))
    if declared == QuestionType.BOOLEAN:
        return _parse_boolean(raw)
    if declared in (QuestionType.SCALE, QuestionType.NUMBER):
        return _parse_number(raw)
    if declared == QuestionType.SELECT:
        return _parse_choices(raw, multiple=False)
    if declared == QuestionType.MULTISELECT:
        return _parse_choices(raw, multiple=True)
    raise AnswerValueError(f"Unsupported question type: {declared!r}", question_id=answer.question_id)
