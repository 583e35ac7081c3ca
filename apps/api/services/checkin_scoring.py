"""
Check-in Score Calculator

Turns a submission's answers into a single 0-100 score.

Each answer is first converted to a 0-10 sub-score by its declared type,
then weighted:

    weighted_i  = sub_score_i × weight_i
    total_score = round( Σ weighted_i / (Σ weight_i × 10) × 100 )

Weight 0, text-like types and unparsable values never reach the sums.
When nothing is left to weigh the score is None, never 0: "no data" and
"worst possible score" must stay distinguishable downstream.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional
import logging
import math

from core.exceptions import AnswerValueError
from services.answer_values import (
    AnswerValue,
    BooleanAnswer,
    ChoiceAnswer,
    NumericAnswer,
    TextAnswer,
    parse_answer_value,
)
from services.checkin_constants import (
    DEFAULT_BOOLEAN_WEIGHTS,
    MAX_SUB_SCORE,
    MIN_SUB_SCORE,
    TEXT_NEUTRAL_SUB_SCORE,
    QuestionType,
)
from schemas import QuestionAnswer

logger = logging.getLogger(__name__)


@dataclass
class AnswerScore:
    """How one answer fed into the total."""
    sub_score: Optional[float]        # 0-10, None when the value was unusable
    weight: int                       # Effective weight after exclusions
    scored: bool                      # True when it contributed to the sums
    excluded_reason: Optional[str] = None

    @property
    def weighted_score(self) -> float:
        if not self.scored or self.sub_score is None:
            return 0.0
        return self.sub_score * self.weight


@dataclass
class ScoreBreakdown:
    """Result of scoring a whole submission."""
    score: Optional[int]              # 0-100, None when nothing was scored
    earned: float                     # Σ sub_score × weight
    total_weight: int                 # Σ weight of scored answers
    answers: List[AnswerScore] = field(default_factory=list)

    @property
    def scored_count(self) -> int:
        return sum(1 for a in self.answers if a.scored)

    @property
    def is_scored(self) -> bool:
        return self.score is not None


def _clamp(value: float) -> float:
    return max(float(MIN_SUB_SCORE), min(float(MAX_SUB_SCORE), value))


def _option_weight(answer: QuestionAnswer, option: str) -> Optional[float]:
    """Case-insensitive lookup in the question's option weights."""
    if not answer.option_weights:
        return None
    if option in answer.option_weights:
        return answer.option_weights[option]
    wanted = option.strip().lower()
    for key, weight in answer.option_weights.items():
        if key.strip().lower() == wanted:
            return weight
    return None


def _sub_score(answer: QuestionAnswer, value: AnswerValue) -> float:
    """
    Convert a typed answer value into a 0-10 sub-score.

    Raises:
        AnswerValueError: when the value cannot be mapped (e.g. unknown option)
    """
    if isinstance(value, TextAnswer):
        return float(TEXT_NEUTRAL_SUB_SCORE)

    if isinstance(value, NumericAnswer):
        # Scale and number questions are direct 0-10 ratings by convention
        return _clamp(value.value)

    if isinstance(value, BooleanAnswer):
        configured = _option_weight(answer, value.option_key)
        if configured is None and answer.option_weights:
            configured = _option_weight(answer, str(value.value).lower())
        if configured is not None:
            return _clamp(configured)
        return float(DEFAULT_BOOLEAN_WEIGHTS[value.option_key])

    if isinstance(value, ChoiceAnswer):
        if not answer.option_weights:
            raise AnswerValueError(
                "Select question has no option weights", question_id=answer.question_id
            )
        weights = []
        for choice in value.choices:
            weight = _option_weight(answer, choice)
            if weight is None:
                raise AnswerValueError(
                    f"Option {choice!r} has no weight", question_id=answer.question_id
                )
            weights.append(weight)
        if answer.declared_type == QuestionType.SELECT and len(weights) > 1:
            raise AnswerValueError(
                "Single select answered with several options", question_id=answer.question_id
            )
        return _clamp(sum(weights) / len(weights))

    raise TypeError(f"Unhandled answer value variant: {type(value).__name__}")


def score_answer(answer: QuestionAnswer) -> AnswerScore:
    """
    Score a single answer.

    Never raises for bad data: unusable values come back unscored with a reason.
    """
    try:
        value = parse_answer_value(answer)
    except AnswerValueError as e:
        logger.debug(f"Excluding answer {answer.question_id or answer.question_text!r}: {e.detail}")
        return AnswerScore(sub_score=None, weight=0, scored=False, excluded_reason=e.detail)

    if isinstance(value, TextAnswer):
        # Context only, whatever weight the form declared
        return AnswerScore(
            sub_score=float(TEXT_NEUTRAL_SUB_SCORE),
            weight=0,
            scored=False,
            excluded_reason="unscored question type",
        )

    try:
        sub_score = _sub_score(answer, value)
    except AnswerValueError as e:
        logger.debug(f"Excluding answer {answer.question_id or answer.question_text!r}: {e.detail}")
        return AnswerScore(sub_score=None, weight=0, scored=False, excluded_reason=e.detail)

    if answer.weight <= 0:
        return AnswerScore(
            sub_score=sub_score, weight=0, scored=False, excluded_reason="weight is 0"
        )

    return AnswerScore(sub_score=sub_score, weight=answer.weight, scored=True)


def score_check_in(answers: Iterable[QuestionAnswer]) -> ScoreBreakdown:
    """Score a whole submission and keep the per-answer detail."""
    details = [score_answer(a) for a in answers]

    earned = math.fsum(d.weighted_score for d in details)
    total_weight = sum(d.weight for d in details if d.scored)

    if total_weight == 0:
        return ScoreBreakdown(score=None, earned=0.0, total_weight=0, answers=details)

    # Half-up: 82.5 -> 83
    score = math.floor(earned / (total_weight * MAX_SUB_SCORE) * 100 + 0.5)
    return ScoreBreakdown(
        score=int(score),
        earned=earned,
        total_weight=total_weight,
        answers=details,
    )


def compute_score(answers: Iterable[QuestionAnswer]) -> Optional[int]:
    """
    Compute the 0-100 score of a submission.

    Returns:
        The rounded score, or None when no answer carries weight.

    Examples:
        >>> compute_score([QuestionAnswer(value=8, declared_type="scale", weight=5)])
        80
        >>> compute_score([QuestionAnswer(value="fine", declared_type="text", weight=5)]) is None
        True
    """
    return score_check_in(answers).score
