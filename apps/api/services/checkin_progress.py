"""
Check-in Progress Aggregator

Turns a client's raw submission history into longitudinal statistics:

- Deduplication: one record per scheduled assignment (or per form per day)
- Current streak of consecutive submission days, counted back from today
- Consistency: share of scores within a band of the mean
- Improvement: latest score minus earliest score (endpoint delta, not a slope)
- Score trend over the last three submissions
- Per-question series lined up across submissions, with lifecycle metadata

Everything here is pure: records in, derived values out.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, Union
import logging
import math

from services.checkin_constants import (
    SIGNIFICANT_TEXT_CHANGE_RATIO,
    EngineDefaults,
    QuestionType,
    ScoreTrend,
    TrafficLight,
    get_engine_defaults,
)
from services.checkin_dates import local_day, resolve_timezone, sort_key
from services.checkin_scoring import compute_score, score_answer
from services.question_identity import QuestionIdentityIndex
from services.traffic_light import ThresholdSource, classify, classify_answer, coerce_thresholds
from schemas import CheckInRecord, RawAnswerValue

logger = logging.getLogger(__name__)


@dataclass
class SeriesPoint:
    """One question's answer in one submission."""
    week_index: int                   # 1-based position in the submission history
    date: date
    score: Optional[float]            # 0-10, None when unscored
    status: TrafficLight
    raw_answer: RawAnswerValue
    declared_type: QuestionType
    weight: int
    question_text: Optional[str] = None


@dataclass
class QuestionSeries:
    """A logical question tracked across submissions."""
    question_identity: str
    question_id: Optional[str]
    question_text: Optional[str]      # Latest wording
    points: List[SeriesPoint] = field(default_factory=list)
    first_seen_week: int = 0
    last_seen_week: int = 0
    is_active: bool = False           # Present in the latest submission
    text_changes: List[str] = field(default_factory=list)

    def weekly(self, total_weeks: int) -> List[Optional[SeriesPoint]]:
        """Points laid out per week; weeks without an answer are None (gaps, not zeros)."""
        by_week = {p.week_index: p for p in self.points}
        return [by_week.get(week) for week in range(1, total_weeks + 1)]


@dataclass
class ScoreHistoryPoint:
    date: date
    score: float
    status: TrafficLight


@dataclass
class ProgressSummary:
    """Aggregate progress for one client."""
    deduped_records: List[CheckInRecord]
    total_check_ins: int
    current_streak: int               # Days
    consistency: Optional[int]        # Percent, None without scores
    improvement: Optional[float]      # Score points, None without scores
    average_score: Optional[float]
    best_score: Optional[float]
    latest_score: Optional[float]
    score_trend: ScoreTrend
    score_history: List[ScoreHistoryPoint] = field(default_factory=list)
    question_series: List[QuestionSeries] = field(default_factory=list)
    total_weeks: int = 0


def _dedupe_key(record: CheckInRecord, zone: tzinfo) -> Hashable:
    if record.schedule_assignment_id:
        return ("assignment", record.schedule_assignment_id)
    return ("form_day", record.form_id or "unknown", local_day(record.submitted_at, zone))


def deduplicate_check_ins(
    records: Iterable[CheckInRecord],
    tz: Union[str, tzinfo, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> List[CheckInRecord]:
    """
    Keep the latest submission per scheduled assignment.

    Records without an assignment id are grouped by form and submission day.
    Records that were never submitted are not submissions and are dropped.

    Returns:
        Deduplicated records, oldest first
    """
    defaults = defaults or get_engine_defaults()
    zone = resolve_timezone(tz, defaults.timezone)

    latest: Dict[Hashable, CheckInRecord] = {}
    for record in records:
        if record.submitted_at is None:
            continue
        key = _dedupe_key(record, zone)
        existing = latest.get(key)
        if existing is None:
            latest[key] = record
        elif sort_key(record.submitted_at, zone) > sort_key(existing.submitted_at, zone):
            logger.debug(f"Dropping resubmitted check-in {existing.id} in favour of {record.id}")
            latest[key] = record
        else:
            logger.debug(f"Dropping resubmitted check-in {record.id} in favour of {existing.id}")

    return sorted(latest.values(), key=lambda r: sort_key(r.submitted_at, zone))


def calculate_streak(
    records: Iterable[CheckInRecord],
    today: date,
    tz: Union[str, tzinfo, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> int:
    """
    Consecutive calendar days with a submission, counted back from today.

    A submission today is day 0. Walking back newest first, each record must
    land exactly `streak` days before today to extend the streak; a second
    record on an already counted day is skipped; anything older ends it.
    """
    defaults = defaults or get_engine_defaults()
    zone = resolve_timezone(tz, defaults.timezone)

    submitted = [r for r in records if r.submitted_at is not None]
    submitted.sort(key=lambda r: sort_key(r.submitted_at, zone), reverse=True)

    streak = 0
    for record in submitted:
        days_diff = (today - local_day(record.submitted_at, zone)).days
        if days_diff == streak:
            streak += 1
        elif days_diff < streak:
            continue
        else:
            break
    return streak


def record_score(record: CheckInRecord) -> Optional[float]:
    """Stored score when present, otherwise computed from the answers."""
    if record.score is not None:
        return record.score
    if record.answers:
        return compute_score(record.answers)
    return None


def calculate_consistency(scores: Sequence[float], band: int = 10) -> Optional[int]:
    """Percentage of scores within `band` points of the mean; None without scores."""
    if not scores:
        return None
    mean = math.fsum(scores) / len(scores)
    within = sum(1 for s in scores if abs(s - mean) <= band)
    return int(math.floor(within / len(scores) * 100 + 0.5))


def calculate_improvement(scores: Sequence[float]) -> Optional[float]:
    """Latest minus earliest of chronologically ordered scores."""
    if not scores:
        return None
    return scores[-1] - scores[0]


def calculate_score_trend(scores: Sequence[float], stable_band: int = 5) -> ScoreTrend:
    """
    Compare the first and last of the most recent three scores.

    Differences under `stable_band` points are stable.
    """
    if len(scores) < 2:
        return ScoreTrend.NO_DATA
    recent = scores[-3:]
    diff = recent[-1] - recent[0]
    if abs(diff) < stable_band:
        return ScoreTrend.STABLE
    return ScoreTrend.UP if diff > 0 else ScoreTrend.DOWN


def _normalize_wording(text: str) -> str:
    return " ".join(text.lower().split())


def is_significant_text_change(old: str, new: str) -> bool:
    """
    True when rewording changes more than 20% of the characters.

    Case and whitespace edits are ignored; punctuation counts as a change.
    """
    norm_old = _normalize_wording(old)
    norm_new = _normalize_wording(new)
    if norm_old == norm_new:
        return False
    max_len = max(len(norm_old), len(norm_new))
    if max_len == 0:
        return False
    differences = sum(1 for a, b in zip(norm_old, norm_new) if a != b)
    differences += abs(len(norm_old) - len(norm_new))
    return differences / max_len > SIGNIFICANT_TEXT_CHANGE_RATIO


def build_question_series(
    records: Iterable[CheckInRecord],
    thresholds: ThresholdSource = None,
    tz: Union[str, tzinfo, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> Tuple[List[QuestionSeries], int]:
    """
    Line up each question's answers across submissions.

    Only submissions carrying answers take part; week indexes count those
    submissions oldest first, starting at 1.

    Returns:
        (series in first-seen order, number of weeks)
    """
    defaults = defaults or get_engine_defaults()
    zone = resolve_timezone(tz, defaults.timezone)
    resolved = coerce_thresholds(thresholds, defaults)

    history = [r for r in records if r.answers and r.submitted_at is not None]
    history.sort(key=lambda r: sort_key(r.submitted_at, zone))
    total_weeks = len(history)

    index = QuestionIdentityIndex()
    series_by_identity: Dict[str, QuestionSeries] = {}

    for week_index, record in enumerate(history, start=1):
        submitted_day = local_day(record.submitted_at, zone)
        claimed = set()

        for answer in record.answers:
            resolution = index.observe(answer, exclude=claimed)
            if resolution is None:
                logger.debug(f"Skipping answer without id or text in check-in {record.id}")
                continue
            claimed.add(resolution.identity)

            series = series_by_identity.get(resolution.identity)
            if series is None:
                series = QuestionSeries(
                    question_identity=resolution.identity,
                    question_id=answer.question_id,
                    question_text=answer.question_text,
                    first_seen_week=week_index,
                    text_changes=[answer.question_text] if answer.question_text else [],
                )
                series_by_identity[resolution.identity] = series
            else:
                _track_wording(series, answer.question_text)
                if answer.question_id:
                    series.question_id = answer.question_id

            detail = score_answer(answer)
            sub_score = detail.sub_score if detail.scored else None
            series.points.append(SeriesPoint(
                week_index=week_index,
                date=submitted_day,
                score=sub_score,
                status=classify_answer(sub_score, answer.weight, answer.declared_type, resolved, defaults),
                raw_answer=answer.value,
                declared_type=answer.declared_type,
                weight=detail.weight,
                question_text=answer.question_text,
            ))
            series.last_seen_week = week_index

    for series in series_by_identity.values():
        series.is_active = series.last_seen_week == total_weeks

    return list(series_by_identity.values()), total_weeks


def _track_wording(series: QuestionSeries, text: Optional[str]) -> None:
    if not text:
        return
    if series.question_text and text != series.question_text:
        if is_significant_text_change(series.question_text, text) and text not in series.text_changes:
            series.text_changes.append(text)
    elif not series.text_changes:
        series.text_changes.append(text)
    series.question_text = text


def aggregate_progress(
    records: Iterable[CheckInRecord],
    today: Optional[date] = None,
    thresholds: ThresholdSource = None,
    tz: Union[str, tzinfo, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> ProgressSummary:
    """
    Aggregate a client's full check-in history.

    Args:
        records: Raw submissions, any order, duplicates allowed
        today: Reference day for the streak (defaults to today in tz)
        thresholds: Client thresholds, stored configuration, or profile name
        tz: Zone for calendar days (defaults to the configured zone)

    Returns:
        ProgressSummary
    """
    defaults = defaults or get_engine_defaults()
    zone = resolve_timezone(tz, defaults.timezone)
    resolved = coerce_thresholds(thresholds, defaults)
    if today is None:
        today = datetime.now(zone).date()

    deduped = deduplicate_check_ins(records, zone, defaults)

    scored: List[Tuple[CheckInRecord, float]] = []
    for record in deduped:
        score = record_score(record)
        if score is not None:
            scored.append((record, score))
    scores = [score for _, score in scored]

    history = [
        ScoreHistoryPoint(
            date=local_day(record.submitted_at, zone),
            score=score,
            status=classify(score, resolved, defaults),
        )
        for record, score in scored[-defaults.score_history_limit:]
    ]

    series, total_weeks = build_question_series(deduped, resolved, zone, defaults)

    return ProgressSummary(
        deduped_records=deduped,
        total_check_ins=len(deduped),
        current_streak=calculate_streak(deduped, today, zone, defaults),
        consistency=calculate_consistency(scores, defaults.consistency_band),
        improvement=calculate_improvement(scores),
        average_score=round(math.fsum(scores) / len(scores), 1) if scores else None,
        best_score=max(scores) if scores else None,
        latest_score=scores[-1] if scores else None,
        score_trend=calculate_score_trend(scores, defaults.trend_stable_band),
        score_history=history,
        question_series=series,
        total_weeks=total_weeks,
    )
