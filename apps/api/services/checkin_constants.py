"""
Constants for check-in scoring, classification and scheduling.

These are DEFAULTS that can be overridden by configuration (core.config) or
by passing an EngineDefaults instance to any engine function.
They exist here so the policy is auditable in one place.
"""

from dataclasses import dataclass
from datetime import time
from enum import Enum
from typing import Dict, Optional

from core.config import Settings, parse_default_start_time, settings, validate_engine_config


class QuestionType(str, Enum):
    """Declared question types on a check-in form."""
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    SELECT = "select"
    MULTISELECT = "multiselect"
    SCALE = "scale"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"


# Older forms store "rating" for what is now "scale"
QUESTION_TYPE_ALIASES = {
    "rating": QuestionType.SCALE,
    "multi-select": QuestionType.MULTISELECT,
    "yes_no": QuestionType.BOOLEAN,
}

# Types that never contribute to the score, whatever weight they carry
UNSCORED_TYPES = frozenset({
    QuestionType.TEXT,
    QuestionType.TEXTAREA,
    QuestionType.DATE,
    QuestionType.TIME,
})


class TrafficLight(str, Enum):
    """At-a-glance status of a score."""
    RED = "red"
    ORANGE = "orange"
    GREEN = "green"
    GREY = "grey"            # Unscored, never merged with a low score


class ScoringProfile(str, Enum):
    """Named threshold profiles a coach picks for a client."""
    LIFESTYLE = "lifestyle"                  # General wellness, lenient
    HIGH_PERFORMANCE = "high-performance"    # Competitive clients, strict
    MODERATE = "moderate"                    # Active clients, good adherence
    CUSTOM = "custom"                        # Caller-supplied values


class CheckInStatus(str, Enum):
    """Lifecycle status of a check-in record."""
    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class WindowAvailability(str, Enum):
    """Why a check-in is or is not available right now."""
    ALWAYS_OPEN = "always_open"          # Window gating disabled or unusable
    OPEN = "open"
    NOT_YET_DUE = "not_yet_due"
    WINDOW_NOT_OPEN = "window_not_open"  # Shown to users as "window closed"
    COMPLETED = "completed"


class ScoreTrend(str, Enum):
    """Direction of recent submission scores."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"
    NO_DATA = "no_data"


# Score scale
MAX_SUB_SCORE = 10
MIN_SUB_SCORE = 0
MAX_WEIGHT = 10
TEXT_NEUTRAL_SUB_SCORE = 5

# Boolean answers without per-question option weights
DEFAULT_BOOLEAN_WEIGHTS = {
    "yes": 8,
    "no": 3,
}

# Threshold defaults per profile (red_max, orange_max)
# Red: 0..red_max, Orange: red_max+1..orange_max, Green: orange_max+1..100
PROFILE_THRESHOLDS: Dict[ScoringProfile, Dict[str, int]] = {
    ScoringProfile.LIFESTYLE: {"red_max": 33, "orange_max": 80},
    ScoringProfile.HIGH_PERFORMANCE: {"red_max": 75, "orange_max": 89},
    ScoringProfile.MODERATE: {"red_max": 60, "orange_max": 85},
    ScoringProfile.CUSTOM: {"red_max": 70, "orange_max": 85},
}

TRAFFIC_LIGHT_LABELS = {
    TrafficLight.RED: "Needs Attention",
    TrafficLight.ORANGE: "On Track",
    TrafficLight.GREEN: "Excellent",
    TrafficLight.GREY: "Not Scored",
}

TRAFFIC_LIGHT_MESSAGES = {
    TrafficLight.RED: "Keep going! Every step forward is progress.",
    TrafficLight.ORANGE: "Good progress! You're on the right track.",
    TrafficLight.GREEN: "Excellent! You're doing amazing!",
    TrafficLight.GREY: "This answer is for context and does not affect the score.",
}

TRAFFIC_LIGHT_ICONS = {
    TrafficLight.RED: "🔴",
    TrafficLight.ORANGE: "🟠",
    TrafficLight.GREEN: "🟢",
    TrafficLight.GREY: "⚪",
}

# Day names for display, indexed Sunday=0..Saturday=6
DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']
DAY_NUMBERS = {name.lower(): index for index, name in enumerate(DAY_NAMES)}

# Question text is "significantly" reworded past this share of changed characters
SIGNIFICANT_TEXT_CHANGE_RATIO = 0.2


@dataclass(frozen=True)
class EngineDefaults:
    """
    Policy defaults in one auditable object.

    Built from settings by default; tests and callers may pass their own.
    """
    scoring_profile: ScoringProfile = ScoringProfile.LIFESTYLE
    start_day: int = DAY_NUMBERS["friday"]
    start_time: time = time(10, 0)
    timezone: str = "UTC"
    consistency_band: int = 10
    trend_stable_band: int = 5
    score_history_limit: int = 12

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "EngineDefaults":
        source = source or settings
        validate_engine_config(
            scoring_profile=source.CHECKIN_DEFAULT_SCORING_PROFILE,
            start_day=source.CHECKIN_DEFAULT_START_DAY,
            start_time=source.CHECKIN_DEFAULT_START_TIME,
            timezone=source.CHECKIN_TIMEZONE,
        )
        return cls(
            scoring_profile=ScoringProfile(source.CHECKIN_DEFAULT_SCORING_PROFILE),
            start_day=DAY_NUMBERS[source.CHECKIN_DEFAULT_START_DAY.strip().lower()],
            start_time=parse_default_start_time(source.CHECKIN_DEFAULT_START_TIME),
            timezone=source.CHECKIN_TIMEZONE,
            consistency_band=source.CHECKIN_CONSISTENCY_BAND,
            trend_stable_band=source.CHECKIN_TREND_STABLE_BAND,
            score_history_limit=source.CHECKIN_SCORE_HISTORY_LIMIT,
        )


_defaults: Optional[EngineDefaults] = None


def get_engine_defaults() -> EngineDefaults:
    """Process-wide defaults, built lazily from settings."""
    global _defaults
    if _defaults is None:
        _defaults = EngineDefaults.from_settings()
    return _defaults
