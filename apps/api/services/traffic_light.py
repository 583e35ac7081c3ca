"""
Traffic Light Classifier

Maps a 0-100 score onto red / orange / green using per-client thresholds.
Thresholds are PARAMETERS, not constants: a client's own configuration wins,
then the form's, and only when neither exists does the default profile apply.

    score <= red_max               -> red
    red_max < score <= orange_max  -> orange
    score > orange_max             -> green

Unscored answers are grey. Grey is never folded into red: "not scored" and
"scored low" mean different things to a coach.
"""

from typing import Mapping, Optional, Union
import logging

from pydantic import ValidationError

from core.exceptions import ThresholdValidationError
from services.checkin_constants import (
    PROFILE_THRESHOLDS,
    TRAFFIC_LIGHT_ICONS,
    TRAFFIC_LIGHT_LABELS,
    TRAFFIC_LIGHT_MESSAGES,
    UNSCORED_TYPES,
    EngineDefaults,
    QuestionType,
    ScoringProfile,
    TrafficLight,
    get_engine_defaults,
)
from schemas import LegacyScoringThresholds, ScoringThresholds, ThresholdConfig

logger = logging.getLogger(__name__)


ThresholdSource = Union[ScoringThresholds, ThresholdConfig, ScoringProfile, str, None]


def parse_profile(name: Union[ScoringProfile, str, None]) -> Optional[ScoringProfile]:
    """Profile from a stored name; None when empty or unknown."""
    if isinstance(name, ScoringProfile):
        return name
    if not name:
        return None
    key = str(name).strip().lower().replace("_", "-").replace(" ", "-")
    try:
        return ScoringProfile(key)
    except ValueError:
        logger.warning(f"Unknown scoring profile {name!r}")
        return None


def get_default_thresholds(profile: Union[ScoringProfile, str, None] = None,
                           defaults: Optional[EngineDefaults] = None) -> ScoringThresholds:
    """Default thresholds for a profile (the configured default profile if unknown)."""
    resolved = parse_profile(profile) or (defaults or get_engine_defaults()).scoring_profile
    return ScoringThresholds(**PROFILE_THRESHOLDS[resolved])


def build_thresholds(red_max: object, orange_max: object) -> ScoringThresholds:
    """
    Strictly build canonical thresholds.

    Raises:
        ThresholdValidationError: unless 0 <= red_max < orange_max <= 99
    """
    try:
        return ScoringThresholds(red_max=red_max, orange_max=orange_max)
    except ValidationError as e:
        raise ThresholdValidationError(red_max, orange_max) from e


def convert_legacy_thresholds(
    legacy: Union[LegacyScoringThresholds, Mapping[str, Optional[float]]],
    profile: Union[ScoringProfile, str, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> ScoringThresholds:
    """
    Convert old {red, yellow} cut points to {red_max, orange_max}.

    `red` is the top of the red zone and `yellow` the top of the orange zone,
    so {red: 33, yellow: 80} becomes {red_max: 33, orange_max: 80}.
    Anything that does not convert into valid thresholds falls back to the
    profile default.
    """
    if not isinstance(legacy, LegacyScoringThresholds):
        legacy = LegacyScoringThresholds(**dict(legacy))

    if legacy.red is None or legacy.yellow is None:
        return get_default_thresholds(profile, defaults)

    try:
        return build_thresholds(int(round(legacy.red)), int(round(legacy.yellow)))
    except ThresholdValidationError as e:
        logger.warning(f"Legacy thresholds rejected, using profile default: {e.detail}")
        return get_default_thresholds(profile, defaults)


def thresholds_from_config(config: ThresholdConfig,
                           defaults: Optional[EngineDefaults] = None) -> ScoringThresholds:
    """
    Resolve one stored configuration into usable thresholds.

    Custom values (canonical first, then legacy) override the profile
    default; invalid custom values fall back to it.
    """
    if config.has_custom_values:
        try:
            return build_thresholds(config.red_max, config.orange_max)
        except ThresholdValidationError as e:
            logger.warning(f"Custom thresholds rejected, using profile default: {e.detail}")
            return get_default_thresholds(config.profile, defaults)

    if config.legacy is not None:
        return convert_legacy_thresholds(config.legacy, config.profile, defaults)

    return get_default_thresholds(config.profile, defaults)


def _is_configured(config: Optional[ThresholdConfig]) -> bool:
    if config is None:
        return False
    return bool(
        parse_profile(config.profile)
        or config.has_custom_values
        or config.legacy is not None
    )


def resolve_thresholds(
    client_config: Optional[ThresholdConfig] = None,
    form_config: Optional[ThresholdConfig] = None,
    fallback_profile: Union[ScoringProfile, str, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> ScoringThresholds:
    """
    Pick the thresholds that apply to a client's scores.

    Order: client configuration, then form configuration, then the fallback
    profile (the configured default profile when none is given).
    """
    for config in (client_config, form_config):
        if _is_configured(config):
            return thresholds_from_config(config, defaults)
    return get_default_thresholds(fallback_profile, defaults)


def coerce_thresholds(source: ThresholdSource, defaults: Optional[EngineDefaults] = None) -> ScoringThresholds:
    """Canonical thresholds from any supported threshold source."""
    if isinstance(source, ScoringThresholds):
        return source
    if isinstance(source, ThresholdConfig):
        return thresholds_from_config(source, defaults)
    return get_default_thresholds(source, defaults)


def classify(score: float, thresholds: ThresholdSource = None,
             defaults: Optional[EngineDefaults] = None) -> TrafficLight:
    """
    Classify a 0-100 score as red, orange or green.

    Args:
        score: Submission score
        thresholds: Canonical thresholds, a stored configuration, or a profile name

    Returns:
        TrafficLight.RED, ORANGE or GREEN
    """
    resolved = coerce_thresholds(thresholds, defaults)
    if score <= resolved.red_max:
        return TrafficLight.RED
    if score <= resolved.orange_max:
        return TrafficLight.ORANGE
    return TrafficLight.GREEN


def is_unscored_answer(weight: Optional[int], declared_type: Union[QuestionType, str, None]) -> bool:
    if not weight:
        return True
    try:
        return QuestionType(declared_type) in UNSCORED_TYPES
    except ValueError:
        return False


def classify_answer(
    sub_score: Optional[float],
    weight: Optional[int],
    declared_type: Union[QuestionType, str, None],
    thresholds: ThresholdSource = None,
    defaults: Optional[EngineDefaults] = None,
) -> TrafficLight:
    """
    Status of a single answer's 0-10 sub-score.

    Unscored answers (weight 0, text-like, or no usable value) are grey;
    scored ones are classified at sub_score × 10 against the same thresholds
    as whole submissions.
    """
    if sub_score is None or is_unscored_answer(weight, declared_type):
        return TrafficLight.GREY
    return classify(sub_score * 10, thresholds, defaults)


def get_traffic_light_label(status: TrafficLight) -> str:
    return TRAFFIC_LIGHT_LABELS[TrafficLight(status)]


def get_traffic_light_message(status: TrafficLight) -> str:
    return TRAFFIC_LIGHT_MESSAGES[TrafficLight(status)]


def get_traffic_light_icon(status: TrafficLight) -> str:
    return TRAFFIC_LIGHT_ICONS[TrafficLight(status)]


def get_score_range_description(thresholds: ScoringThresholds) -> str:
    """'Red: 0-33% | Orange: 34-80% | Green: 81-100%'"""
    return (
        f"Red: 0-{thresholds.red_max}% | "
        f"Orange: {thresholds.red_max + 1}-{thresholds.orange_max}% | "
        f"Green: {thresholds.orange_max + 1}-100%"
    )
