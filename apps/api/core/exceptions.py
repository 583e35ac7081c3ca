"""
Custom exception classes.

Every engine error is a local data-shape defect, never a transient fault.
Public engine functions catch these at their documented fallback points.
"""
from typing import Optional


class EngineError(Exception):
    """Base engine exception with consistent structure."""

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code or "ENGINE_ERROR"


class ThresholdValidationError(EngineError):
    """Thresholds violate 0 <= red_max < orange_max <= 99."""

    def __init__(self, red_max: object, orange_max: object):
        super().__init__(
            detail=f"Invalid scoring thresholds: red_max={red_max}, orange_max={orange_max}",
            error_code="INVALID_THRESHOLDS"
        )
        self.red_max = red_max
        self.orange_max = orange_max


class AnswerValueError(EngineError):
    """Answer value cannot be scored as its declared type."""

    def __init__(self, detail: str, question_id: Optional[str] = None):
        error_code = "INVALID_ANSWER_VALUE"
        super().__init__(detail=detail, error_code=error_code)
        self.question_id = question_id


class WindowConfigError(EngineError):
    """Recurring window has an unparsable day or time."""

    def __init__(self, detail: str, field: Optional[str] = None):
        error_code = f"INVALID_WINDOW_{field.upper()}" if field else "INVALID_WINDOW"
        super().__init__(detail=detail, error_code=error_code)
