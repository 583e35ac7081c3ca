"""
Pytest configuration and fixtures

The engine is pure, so fixtures only build input records and policy
defaults. Nothing touches a clock or a database.
"""
import pytest
import sys
import os
from datetime import datetime, date, time, timezone

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.checkin_constants import EngineDefaults, ScoringProfile
from schemas import CheckInRecord, QuestionAnswer


@pytest.fixture
def defaults():
    """Engine policy pinned to UTC, independent of the host environment."""
    return EngineDefaults(
        scoring_profile=ScoringProfile.LIFESTYLE,
        start_day=5,
        start_time=time(10, 0),
        timezone="UTC",
    )


@pytest.fixture
def make_answer():
    """Factory for QuestionAnswer with scoring-friendly defaults."""
    def _make(value=8, declared_type="scale", weight=5, question_id=None,
              question_text=None, option_weights=None):
        return QuestionAnswer(
            question_id=question_id,
            question_text=question_text,
            value=value,
            declared_type=declared_type,
            weight=weight,
            option_weights=option_weights,
        )
    return _make


@pytest.fixture
def make_record():
    """Factory for submitted CheckInRecord; submitted_at is UTC noon of the given day."""
    counter = {"n": 0}

    def _make(submitted=None, answers=None, score=None, assignment_id=None,
              form_id="form-1", due_date=None, record_id=None):
        counter["n"] += 1
        if isinstance(submitted, date) and not isinstance(submitted, datetime):
            submitted = datetime.combine(submitted, time(12, 0), tzinfo=timezone.utc)
        return CheckInRecord(
            id=record_id or f"rec-{counter['n']}",
            schedule_assignment_id=assignment_id,
            form_id=form_id,
            due_date=due_date,
            submitted_at=submitted,
            answers=answers or [],
            score=score,
        )
    return _make
