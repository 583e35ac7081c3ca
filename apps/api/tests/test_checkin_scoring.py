"""
Tests for the check-in score calculator

Covers per-type sub-score conversion, weighted aggregation, and the
"no scored answers means no score" rule.
"""
import pytest

from services.checkin_scoring import compute_score, score_answer, score_check_in


class TestSubScoreConversion:
    """Each declared type maps to a 0-10 sub-score"""

    def test_scale_value_is_sub_score(self, make_answer):
        detail = score_answer(make_answer(value=7, declared_type="scale"))
        assert detail.scored
        assert detail.sub_score == 7

    def test_rating_alias_behaves_like_scale(self, make_answer):
        detail = score_answer(make_answer(value=6, declared_type="rating"))
        assert detail.scored
        assert detail.sub_score == 6

    def test_scale_clamped_to_ten(self, make_answer):
        assert score_answer(make_answer(value=14, declared_type="scale")).sub_score == 10
        assert score_answer(make_answer(value=-3, declared_type="scale")).sub_score == 0

    def test_number_passes_through_with_clamp(self, make_answer):
        assert score_answer(make_answer(value="4.5", declared_type="number")).sub_score == 4.5
        assert score_answer(make_answer(value=250, declared_type="number")).sub_score == 10

    def test_boolean_defaults(self, make_answer):
        assert score_answer(make_answer(value=True, declared_type="boolean")).sub_score == 8
        assert score_answer(make_answer(value=False, declared_type="boolean")).sub_score == 3
        assert score_answer(make_answer(value="Yes", declared_type="boolean")).sub_score == 8
        assert score_answer(make_answer(value="no", declared_type="boolean")).sub_score == 3

    def test_boolean_option_weights_encode_polarity(self, make_answer):
        # "Did you miss any meals?" - yes is the bad answer
        answer = make_answer(value="yes", declared_type="boolean",
                             option_weights={"Yes": 2, "No": 9})
        assert score_answer(answer).sub_score == 2

    def test_select_uses_option_weight(self, make_answer):
        answer = make_answer(value="Good", declared_type="select",
                             option_weights={"Poor": 2, "Good": 7, "Great": 10})
        assert score_answer(answer).sub_score == 7

    def test_multiselect_averages_chosen_options(self, make_answer):
        answer = make_answer(value=["Walk", "Gym"], declared_type="multiselect",
                             option_weights={"Walk": 6, "Gym": 9, "None": 1})
        assert score_answer(answer).sub_score == 7.5

    def test_select_unknown_option_is_excluded(self, make_answer):
        answer = make_answer(value="Meh", declared_type="select", option_weights={"Good": 7})
        detail = score_answer(answer)
        assert not detail.scored
        assert detail.sub_score is None
        assert "Meh" in detail.excluded_reason

    def test_text_is_neutral_and_never_weighted(self, make_answer):
        detail = score_answer(make_answer(value="Felt tired", declared_type="text", weight=10))
        assert detail.sub_score == 5
        assert detail.weight == 0
        assert not detail.scored

    def test_textarea_never_weighted(self, make_answer):
        detail = score_answer(make_answer(value="Long notes", declared_type="textarea", weight=8))
        assert detail.weight == 0
        assert not detail.scored


class TestWeightedAggregation:
    """Σ sub_score × weight / (Σ weight × 10) × 100"""

    def test_single_answer(self, make_answer):
        assert compute_score([make_answer(value=8, weight=5)]) == 80

    def test_weights_shift_the_total(self, make_answer):
        answers = [
            make_answer(value=10, weight=8),
            make_answer(value=2, weight=2),
        ]
        # (80 + 4) / (10 * 10) * 100 = 84
        assert compute_score(answers) == 84

    def test_rounds_half_up(self, make_answer):
        answers = [
            make_answer(value=8, weight=1),
            make_answer(value=8.5, weight=1),
        ]
        # 16.5 / 20 * 100 = 82.5
        assert compute_score(answers) == 83

    def test_zero_weight_does_not_influence_score(self, make_answer):
        base = [make_answer(value=9, weight=5)]
        with_context = base + [make_answer(value=0, weight=0)]
        assert compute_score(base) == compute_score(with_context) == 90

    def test_text_answers_do_not_influence_score(self, make_answer):
        base = [make_answer(value=6, weight=4)]
        with_text = base + [make_answer(value="great week", declared_type="text", weight=9)]
        assert compute_score(with_text) == compute_score(base) == 60

    def test_unparsable_number_is_excluded_not_zero(self, make_answer):
        answers = [
            make_answer(value=10, weight=5),
            make_answer(value="lots", declared_type="number", weight=5),
        ]
        assert compute_score(answers) == 100

    def test_order_invariant(self, make_answer):
        answers = [
            make_answer(value=3, weight=7),
            make_answer(value="yes", declared_type="boolean", weight=2),
            make_answer(value=["A", "B"], declared_type="multiselect", weight=4,
                        option_weights={"A": 3, "B": 8}),
            make_answer(value=9.7, declared_type="number", weight=1),
        ]
        expected = compute_score(answers)
        assert compute_score(list(reversed(answers))) == expected
        assert compute_score(answers[2:] + answers[:2]) == expected

    def test_breakdown_exposes_sums(self, make_answer):
        breakdown = score_check_in([
            make_answer(value=5, weight=2),
            make_answer(value="n/a", declared_type="text", weight=3),
        ])
        assert breakdown.earned == 10
        assert breakdown.total_weight == 2
        assert breakdown.scored_count == 1
        assert len(breakdown.answers) == 2


class TestUnscoredSubmissions:
    """No scored answers -> None, never 0"""

    def test_empty_answers(self):
        assert compute_score([]) is None

    def test_all_weight_zero_is_none_not_zero(self, make_answer):
        answers = [make_answer(value=0, weight=0), make_answer(value=1, weight=0)]
        assert compute_score(answers) is None

    def test_only_text_answers(self, make_answer):
        answers = [make_answer(value="ok", declared_type="text", weight=5)]
        breakdown = score_check_in(answers)
        assert breakdown.score is None
        assert not breakdown.is_scored

    def test_genuine_zero_is_zero(self, make_answer):
        assert compute_score([make_answer(value=0, weight=5)]) == 0

    @pytest.mark.parametrize("value", [None, "", float("nan")])
    def test_missing_numeric_values_excluded(self, make_answer, value):
        assert compute_score([make_answer(value=value, declared_type="scale", weight=5)]) is None
