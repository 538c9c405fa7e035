"""Tests for diagnostic scoring and 3PL refinement."""

from itertools import product

import pytest

from app.core.exceptions import InvalidInputError
from app.irt import ability as estimator
from app.schemas.progression import AbilityState, DiagnosticPhase, IrtParameters


class TestEstimateFromDiagnostic:

    def test_seven_of_ten_in_grade_seven(self):
        result = estimator.estimate_from_diagnostic([True] * 7 + [False] * 3, grade=7)

        assert result.theta == pytest.approx(0.8)
        assert result.estimated_level == 8
        assert result.grade == 7

    def test_all_wrong_and_all_right(self):
        low = estimator.estimate_from_diagnostic([False] * 10, grade=1)
        high = estimator.estimate_from_diagnostic([True] * 10, grade=12)

        assert low.theta == -2.0
        assert low.estimated_level == 1
        assert high.theta == 2.0
        assert high.estimated_level == 12

    def test_level_rounding(self):
        assert estimator.estimate_from_diagnostic([True] * 5 + [False] * 5, grade=7).estimated_level == 7
        assert estimator.estimate_from_diagnostic([True] * 3 + [False] * 7, grade=6).estimated_level == 5

    @pytest.mark.parametrize("grade", range(1, 13))
    def test_bounds_hold_for_every_sequence(self, grade):
        for answers in product([True, False], repeat=10):
            result = estimator.estimate_from_diagnostic(answers, grade)
            assert -4 <= result.theta <= 4
            assert 1 <= result.estimated_level <= 12

    @pytest.mark.parametrize("count", [0, 9, 11])
    def test_wrong_answer_count_rejected(self, count):
        with pytest.raises(InvalidInputError):
            estimator.estimate_from_diagnostic([True] * count, grade=5)

    @pytest.mark.parametrize("grade", [0, 13, -1])
    def test_grade_out_of_range_rejected(self, grade):
        with pytest.raises(InvalidInputError):
            estimator.estimate_from_diagnostic([True] * 10, grade=grade)


class TestInterimTheta:

    def test_routing_formula(self):
        assert estimator.interim_theta(0) == pytest.approx(-1.0)
        assert estimator.interim_theta(5) == pytest.approx(1.0)
        assert estimator.interim_theta(10) == pytest.approx(3.0)

    def test_differs_from_final_theta(self):
        final = estimator.estimate_from_diagnostic([True] * 5 + [False] * 5, grade=7).theta
        assert final == 0.0
        assert estimator.interim_theta(5) != final

    def test_out_of_range_rejected(self):
        with pytest.raises(InvalidInputError):
            estimator.interim_theta(11)


class TestDiagnosticStateMachine:

    def test_run_completes_after_ten_answers(self):
        run = estimator.start_diagnostic(8)
        assert run.phase is DiagnosticPhase.AWAITING_ITEM

        for index in range(10):
            assert run.item_index == index
            run = estimator.record_answer(run, index % 2 == 0, "algebra", f"problem {index}")

        assert run.phase is DiagnosticPhase.COMPLETED
        assert run.correct_so_far == 5
        assert len(run.previous_problem_texts) == 10

        ability = estimator.finalize(run)
        assert ability.theta == 0.0
        assert ability.estimated_level == 8

    def test_recording_does_not_mutate(self):
        run = estimator.start_diagnostic(4)
        advanced = estimator.record_answer(run, True, "arithmetic")

        assert run.answers == ()
        assert advanced.answers == (True,)
        assert advanced.asked_topics == ("arithmetic",)

    def test_answer_after_completion_rejected(self):
        run = estimator.start_diagnostic(5)
        for _ in range(10):
            run = estimator.record_answer(run, True, "fractions")

        with pytest.raises(InvalidInputError):
            estimator.record_answer(run, True, "fractions")

    def test_finalize_before_tenth_item_rejected(self):
        run = estimator.start_diagnostic(5)
        for _ in range(9):
            run = estimator.record_answer(run, True, "fractions")

        with pytest.raises(InvalidInputError):
            estimator.finalize(run)

    def test_invalid_grade_rejected(self):
        with pytest.raises(InvalidInputError):
            estimator.start_diagnostic(13)


class TestThreeParameterModel:

    def test_probability_at_difficulty(self):
        params = IrtParameters(b=0.0)
        # c + (1 - c) / 2
        assert estimator.probability(0.0, params) == pytest.approx(0.6)

    def test_correct_answer_raises_theta(self):
        ability = AbilityState(theta=0.0, grade=7, estimated_level=7)
        refined = estimator.refine(ability, IrtParameters(b=0.0), correct=True)

        assert refined.theta == pytest.approx(0.24)
        assert refined.grade == 7
        assert refined.estimated_level == 7
        assert ability.theta == 0.0

    def test_wrong_answer_lowers_theta(self):
        ability = AbilityState(theta=0.0, grade=7, estimated_level=7)
        refined = estimator.refine(ability, IrtParameters(b=0.0), correct=False)

        assert refined.theta < 0.0

    def test_theta_stays_clamped(self):
        assert estimator.update_theta(4.0, IrtParameters(b=-4.0, c=0.0), True) <= 4.0
        assert estimator.update_theta(-4.0, IrtParameters(b=4.0, c=0.0), False) >= -4.0

    def test_standard_error_shrinks_with_more_items(self):
        items = [IrtParameters(b=0.0)] * 3
        assert estimator.standard_error(0.0, items) < estimator.standard_error(0.0, items[:1])
        assert estimator.standard_error(0.0, []) == float("inf")

    def test_describe_ability(self):
        assert estimator.describe_ability(0.0)["percentile"] == 50
        assert estimator.describe_ability(0.0)["level"] == "average"
        assert estimator.describe_ability(2.5)["level"] == "top"
        assert estimator.describe_ability(-2.0)["level"] == "beginner"
