"""
Tests for stop conditions: evaluation budget, convergence, lack of
improvement and wall-clock limits.
"""

import time

import pytest
from fixtures import IdentityProblem, MaximisingIdentityProblem, ValueSolution

from metaopt.exceptions import InvalidConfigurationError
from metaopt.optimisation.core import (
    STOP_CONDITIONS,
    EvaluationConvergenceStopCondition,
    EvaluationsStopCondition,
    LackOfImprovementStopCondition,
    RunTimeStopCondition,
    default_stop_conditions,
)


def feed(problem, scores):
    """Cost one ValueSolution per score, returning whether evaluation may continue."""
    for score in scores:
        problem.cost(ValueSolution(float(score)))
    return problem.can_evaluate()


def attach(problem, condition):
    problem.add_stop_condition(condition)
    condition.initialise_before_run(problem, None)
    return condition


class TestEvaluationsStopCondition:
    def test_triggers_at_max(self):
        problem = IdentityProblem()
        condition = attach(problem, EvaluationsStopCondition(3))

        assert feed(problem, [1, 2])
        assert not feed(problem, [3])
        assert condition.triggered
        assert condition.trigger_time is not None

        print("✅ Evaluation budget triggers at the configured count")

    def test_latches_until_reset(self):
        problem = IdentityProblem()
        condition = attach(problem, EvaluationsStopCondition(1))
        feed(problem, [1])
        assert condition.must_stop()

        condition.count = 0
        assert condition.must_stop()

        condition.reset()
        assert not condition.triggered
        assert condition.trigger_time is None
        assert not condition.must_stop()

    def test_cleanup_detaches(self):
        problem = IdentityProblem()
        condition = attach(problem, EvaluationsStopCondition(5))
        condition.cleanup_after_run(problem, None)
        assert condition not in problem.listeners

    def test_validation(self):
        with pytest.raises(InvalidConfigurationError):
            EvaluationsStopCondition(0).validate_configuration()

    def test_default_is_1000_evaluations(self):
        (condition,) = default_stop_conditions()
        assert isinstance(condition, EvaluationsStopCondition)
        assert condition.max_evaluations == 1000


class TestConvergenceStopCondition:
    def test_identical_window_triggers(self):
        problem = IdentityProblem()
        attach(problem, EvaluationConvergenceStopCondition(window_size=5))
        assert not feed(problem, [3, 3, 3, 3, 3])

        print("✅ Five identical scores trigger convergence")

    def test_differing_score_in_window_does_not_trigger(self):
        problem = IdentityProblem()
        attach(problem, EvaluationConvergenceStopCondition(window_size=5))
        assert feed(problem, [3, 3, 3, 3, 4])

    def test_needs_a_full_window(self):
        problem = IdentityProblem()
        attach(problem, EvaluationConvergenceStopCondition(window_size=5))
        assert feed(problem, [3, 3, 3, 3])

    def test_window_slides(self):
        problem = IdentityProblem()
        attach(problem, EvaluationConvergenceStopCondition(window_size=3))
        assert feed(problem, [1, 2, 5, 5])
        assert not feed(problem, [5])

    def test_window_size_validation(self):
        with pytest.raises(InvalidConfigurationError) as excinfo:
            EvaluationConvergenceStopCondition(window_size=1).validate_configuration()
        assert excinfo.value.field == "window_size"


class TestLackOfImprovementStopCondition:
    def test_counts_evaluations_since_improvement(self):
        problem = IdentityProblem()
        condition = attach(problem, LackOfImprovementStopCondition(window_size=3))

        assert feed(problem, [10, 9, 9, 9])
        assert condition.count_since_last_improvement == 2
        assert not feed(problem, [9])

        print("✅ Lack of improvement triggers after the window")

    def test_improvement_resets_counter(self):
        problem = IdentityProblem()
        condition = attach(problem, LackOfImprovementStopCondition(window_size=3))
        feed(problem, [10, 10, 10, 8])
        assert condition.count_since_last_improvement == 0
        assert condition.best_score == 8.0

    def test_uses_problem_direction(self):
        problem = MaximisingIdentityProblem()
        condition = attach(problem, LackOfImprovementStopCondition(window_size=2))
        feed(problem, [1, 2, 3])
        assert condition.count_since_last_improvement == 0
        assert condition.best_score == 3.0

    def test_reset_forgets_best(self):
        problem = IdentityProblem()
        condition = attach(problem, LackOfImprovementStopCondition(window_size=3))
        feed(problem, [1, 2])
        condition.reset()
        assert condition.count_since_last_improvement == 0
        assert condition.best_score != condition.best_score  # NaN


class TestRunTimeStopCondition:
    def test_triggers_after_max_seconds(self):
        problem = IdentityProblem()
        condition = attach(problem, RunTimeStopCondition(max_seconds=0.01))
        time.sleep(0.05)
        assert condition.must_stop()

    def test_does_not_trigger_before_start(self):
        assert not RunTimeStopCondition(max_seconds=0.001).must_stop()

    def test_validation(self):
        with pytest.raises(InvalidConfigurationError):
            RunTimeStopCondition(max_seconds=0).validate_configuration()


class TestComposition:
    def test_any_condition_stops_the_run(self):
        problem = IdentityProblem()
        attach(problem, EvaluationsStopCondition(100))
        attach(problem, EvaluationConvergenceStopCondition(window_size=2))
        assert not feed(problem, [1, 1])

    def test_registry_keys(self):
        assert set(STOP_CONDITIONS) == {"evaluations", "convergence", "lack_of_improvement", "run_time"}
        for cls in STOP_CONDITIONS.values():
            assert cls().get_name()
