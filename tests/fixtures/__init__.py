"""Shared fixtures and helper components for the optimisation tests."""

import numpy as np
import pytest
from scipy import stats

from metaopt.exceptions import SolutionSafetyError
from metaopt.optimisation.core import (
    AlgorithmEpochCompleteListener,
    EvaluationsStopCondition,
    Problem,
    Solution,
    SolutionEvaluationListener,
)
from metaopt.optimisation.problems import OneMax, Sphere


class ValueSolution(Solution):
    """Solution whose cost is the value it carries."""

    def __init__(self, value):
        super().__init__()
        self.value = value


class IdentityProblem(Problem):
    """Minimises the value carried by a ValueSolution."""

    name = "Identity"

    def problem_specific_cost(self, solution):
        return solution.value

    def check_solution_for_safety(self, solution):
        if not isinstance(solution, ValueSolution):
            raise SolutionSafetyError(f"Expected a ValueSolution, got {solution!r}")


class MaximisingIdentityProblem(IdentityProblem):
    name = "Identity (maximise)"
    minimization = False


class RecordingListener(SolutionEvaluationListener):
    """Keeps every evaluated solution, optionally tagging a shared call log."""

    def __init__(self, tag=None, log=None):
        self.tag = tag
        self.log = log
        self.seen = []

    def solution_evaluated_event(self, solution):
        self.seen.append(solution)
        if self.log is not None:
            self.log.append(self.tag)


class RecordingEpochListener(AlgorithmEpochCompleteListener):
    def __init__(self):
        self.populations = []

    def epoch_complete_event(self, problem, population):
        self.populations.append(population)


def stratified_normal(n=500, seed=42, loc=0.0, scale=1.0):
    """Normal sample with one draw per equal-probability stratum."""
    rng = np.random.default_rng(seed)
    return loc + scale * stats.norm.ppf((np.arange(n) + rng.random(n)) / n)


def stratified_uniform(n=500, seed=42):
    rng = np.random.default_rng(seed)
    return (np.arange(n) + rng.random(n)) / n


@pytest.fixture
def identity_problem():
    """Minimising problem with a 1000-evaluation budget attached."""
    problem = IdentityProblem()
    problem.add_stop_condition(EvaluationsStopCondition(1000))
    return problem


@pytest.fixture
def onemax():
    return OneMax(length=32)


@pytest.fixture
def sphere():
    return Sphere(dimensions=3, bound=10.0)


@pytest.fixture
def normal_sample():
    return stratified_normal()


@pytest.fixture
def uniform_sample():
    return stratified_uniform()
