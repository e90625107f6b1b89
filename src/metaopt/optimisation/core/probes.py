"""
Run probes: observers that harvest one metric over a run's lifetime.

Probes are run-scoped. ``initialise_before_run`` resets them, so a probe can
be reused across repeated runs without carrying observations over.
"""

import math
import time
from abc import abstractmethod
from typing import TYPE_CHECKING, Any

from .configurable import Configurable
from .listeners import SolutionEvaluationListener

if TYPE_CHECKING:
    from .algorithm import Algorithm
    from .problem import Problem
    from .solution import Solution


class RunProbe(Configurable):
    """Base class for all run probes.

    ``numeric`` probes yield a real number per run and can be summarised
    and compared statistically.
    """

    key = ""
    numeric = True

    def reset(self) -> None:
        pass

    def initialise_before_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        self.reset()

    def cleanup_after_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        pass

    @property
    @abstractmethod
    def observation(self) -> Any:
        """The value harvested so far."""


class SolutionEvaluatedProbe(RunProbe, SolutionEvaluationListener):
    """A probe fed by the problem's evaluation events."""

    def __init__(self):
        self._problem: "Problem | None" = None

    def initialise_before_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        super().initialise_before_run(problem, algorithm)
        problem.add_listener(self)
        self._problem = problem

    def cleanup_after_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        super().cleanup_after_run(problem, algorithm)
        problem.remove_listener(self)
        self._problem = None


class BestScoreProbe(SolutionEvaluatedProbe):
    name = "Best Score"
    key = "best_score"

    def __init__(self):
        super().__init__()
        self.best_score = math.nan

    def solution_evaluated_event(self, solution: "Solution") -> None:
        score = solution.score
        if math.isnan(self.best_score) or self._problem.is_better(score, self.best_score):
            self.best_score = score

    def reset(self) -> None:
        self.best_score = math.nan

    @property
    def observation(self) -> float:
        return self.best_score


class BestSolutionProbe(SolutionEvaluatedProbe):
    name = "Best Solution"
    key = "best_solution"
    numeric = False

    def __init__(self):
        super().__init__()
        self.best_solution: "Solution | None" = None

    def solution_evaluated_event(self, solution: "Solution") -> None:
        if self.best_solution is None or self._problem.is_better(solution, self.best_solution):
            self.best_solution = solution

    def reset(self) -> None:
        self.best_solution = None

    @property
    def observation(self) -> "Solution | None":
        return self.best_solution


class TotalEvaluationsProbe(SolutionEvaluatedProbe):
    name = "Total Evaluations"
    key = "total_evaluations"

    def __init__(self):
        super().__init__()
        self.completed_evaluations = 0

    def solution_evaluated_event(self, solution: "Solution") -> None:
        self.completed_evaluations += 1

    def reset(self) -> None:
        self.completed_evaluations = 0

    @property
    def observation(self) -> int:
        return self.completed_evaluations


class RunTimeProbe(RunProbe):
    """Wall-clock run time in milliseconds, ``None`` until the run has ended."""

    name = "Run Time Milliseconds"
    key = "run_time_ms"

    def __init__(self):
        self.start_time: float | None = None
        self.end_time: float | None = None

    def initialise_before_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        super().initialise_before_run(problem, algorithm)
        self.start_time = time.perf_counter()

    def cleanup_after_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        super().cleanup_after_run(problem, algorithm)
        self.end_time = time.perf_counter()

    def reset(self) -> None:
        self.start_time = None
        self.end_time = None

    @property
    def observation(self) -> float | None:
        if self.start_time is None or self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000.0


def default_probes() -> list[RunProbe]:
    """Probes attached when an experiment does not name any."""
    return [BestScoreProbe(), BestSolutionProbe(), TotalEvaluationsProbe(), RunTimeProbe()]


PROBES: dict[str, type[RunProbe]] = {
    probe.key: probe for probe in (BestScoreProbe, BestSolutionProbe, TotalEvaluationsProbe, RunTimeProbe)
}
