"""
Stop conditions composing a run's evaluation budget.

Each condition is an independent predicate over run state. The problem ORs
them: the run stops the first time any one of them triggers. A triggered
condition latches until ``reset()``, which ``initialise_before_run`` calls
so problems and conditions can be reused across repeated runs.

Conditions that observe evaluations attach themselves to the problem as
listeners in ``initialise_before_run`` and detach in ``cleanup_after_run``.

Score comparisons in the convergence and lack-of-improvement conditions
use exact floating point equality on purpose: they detect literal
stagnation.
"""

import logging
import math
import time
from abc import abstractmethod
from collections import deque
from typing import TYPE_CHECKING

from metaopt.exceptions import InvalidConfigurationError

from .configurable import Configurable
from .listeners import SolutionEvaluationListener

if TYPE_CHECKING:
    from .algorithm import Algorithm
    from .problem import Problem
    from .solution import Solution

logger = logging.getLogger(__name__)


class StopCondition(Configurable):
    """Base class for all stop conditions."""

    user_configurable = True

    def __init__(self):
        self._triggered = False
        self._trigger_time: float | None = None

    @property
    def triggered(self) -> bool:
        return self._triggered

    @property
    def trigger_time(self) -> float | None:
        """Epoch seconds at which the condition first triggered."""
        return self._trigger_time

    @abstractmethod
    def must_stop_internal(self) -> bool:
        """Pure predicate over the condition's accumulated state."""

    def must_stop(self) -> bool:
        if self._triggered:
            return True
        if self.must_stop_internal():
            self._triggered = True
            self._trigger_time = time.time()
            logger.debug(f"Stop condition triggered: {self.get_name()} ({self.configuration_details()})")
            return True
        return False

    def reset(self) -> None:
        self._triggered = False
        self._trigger_time = None

    def initialise_before_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        self.reset()

    def cleanup_after_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        pass

    def details(self) -> str:
        return f"Name={self.get_name()},Triggered={self._triggered},TriggeredTime={self._trigger_time}"


class SolutionEvaluatedStopCondition(StopCondition, SolutionEvaluationListener):
    """A stop condition fed by the problem's evaluation events."""

    def __init__(self):
        super().__init__()
        self._problem: "Problem | None" = None

    def initialise_before_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        super().initialise_before_run(problem, algorithm)
        problem.add_listener(self)
        self._problem = problem

    def cleanup_after_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        super().cleanup_after_run(problem, algorithm)
        problem.remove_listener(self)
        self._problem = None


class EvaluationsStopCondition(SolutionEvaluatedStopCondition):
    """Stop once a fixed number of evaluations has been reached."""

    name = "Total Evaluations"
    PARAMETERS = ("max_evaluations",)

    def __init__(self, max_evaluations: int = 1000):
        super().__init__()
        self.max_evaluations = max_evaluations
        self.count = 0

    def solution_evaluated_event(self, solution: "Solution") -> None:
        self.count += 1

    def must_stop_internal(self) -> bool:
        # >= rather than ==: batches may overshoot
        return self.count >= self.max_evaluations

    def reset(self) -> None:
        super().reset()
        self.count = 0

    def validate_configuration(self) -> None:
        if self.max_evaluations < 1:
            raise InvalidConfigurationError("Maximum evaluations must be >= 1",
                                            field="max_evaluations", value=self.max_evaluations)


class EvaluationConvergenceStopCondition(SolutionEvaluatedStopCondition):
    """Stop when the last ``window_size`` scores are all identical."""

    name = "Convergence (Evaluations)"
    PARAMETERS = ("window_size",)

    def __init__(self, window_size: int = 1000):
        super().__init__()
        self.window_size = window_size
        self.window: deque[float] = deque()

    def solution_evaluated_event(self, solution: "Solution") -> None:
        self.window.append(solution.score)
        while len(self.window) > self.window_size:
            self.window.popleft()

    def must_stop_internal(self) -> bool:
        if len(self.window) < self.window_size:
            return False
        first = self.window[0]
        return all(score == first for score in self.window)

    def reset(self) -> None:
        super().reset()
        self.window.clear()

    def validate_configuration(self) -> None:
        if self.window_size < 2:
            raise InvalidConfigurationError("Convergence window size must be >= 2",
                                            field="window_size", value=self.window_size)


class LackOfImprovementStopCondition(SolutionEvaluatedStopCondition):
    """Stop after ``window_size`` consecutive evaluations without a strictly
    better score than the best seen so far in the run."""

    name = "No Improvement (Evaluations)"
    PARAMETERS = ("window_size",)

    def __init__(self, window_size: int = 1000):
        super().__init__()
        self.window_size = window_size
        self.count_since_last_improvement = 0
        self.best_score = math.nan

    def solution_evaluated_event(self, solution: "Solution") -> None:
        score = solution.score
        # NaN means no best yet, so the first evaluation is always an improvement
        if math.isnan(self.best_score) or self._problem.is_better(score, self.best_score):
            self.count_since_last_improvement = 0
            self.best_score = score
        else:
            self.count_since_last_improvement += 1

    def must_stop_internal(self) -> bool:
        return self.count_since_last_improvement >= self.window_size

    def reset(self) -> None:
        super().reset()
        self.count_since_last_improvement = 0
        self.best_score = math.nan

    def validate_configuration(self) -> None:
        if self.window_size < 2:
            raise InvalidConfigurationError("Window size must be >= 2",
                                            field="window_size", value=self.window_size)


class RunTimeStopCondition(StopCondition):
    """Stop once the run has been going for ``max_seconds`` of wall-clock time."""

    name = "Run Time (Seconds)"
    PARAMETERS = ("max_seconds",)

    def __init__(self, max_seconds: float = 60.0):
        super().__init__()
        self.max_seconds = max_seconds
        self.start_time: float | None = None

    def initialise_before_run(self, problem: "Problem", algorithm: "Algorithm") -> None:
        super().initialise_before_run(problem, algorithm)
        self.start_time = time.perf_counter()

    def must_stop_internal(self) -> bool:
        if self.start_time is None:
            return False
        return time.perf_counter() - self.start_time >= self.max_seconds

    def reset(self) -> None:
        super().reset()
        self.start_time = None

    def validate_configuration(self) -> None:
        if not self.max_seconds > 0:
            raise InvalidConfigurationError("Maximum run time must be positive",
                                            field="max_seconds", value=self.max_seconds)


def default_stop_conditions() -> list[StopCondition]:
    """Stop conditions used when an experiment does not name any."""
    return [EvaluationsStopCondition(1000)]


STOP_CONDITIONS: dict[str, type[StopCondition]] = {
    "evaluations": EvaluationsStopCondition,
    "convergence": EvaluationConvergenceStopCondition,
    "lack_of_improvement": LackOfImprovementStopCondition,
    "run_time": RunTimeStopCondition,
}
