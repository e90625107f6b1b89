"""
The Problem side of the evaluation contract.

A Problem owns the cost function, the minimise/maximise direction,
solution-safety validation, the stop conditions composing its evaluation
budget and the run-scoped registry of evaluation listeners.

Budget enforcement lives in ``cost``: once any attached stop condition
reports that the run must stop, every further ``cost`` call is a no-op and
the solutions passed in stay unevaluated. Algorithms still have to guard
their loops with ``can_evaluate()`` to avoid wasted work, but they can never
push the problem past its budget.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

import numpy as np

from metaopt.exceptions import (
    InvalidConfigurationError,
    ListenerRegistrationError,
    SolutionEvaluationError,
    SolutionSafetyError,
)

from .configurable import Configurable
from .listeners import SolutionEvaluationListener
from .solution import (
    BinaryRepresentable,
    BitStringSolution,
    CoordinateRepresentable,
    CoordinateSolution,
    Solution,
)
from .stop_conditions import (
    EvaluationConvergenceStopCondition,
    EvaluationsStopCondition,
    LackOfImprovementStopCondition,
    RunTimeStopCondition,
    StopCondition,
)

logger = logging.getLogger(__name__)


class Evaluable(ABC):
    """Capability: computes a scalar cost for a solution."""

    @abstractmethod
    def problem_specific_cost(self, solution: Solution) -> float:
        pass


class SafetyCheckable(ABC):
    """Capability: validates the structure of a solution before it is costed."""

    @abstractmethod
    def check_solution_for_safety(self, solution: Solution) -> None:
        """Raise SolutionSafetyError if the solution cannot be evaluated."""


class Samplable(ABC):
    """Capability: draws uniformly random solutions."""

    @abstractmethod
    def random_solution(self, rng: np.random.Generator) -> Solution:
        pass


class Problem(Configurable, Evaluable, SafetyCheckable):
    """Base class for all problems."""

    minimization: bool = True

    def __init__(self):
        self._stop_conditions: list[StopCondition] = []
        self._listeners: list[SolutionEvaluationListener] = []
        self.evaluations = 0

    @property
    def is_minimization(self) -> bool:
        return self.minimization

    # ------------------------------------------------------------------
    # Stop conditions
    # ------------------------------------------------------------------

    @property
    def stop_conditions(self) -> tuple[StopCondition, ...]:
        return tuple(self._stop_conditions)

    def add_stop_condition(self, condition: StopCondition) -> None:
        self._stop_conditions.append(condition)

    def clear_stop_conditions(self) -> None:
        self._stop_conditions.clear()

    def supported_stop_conditions(self) -> list[type[StopCondition]]:
        return [
            EvaluationsStopCondition,
            EvaluationConvergenceStopCondition,
            LackOfImprovementStopCondition,
            RunTimeStopCondition,
        ]

    def can_evaluate(self) -> bool:
        """False as soon as any attached stop condition says the run must stop."""
        for condition in self._stop_conditions:
            if condition.must_stop():
                return False
        return True

    # ------------------------------------------------------------------
    # Listener registry
    # ------------------------------------------------------------------

    @property
    def listeners(self) -> tuple[SolutionEvaluationListener, ...]:
        return tuple(self._listeners)

    def add_listener(self, listener: SolutionEvaluationListener) -> None:
        if any(existing is listener for existing in self._listeners):
            raise ListenerRegistrationError(f"{listener} is already attached to {self.get_name()}")
        self._listeners.append(listener)

    def remove_listener(self, listener: SolutionEvaluationListener) -> None:
        for i, existing in enumerate(self._listeners):
            if existing is listener:
                del self._listeners[i]
                return
        raise ListenerRegistrationError(f"{listener} is not attached to {self.get_name()}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def validate_configuration(self) -> None:
        if not self._stop_conditions:
            raise InvalidConfigurationError(
                f"{self.get_name()} has no stop conditions", field="stop_conditions", value=[]
            )

    def initialise_before_run(self) -> None:
        """Acquire datasets or other resources. Raise InitialisationError on failure."""
        self.evaluations = 0

    def cleanup_after_run(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def cost(self, solutions: Solution | Iterable[Solution]) -> None:
        """Evaluate one solution or a batch.

        Already evaluated solutions are skipped. A batch stops as soon as the
        budget runs out, leaving the rest of the batch unevaluated.
        """
        if isinstance(solutions, Solution):
            self._cost_one(solutions)
            return

        for solution in solutions:
            # budget check before every scalar evaluation
            if not self.can_evaluate():
                break
            if solution.evaluated:
                continue
            self._cost_one(solution)

    def _cost_one(self, solution: Solution) -> None:
        if not self.can_evaluate():
            return
        if solution.evaluated:
            logger.debug(f"Skipping already evaluated {solution!r}")
            return

        self.check_solution_for_safety(solution)
        score = float(self.problem_specific_cost(solution))
        if not math.isfinite(score):
            raise SolutionEvaluationError(
                f"{self.get_name()} produced a non-finite score {score} for {solution!r}"
            )
        solution.mark_evaluated(score)
        self.evaluations += 1

        for listener in tuple(self._listeners):
            listener.solution_evaluated_event(solution)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    @staticmethod
    def _as_score(value: Solution | float) -> float:
        return value.score if isinstance(value, Solution) else float(value)

    def is_better(self, a: Solution | float, b: Solution | float) -> bool:
        """Strictly better; ties are not better."""
        sa, sb = self._as_score(a), self._as_score(b)
        return sa < sb if self.minimization else sa > sb

    def is_better_or_same(self, a: Solution | float, b: Solution | float) -> bool:
        sa, sb = self._as_score(a), self._as_score(b)
        return self.is_better(sa, sb) or sa == sb

    def best_index(self, population: Sequence[Solution]) -> int:
        """Index of the best evaluated solution; earliest index wins ties."""
        best = None
        for i, solution in enumerate(population):
            if not solution.evaluated:
                continue
            if best is None or self.is_better(solution, population[best]):
                best = i
        if best is None:
            raise SolutionEvaluationError("Population contains no evaluated solutions")
        return best

    def ranked_indices(self, population: Sequence[Solution]) -> list[int]:
        """Indices of the evaluated solutions, best first."""
        indices = [i for i, s in enumerate(population) if s.evaluated]
        direction = 1.0 if self.minimization else -1.0
        return sorted(indices, key=lambda i: direction * population[i].score)


class BinaryProblem(Problem, Samplable):
    """Problems over fixed-length bit strings."""

    PARAMETERS = ("length",)
    minimization = False

    def __init__(self, length: int = 64):
        super().__init__()
        self.length = length

    def validate_configuration(self) -> None:
        super().validate_configuration()
        if not isinstance(self.length, (int, np.integer)) or self.length < 1:
            raise InvalidConfigurationError("Bit string length must be a positive integer",
                                            field="length", value=self.length)

    def check_solution_for_safety(self, solution: Solution) -> None:
        if not isinstance(solution, BinaryRepresentable):
            raise SolutionSafetyError(f"{self.get_name()} expects bit string solutions, got {solution!r}")
        if solution.bitstring.shape != (self.length,):
            raise SolutionSafetyError(
                f"Bit string length {solution.bitstring.shape} does not match problem length {self.length}"
            )

    def random_solution(self, rng: np.random.Generator) -> BitStringSolution:
        return BitStringSolution(rng.random(self.length) < 0.5)


class ContinuousProblem(Problem, Samplable):
    """Problems over a symmetric box ``[-bound, bound]^dimensions``."""

    PARAMETERS = ("dimensions", "bound")
    minimization = True

    def __init__(self, dimensions: int = 2, bound: float = 5.12):
        super().__init__()
        self.dimensions = dimensions
        self.bound = bound

    @property
    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        lower = np.full(self.dimensions, -float(self.bound))
        upper = np.full(self.dimensions, float(self.bound))
        return lower, upper

    def validate_configuration(self) -> None:
        super().validate_configuration()
        if not isinstance(self.dimensions, (int, np.integer)) or self.dimensions < 1:
            raise InvalidConfigurationError("Dimensions must be a positive integer",
                                            field="dimensions", value=self.dimensions)
        if not self.bound > 0:
            raise InvalidConfigurationError("Bound must be positive", field="bound", value=self.bound)

    def check_solution_for_safety(self, solution: Solution) -> None:
        if not isinstance(solution, CoordinateRepresentable):
            raise SolutionSafetyError(f"{self.get_name()} expects coordinate solutions, got {solution!r}")
        coords = solution.coordinates
        if coords.shape != (self.dimensions,):
            raise SolutionSafetyError(
                f"Coordinate shape {coords.shape} does not match problem dimensions {self.dimensions}"
            )
        lower, upper = self.bounds
        if not np.all(np.isfinite(coords)) or np.any(coords < lower) or np.any(coords > upper):
            raise SolutionSafetyError(f"Coordinates out of bounds [-{self.bound}, {self.bound}]: {coords}")

    def random_solution(self, rng: np.random.Generator) -> CoordinateSolution:
        lower, upper = self.bounds
        return CoordinateSolution(rng.uniform(lower, upper))
