"""Listener interfaces fired synchronously by the core."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .problem import Problem
    from .solution import Solution


class SolutionEvaluationListener(ABC):
    """Notified after every individual evaluation, in registration order."""

    @abstractmethod
    def solution_evaluated_event(self, solution: "Solution") -> None:
        pass


class AlgorithmEpochCompleteListener(ABC):
    """Notified once per epoch with a snapshot of the evaluated population.

    Subscribers must not block and must not mutate the population.
    """

    @abstractmethod
    def epoch_complete_event(self, problem: "Problem", population: Sequence["Solution"]) -> None:
        pass
