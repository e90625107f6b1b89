"""
Candidate solutions and their evaluation state.

A ``Solution`` carries an opaque, domain-owned representation plus the
evaluation state written exactly once by ``Problem.cost``. The core never
looks inside the representation; domains expose it through the small
capability interfaces defined here (``BinaryRepresentable``,
``CoordinateRepresentable``).
"""

import copy
from abc import ABC, abstractmethod

import numpy as np

from metaopt.exceptions import SolutionEvaluationError


class Solution:
    """Base class for all candidate solutions."""

    def __init__(self):
        self._score: float | None = None
        self._evaluated = False
        self.normalized_relative_score: float | None = None

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    @property
    def score(self) -> float:
        """The solution's cost; only readable once the solution is evaluated."""
        if not self._evaluated:
            raise SolutionEvaluationError(f"Solution has not been evaluated: {self!r}")
        return self._score

    def mark_evaluated(self, score: float) -> None:
        """Record the score. Called by ``Problem.cost`` only."""
        if self._evaluated:
            raise SolutionEvaluationError(f"Solution has already been evaluated: {self!r}")
        self._score = float(score)
        self._evaluated = True

    def reset_evaluation(self) -> None:
        self._score = None
        self._evaluated = False
        self.normalized_relative_score = None

    def clone(self) -> "Solution":
        """Deep copy of the representation with the evaluation state cleared."""
        other = copy.deepcopy(self)
        other.reset_evaluation()
        return other

    def __repr__(self) -> str:
        state = f"score={self._score}" if self._evaluated else "unevaluated"
        return f"{type(self).__name__}({state})"


class BinaryRepresentable(ABC):
    """Capability: the solution is a fixed-length bit string."""

    @property
    @abstractmethod
    def bitstring(self) -> np.ndarray:
        """Boolean vector."""


class CoordinateRepresentable(ABC):
    """Capability: the solution is a point in a real-valued space."""

    @property
    @abstractmethod
    def coordinates(self) -> np.ndarray:
        """Float vector."""


class BitStringSolution(Solution, BinaryRepresentable):
    def __init__(self, bitstring):
        super().__init__()
        self._bitstring = np.asarray(bitstring, dtype=bool).copy()

    @property
    def bitstring(self) -> np.ndarray:
        return self._bitstring

    def __repr__(self) -> str:
        bits = "".join("1" if b else "0" for b in self._bitstring[:32])
        if len(self._bitstring) > 32:
            bits += "..."
        state = f"score={self._score}" if self._evaluated else "unevaluated"
        return f"BitStringSolution({bits}, {state})"


class CoordinateSolution(Solution, CoordinateRepresentable):
    def __init__(self, coordinates):
        super().__init__()
        self._coordinates = np.asarray(coordinates, dtype=float).copy()

    @property
    def coordinates(self) -> np.ndarray:
        return self._coordinates

    def __repr__(self) -> str:
        state = f"score={self._score}" if self._evaluated else "unevaluated"
        return f"CoordinateSolution({np.array2string(self._coordinates, precision=4)}, {state})"
