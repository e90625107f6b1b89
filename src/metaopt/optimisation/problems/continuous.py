"""Continuous function optimisation problems (minimisation)."""

import numpy as np

from ..core.problem import ContinuousProblem
from ..core.solution import Solution


class Sphere(ContinuousProblem):
    """Sum of squares, optimum 0 at the origin."""

    name = "Sphere"

    def __init__(self, dimensions: int = 2, bound: float = 100.0):
        super().__init__(dimensions, bound)

    def problem_specific_cost(self, solution: Solution) -> float:
        x = solution.coordinates
        return float(np.sum(x * x))


class Rastrigin(ContinuousProblem):
    """Highly multimodal; optimum 0 at the origin."""

    name = "Rastrigin"

    def __init__(self, dimensions: int = 2, bound: float = 5.12):
        super().__init__(dimensions, bound)

    def problem_specific_cost(self, solution: Solution) -> float:
        x = solution.coordinates
        return float(10.0 * len(x) + np.sum(x * x - 10.0 * np.cos(2.0 * np.pi * x)))
