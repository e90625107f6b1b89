"""Binary function optimisation problems."""

import numpy as np

from metaopt.exceptions import InvalidConfigurationError

from ..core.problem import BinaryProblem
from ..core.solution import Solution


class OneMax(BinaryProblem):
    """Number of ones in the bit string. Optimum is ``length``."""

    name = "OneMax"

    def problem_specific_cost(self, solution: Solution) -> float:
        return float(np.count_nonzero(solution.bitstring))


class BasicTrapFunction(BinaryProblem):
    """
    Ackley's trap function over the unitation ``u`` (number of ones).

    The slope below ``z`` leads to the global optimum ``a`` at ``u = 0``; the
    slope above ``z`` leads to the deceptive local optimum ``b`` at
    ``u = length``.
    """

    name = "Simple Trap Function"
    PARAMETERS = ("length", "a", "b", "z")

    def __init__(self, length: int = 100, a: float = 100.0, b: float = 74.0, z: float = 25.0):
        super().__init__(length)
        self.a = a
        self.b = b
        self.z = z

    def validate_configuration(self) -> None:
        super().validate_configuration()
        if not 0 < self.z < self.length:
            raise InvalidConfigurationError("Trap position must lie strictly inside the string",
                                            field="z", value=self.z)

    def problem_specific_cost(self, solution: Solution) -> float:
        u = float(np.count_nonzero(solution.bitstring))
        if u < self.z:
            return (self.a / self.z) * (self.z - u)
        return (self.b / (self.length - self.z)) * (u - self.z)
