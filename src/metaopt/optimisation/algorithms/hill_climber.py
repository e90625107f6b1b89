import numpy as np

from metaopt.exceptions import InvalidConfigurationError, InitialisationError

from ..core.algorithm import Algorithm
from ..core.problem import BinaryProblem, Problem
from ..core.solution import BitStringSolution


def bit_flip_mutation(bitstring: np.ndarray, rng: np.random.Generator, rate: float) -> np.ndarray:
    """Copy of ``bitstring`` with each bit flipped independently with probability ``rate``."""
    return np.logical_xor(bitstring, rng.random(bitstring.shape[0]) < rate)


class MutationHillClimber(Algorithm):
    """
    Single-point search: mutate the incumbent, keep the challenger when it is
    better or the same. Accepting ties lets the search drift across plateaus.

    Heinz Muhlenbein. How Genetic Algorithms Really Work: I. Mutation and
    Hillclimbing. PPSN-II, 1992.
    """

    name = "Mutation Hill Climber"
    PARAMETERS = ("seed", "mutation_rate")

    def __init__(self, seed: int = 1, mutation_rate: float = 1.0 / 30):
        super().__init__(seed)
        self.mutation_rate = mutation_rate

    def automatically_configure(self, problem: Problem) -> None:
        if not isinstance(problem, BinaryProblem):
            raise InvalidConfigurationError(f"{self.get_name()} can only be configured from a binary problem",
                                            field="problem", value=problem.get_name())
        self.mutation_rate = 1.0 / problem.length

    def validate_configuration(self) -> None:
        super().validate_configuration()
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise InvalidConfigurationError("Mutation rate must be in [0, 1]",
                                            field="mutation_rate", value=self.mutation_rate)

    def initialise_before_run(self, problem: Problem) -> None:
        super().initialise_before_run(problem)
        if not isinstance(problem, BinaryProblem):
            raise InitialisationError(f"{self.get_name()} requires a binary problem, got {problem.get_name()}")

    def internal_execute_algorithm(self, problem: Problem) -> None:
        point = problem.random_solution(self.rng)
        problem.cost(point)

        while problem.can_evaluate():
            self.trigger_epoch_complete_event(problem, [point])
            challenger = BitStringSolution(bit_flip_mutation(point.bitstring, self.rng, self.mutation_rate))
            problem.cost(challenger)
            if problem.can_evaluate() and problem.is_better_or_same(challenger, point):
                point = challenger
