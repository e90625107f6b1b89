"""
Generational genetic algorithm over bit strings.

Selection and elitism work on population indices: tournaments return the
index of the winner and elitism copies the solutions at the best-ranked
indices of the previous generation, so no step depends on object identity.
"""

import numpy as np

from metaopt.exceptions import InvalidConfigurationError, InitialisationError

from ..core.algorithm import EpochAlgorithm
from ..core.problem import BinaryProblem, Problem
from ..core.solution import BitStringSolution, Solution
from .hill_climber import bit_flip_mutation


def tournament_select(problem: Problem, population: list[Solution], count: int,
                      bout_size: int, rng: np.random.Generator) -> list[int]:
    """Indices of ``count`` tournament winners. Competitors in one bout are distinct."""
    winners = []
    for _ in range(count):
        bout = rng.choice(len(population), size=bout_size, replace=False)
        best = int(bout[0])
        for idx in bout[1:]:
            if problem.is_better(population[idx], population[best]):
                best = int(idx)
        winners.append(best)
    return winners


def one_point_crossover(a: np.ndarray, b: np.ndarray, rng: np.random.Generator,
                        rate: float) -> tuple[np.ndarray, np.ndarray]:
    if a.shape[0] < 2 or rng.random() >= rate:
        return a.copy(), b.copy()
    cut = int(rng.integers(1, a.shape[0]))
    return np.concatenate([a[:cut], b[cut:]]), np.concatenate([b[:cut], a[cut:]])


class GeneticAlgorithm(EpochAlgorithm):
    """
    Tournament selection without reselection, one-point crossover, bit-flip
    mutation and optional elitism.

    Thomas Back, David B Fogel and Zbigniew Michalewicz. Evolutionary
    Computation 1 - Basic Algorithms and Operators. IoP Publishing, 2000.
    """

    name = "Genetic Algorithm (GA)"
    PARAMETERS = ("seed", "population_size", "crossover_rate", "mutation_rate", "bout_size", "elitism")

    def __init__(self, seed: int = 1, population_size: int = 128, crossover_rate: float = 0.98,
                 mutation_rate: float = 1.0 / 128, bout_size: int = 2, elitism: int = 0):
        super().__init__(seed)
        self.population_size = population_size
        self.crossover_rate = crossover_rate
        self.mutation_rate = mutation_rate
        self.bout_size = bout_size
        self.elitism = elitism

    def automatically_configure(self, problem: Problem) -> None:
        """Population size and mutation rate follow the bit string length."""
        if not isinstance(problem, BinaryProblem):
            raise InvalidConfigurationError(f"{self.get_name()} can only be configured from a binary problem",
                                            field="problem", value=problem.get_name())
        length = problem.length
        self.population_size = length
        self.crossover_rate = 0.98
        self.mutation_rate = 1.0 / length
        self.bout_size = 2
        self.elitism = 0

    def validate_configuration(self) -> None:
        super().validate_configuration()
        if not 0.0 <= self.crossover_rate <= 1.0:
            raise InvalidConfigurationError("Invalid crossover rate", field="crossover_rate",
                                            value=self.crossover_rate)
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise InvalidConfigurationError("Invalid mutation rate", field="mutation_rate",
                                            value=self.mutation_rate)
        if not 2 <= self.population_size <= 1_000_000:
            raise InvalidConfigurationError("Invalid population size", field="population_size",
                                            value=self.population_size)
        if not 1 <= self.bout_size <= self.population_size:
            raise InvalidConfigurationError("Invalid bout size", field="bout_size", value=self.bout_size)
        # at least one child per generation, otherwise the loop cannot spend budget
        if not 0 <= self.elitism < self.population_size:
            raise InvalidConfigurationError("Invalid elitism", field="elitism", value=self.elitism)

    def initialise_before_run(self, problem: Problem) -> None:
        super().initialise_before_run(problem)
        if not isinstance(problem, BinaryProblem):
            raise InitialisationError(f"{self.get_name()} requires a binary problem, got {problem.get_name()}")

    def initialise_population(self, problem: Problem) -> list[Solution]:
        return [problem.random_solution(self.rng) for _ in range(self.population_size)]

    def execute_epoch(self, problem: Problem, population: list[Solution]) -> list[Solution]:
        # parents are paired, so select an even number
        num_parents = self.population_size + (self.population_size % 2)
        parents = tournament_select(problem, population, num_parents, self.bout_size, self.rng)

        num_children = self.population_size - self.elitism
        children: list[Solution] = []
        for i in range(0, num_parents, 2):
            if len(children) >= num_children:
                break
            a = population[parents[i]].bitstring
            b = population[parents[i + 1]].bitstring
            for offspring in one_point_crossover(a, b, self.rng, self.crossover_rate):
                children.append(BitStringSolution(bit_flip_mutation(offspring, self.rng, self.mutation_rate)))
        return children[:num_children]

    def post_evaluation(self, problem: Problem, old_population: list[Solution],
                        new_population: list[Solution]) -> None:
        if self.elitism > 0:
            for idx in problem.ranked_indices(old_population)[:self.elitism]:
                new_population.append(old_population[idx])
