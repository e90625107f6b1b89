from metaopt.exceptions import InvalidConfigurationError, InitialisationError

from ..core.algorithm import EpochAlgorithm
from ..core.problem import Problem, Samplable
from ..core.solution import Solution


class GenericRandomSearch(EpochAlgorithm):
    """Evaluates ``epoch_size`` uniformly random solutions per epoch."""

    name = "Random Search"
    details = "Generates random solutions in the domain"
    PARAMETERS = ("seed", "epoch_size")

    def __init__(self, seed: int = 1, epoch_size: int = 100):
        super().__init__(seed)
        self.epoch_size = epoch_size

    def validate_configuration(self) -> None:
        super().validate_configuration()
        if self.epoch_size < 1:
            raise InvalidConfigurationError("Epoch size must be >= 1", field="epoch_size", value=self.epoch_size)

    def initialise_before_run(self, problem: Problem) -> None:
        super().initialise_before_run(problem)
        if not isinstance(problem, Samplable):
            raise InitialisationError(f"{problem.get_name()} cannot generate random solutions")

    def _random_batch(self, problem: Problem) -> list[Solution]:
        return [problem.random_solution(self.rng) for _ in range(self.epoch_size)]

    def initialise_population(self, problem: Problem) -> list[Solution]:
        return self._random_batch(problem)

    def execute_epoch(self, problem: Problem, population: list[Solution]) -> list[Solution]:
        return self._random_batch(problem)
