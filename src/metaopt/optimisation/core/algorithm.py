"""
Algorithm execution lifecycle.

States: ``UNCONFIGURED -> CONFIGURED -> RUNNING -> FINISHED``.

- ``validate()`` runs ``validate_configuration()`` and moves the algorithm to
  ``CONFIGURED``; on failure the state is unchanged and the algorithm cannot run.
- ``initialise_before_run(problem)`` builds the run-scoped random number
  generator from the explicit ``seed``.
- ``execute_and_wait(problem)`` runs ``internal_execute_algorithm`` and always
  ends in ``FINISHED``. Every run needs a fresh ``validate()``.

Two loop shapes are supported. Population-replacement algorithms subclass
``EpochAlgorithm`` and implement ``initialise_population`` /
``execute_epoch``. Single-point algorithms implement
``internal_execute_algorithm`` directly. Both must check
``problem.can_evaluate()`` after every evaluation or batch.
"""

import logging
from abc import abstractmethod
from collections.abc import Sequence
from enum import Enum

import numpy as np

from metaopt.exceptions import AlgorithmRunError, InvalidConfigurationError, ListenerRegistrationError

from .configurable import Configurable
from .listeners import AlgorithmEpochCompleteListener
from .problem import Problem
from .solution import Solution

logger = logging.getLogger(__name__)


class AlgorithmState(Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    RUNNING = "running"
    FINISHED = "finished"


class Algorithm(Configurable):
    """Base class for all algorithms."""

    PARAMETERS = ("seed",)
    details = ""

    def __init__(self, seed: int = 1):
        self.seed = seed
        self.rng: np.random.Generator | None = None
        self.state = AlgorithmState.UNCONFIGURED
        self._epoch_listeners: list[AlgorithmEpochCompleteListener] = []

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def validate_configuration(self) -> None:
        if isinstance(self.seed, bool) or not isinstance(self.seed, (int, np.integer)) or self.seed < 0:
            raise InvalidConfigurationError("Seed must be a non-negative integer", field="seed", value=self.seed)

    def validate(self) -> None:
        self.validate_configuration()
        self.state = AlgorithmState.CONFIGURED

    def automatically_configure(self, problem: Problem) -> None:
        """Derive rates and sizes from the problem. The seed is left alone."""

    # ------------------------------------------------------------------
    # Epoch listeners
    # ------------------------------------------------------------------

    @property
    def epoch_listeners(self) -> tuple[AlgorithmEpochCompleteListener, ...]:
        return tuple(self._epoch_listeners)

    def add_epoch_listener(self, listener: AlgorithmEpochCompleteListener) -> None:
        if any(existing is listener for existing in self._epoch_listeners):
            raise ListenerRegistrationError(f"{listener} is already listening to {self.get_name()}")
        self._epoch_listeners.append(listener)

    def remove_epoch_listener(self, listener: AlgorithmEpochCompleteListener) -> None:
        for i, existing in enumerate(self._epoch_listeners):
            if existing is listener:
                del self._epoch_listeners[i]
                return
        raise ListenerRegistrationError(f"{listener} is not listening to {self.get_name()}")

    def trigger_epoch_complete_event(self, problem: Problem, population: Sequence[Solution]) -> None:
        if not population:
            return
        snapshot = tuple(population)
        for listener in tuple(self._epoch_listeners):
            listener.epoch_complete_event(problem, snapshot)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def initialise_before_run(self, problem: Problem) -> None:
        self.rng = np.random.default_rng(self.seed)

    def cleanup_after_run(self, problem: Problem) -> None:
        self.rng = None

    def execute_and_wait(self, problem: Problem) -> None:
        if self.state is not AlgorithmState.CONFIGURED:
            raise AlgorithmRunError(
                f"{self.get_name()} must be validated before it can run (state={self.state.value})"
            )
        if self.rng is None:
            raise AlgorithmRunError(f"{self.get_name()} was not initialised before the run")

        self.state = AlgorithmState.RUNNING
        logger.debug(f"Running {self.get_name()} on {problem.get_name()} ({self.configuration_details()})")
        try:
            self.internal_execute_algorithm(problem)
        finally:
            self.state = AlgorithmState.FINISHED

    @abstractmethod
    def internal_execute_algorithm(self, problem: Problem) -> None:
        """The run loop. Must stop within one iteration of can_evaluate() turning false."""


class EpochAlgorithm(Algorithm):
    """Population-replacement loop: generate, evaluate, replace."""

    def internal_execute_algorithm(self, problem: Problem) -> None:
        population = self.initialise_population(problem)
        if population:
            problem.cost(population)
        latest = population

        while problem.can_evaluate():
            self.trigger_epoch_complete_event(problem, population)
            children = self.execute_epoch(problem, population)
            problem.cost(children)
            latest = children
            # the batch may have exhausted the budget part way through
            if problem.can_evaluate():
                self.post_evaluation(problem, population, children)
                population = children

        # last generation, possibly only partly evaluated
        self.trigger_epoch_complete_event(problem, [s for s in latest if s.evaluated])

    @abstractmethod
    def initialise_population(self, problem: Problem) -> list[Solution]:
        pass

    @abstractmethod
    def execute_epoch(self, problem: Problem, population: list[Solution]) -> list[Solution]:
        """Produce the next generation of unevaluated children."""

    def post_evaluation(self, problem: Problem, old_population: list[Solution],
                        new_population: list[Solution]) -> None:
        """Hook run once children are evaluated; may edit ``new_population`` in place."""
