"""
Orchestration of a single (problem, algorithm) run.

The executor owns the stop conditions and probes for the run. Validation
replaces whatever stop conditions the problem held with the executor's own,
then validates stop conditions, algorithm and problem in that order.
Initialisation runs problem, algorithm, stop conditions, probes; cleanup
runs in the same order, for exactly the components that were initialised,
and each cleanup runs even when an earlier one fails.
"""

import logging
import threading
from abc import ABC
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial

from metaopt.exceptions import AlgorithmRunError, InvalidConfigurationError

from .algorithm import Algorithm
from .configurable import Configurable
from .probes import RunProbe
from .problem import Problem
from .stop_conditions import StopCondition

logger = logging.getLogger(__name__)


class RunListener(ABC):
    """Start/finish notifications for asynchronous runs."""

    def run_started(self, executor: "AlgorithmExecutor") -> None:
        pass

    def run_finished(self, executor: "AlgorithmExecutor", error: BaseException | None) -> None:
        pass


class AlgorithmExecutor(Configurable):
    """Wires an algorithm, a problem, stop conditions and probes into one run."""

    name = "Algorithm Executor"

    def __init__(self, problem: Problem | None = None, algorithm: Algorithm | None = None,
                 stop_conditions: Iterable[StopCondition] = (), probes: Iterable[RunProbe] = ()):
        self.problem = problem
        self.algorithm = algorithm
        self.stop_conditions: list[StopCondition] = list(stop_conditions)
        self.probes: list[RunProbe] = list(probes)
        self._run_listeners: list[RunListener] = []
        self._lock = threading.Lock()
        self._running = False
        self._cleanups: list[Callable[[], None]] = []

    def add_stop_condition(self, condition: StopCondition) -> None:
        self.stop_conditions.append(condition)

    def add_stop_conditions(self, conditions: Iterable[StopCondition]) -> None:
        self.stop_conditions.extend(conditions)

    def add_probe(self, probe: RunProbe) -> None:
        self.probes.append(probe)

    def add_probes(self, probes: Iterable[RunProbe]) -> None:
        self.probes.extend(probes)

    def add_run_listener(self, listener: RunListener) -> None:
        self._run_listeners.append(listener)

    def remove_run_listener(self, listener: RunListener) -> None:
        self._run_listeners.remove(listener)

    def clear(self) -> None:
        self.problem = None
        self.algorithm = None
        self.stop_conditions.clear()
        self.probes.clear()

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def validate_configuration(self) -> None:
        if self.algorithm is None:
            raise InvalidConfigurationError("No algorithm set", field="algorithm", value=None)
        if self.problem is None:
            raise InvalidConfigurationError("No problem set", field="problem", value=None)
        if not self.stop_conditions:
            raise InvalidConfigurationError("No stop conditions set", field="stop_conditions", value=[])
        if not self.probes:
            raise InvalidConfigurationError("No run probes set", field="probes", value=[])

        self.problem.clear_stop_conditions()
        for condition in self.stop_conditions:
            self.problem.add_stop_condition(condition)

        for condition in self.stop_conditions:
            condition.validate_configuration()
        self.algorithm.validate()
        self.problem.validate_configuration()

    def initialise_before_run(self) -> None:
        """Initialise every component in order.

        If one fails, the components already initialised are cleaned up
        before the error propagates, so no listener outlives a failed start.
        """
        self._cleanups = []
        try:
            self.problem.initialise_before_run()
            self._cleanups.append(self.problem.cleanup_after_run)
            self.algorithm.initialise_before_run(self.problem)
            self._cleanups.append(partial(self.algorithm.cleanup_after_run, self.problem))
            for component in [*self.stop_conditions, *self.probes]:
                component.initialise_before_run(self.problem, self.algorithm)
                self._cleanups.append(partial(component.cleanup_after_run, self.problem, self.algorithm))
        except BaseException as e:
            logger.error(f"❌ Initialisation failed, cleaning up {len(self._cleanups)} component(s): {e}")
            self._run_cleanups()
            raise

    def cleanup_after_run(self) -> None:
        """Clean up whatever initialise_before_run started, raising the first failure."""
        error = self._run_cleanups()
        if error is not None:
            raise error

    def _run_cleanups(self) -> Exception | None:
        cleanups, self._cleanups = self._cleanups, []
        first_error = None
        for cleanup in cleanups:
            try:
                cleanup()
            except Exception as e:
                logger.error(f"❌ Cleanup failed: {e}")
                if first_error is None:
                    first_error = e
        return first_error

    def execute_and_wait(self) -> None:
        """Validate, initialise, run and clean up on the calling thread."""
        self.validate_configuration()
        self.initialise_before_run()

        logger.info(f"▶️ {self.algorithm.get_name()} on {self.problem.get_name()}")
        try:
            self.algorithm.execute_and_wait(self.problem)
        finally:
            self.cleanup_after_run()
        logger.info(f"⏹️ {self.algorithm.get_name()} finished after {self.problem.evaluations} evaluations")

    def execute(self) -> Future:
        """Run on a background worker and return a Future for the outcome.

        Run listeners are notified on the worker thread.
        """
        with self._lock:
            if self._running:
                raise AlgorithmRunError("Executor is already running")
            self._running = True

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="algorithm-executor")
        try:
            future = pool.submit(self._execute_with_notification)
        except BaseException:
            self._running = False
            raise
        finally:
            pool.shutdown(wait=False)
        return future

    def _execute_with_notification(self) -> None:
        error: BaseException | None = None
        try:
            for listener in tuple(self._run_listeners):
                listener.run_started(self)
            self.execute_and_wait()
        except BaseException as e:
            error = e
            logger.error(f"Run failed: {e}")
            raise
        finally:
            self._running = False
            for listener in tuple(self._run_listeners):
                listener.run_finished(self, error)
