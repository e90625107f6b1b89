"""
Repeated execution of experimental runs.

An experimental run pairs one problem with one algorithm. The runner
executes it ``repeats`` times; repeat ``r`` (1-based) uses seed ``r`` and
works on deep copies of the problem, algorithm, stop conditions and probes
so repeats never share state and can run in separate processes.

A repeat that raises is recorded as failed and the remaining repeats carry
on. Only when every repeat of a run fails does the runner raise.

Usage:
```python
runner = ExperimentRunner(
    stop_conditions=[EvaluationsStopCondition(1000)],
    probes=default_probes(),
)
results = runner.run_experiment([
    ExperimentalRun("hc", OneMax(64), MutationHillClimber(), repeats=30),
    ExperimentalRun("rs", OneMax(64), GenericRandomSearch(), repeats=30),
])
print(results["hc"].values("best_score").mean())
```
"""

import copy
import logging
import numbers
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from metaopt.exceptions import AlgorithmRunError, AnalysisError, InvalidConfigurationError

from ..core.algorithm import Algorithm
from ..core.executor import AlgorithmExecutor
from ..core.probes import RunProbe, default_probes
from ..core.problem import Problem
from ..core.solution import Solution
from ..core.stop_conditions import StopCondition, default_stop_conditions

logger = logging.getLogger(__name__)


@dataclass
class ExperimentalRun:
    """One (problem, algorithm) pairing to be repeated."""

    id: str
    problem: Problem
    algorithm: Algorithm
    repeats: int = 30

    def __post_init__(self):
        if not self.id:
            raise InvalidConfigurationError("Experimental run id must not be empty", field="id", value=self.id)
        if self.repeats < 1:
            raise InvalidConfigurationError("Repeats must be at least 1", field="repeats", value=self.repeats)


@dataclass
class RunResult:
    """Outcome of one repeat: probe observations, or the error that stopped it."""

    run_id: str
    repeat: int
    seed: int
    observations: dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class RepeatedRunResult:
    """All repeats of one experimental run, ordered by repeat number."""

    run_id: str
    results: list[RunResult] = field(default_factory=list)

    @property
    def successful(self) -> list[RunResult]:
        return [r for r in self.results if not r.failed]

    @property
    def failures(self) -> list[RunResult]:
        return [r for r in self.results if r.failed]

    def values(self, key: str) -> np.ndarray:
        """Numeric observations of one probe over the successful repeats."""
        values = []
        for result in self.successful:
            if key not in result.observations:
                raise KeyError(f"Probe '{key}' not observed in run '{self.run_id}'")
            value = result.observations[key]
            if not isinstance(value, numbers.Real):
                raise AnalysisError(
                    f"Probe '{key}' of run '{self.run_id}' is not numeric "
                    f"(repeat {result.repeat} observed {type(value).__name__})"
                )
            values.append(value)
        return np.array(values, dtype=float)

    def to_frame(self) -> pd.DataFrame:
        """One row per repeat. Solution observations are rendered as text."""
        rows = []
        for result in self.results:
            row = {
                "run_id": result.run_id,
                "repeat": result.repeat,
                "seed": result.seed,
                "duration_seconds": result.duration_seconds,
                "error": result.error,
            }
            for key, value in result.observations.items():
                row[key] = _tabular(value)
            rows.append(row)
        return pd.DataFrame(rows)


def _tabular(value: Any) -> Any:
    if isinstance(value, Solution):
        return str(value)
    return value


def execute_repeat(run: ExperimentalRun, repeat: int, stop_conditions: Sequence[StopCondition],
                   probes: Sequence[RunProbe]) -> RunResult:
    """
    Execute a single repeat on private copies of every component.

    Module-level so that a process pool can pickle it. Never raises for
    run failures: the error message is carried on the result.
    """
    problem = copy.deepcopy(run.problem)
    algorithm = copy.deepcopy(run.algorithm)
    algorithm.configure(seed=repeat)
    conditions = copy.deepcopy(list(stop_conditions))
    repeat_probes = copy.deepcopy(list(probes))

    executor = AlgorithmExecutor(problem, algorithm, conditions, repeat_probes)
    start = time.perf_counter()
    try:
        executor.execute_and_wait()
    except Exception as e:
        logger.warning(f"Run '{run.id}' repeat {repeat} failed: {e}")
        return RunResult(run.id, repeat, repeat, duration_seconds=time.perf_counter() - start,
                         error=f"{type(e).__name__}: {e}")

    observations = {probe.key: probe.observation for probe in repeat_probes}
    return RunResult(run.id, repeat, repeat, observations, time.perf_counter() - start)


class ExperimentRunner:
    """
    Runs every repeat of every experimental run and collects probe observations.

    Args:
        stop_conditions: Prototype stop conditions copied into each repeat.
            Defaults to ``default_stop_conditions()``.
        probes: Prototype probes copied into each repeat. Defaults to
            ``default_probes()``.
        parallel: Execute repeats on a process pool.
        max_workers: Pool size, ``None`` lets the pool decide.
    """

    def __init__(self, stop_conditions: Iterable[StopCondition] | None = None,
                 probes: Iterable[RunProbe] | None = None, parallel: bool = False,
                 max_workers: int | None = None):
        self.stop_conditions = list(stop_conditions) if stop_conditions is not None else default_stop_conditions()
        self.probes = list(probes) if probes is not None else default_probes()
        self.parallel = parallel
        self.max_workers = max_workers

        if not self.stop_conditions:
            raise InvalidConfigurationError("At least one stop condition is required",
                                            field="stop_conditions", value=[])
        if not self.probes:
            raise InvalidConfigurationError("At least one probe is required", field="probes", value=[])
        if max_workers is not None and max_workers < 1:
            raise InvalidConfigurationError("max_workers must be at least 1", field="max_workers", value=max_workers)

    def run_repeats(self, run: ExperimentalRun) -> RepeatedRunResult:
        print(f"🔄 {run.id}: {run.algorithm.get_name()} on {run.problem.get_name()} ({run.repeats} repeats)")
        logger.info(f"Starting run '{run.id}' with {run.repeats} repeats")
        start = time.perf_counter()

        if self.parallel and run.repeats > 1:
            results = self._run_parallel(run)
        else:
            results = self._run_sequential(run)
        results.sort(key=lambda r: r.repeat)
        repeated = RepeatedRunResult(run.id, results)

        elapsed = time.perf_counter() - start
        if not repeated.successful:
            logger.error(f"All {run.repeats} repeats of run '{run.id}' failed")
            raise AlgorithmRunError(f"All repeats of run '{run.id}' failed: {results[0].error}")

        print(f"✅ {run.id}: {len(repeated.successful)}/{run.repeats} repeats succeeded in {elapsed:.1f}s")
        logger.info(f"Finished run '{run.id}' in {elapsed:.2f}s, {len(repeated.failures)} failed repeats")
        return repeated

    def _run_sequential(self, run: ExperimentalRun) -> list[RunResult]:
        results = []
        for repeat in range(1, run.repeats + 1):
            result = execute_repeat(run, repeat, self.stop_conditions, self.probes)
            self._print_progress(run, result)
            results.append(result)
        return results

    def _run_parallel(self, run: ExperimentalRun) -> list[RunResult]:
        results = []
        with ProcessPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(execute_repeat, run, repeat, self.stop_conditions, self.probes): repeat
                for repeat in range(1, run.repeats + 1)
            }
            for future in as_completed(futures):
                result = future.result()
                self._print_progress(run, result)
                results.append(result)
        return results

    @staticmethod
    def _print_progress(run: ExperimentalRun, result: RunResult) -> None:
        if result.failed:
            print(f"   ❌ [{result.repeat:3d}/{run.repeats}] FAILED - {result.error}")
        else:
            best = result.observations.get("best_score")
            detail = f"best = {best:.6g}" if isinstance(best, float) else f"{result.duration_seconds:.2f}s"
            print(f"   [{result.repeat:3d}/{run.repeats}] {detail}")

    def run_experiment(self, runs: Iterable[ExperimentalRun]) -> dict[str, RepeatedRunResult]:
        runs = list(runs)
        ids = [run.id for run in runs]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise InvalidConfigurationError(f"Experimental run ids must be unique: {duplicates}",
                                            field="id", value=duplicates)

        print(f"🚀 Running experiment with {len(runs)} runs")
        return {run.id: self.run_repeats(run) for run in runs}
