"""
Experiment runners.

Runners repeat (problem, algorithm) pairings under fixed seeds and collect
probe observations for statistical comparison.
"""

from .experiment_runner import (
    ExperimentalRun,
    ExperimentRunner,
    RepeatedRunResult,
    RunResult,
    execute_repeat,
)

__all__ = [
    "ExperimentalRun",
    "ExperimentRunner",
    "RepeatedRunResult",
    "RunResult",
    "execute_repeat",
]
