"""
Error taxonomy for metaheuristic experiments.

Every error raised by the toolkit derives from ``OptimisationError`` and
also from the closest built-in exception, so callers that only know about
``ValueError``/``RuntimeError`` keep working.

- Configuration problems (``InvalidConfigurationError``) stop a run before it
  starts and always name the offending field and value.
- Initialisation problems (``InitialisationError``) abort a pending run before
  any evaluation happens.
- Run problems (``AlgorithmRunError`` and its children) terminate the run they
  occur in and are never downgraded by the core.
- Analysis problems (``AnalysisError``) only affect post-hoc statistics.
"""

from typing import Any


class OptimisationError(Exception):
    """Base class for all toolkit errors."""


class InvalidConfigurationError(OptimisationError, ValueError):
    """A component was configured with an invalid parameter value."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        if field is not None:
            message = f"{message} ({field}={value!r})"
        super().__init__(message)
        self.field = field
        self.value = value


class InitialisationError(OptimisationError, RuntimeError):
    """Preparing a component for a run failed."""


class ListenerRegistrationError(InitialisationError):
    """A listener was attached twice or detached without being attached."""


class AlgorithmRunError(OptimisationError, RuntimeError):
    """A run failed while the algorithm was executing."""


class SolutionSafetyError(AlgorithmRunError):
    """An algorithm produced a structurally invalid solution."""


class SolutionEvaluationError(AlgorithmRunError):
    """A solution's evaluation state was used incorrectly."""


class AnalysisError(OptimisationError, ValueError):
    """A statistical test could not be applied to the given samples."""
