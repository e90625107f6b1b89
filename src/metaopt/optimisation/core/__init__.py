"""
Algorithm/Problem/Solution execution core.

The core lets any algorithm run against any problem under a uniform
evaluation-budget and stop-condition contract while staying agnostic to the
concrete solution representation.
"""

from .algorithm import Algorithm, AlgorithmState, EpochAlgorithm
from .configurable import Configurable
from .executor import AlgorithmExecutor, RunListener
from .listeners import AlgorithmEpochCompleteListener, SolutionEvaluationListener
from .probes import (
    PROBES,
    BestScoreProbe,
    BestSolutionProbe,
    RunProbe,
    RunTimeProbe,
    SolutionEvaluatedProbe,
    TotalEvaluationsProbe,
    default_probes,
)
from .problem import (
    BinaryProblem,
    ContinuousProblem,
    Evaluable,
    Problem,
    Samplable,
    SafetyCheckable,
)
from .solution import (
    BinaryRepresentable,
    BitStringSolution,
    CoordinateRepresentable,
    CoordinateSolution,
    Solution,
)
from .stop_conditions import (
    STOP_CONDITIONS,
    EvaluationConvergenceStopCondition,
    EvaluationsStopCondition,
    LackOfImprovementStopCondition,
    RunTimeStopCondition,
    SolutionEvaluatedStopCondition,
    StopCondition,
    default_stop_conditions,
)

__all__ = [
    "Algorithm",
    "AlgorithmState",
    "EpochAlgorithm",
    "Configurable",
    "AlgorithmExecutor",
    "RunListener",
    "AlgorithmEpochCompleteListener",
    "SolutionEvaluationListener",
    "RunProbe",
    "SolutionEvaluatedProbe",
    "BestScoreProbe",
    "BestSolutionProbe",
    "TotalEvaluationsProbe",
    "RunTimeProbe",
    "default_probes",
    "PROBES",
    "Problem",
    "BinaryProblem",
    "ContinuousProblem",
    "Evaluable",
    "SafetyCheckable",
    "Samplable",
    "Solution",
    "BitStringSolution",
    "CoordinateSolution",
    "BinaryRepresentable",
    "CoordinateRepresentable",
    "StopCondition",
    "SolutionEvaluatedStopCondition",
    "EvaluationsStopCondition",
    "EvaluationConvergenceStopCondition",
    "LackOfImprovementStopCondition",
    "RunTimeStopCondition",
    "default_stop_conditions",
    "STOP_CONDITIONS",
]
