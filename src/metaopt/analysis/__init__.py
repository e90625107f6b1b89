from .comparison import (
    COMPARISON_TESTS,
    AnovaTest,
    KruskalWallisTest,
    MannWhitneyUTest,
    PairwiseComparison,
    StatisticalComparisonTest,
    StudentTTest,
)
from .normality import (
    NORMALITY_TESTS,
    AndersonDarlingTest,
    CramerVonMisesTest,
    KolmogorovSmirnovTest,
    NormalityTest,
)
from .reporting import ALPHA, Reportable, format_value
from .selection import ExperimentAnalysis, analyse_experiment, select_comparison_test
from .summary import RunStatisticSummary

__all__ = [
    "ALPHA",
    "Reportable",
    "format_value",
    "RunStatisticSummary",
    "NormalityTest",
    "AndersonDarlingTest",
    "CramerVonMisesTest",
    "KolmogorovSmirnovTest",
    "NORMALITY_TESTS",
    "StatisticalComparisonTest",
    "StudentTTest",
    "MannWhitneyUTest",
    "AnovaTest",
    "KruskalWallisTest",
    "PairwiseComparison",
    "COMPARISON_TESTS",
    "select_comparison_test",
    "analyse_experiment",
    "ExperimentAnalysis",
]
