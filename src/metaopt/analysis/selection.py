"""
Normality-driven choice of comparison test and post-hoc analysis of an
experiment's repeated runs.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from numpy.typing import ArrayLike

from metaopt.exceptions import AnalysisError

from .comparison import (
    AnovaTest,
    KruskalWallisTest,
    MannWhitneyUTest,
    StatisticalComparisonTest,
    StudentTTest,
)
from .normality import NORMALITY_TESTS, AndersonDarlingTest, NormalityTest
from .summary import RunStatisticSummary

logger = logging.getLogger(__name__)


def resolve_normality_test(normality_test: str | type[NormalityTest]) -> type[NormalityTest]:
    if isinstance(normality_test, str):
        try:
            return NORMALITY_TESTS[normality_test]
        except KeyError:
            raise AnalysisError(
                f"Unknown normality test '{normality_test}'. Available: {sorted(NORMALITY_TESTS)}"
            ) from None
    return normality_test


def select_comparison_test(
    samples: Sequence[ArrayLike],
    normality_test: str | type[NormalityTest] = AndersonDarlingTest,
) -> StatisticalComparisonTest:
    """
    Pick a parametric test when every sample looks normal, a rank-based
    one otherwise. The returned test has not been evaluated yet.
    """
    if len(samples) < 2:
        raise AnalysisError(f"Need at least two samples to compare, got {len(samples)}")
    test_class = resolve_normality_test(normality_test)
    all_normal = all(test_class().evaluate(sample).is_normal() for sample in samples)
    return _comparison_for(all_normal, len(samples))


def _comparison_for(all_normal: bool, populations: int) -> StatisticalComparisonTest:
    if all_normal:
        return StudentTTest() if populations == 2 else AnovaTest()
    return MannWhitneyUTest() if populations == 2 else KruskalWallisTest()


@dataclass
class ExperimentAnalysis:
    statistic: str
    summaries: dict[str, RunStatisticSummary] = field(default_factory=dict)
    normality: dict[str, NormalityTest] = field(default_factory=dict)
    comparison: StatisticalComparisonTest | None = None
    error: str | None = None

    @property
    def all_normal(self) -> bool:
        return bool(self.normality) and all(t.is_normal() for t in self.normality.values())

    @property
    def populations_different(self) -> bool | None:
        if self.comparison is None:
            return None
        return self.comparison.populations_different


def analyse_experiment(
    results: Mapping,
    statistic: str = "best_score",
    normality_test: str | type[NormalityTest] = "anderson_darling",
) -> ExperimentAnalysis:
    """
    Summarise and compare one probe statistic across the runs of an experiment.

    Args:
        results: Run id -> RepeatedRunResult (anything with ``values(key)``).
        statistic: Probe key to analyse.
        normality_test: Registry key or NormalityTest class.

    Returns:
        ExperimentAnalysis. Statistical preconditions that fail (too few
        repeats, identical names, ...) leave ``comparison`` unset and the
        message in ``error``; the run results themselves are untouched.
    """
    analysis = ExperimentAnalysis(statistic=statistic)
    test_class = resolve_normality_test(normality_test)

    try:
        for run_id, result in results.items():
            analysis.summaries[run_id] = RunStatisticSummary(run_id, statistic, result.values(statistic))
            analysis.normality[run_id] = test_class().evaluate(analysis.summaries[run_id].raw)

        if len(analysis.summaries) < 2:
            logger.info("Only one run in experiment, skipping comparison")
            return analysis

        summaries = list(analysis.summaries.values())
        comparison = _comparison_for(analysis.all_normal, len(summaries))
        analysis.comparison = comparison.evaluate_summaries(summaries)
        logger.info(f"{comparison.name}: p={comparison.p_value:.4g}")
    except AnalysisError as e:
        logger.warning(f"Analysis of '{statistic}' failed: {e}")
        analysis.error = str(e)

    return analysis
