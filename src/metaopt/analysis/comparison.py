"""
Tests that decide whether the results of several experimental runs come
from the same distribution.

Every test takes one sample per run plus the run names. Two-population
tests (Student's t, Mann-Whitney U) only accept exactly two samples;
n-population tests (ANOVA, Kruskal-Wallis) accept two or more.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike
from scipy import stats

from metaopt.exceptions import AnalysisError

from .reporting import ALPHA, Reportable, ReportRows, format_value
from .summary import RunStatisticSummary


class StatisticalComparisonTest(Reportable, ABC):
    name = ""
    null_hypothesis = "Sample populations have the same distribution"
    supports_two_populations = True
    supports_n_populations = True

    def __init__(self):
        self.p_value: float | None = None
        self.names: tuple[str, ...] = ()
        self.sample_sizes: tuple[int, ...] = ()

    def evaluate(self, samples: Sequence[ArrayLike], names: Sequence[str] | None = None) -> "StatisticalComparisonTest":
        """
        Run the test on one sample per population.

        Args:
            samples: Sequence of 1-D samples.
            names: Population names, defaults to R0, R1, ...

        Raises:
            AnalysisError: Mismatched or duplicate names, fewer than two
                populations, empty or non-finite samples, or more populations
                than the test supports.
        """
        arrays = [np.asarray(s, dtype=float).ravel() for s in samples]
        if names is None:
            names = [f"R{i}" for i in range(len(arrays))]
        names = [str(n) for n in names]

        if len(arrays) != len(names):
            raise AnalysisError(
                f"Number of groups of results ({len(arrays)}) and number of names ({len(names)}) do not match"
            )
        if len(arrays) < 2:
            raise AnalysisError(f"{self.name} needs at least two populations, got {len(arrays)}")
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise AnalysisError(f"Population names must be distinct, repeated: {', '.join(duplicates)}")
        for name, sample in zip(names, arrays):
            if sample.size == 0:
                raise AnalysisError(f"Population '{name}' has no results")
            if not np.all(np.isfinite(sample)):
                raise AnalysisError(f"Population '{name}' contains non-finite values")

        if len(arrays) == 2 and self.supports_two_populations:
            self._check_two(names, arrays)
            self.names = tuple(names)
            self.sample_sizes = tuple(a.size for a in arrays)
            self.p_value = self._evaluate_two(arrays[0], arrays[1])
        elif not self.supports_n_populations:
            raise AnalysisError(f"{self.name} compares exactly two populations, got {len(arrays)}")
        else:
            self.names = tuple(names)
            self.sample_sizes = tuple(a.size for a in arrays)
            self.p_value = self._evaluate_n(arrays)
        return self

    def evaluate_summaries(self, summaries: Sequence[RunStatisticSummary]) -> "StatisticalComparisonTest":
        return self.evaluate([s.raw for s in summaries], [s.run_name for s in summaries])

    def _check_two(self, names: list[str], arrays: list[np.ndarray]) -> None:
        pass

    def _evaluate_two(self, a: np.ndarray, b: np.ndarray) -> float:
        return self._evaluate_n([a, b])

    def _evaluate_n(self, arrays: list[np.ndarray]) -> float:
        raise AnalysisError(f"{self.name} does not support more than two populations")

    @abstractmethod
    def _detail_rows(self) -> ReportRows:
        pass

    @property
    def evaluated(self) -> bool:
        return self.p_value is not None

    def can_reject_null_hypothesis(self) -> bool:
        if self.p_value is None:
            raise AnalysisError(f"{self.name} has not been evaluated")
        return self.p_value <= ALPHA

    @property
    def populations_different(self) -> bool:
        return self.can_reject_null_hypothesis()

    def report(self) -> ReportRows:
        reject = self.can_reject_null_hypothesis()
        return [
            ("Test", self.name),
            ("Null Hypothesis (H0) Description", self.null_hypothesis),
            (f"Reject H0 (alpha={ALPHA})", format_value(reject)),
            ("P-value", format_value(self.p_value)),
            ("Populations are Different", format_value(reject)),
            ("Populations", ", ".join(self.names)),
            ("Sample Sizes", ", ".join(str(n) for n in self.sample_sizes)),
            *self._detail_rows(),
        ]


class StudentTTest(StatisticalComparisonTest):
    """Welch's unequal-variance t-test."""

    name = "Student's T-Test (unequal variances)"
    null_hypothesis = "Sample populations have the same mean"
    supports_n_populations = False

    def __init__(self):
        super().__init__()
        self.t_statistic = math.nan
        self.degrees_of_freedom = math.nan

    def _check_two(self, names, arrays):
        for name, sample in zip(names, arrays):
            if sample.size < 2:
                raise AnalysisError(f"{self.name} needs at least 2 results per population, '{name}' has {sample.size}")

    def _evaluate_two(self, a, b):
        result = stats.ttest_ind(a, b, equal_var=False)
        self.t_statistic = float(result.statistic)
        va, vb = a.var(ddof=1) / a.size, b.var(ddof=1) / b.size
        denominator = va ** 2 / (a.size - 1) + vb ** 2 / (b.size - 1)
        self.degrees_of_freedom = float((va + vb) ** 2 / denominator) if denominator > 0 else math.nan
        return float(result.pvalue)

    def can_reject_null_hypothesis(self) -> bool:
        # NaN when both samples are constant
        if self.p_value is not None and math.isnan(self.p_value):
            return False
        return super().can_reject_null_hypothesis()

    def _detail_rows(self):
        return [
            ("T-Statistic", format_value(self.t_statistic)),
            ("Degrees of Freedom", format_value(self.degrees_of_freedom)),
        ]


class MannWhitneyUTest(StatisticalComparisonTest):
    """
    Mann-Whitney U test with the tie-corrected normal approximation.

    The approximation needs more than 10 observations in each population.
    """

    name = "Mann-Whitney U Test"
    supports_n_populations = False
    min_sample_size = 11

    def __init__(self):
        super().__init__()
        self.u_statistic = math.nan
        self.mean_u = math.nan
        self.variance_u = math.nan
        self.z_score = math.nan

    def _check_two(self, names, arrays):
        for name, sample in zip(names, arrays):
            if sample.size < self.min_sample_size:
                raise AnalysisError(
                    f"{self.name} needs more than 10 results per population, '{name}' has {sample.size}"
                )

    def _evaluate_two(self, a, b):
        n1, n2 = a.size, b.size
        n = n1 + n2
        combined = np.concatenate([a, b])
        ranks = stats.rankdata(combined)

        self.u_statistic = float(ranks[:n1].sum() - n1 * (n1 + 1) / 2)
        self.mean_u = n1 * n2 / 2
        _, ties = np.unique(combined, return_counts=True)
        tie_term = float(np.sum(ties.astype(float) ** 3 - ties))
        self.variance_u = n1 * n2 / 12 * ((n + 1) - tie_term / (n * (n - 1)))

        if self.variance_u <= 0:
            self.z_score = 0.0
        else:
            self.z_score = (self.u_statistic - self.mean_u) / math.sqrt(self.variance_u)
        return float(2 * stats.norm.sf(abs(self.z_score)))

    def _detail_rows(self):
        return [
            ("U", format_value(self.u_statistic)),
            ("MEAN_U", format_value(self.mean_u)),
            ("VAR_U", format_value(self.variance_u)),
            ("Z-Score", format_value(self.z_score)),
        ]


class AnovaTest(StatisticalComparisonTest):
    """One-way analysis of variance."""

    name = "One-Way ANOVA"
    null_hypothesis = "Sample populations have the same mean"

    def __init__(self):
        super().__init__()
        self.df_model = self.df_error = self.df_total = 0
        self.ss_model = self.ss_error = self.ss_total = math.nan
        self.ms_model = self.ms_error = math.nan
        self.f_statistic = math.nan

    def _evaluate_n(self, arrays):
        k = len(arrays)
        n = sum(a.size for a in arrays)
        if n <= k:
            raise AnalysisError(f"{self.name} needs more results ({n}) than populations ({k})")

        grand_mean = np.concatenate(arrays).mean()
        self.ss_model = float(sum(a.size * (a.mean() - grand_mean) ** 2 for a in arrays))
        self.ss_error = float(sum(np.sum((a - a.mean()) ** 2) for a in arrays))
        self.ss_total = self.ss_model + self.ss_error
        self.df_model, self.df_error, self.df_total = k - 1, n - k, n - 1
        self.ms_model = self.ss_model / self.df_model
        self.ms_error = self.ss_error / self.df_error

        if self.ms_error > 0:
            self.f_statistic = self.ms_model / self.ms_error
        elif self.ms_model > 0:
            self.f_statistic = math.inf
        else:
            # every observation identical
            self.f_statistic = 0.0
        return float(stats.f.sf(self.f_statistic, self.df_model, self.df_error))

    def _detail_rows(self):
        return [
            ("Degrees of Freedom (Model)", format_value(self.df_model)),
            ("Degrees of Freedom (Error)", format_value(self.df_error)),
            ("Degrees of Freedom (Corrected Total)", format_value(self.df_total)),
            ("Sum of Squares (Model)", format_value(self.ss_model)),
            ("Sum of Squares (Error)", format_value(self.ss_error)),
            ("Sum of Squares (Corrected Total)", format_value(self.ss_total)),
            ("Mean Square (Model)", format_value(self.ms_model)),
            ("Mean Square (Error)", format_value(self.ms_error)),
            ("F-Statistic", format_value(self.f_statistic)),
        ]


@dataclass(frozen=True)
class PairwiseComparison:
    first: str
    second: str
    mean_rank_difference: float
    critical_difference: float

    @property
    def different(self) -> bool:
        return self.mean_rank_difference > self.critical_difference


class KruskalWallisTest(StatisticalComparisonTest):
    """
    Kruskal-Wallis test, Conover's formulation with tie correction.

    When H0 is rejected, every pair of populations is compared on mean rank
    against the t-based critical difference.
    """

    name = "Kruskal-Wallis Test"

    def __init__(self):
        super().__init__()
        self.t_statistic = math.nan
        self.rank_variance = math.nan
        self.degrees_of_freedom = 0
        self.critical_value = math.nan
        self.pairwise: list[PairwiseComparison] = []

    def _evaluate_n(self, arrays):
        k = len(arrays)
        sizes = np.array([a.size for a in arrays])
        n = int(sizes.sum())
        if n < 2:
            raise AnalysisError(f"{self.name} needs at least two results")

        ranks = stats.rankdata(np.concatenate(arrays))
        rank_sums = np.array([chunk.sum() for chunk in np.split(ranks, np.cumsum(sizes)[:-1])])
        correction = n * (n + 1) ** 2 / 4

        self.rank_variance = float((np.sum(ranks ** 2) - correction) / (n - 1))
        self.degrees_of_freedom = k - 1
        self.critical_value = float(stats.chi2.ppf(1 - ALPHA, self.degrees_of_freedom))
        self.pairwise = []

        if self.rank_variance <= 0:
            self.t_statistic = 0.0
            return 1.0

        self.t_statistic = float((np.sum(rank_sums ** 2 / sizes) - correction) / self.rank_variance)
        p_value = float(stats.chi2.sf(self.t_statistic, self.degrees_of_freedom))

        if p_value <= ALPHA and n > k:
            self._compare_pairs(rank_sums / sizes, sizes, n, k)
        return p_value

    def _compare_pairs(self, mean_ranks, sizes, n, k):
        t_critical = stats.t.ppf(1 - ALPHA / 2, n - k)
        spread = self.rank_variance * (n - 1 - self.t_statistic) / (n - k)
        for i in range(k):
            for j in range(i + 1, k):
                critical = float(t_critical * math.sqrt(max(spread, 0.0) * (1 / sizes[i] + 1 / sizes[j])))
                self.pairwise.append(PairwiseComparison(
                    first=self.names[i] if self.names else f"R{i}",
                    second=self.names[j] if self.names else f"R{j}",
                    mean_rank_difference=float(abs(mean_ranks[i] - mean_ranks[j])),
                    critical_difference=critical,
                ))

    def _detail_rows(self):
        rows = [
            ("T-Statistic", format_value(self.t_statistic)),
            ("Rank Variance (S^2)", format_value(self.rank_variance)),
            ("Degrees of Freedom", format_value(self.degrees_of_freedom)),
            (f"Critical Value (chi2, {1 - ALPHA:g})", format_value(self.critical_value)),
        ]
        for pair in self.pairwise:
            rows.append((
                f"{pair.first} vs {pair.second}",
                f"|mean rank diff|={format_value(pair.mean_rank_difference)} "
                f"critical={format_value(pair.critical_difference)} different={format_value(pair.different)}",
            ))
        return rows


COMPARISON_TESTS: dict[str, type[StatisticalComparisonTest]] = {
    "student_t": StudentTTest,
    "mann_whitney_u": MannWhitneyUTest,
    "anova": AnovaTest,
    "kruskal_wallis": KruskalWallisTest,
}
