"""
Goodness-of-fit tests for normality.

Every test estimates the mean and standard deviation from the sample, maps
each observation through the normal CDF at those estimates, sorts the
mapped values and measures their departure from the uniform distribution
on [0, 1].

Because the normal parameters are estimated from the same sample, p-values
come from the composite-hypothesis approximations rather than the
fully-specified-distribution tables:

- Anderson-Darling: Stephens / D'Agostino on A²* = A²(1 + 0.75/n + 2.25/n²)
- Cramér-von Mises: Stephens on W²(1 + 0.5/n)
- Kolmogorov-Smirnov: Dallal-Wilkinson approximation of the Lilliefors
  distribution

A constant sample (all observations identical) is non-normal by
convention: statistic 0 and p-value 0.
"""

import math
from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import ArrayLike
from scipy import stats

from metaopt.exceptions import AnalysisError

from .reporting import ALPHA, Reportable, ReportRows, format_value

# Keeps log(u) and log(1 - u) finite for observations far in the tails
_EPS = np.finfo(float).eps


def anderson_darling_pvalue(a2_star: float) -> float:
    if a2_star < 0.2:
        p = 1.0 - math.exp(-13.436 + 101.14 * a2_star - 223.73 * a2_star ** 2)
    elif a2_star < 0.34:
        p = 1.0 - math.exp(-8.318 + 42.796 * a2_star - 59.938 * a2_star ** 2)
    elif a2_star < 0.6:
        p = math.exp(0.9177 - 4.279 * a2_star - 1.38 * a2_star ** 2)
    elif a2_star < 10:
        p = math.exp(1.2937 - 5.709 * a2_star + 0.0186 * a2_star ** 2)
    else:
        p = 3.7e-24
    return min(max(p, 0.0), 1.0)


def cramer_von_mises_pvalue(z: float) -> float:
    if z < 0.0275:
        p = 1.0 - math.exp(-13.953 + 775.5 * z - 12542.61 * z ** 2)
    elif z < 0.051:
        p = 1.0 - math.exp(-5.903 + 179.546 * z - 1515.29 * z ** 2)
    elif z < 0.092:
        p = math.exp(0.886 - 31.62 * z + 10.897 * z ** 2)
    elif z < 1.1:
        p = math.exp(1.111 - 34.242 * z + 12.832 * z ** 2)
    else:
        p = 7.37e-10
    return min(max(p, 0.0), 1.0)


def lilliefors_pvalue(d: float, n: int) -> float:
    if n <= 100:
        kd, nd = d, n
    else:
        kd, nd = d * (n / 100) ** 0.49, 100
    p = math.exp(-7.01256 * kd ** 2 * (nd + 2.78019)
                 + 2.99587 * kd * math.sqrt(nd + 2.78019)
                 - 0.122119 + 0.974598 / math.sqrt(nd) + 1.67997 / nd)
    if p > 0.1:
        kk = (math.sqrt(n) - 0.01 + 0.85 / math.sqrt(n)) * d
        if kk <= 0.302:
            p = 1.0
        elif kk <= 0.5:
            p = 2.76773 - 19.828 * kk + 80.709 * kk ** 2 - 138.55 * kk ** 3 + 81.218 * kk ** 4
        elif kk <= 0.9:
            p = -4.901232 + 40.662806 * kk - 97.490286 * kk ** 2 + 94.029866 * kk ** 3 - 32.355711 * kk ** 4
        elif kk <= 1.31:
            p = 6.198765 - 19.558097 * kk + 23.186922 * kk ** 2 - 12.234627 * kk ** 3 + 2.423045 * kk ** 4
        else:
            p = 0.0
    return min(max(p, 0.0), 1.0)


class NormalityTest(Reportable, ABC):
    """
    Base class; H0 is that the sample comes from a normal distribution.

    ``min_sample_size`` is where the composite p-value approximations stop
    holding. The Stephens modifications used for Anderson-Darling and
    Cramér-von Mises are fitted for n >= 8, and the Dallal-Wilkinson
    Lilliefors formula for n >= 5. Below that the statistic can still be
    computed but its p-value would be unreliable, so evaluation refuses.
    """

    name = ""
    null_hypothesis = "Sample population distribution is Normal"
    min_sample_size = 8

    def __init__(self):
        self.p_value: float | None = None
        self.sample_size = 0
        self.mean = math.nan
        self.stdev = math.nan

    def evaluate(self, sample: ArrayLike) -> "NormalityTest":
        x = np.asarray(sample, dtype=float).ravel()
        if x.size < self.min_sample_size:
            raise AnalysisError(
                f"{self.name} needs at least {self.min_sample_size} observations, got {x.size}; "
                "its p-value approximation does not hold for smaller samples"
            )
        if not np.all(np.isfinite(x)):
            raise AnalysisError(f"{self.name} sample contains non-finite values")

        self.sample_size = x.size
        self.mean = float(x.mean())
        self.stdev = float(x.std(ddof=1))

        if np.ptp(x) == 0.0:
            self._set_degenerate()
            self.p_value = 0.0
            return self

        u = np.sort(stats.norm.cdf(x, loc=self.mean, scale=self.stdev))
        self.p_value = self._test_uniform(u)
        return self

    @abstractmethod
    def _test_uniform(self, u: np.ndarray) -> float:
        """Compute the statistic(s) on sorted values in [0, 1]; return the p-value."""

    @abstractmethod
    def _set_degenerate(self) -> None:
        """Zero every statistic for a constant sample."""

    @abstractmethod
    def _statistic_rows(self) -> ReportRows:
        pass

    @property
    def evaluated(self) -> bool:
        return self.p_value is not None

    def can_reject_null_hypothesis(self) -> bool:
        if self.p_value is None:
            raise AnalysisError(f"{self.name} has not been evaluated")
        return self.p_value <= ALPHA

    def is_normal(self) -> bool:
        return not self.can_reject_null_hypothesis()

    def report(self) -> ReportRows:
        reject = self.can_reject_null_hypothesis()
        return [
            ("Test", self.name),
            ("Null Hypothesis (H0) Description", self.null_hypothesis),
            (f"Reject H0 (alpha={ALPHA})", format_value(reject)),
            ("P-value", format_value(self.p_value)),
            ("Normal Distribution", format_value(not reject)),
            ("Sample Size", format_value(self.sample_size)),
            *self._statistic_rows(),
        ]


class AndersonDarlingTest(NormalityTest):
    name = "Anderson-Darling Test"

    def __init__(self):
        super().__init__()
        self.a_squared = math.nan
        self.a_squared_star = math.nan

    def _test_uniform(self, u: np.ndarray) -> float:
        n = u.size
        u = np.clip(u, _EPS, 1.0 - _EPS)
        i = np.arange(1, n + 1)
        self.a_squared = float(-n - np.sum((2 * i - 1) * (np.log(u) + np.log1p(-u[::-1]))) / n)
        self.a_squared_star = self.a_squared * (1.0 + 0.75 / n + 2.25 / n ** 2)
        return anderson_darling_pvalue(self.a_squared_star)

    def _set_degenerate(self) -> None:
        self.a_squared = 0.0
        self.a_squared_star = 0.0

    def _statistic_rows(self) -> ReportRows:
        return [
            ("Test Statistic (A^2)", format_value(self.a_squared)),
            ("Test Statistic (A^2*)", format_value(self.a_squared_star)),
        ]


class CramerVonMisesTest(NormalityTest):
    name = "Cramer-von Mises Criterion"

    def __init__(self):
        super().__init__()
        self.w_squared = math.nan
        self.z_score = math.nan

    def _test_uniform(self, u: np.ndarray) -> float:
        n = u.size
        i = np.arange(1, n + 1)
        self.w_squared = float(1.0 / (12 * n) + np.sum((u - (2 * i - 1) / (2.0 * n)) ** 2))
        self.z_score = self.w_squared * (1.0 + 0.5 / n)
        return cramer_von_mises_pvalue(self.z_score)

    def _set_degenerate(self) -> None:
        self.w_squared = 0.0
        self.z_score = 0.0

    def _statistic_rows(self) -> ReportRows:
        return [
            ("Test Statistic (W^2)", format_value(self.w_squared)),
            ("Z Score", format_value(self.z_score)),
        ]


class KolmogorovSmirnovTest(NormalityTest):
    name = "Kolmogorov-Smirnov Test"
    min_sample_size = 5

    def __init__(self):
        super().__init__()
        self.d_plus = math.nan
        self.d_minus = math.nan
        self.d = math.nan

    def _test_uniform(self, u: np.ndarray) -> float:
        n = u.size
        i = np.arange(1, n + 1)
        self.d_plus = float(np.max(i / n - u))
        self.d_minus = float(np.max(u - (i - 1) / n))
        self.d = max(self.d_plus, self.d_minus)
        return lilliefors_pvalue(self.d, n)

    def _set_degenerate(self) -> None:
        self.d_plus = self.d_minus = self.d = 0.0

    def _statistic_rows(self) -> ReportRows:
        return [
            ("DN+ = max((j+1)/N - U(j))", format_value(self.d_plus)),
            ("DN- = max(U(j) - j/N)", format_value(self.d_minus)),
            ("DN = max(DN+, DN-) (two-sided statistic)", format_value(self.d)),
        ]


NORMALITY_TESTS: dict[str, type[NormalityTest]] = {
    "anderson_darling": AndersonDarlingTest,
    "cramer_von_mises": CramerVonMisesTest,
    "kolmogorov_smirnov": KolmogorovSmirnovTest,
}
