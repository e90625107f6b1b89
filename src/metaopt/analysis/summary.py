import math

import numpy as np
from numpy.typing import ArrayLike
from scipy import stats

from metaopt.exceptions import AnalysisError

from .reporting import Reportable, ReportRows, format_value


class RunStatisticSummary(Reportable):
    """
    Descriptive statistics of one statistic (e.g. best score) collected over
    the repeats of one experimental run.

    The raw sample is copied and frozen on ``calculate``; calling it again
    with a new sample recomputes everything. Standard deviation and variance
    are sample (n - 1) estimates. Skewness and excess kurtosis are the
    bias-corrected sample estimates and are NaN when undefined (constant
    samples, or fewer than 3 and 4 observations respectively).
    """

    def __init__(self, run_name: str, statistic_name: str, sample: ArrayLike | None = None):
        self.run_name = run_name
        self.statistic_name = statistic_name
        self._raw: np.ndarray | None = None
        if sample is not None:
            self.calculate(sample)

    def calculate(self, sample: ArrayLike) -> "RunStatisticSummary":
        raw = np.array(sample, dtype=float).ravel()
        if raw.size == 0:
            raise AnalysisError(f"No results to summarise for run '{self.run_name}'")
        if not np.all(np.isfinite(raw)):
            raise AnalysisError(f"Results for run '{self.run_name}' contain non-finite values")
        raw.setflags(write=False)
        self._raw = raw

        n = raw.size
        self.count = n
        self.min = float(raw.min())
        self.max = float(raw.max())
        self.mean = float(raw.mean())
        constant = self.max == self.min
        self.variance = 0.0 if constant or n < 2 else float(raw.var(ddof=1))
        self.stdev = math.sqrt(self.variance)

        self.skewness = math.nan if constant or n < 3 else float(stats.skew(raw, bias=False))
        self.kurtosis = math.nan if constant or n < 4 else float(stats.kurtosis(raw, fisher=True, bias=False))
        return self

    @property
    def calculated(self) -> bool:
        return self._raw is not None

    @property
    def raw(self) -> np.ndarray:
        if self._raw is None:
            raise AnalysisError(f"Summary for run '{self.run_name}' has not been calculated")
        return self._raw

    def report(self) -> ReportRows:
        self.raw  # must be calculated
        return [
            ("Test", "Summary Statistics"),
            ("Experimental Run Name", self.run_name),
            ("Statistic", self.statistic_name),
            ("Total Records", format_value(self.count)),
            ("Min", format_value(self.min)),
            ("Max", format_value(self.max)),
            ("Mean", format_value(self.mean)),
            ("Standard Deviation", format_value(self.stdev)),
            ("Skewness", format_value(self.skewness)),
            ("Variance", format_value(self.variance)),
            ("Kurtosis", format_value(self.kurtosis)),
        ]
