"""
Human-readable statistical reports.

A report is an ordered list of ``(label, value)`` string pairs. It is meant
for display, not parsing; code that needs numbers should read the typed
attributes of the summary or test instead.
"""

import math
from abc import ABC, abstractmethod

import numpy as np

ReportRows = list[tuple[str, str]]

ALPHA = 0.05


def format_value(value) -> str:
    """Stable text for report cells: 6 significant digits for floats."""
    if isinstance(value, (bool, np.bool_)):
        return str(value).lower()
    if isinstance(value, (int, np.integer)):
        return str(value)
    if isinstance(value, (float, np.floating)):
        if math.isnan(value):
            return "NaN"
        return f"{value:.6g}"
    return str(value)


class Reportable(ABC):
    @abstractmethod
    def report(self) -> ReportRows:
        pass

    def report_text(self) -> str:
        rows = self.report()
        width = max((len(label) for label, _ in rows), default=0)
        return "\n".join(f"{label.ljust(width)}  {value}" for label, value in rows)
