"""
Diagnostic data models for svyexp.

This module contains the data structures for goodness-of-fit results.
Computation logic is in diagnostics/goodness_of_fit.py.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd


class Status(Enum):
    """Health status for diagnostics."""

    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


def status_from_pvalue(p_value: float, alpha: float = 0.05) -> Status:
    """GOOD when no misfit is detected at `alpha`, CRITICAL below alpha / 10."""
    if np.isnan(p_value) or p_value > alpha:
        return Status.GOOD
    if p_value > alpha / 10:
        return Status.WARNING
    return Status.CRITICAL


@dataclass
class CorrelationTest:
    """Pearson correlation between fitted values and residuals."""

    correlation: float
    p_value: float
    n: int

    name: str = "Fitted-residual correlation"

    @property
    def statistic(self) -> float:
        return self.correlation


@dataclass
class LinkTest:
    """Pregibon link test: observed ~ 1 + hat + hat^2 by OLS."""

    hat_coef: float
    hat_p_value: float
    hatsq_coef: float
    hatsq_p_value: float
    n: int

    name: str = "Link test (hat^2)"

    @property
    def statistic(self) -> float:
        return self.hatsq_coef

    @property
    def p_value(self) -> float:
        # Misspecification shows up in the squared term
        return self.hatsq_p_value


@dataclass
class GroupedFitTest:
    """Hosmer-Lemeshow-style comparison of observed and expected group totals."""

    statistic: float
    df: int
    p_value: float
    n_groups: int
    dispersion: float
    table: pd.DataFrame = field(repr=False)
    groups: np.ndarray = field(repr=False)

    name: str = "Grouped fit (Hosmer-Lemeshow)"

    @property
    def max_relative_gap(self) -> Optional[float]:
        """Largest |observed - expected| / |expected| across groups."""
        expected = self.table["expected"].abs()
        if (expected == 0).all():
            return None
        gaps = (self.table["observed"] - self.table["expected"]).abs() / expected
        return float(gaps[expected > 0].max())
