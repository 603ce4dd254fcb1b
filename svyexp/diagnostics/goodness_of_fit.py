"""Goodness-of-fit checks for a fitted mean model.

All three checks take only observed responses, fitted values and residuals
(observed - fitted), so they apply to any model that produces predictions.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats

from .. import constants
from .models import CorrelationTest, GroupedFitTest, LinkTest

logger = logging.getLogger(__name__)


def _as_vector(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float).ravel()
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains non-finite values")
    return arr


def correlation_test(fitted, residuals) -> CorrelationTest:
    """Pearson correlation of fitted values with residuals, two-sided p-value.

    Under a correctly specified mean model this should be indistinguishable
    from zero.
    """
    f = _as_vector(fitted, "fitted")
    e = _as_vector(residuals, "residuals")
    if len(f) != len(e):
        raise ValueError(f"Length mismatch: {len(f)} fitted vs {len(e)} residuals")
    if len(f) < 3:
        raise ValueError("Correlation test needs at least 3 observations")

    r, p = stats.pearsonr(f, e)
    return CorrelationTest(correlation=float(r), p_value=float(p), n=len(f))


def link_test(observed, fitted) -> LinkTest:
    """Pregibon link test.

    Regresses the observed response on a constant, the fitted value and its
    square by OLS. A significant coefficient on the square points to a
    misspecified link or an omitted nonlinearity.
    """
    y = _as_vector(observed, "observed")
    f = _as_vector(fitted, "fitted")
    if len(y) != len(f):
        raise ValueError(f"Length mismatch: {len(y)} observed vs {len(f)} fitted")
    if len(np.unique(f)) < 3:
        raise ValueError("Link test needs at least 3 distinct fitted values")

    # Rescale for conditioning; t-statistics are unchanged
    scale = float(np.mean(np.abs(f))) or 1.0
    g = f / scale
    X = np.column_stack([np.ones_like(g), g, g**2])
    ols = sm.OLS(y, X).fit()
    params, pvalues = np.asarray(ols.params), np.asarray(ols.pvalues)

    return LinkTest(
        hat_coef=float(params[1] / scale),
        hat_p_value=float(pvalues[1]),
        hatsq_coef=float(params[2] / scale**2),
        hatsq_p_value=float(pvalues[2]),
        n=len(y),
    )


def assign_groups(fitted, n_groups: int = constants.DEFAULT_N_GROUPS) -> np.ndarray:
    """Group index (0..n_groups-1) per row, by ranked fitted value.

    Rows are ordered by fitted value with ties broken by row position, then
    cut into near-equal contiguous groups, so the assignment is reproducible.
    """
    f = _as_vector(fitted, "fitted")
    if n_groups < 3:
        raise ValueError(f"n_groups must be at least 3, got {n_groups}")
    if len(f) < n_groups:
        raise ValueError(f"{len(f)} observations cannot form {n_groups} groups")

    order = np.lexsort((np.arange(len(f)), f))
    groups = np.empty(len(f), dtype=int)
    for k, chunk in enumerate(np.array_split(order, n_groups)):
        groups[chunk] = k
    return groups


def grouped_fit_test(
    observed,
    fitted,
    n_groups: int = constants.DEFAULT_N_GROUPS,
    var_power: float = constants.DEFAULT_VAR_POWER,
    dispersion: Optional[float] = None,
) -> GroupedFitTest:
    """Hosmer-Lemeshow-style test generalised to a continuous response.

    Observed and expected totals are compared per group of ranked fitted
    values, each squared gap scaled by the model variance of the group total,
    phi * sum V(mu_i), and the sum referred to chi-squared with g - 2 df.

    Args:
        observed: Observed responses
        fitted: Fitted means
        n_groups: Number of groups (deciles by default)
        var_power: Variance power p in V(mu) = |mu|^p
        dispersion: Dispersion phi; the Pearson estimate when None
    """
    y = _as_vector(observed, "observed")
    mu = _as_vector(fitted, "fitted")
    if len(y) != len(mu):
        raise ValueError(f"Length mismatch: {len(y)} observed vs {len(mu)} fitted")

    groups = assign_groups(mu, n_groups)
    variance = np.power(np.abs(mu), var_power)
    if np.any(variance == 0):
        raise ValueError("Zero model variance for some fitted values")
    if dispersion is None:
        dispersion = float(np.mean((y - mu) ** 2 / variance))

    table = (
        pd.DataFrame({"group": groups, "observed": y, "expected": mu, "variance": variance})
        .groupby("group")
        .agg(
            n=("observed", "size"),
            observed=("observed", "sum"),
            expected=("expected", "sum"),
            variance=("variance", "sum"),
            fitted_min=("expected", "min"),
            fitted_max=("expected", "max"),
        )
        .reset_index()
    )
    contributions = (table["observed"] - table["expected"]) ** 2 / (
        dispersion * table["variance"]
    )
    table["contribution"] = contributions

    statistic = float(contributions.sum())
    df = n_groups - 2
    p_value = float(stats.chi2.sf(statistic, df))
    logger.debug(f"Grouped fit: statistic={statistic:.4f}, df={df}, p={p_value:.4f}")

    return GroupedFitTest(
        statistic=statistic,
        df=df,
        p_value=p_value,
        n_groups=n_groups,
        dispersion=dispersion,
        table=table,
        groups=groups,
    )
