"""Average marginal effects and predictive margins for survey GLMs.

Every quantity here is a design-weighted average of model predictions over
all respondents, with one or two predictors set counterfactually. For a
contrast between settings a and b,

    AME  = sum_i w_i [mu_i(b) - mu_i(a)] / sum_i w_i
    grad = sum_i w_i [mu'_i(b) x_i(b) - mu'_i(a) x_i(a)] / sum_i w_i

and the delta-method variance is grad' Sigma grad, with Sigma the
design-based coefficient covariance.
"""

import logging
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from .. import constants
from .glm import SurveyGLMResults
from .models import MarginalEffect, MarginalEffectsResult

logger = logging.getLogger(__name__)


def _scalar(value: Any) -> Any:
    """Plain Python scalar from numpy scalars, for clean result keys."""
    return value.item() if isinstance(value, np.generic) else value


def _variable_kind(series: pd.Series) -> str:
    if isinstance(series.dtype, pd.CategoricalDtype):
        return "categorical"
    values = set(pd.unique(series.dropna()))
    if values <= {0, 1}:
        return "binary"
    return "continuous"


def _levels(series: pd.Series) -> List[Any]:
    if isinstance(series.dtype, pd.CategoricalDtype):
        return [_scalar(v) for v in series.cat.categories]
    return sorted(_scalar(v) for v in pd.unique(series.dropna()))


def _counterfactual(data: pd.DataFrame, assignments: Dict[str, Any]) -> pd.DataFrame:
    """Copy of `data` with columns set to fixed values (or arrays)."""
    frame = data.copy()
    n = len(frame)
    for column, value in assignments.items():
        current = data[column]
        values = np.full(n, value) if np.ndim(value) == 0 else np.asarray(value)
        if isinstance(current.dtype, pd.CategoricalDtype):
            frame[column] = pd.Categorical(
                values,
                categories=current.cat.categories,
                ordered=current.cat.ordered,
            )
        else:
            frame[column] = values
    return frame


def _average_prediction(
    results: SurveyGLMResults, frame: pd.DataFrame, weights: np.ndarray
) -> Tuple[float, np.ndarray]:
    """Weighted mean prediction over `frame` and its gradient in the coefficients."""
    X = results.model_matrix(frame)
    eta = X @ results.params.to_numpy()
    mu = results.spec.inverse_link(eta)
    dmu = results.spec.mu_eta(eta)
    w_sum = weights.sum()
    return float(weights @ mu / w_sum), (weights * dmu) @ X / w_sum


def _delta_inference(
    estimate: float, grad: np.ndarray, cov: np.ndarray, alpha: float
) -> Dict[str, float]:
    se = float(np.sqrt(max(grad @ cov @ grad, 0.0)))
    z_crit = stats.norm.ppf(1 - alpha / 2)
    if se > 0:
        p_value = float(2 * stats.norm.sf(abs(estimate / se)))
    else:
        p_value = 1.0 if estimate == 0 else 0.0
    return {
        "estimate": float(estimate),
        "standard_error": se,
        "ci_lower": float(estimate - z_crit * se),
        "ci_upper": float(estimate + z_crit * se),
        "p_value": p_value,
    }


def _by_values(
    data: pd.DataFrame, by: Optional[str], at: Optional[Sequence[Any]]
) -> List[Any]:
    if by is None:
        return [None]
    if at is not None:
        return [_scalar(v) for v in at]
    series = data[by]
    if isinstance(series.dtype, pd.CategoricalDtype):
        return [_scalar(v) for v in series.cat.categories if (series == v).any()]
    return _levels(series)


def _check_columns(data: pd.DataFrame, variable: str, by: Optional[str]) -> None:
    if variable not in data.columns:
        raise KeyError(f"Variable not found in design data: {variable}")
    if by is not None:
        if by not in data.columns:
            raise KeyError(f"Stratifying covariate not found in design data: {by}")
        if by == variable:
            raise ValueError("`by` must differ from `variable`")


def _contrast_effect(
    results: SurveyGLMResults,
    variable: str,
    setting_a: Any,
    setting_b: Any,
    level: Any,
    contrast: Any,
    by: Optional[str],
    by_value: Any,
    alpha: float,
    cov: np.ndarray,
    scale: float = 1.0,
) -> MarginalEffect:
    data = results.design.data
    weights = results.design.weights
    fixed = {by: by_value} if by is not None else {}

    mean_a, grad_a = _average_prediction(
        results, _counterfactual(data, {**fixed, variable: setting_a}), weights
    )
    mean_b, grad_b = _average_prediction(
        results, _counterfactual(data, {**fixed, variable: setting_b}), weights
    )
    inference = _delta_inference(
        (mean_b - mean_a) / scale, (grad_b - grad_a) / scale, cov, alpha
    )
    return MarginalEffect(
        variable=variable,
        level=level,
        contrast=contrast,
        by=by,
        by_value=by_value,
        **inference,
    )


def average_marginal_effects(
    results: SurveyGLMResults,
    variable: str = constants.POVCAT,
    by: Optional[str] = constants.GENDER,
    at: Optional[Sequence[Any]] = None,
    reference: Any = None,
    alpha: float = constants.DEFAULT_ALPHA,
) -> MarginalEffectsResult:
    """Average marginal effects of `variable`, holding `by` at each value in `at`.

    - categorical `variable`: each non-reference level vs the reference
    - 0/1 `variable`: the discrete change from 0 to 1
    - other numeric `variable`: the average derivative (forward difference)

    Args:
        results: Fitted survey GLM
        variable: Predictor whose effect is averaged
        by: Covariate held fixed (None for pooled effects)
        at: Values to hold `by` at (defaults to its observed values)
        reference: Reference level for a categorical variable (defaults to the first)
        alpha: 1 - confidence level

    Returns:
        MarginalEffectsResult keyed by (level, by_value)
    """
    data = results.design.data
    _check_columns(data, variable, by)
    cov = results.cov_params().to_numpy()
    series = data[variable]
    kind = _variable_kind(series)

    effects: List[MarginalEffect] = []
    for by_value in _by_values(data, by, at):
        if kind == "categorical":
            levels = _levels(series)
            ref = levels[0] if reference is None else _scalar(reference)
            if ref not in levels:
                raise ValueError(f"Reference {ref!r} is not a level of {variable}")
            for level in levels:
                if level == ref:
                    continue
                effects.append(
                    _contrast_effect(
                        results, variable, ref, level, level, ref, by, by_value,
                        alpha, cov,
                    )
                )
        elif kind == "binary":
            effects.append(
                _contrast_effect(
                    results, variable, 0, 1, 1, 0, by, by_value, alpha, cov
                )
            )
        else:
            x = series.to_numpy(dtype=float)
            h = 1e-4 * max(float(np.std(x)), 1.0)
            effects.append(
                _contrast_effect(
                    results, variable, x, x + h, "dy/dx", None, by, by_value,
                    alpha, cov, scale=h,
                )
            )

    logger.info(
        f"Computed {len(effects)} average marginal effects of {variable}"
        + (f" by {by}" if by else "")
    )
    return MarginalEffectsResult(variable=variable, by=by, alpha=alpha, effects=effects)


def pairwise_contrasts(
    results: SurveyGLMResults,
    variable: str = constants.POVCAT,
    by: Optional[str] = constants.GENDER,
    at: Optional[Sequence[Any]] = None,
    alpha: float = constants.DEFAULT_ALPHA,
) -> MarginalEffectsResult:
    """Average effect of moving `variable` from level a to level b, for every a < b.

    These do not depend on which level the model was parameterised against.
    """
    data = results.design.data
    _check_columns(data, variable, by)
    if _variable_kind(data[variable]) != "categorical":
        raise ValueError(f"{variable} is not categorical")
    cov = results.cov_params().to_numpy()

    effects = [
        _contrast_effect(results, variable, a, b, b, a, by, by_value, alpha, cov)
        for by_value in _by_values(data, by, at)
        for a, b in combinations(_levels(data[variable]), 2)
    ]
    return MarginalEffectsResult(variable=variable, by=by, alpha=alpha, effects=effects)


def predictive_margins(
    results: SurveyGLMResults,
    variable: str = constants.POVCAT,
    by: Optional[str] = constants.GENDER,
    at: Optional[Sequence[Any]] = None,
    alpha: float = constants.DEFAULT_ALPHA,
) -> pd.DataFrame:
    """Design-weighted mean prediction at each level of `variable` and `by`.

    Returns:
        DataFrame with columns variable, by, margin, std_error, ci_lower, ci_upper
    """
    data = results.design.data
    _check_columns(data, variable, by)
    weights = results.design.weights
    cov = results.cov_params().to_numpy()

    rows = []
    for by_value in _by_values(data, by, at):
        fixed = {by: by_value} if by is not None else {}
        for level in _levels(data[variable]):
            frame = _counterfactual(data, {**fixed, variable: level})
            margin, grad = _average_prediction(results, frame, weights)
            inference = _delta_inference(margin, grad, cov, alpha)
            row = {variable: level}
            if by is not None:
                row[by] = by_value
            row.update(
                margin=inference["estimate"],
                std_error=inference["standard_error"],
                ci_lower=inference["ci_lower"],
                ci_upper=inference["ci_upper"],
            )
            rows.append(row)
    return pd.DataFrame(rows)
