"""Survey-weighted generalized linear models.

Point estimates come from statsmodels IRLS with the survey weights as variance
weights, so each row's working weight is w * (dmu/deta)^2 / V(mu). Standard
errors do not come from the IRLS information matrix: the coefficient
covariance is the design-based sandwich

    A^-1 Var_design(sum_i U_i) A^-1,
    A   = X' diag(w (dmu/deta)^2 / V(mu)) X,
    U_i = w_i x_i (y_i - mu_i) (dmu/deta)_i / V(mu_i),

with the middle term estimated by Taylor linearisation over strata and PSUs.
"""

import logging
import re
import warnings
from typing import Optional

import numpy as np
import pandas as pd
import patsy
import statsmodels.api as sm
from scipy import stats
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from .. import constants
from ..survey.design import SurveyDesign
from ..utils.error_handling import EstimationError, SingularDesignMatrix
from .family import TweedieSpec

logger = logging.getLogger(__name__)

_CATEGORICAL_TERM = re.compile(r"C\((\w+)(?:,[^\[]*)?\)\[T\.([^\]]+)\]")


def interaction_formula(
    response: str = constants.TOTEXP,
    binary: str = constants.GENDER,
    factor: str = constants.POVCAT,
    reference: object = constants.DEFAULT_REFERENCE_LEVEL,
) -> str:
    """Formula with two main effects and their interaction.

    The factor is expanded with treatment coding against `reference`, which
    contributes no column.
    """
    fac = f"C({factor}, Treatment(reference={reference!r}))"
    return f"{response} ~ {binary} + {fac} + {binary}:{fac}"


def readable_term(name: str) -> str:
    """Shorten patsy term names: C(povcat, Treatment(...))[T.2] -> povcat[2]."""
    return _CATEGORICAL_TERM.sub(r"\1[\2]", name)


class SurveyGLMResults:
    """A fitted survey GLM with design-adjusted covariance."""

    def __init__(
        self,
        design: SurveyDesign,
        formula: str,
        spec: TweedieSpec,
        design_info: patsy.DesignInfo,
        endog: np.ndarray,
        exog: np.ndarray,
        params: pd.Series,
        cov: np.ndarray,
        naive_bse: pd.Series,
        iterations: int,
        converged: bool,
    ):
        self.design = design
        self.formula = formula
        self.spec = spec
        self.design_info = design_info
        self.endog = endog
        self.exog = exog
        self.params = params
        self._cov = cov
        self.naive_bse = naive_bse
        self.iterations = iterations
        self.converged = converged

        self.linear_predictor = exog @ params.to_numpy()
        self.fitted = spec.inverse_link(self.linear_predictor)
        self.residuals = endog - self.fitted
        for arr in (self.linear_predictor, self.fitted, self.residuals):
            arr.setflags(write=False)

    @property
    def term_names(self):
        return list(self.params.index)

    @property
    def n_obs(self) -> int:
        return len(self.endog)

    def cov_params(self) -> pd.DataFrame:
        """Design-based covariance of the coefficients."""
        return pd.DataFrame(self._cov, index=self.term_names, columns=self.term_names)

    @property
    def bse(self) -> pd.Series:
        return pd.Series(np.sqrt(np.diag(self._cov)), index=self.term_names)

    @property
    def zvalues(self) -> pd.Series:
        return self.params / self.bse

    @property
    def pvalues(self) -> pd.Series:
        return pd.Series(
            2 * stats.norm.sf(np.abs(self.zvalues.to_numpy())), index=self.term_names
        )

    def conf_int(self, alpha: float = 0.05) -> pd.DataFrame:
        z = stats.norm.ppf(1 - alpha / 2)
        return pd.DataFrame(
            {
                "lower": self.params - z * self.bse,
                "upper": self.params + z * self.bse,
            }
        )

    @property
    def dispersion(self) -> float:
        """Design-weighted Pearson estimate of the dispersion parameter."""
        w = self.design.weights
        pearson = self.residuals**2 / self.spec.variance(self.fitted)
        return float((w * pearson).sum() / w.sum())

    @property
    def design_effects(self) -> pd.Series:
        """Ratio of design-based to model-based coefficient variances."""
        return (self.bse / self.naive_bse) ** 2

    def coefficient_table(self, alpha: float = 0.05) -> pd.DataFrame:
        """Coefficients with design-based SEs, CIs and significance codes."""
        ci = self.conf_int(alpha)
        pvalues = self.pvalues
        table = pd.DataFrame(
            {
                "term": [readable_term(t) for t in self.term_names],
                "estimate": self.params.to_numpy(),
                "std_error": self.bse.to_numpy(),
                "ci_lower": ci["lower"].to_numpy(),
                "ci_upper": ci["upper"].to_numpy(),
                "z": self.zvalues.to_numpy(),
                "p_value": pvalues.to_numpy(),
                "stars": [constants.significance_stars(p) for p in pvalues],
            }
        )
        return table

    def model_matrix(self, data: pd.DataFrame) -> np.ndarray:
        """Model matrix for new rows, built with the fitted design info."""
        (exog,) = patsy.build_design_matrices(
            [self.design_info], data, NA_action="raise"
        )
        return np.asarray(exog)

    def predict(
        self, data: Optional[pd.DataFrame] = None, se: bool = False
    ) -> pd.DataFrame:
        """Predicted mean response, optionally with delta-method SEs.

        Args:
            data: New rows (defaults to the fitting data)
            se: Whether to add a standard error column

        Returns:
            DataFrame with "fitted" (and "se") aligned to the input rows
        """
        if data is None:
            exog = self.exog
            index = self.design.data.index
        else:
            exog = self.model_matrix(data)
            index = data.index

        eta = exog @ self.params.to_numpy()
        out = pd.DataFrame({"fitted": self.spec.inverse_link(eta)}, index=index)
        if se:
            var_eta = np.einsum("ij,jk,ik->i", exog, self._cov, exog)
            out["se"] = np.abs(self.spec.mu_eta(eta)) * np.sqrt(np.maximum(var_eta, 0))
        return out

    def summary(self) -> str:
        lines = [
            f"Survey GLM: {self.spec.name}",
            f"Formula: {self.formula}",
            f"Observations: {self.n_obs}, strata: {self.design.n_strata}, "
            f"PSUs: {self.design.n_psu}",
            f"Dispersion: {self.dispersion:.4g}",
            "",
            self.coefficient_table().to_string(index=False),
        ]
        return "\n".join(lines)


def _check_rank(exog: pd.DataFrame) -> None:
    """Raise SingularDesignMatrix if model-matrix columns are collinear."""
    X = exog.to_numpy(dtype=float)
    rank = int(np.linalg.matrix_rank(X))
    if rank == X.shape[1]:
        return

    names = list(exog.columns)
    offending = [names[j] for j in range(X.shape[1]) if not np.any(X[:, j])]
    if not offending:
        # Columns whose removal does not lower the rank are redundant
        offending = [
            names[j]
            for j in range(X.shape[1])
            if np.linalg.matrix_rank(np.delete(X, j, axis=1)) == rank
        ]
    raise SingularDesignMatrix([readable_term(n) for n in offending], rank, X.shape[1])


def fit_survey_glm(
    design: SurveyDesign,
    formula: Optional[str] = None,
    spec: Optional[TweedieSpec] = None,
    reference: object = constants.DEFAULT_REFERENCE_LEVEL,
    maxiter: int = constants.DEFAULT_MAXITER,
    tol: float = constants.DEFAULT_TOL,
) -> SurveyGLMResults:
    """Fit a Tweedie GLM through a survey design.

    Args:
        design: Survey design holding the respondent rows
        formula: patsy formula; defaults to the gender x povcat interaction model
        spec: Variance and link powers (defaults to gamma / identity)
        reference: Reference level for the default formula's factor
        maxiter: Maximum IRLS iterations
        tol: IRLS convergence tolerance

    Returns:
        SurveyGLMResults

    Raises:
        SingularDesignMatrix: if model-matrix columns are rank-deficient
        EstimationError: if IRLS fails to converge
    """
    spec = spec or TweedieSpec()
    formula = formula or interaction_formula(reference=reference)

    try:
        endog_df, exog_df = patsy.dmatrices(
            formula, design.data, return_type="dataframe", NA_action="raise"
        )
    except patsy.PatsyError as e:
        raise EstimationError(f"Could not build model matrix for '{formula}': {e}")

    _check_rank(exog_df)

    endog = endog_df.iloc[:, 0].to_numpy(dtype=float)
    exog = exog_df.to_numpy(dtype=float)
    w = design.weights

    logger.info(
        f"Fitting {spec.name} on {len(endog)} rows, {exog.shape[1]} terms: {formula}"
    )
    model = sm.GLM(endog, exog, family=spec.family(), var_weights=w)
    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        try:
            res = model.fit(maxiter=maxiter, tol=tol)
        except ConvergenceWarning as e:
            raise EstimationError(f"IRLS did not converge in {maxiter} iterations: {e}")

    if not getattr(res, "converged", True):
        raise EstimationError(f"IRLS did not converge in {maxiter} iterations")

    beta = np.asarray(res.params)
    eta = exog @ beta
    mu = spec.inverse_link(eta)
    dmu = spec.mu_eta(eta)
    var_mu = spec.variance(mu)

    bread = exog.T @ (exog * (w * dmu**2 / var_mu)[:, None])
    scores = exog * (w * (endog - mu) * dmu / var_mu)[:, None]
    try:
        bread_inv = np.linalg.inv(bread)
    except np.linalg.LinAlgError:
        raise SingularDesignMatrix(list(exog_df.columns), exog.shape[1] - 1, exog.shape[1])
    meat = design.total_covariance(scores)
    cov = bread_inv @ meat @ bread_inv
    cov = (cov + cov.T) / 2

    names = list(exog_df.columns)
    iterations = int(res.fit_history.get("iteration", 0))
    logger.info(f"IRLS converged after {iterations} iterations")

    return SurveyGLMResults(
        design=design,
        formula=formula,
        spec=spec,
        design_info=exog_df.design_info,
        endog=endog,
        exog=exog,
        params=pd.Series(beta, index=names),
        cov=cov,
        naive_bse=pd.Series(np.asarray(res.bse), index=names),
        iterations=iterations,
        converged=True,
    )
