"""Complex survey design: stratification, clustering and weights.

Variances are Taylor-linearised with-replacement estimates: per-row score
contributions are summed within each PSU, and the PSU totals vary around their
stratum mean. This is the estimator behind survey-weighted means, totals and
GLM coefficients alike, so everything downstream reuses `total_covariance`.
"""

import logging
from enum import Enum
from typing import Any, List, Optional, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field
from scipy import stats

from ..utils.error_handling import DataError, DomainViolation, UnadjustedLonelyStratum

logger = logging.getLogger(__name__)


class LonelyPSU(str, Enum):
    """Handling of strata that contain a single PSU."""

    FAIL = "fail"  # raise UnadjustedLonelyStratum
    ADJUST = "adjust"  # centre at the grand mean of PSU totals
    CERTAINTY = "certainty"  # contributes no variance
    AVERAGE = "average"  # rescale by H / (H - H_lonely)


class SurveyEstimate(BaseModel):
    """A design-based point estimate with its standard error."""

    estimate: float = Field(..., description="Point estimate")
    standard_error: float = Field(..., ge=0, description="Linearised standard error")
    ci_lower: float = Field(..., description="Lower confidence bound")
    ci_upper: float = Field(..., description="Upper confidence bound")
    alpha: float = Field(0.05, gt=0, lt=1, description="1 - confidence level")

    @classmethod
    def from_variance(
        cls, estimate: float, variance: float, alpha: float = 0.05
    ) -> "SurveyEstimate":
        se = float(np.sqrt(max(variance, 0.0)))
        z = stats.norm.ppf(1 - alpha / 2)
        return cls(
            estimate=float(estimate),
            standard_error=se,
            ci_lower=float(estimate - z * se),
            ci_upper=float(estimate + z * se),
            alpha=alpha,
        )


class SurveyDesign:
    """Read-only view of respondent rows plus their sampling design.

    Example:
        design = SurveyDesign(df, psu="psu", strata="stratum", weights="weight")
        design.mean("totexp").estimate
    """

    def __init__(
        self,
        data: pd.DataFrame,
        psu: str,
        strata: str,
        weights: str,
        lonely_psu: Union[LonelyPSU, str] = LonelyPSU.ADJUST,
    ):
        """Initialize the design.

        Args:
            data: Respondent rows (referenced, not copied)
            psu: Column holding the primary sampling unit, nested in strata
            strata: Column holding the stratum
            weights: Column holding the final survey weight
            lonely_psu: Handling of single-PSU strata

        Raises:
            DataError: if a column is missing
            DomainViolation: if weights are not positive or ids are missing
            UnadjustedLonelyStratum: if lonely_psu is "fail" and a stratum has one PSU
        """
        missing = [c for c in (psu, strata, weights) if c not in data.columns]
        if missing:
            raise DataError(f"Design columns not found in data: {missing}")

        self._data = data
        self.psu_column = psu
        self.strata_column = strata
        self.weights_column = weights
        self.lonely_psu = LonelyPSU(lonely_psu)

        w = pd.to_numeric(data[weights], errors="coerce").to_numpy(dtype=float)
        bad = ~np.isfinite(w) | (w <= 0)
        if bad.any():
            raise DomainViolation(
                weights, data.loc[bad, weights].tolist(), int(bad.sum())
            )
        for col in (strata, psu):
            na = data[col].isna()
            if na.any():
                raise DomainViolation(col, [None], int(na.sum()))

        strata_codes, strata_labels = pd.factorize(data[strata], sort=True)
        # PSU ids repeat across strata, so a PSU is the (stratum, psu) pair
        cluster_codes = (
            data.groupby([strata, psu], sort=True).ngroup().to_numpy(dtype=int)
        )
        # Stratum of each PSU
        cluster_stratum = np.zeros(cluster_codes.max() + 1, dtype=int)
        cluster_stratum[cluster_codes] = strata_codes

        self._weights = w
        self._strata_codes = strata_codes
        self._strata_labels = list(strata_labels)
        self._cluster_codes = cluster_codes
        self._cluster_stratum = cluster_stratum
        self._psu_per_stratum = np.bincount(
            cluster_stratum, minlength=len(strata_labels)
        )
        for arr in (self._weights, self._strata_codes, self._cluster_codes):
            arr.setflags(write=False)

        if self.lonely_strata:
            if self.lonely_psu == LonelyPSU.FAIL:
                raise UnadjustedLonelyStratum(self.lonely_strata)
            logger.warning(
                f"{len(self.lonely_strata)} single-PSU strata handled with "
                f"lonely_psu='{self.lonely_psu.value}': {self.lonely_strata[:10]}"
            )

        logger.info(
            f"Survey design: {self.n_obs} rows, {self.n_strata} strata, "
            f"{self.n_psu} PSUs, sum of weights {w.sum():,.1f}"
        )

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def data(self) -> pd.DataFrame:
        return self._data

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    @property
    def n_obs(self) -> int:
        return len(self._weights)

    @property
    def n_strata(self) -> int:
        return len(self._strata_labels)

    @property
    def n_psu(self) -> int:
        return len(self._cluster_stratum)

    @property
    def degrees_of_freedom(self) -> int:
        """Design degrees of freedom: PSUs minus strata."""
        return self.n_psu - self.n_strata

    @property
    def lonely_strata(self) -> List[Any]:
        """Labels of strata with a single PSU."""
        return [
            self._strata_labels[h]
            for h in np.flatnonzero(self._psu_per_stratum == 1)
        ]

    # ------------------------------------------------------------------
    # Variance estimation
    # ------------------------------------------------------------------

    def total_covariance(self, scores: np.ndarray) -> np.ndarray:
        """Design covariance of the total of per-row scores.

        Args:
            scores: Array of shape (n,) or (n, k), already multiplied by weights

        Returns:
            Array of shape (k, k); a 1x1 array for one-dimensional scores
        """
        u = np.asarray(scores, dtype=float)
        if u.ndim == 1:
            u = u[:, None]
        if u.shape[0] != self.n_obs:
            raise ValueError(
                f"Scores have {u.shape[0]} rows, design has {self.n_obs}"
            )

        k = u.shape[1]
        totals = np.zeros((self.n_psu, k))
        np.add.at(totals, self._cluster_codes, u)
        grand_mean = totals.mean(axis=0)

        cov = np.zeros((k, k))
        n_lonely = 0
        for h in range(self.n_strata):
            z = totals[self._cluster_stratum == h]
            n_h = z.shape[0]
            if n_h > 1:
                centered = z - z.mean(axis=0)
                cov += n_h / (n_h - 1) * centered.T @ centered
                continue

            n_lonely += 1
            if self.lonely_psu == LonelyPSU.ADJUST:
                centered = z - grand_mean
                cov += centered.T @ centered
            elif self.lonely_psu == LonelyPSU.FAIL:
                raise UnadjustedLonelyStratum([self._strata_labels[h]])

        if n_lonely and self.lonely_psu == LonelyPSU.AVERAGE:
            n_informative = self.n_strata - n_lonely
            if n_informative == 0:
                raise UnadjustedLonelyStratum(self.lonely_strata)
            cov *= self.n_strata / n_informative

        return cov

    # ------------------------------------------------------------------
    # Point estimates
    # ------------------------------------------------------------------

    def _column(self, column: str) -> np.ndarray:
        if column not in self._data.columns:
            raise DataError(f"Column not found in design data: {column}")
        y = pd.to_numeric(self._data[column], errors="coerce").to_numpy(dtype=float)
        if np.isnan(y).any():
            raise DomainViolation(column, [None], int(np.isnan(y).sum()))
        return y

    def total(self, column: str, alpha: float = 0.05) -> SurveyEstimate:
        """Weighted population total of a numeric column."""
        y = self._column(column)
        u = self._weights * y
        var = self.total_covariance(u)[0, 0]
        return SurveyEstimate.from_variance(u.sum(), var, alpha)

    def mean(self, column: str, alpha: float = 0.05) -> SurveyEstimate:
        """Weighted mean of a numeric column (ratio estimator)."""
        y = self._column(column)
        return self._domain_mean(y, np.ones(self.n_obs, dtype=bool), alpha)

    def mean_by(
        self, column: str, by: str, alpha: float = 0.05
    ) -> pd.DataFrame:
        """Weighted mean of `column` within each level of `by`.

        Domain variances are computed over the full design, so PSUs with no
        members of a domain still count towards the stratum spread.
        """
        y = self._column(column)
        groups = self._data[by]
        if isinstance(groups.dtype, pd.CategoricalDtype):
            levels = [lvl for lvl in groups.cat.categories if (groups == lvl).any()]
        else:
            levels = sorted(groups.dropna().unique())

        rows = []
        for level in levels:
            mask = (groups == level).to_numpy()
            est = self._domain_mean(y, mask, alpha)
            rows.append(
                {
                    by: level,
                    "n": int(mask.sum()),
                    "mean": est.estimate,
                    "std_error": est.standard_error,
                    "ci_lower": est.ci_lower,
                    "ci_upper": est.ci_upper,
                }
            )
        return pd.DataFrame(rows)

    def _domain_mean(
        self, y: np.ndarray, mask: np.ndarray, alpha: float
    ) -> SurveyEstimate:
        w = np.where(mask, self._weights, 0.0)
        w_sum = w.sum()
        if w_sum <= 0:
            raise ValueError("Domain has no respondents")
        est = float((w * y).sum() / w_sum)
        u = w * (y - est) / w_sum
        var = self.total_covariance(u)[0, 0]
        return SurveyEstimate.from_variance(est, var, alpha)

    def __repr__(self) -> str:
        return (
            f"SurveyDesign(n_obs={self.n_obs}, n_strata={self.n_strata}, "
            f"n_psu={self.n_psu}, lonely_psu='{self.lonely_psu.value}')"
        )
