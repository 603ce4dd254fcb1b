"""Synthetic respondent extracts with a known data-generating model.

Expenditure is drawn from a gamma distribution whose mean follows the
identity-link interaction model

    mu = b0 + b_gender * gender + b_pov[L] + b_int[L] * gender

so a correctly specified fit should recover the generating coefficients.
"""

from typing import Dict, Optional

import numpy as np
import pandas as pd

from .. import constants
from .schema import PovertyCategory

# Keyed by poverty level for the level-specific terms
GENERATING_COEFFICIENTS: Dict[str, object] = {
    "intercept": 500.0,
    "gender": 2500.0,
    "povcat": {2: 2500.0, 3: 3500.0, 4: 4500.0, 5: 5500.0},
    "gender:povcat": {2: 12000.0, 3: 14000.0, 4: 16000.0, 5: 18000.0},
}


def expected_expenditure(
    gender: np.ndarray, povcat: np.ndarray, coefficients: Optional[Dict] = None
) -> np.ndarray:
    """Mean expenditure under the generating model."""
    coef = coefficients or GENERATING_COEFFICIENTS
    gender = np.asarray(gender, dtype=float)
    povcat = np.asarray(povcat, dtype=int)
    pov = np.array([coef["povcat"].get(int(p), 0.0) for p in povcat])
    inter = np.array([coef["gender:povcat"].get(int(p), 0.0) for p in povcat])
    return coef["intercept"] + coef["gender"] * gender + pov + inter * gender


def simulate_expenditure_survey(
    n: int = 2000,
    n_strata: int = 2,
    psu_per_stratum: int = 2,
    shape: float = 5.0,
    coefficients: Optional[Dict] = None,
    weights: Optional[np.ndarray] = None,
    seed: int = 0,
) -> pd.DataFrame:
    """Generate a raw respondent extract with canonical column names.

    Gender is drawn 50/50, poverty category uniformly over its five levels,
    and each respondent lands in a PSU chosen uniformly across all strata.
    Cell sizes therefore vary around n / 10.

    Args:
        n: Number of respondents
        n_strata: Number of strata
        psu_per_stratum: PSUs per stratum
        shape: Gamma shape; coefficient of variation is 1/sqrt(shape)
        coefficients: Generating coefficients (defaults to GENERATING_COEFFICIENTS)
        weights: Survey weights (defaults to all ones)
        seed: Random seed

    Returns:
        DataFrame with id, weight, stratum, psu, totexp, sex, povcat
    """
    rng = np.random.default_rng(seed)
    idx = np.arange(n)

    gender = rng.integers(0, 2, size=n)
    levels = np.array(PovertyCategory.values())
    povcat = rng.choice(levels, size=n)

    n_psu = n_strata * psu_per_stratum
    cluster = rng.integers(0, n_psu, size=n)
    stratum = cluster // psu_per_stratum + 1
    psu = cluster % psu_per_stratum + 1

    mu = expected_expenditure(gender, povcat, coefficients)
    if np.any(mu <= 0):
        raise ValueError("Generating coefficients must give a positive mean")
    totexp = rng.gamma(shape, mu / shape)

    if weights is None:
        weights = np.ones(n)

    return pd.DataFrame(
        {
            constants.ID: idx + 1,
            constants.WEIGHT: np.asarray(weights, dtype=float),
            constants.STRATUM: stratum,
            constants.PSU: psu,
            constants.TOTEXP: totexp,
            constants.SEX: gender + 1,
            constants.POVCAT: povcat,
        }
    )
