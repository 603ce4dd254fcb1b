"""Canonical column names and analysis defaults."""

from typing import List, Tuple

# Canonical respondent columns after loading
ID = "id"
WEIGHT = "weight"
STRATUM = "stratum"
PSU = "psu"
TOTEXP = "totexp"
SEX = "sex"
POVCAT = "povcat"

# Derived by the recoder
GENDER = "gender"

REQUIRED_COLUMNS: List[str] = [ID, WEIGHT, STRATUM, PSU, TOTEXP, SEX, POVCAT]

# Model defaults: gamma variance, identity link
DEFAULT_VAR_POWER = 2.0
DEFAULT_LINK_POWER = 1.0
DEFAULT_REFERENCE_LEVEL = 1
DEFAULT_MAXITER = 100
DEFAULT_TOL = 1e-8

DEFAULT_N_GROUPS = 10
DEFAULT_ALPHA = 0.05

# R-style significance codes, checked in order
SIGNIFICANCE_CODES: List[Tuple[float, str]] = [
    (0.001, "***"),
    (0.01, "**"),
    (0.05, "*"),
    (0.1, "."),
]


def significance_stars(p_value: float) -> str:
    """Significance code for a p-value ("" when not significant at 0.1)."""
    for threshold, code in SIGNIFICANCE_CODES:
        if p_value < threshold:
            return code
    return ""
