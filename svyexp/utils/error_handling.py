"""
Error types for svyexp.

Every failure in the pipeline surfaces as one of these. Nothing is repaired
silently: an empty factor level, a single-PSU stratum or an out-of-range code
stops the run.
"""

from typing import Any, Iterable, List, Optional, Sequence


class SvyExpError(Exception):
    """Base exception for all svyexp errors."""

    pass


class ConfigurationError(SvyExpError):
    """Raised when configuration is invalid or incomplete."""

    pass


class DataError(SvyExpError):
    """Raised when data loading fails or required columns are absent."""

    pass


class DomainViolation(SvyExpError):
    """Raised when a column holds values outside its declared domain."""

    def __init__(
        self,
        column: str,
        invalid_values: Iterable[Any],
        n_invalid: int,
        allowed: Optional[Sequence[Any]] = None,
    ):
        self.column = column
        self.invalid_values: List[Any] = _preview(invalid_values)
        self.n_invalid = n_invalid
        self.allowed = list(allowed) if allowed is not None else None

        msg = f"{n_invalid} value(s) in '{column}' outside the declared domain"
        if self.allowed is not None:
            msg += f" {self.allowed}"
        msg += f": {self.invalid_values}"
        super().__init__(msg)


class EstimationError(SvyExpError):
    """Raised when estimation fails due to data or model issues."""

    pass


class SingularDesignMatrix(EstimationError):
    """Raised when model-matrix columns are rank-deficient."""

    def __init__(self, columns: Sequence[str], rank: int, n_columns: int):
        self.columns = list(columns)
        self.rank = rank
        self.n_columns = n_columns
        super().__init__(
            f"Model matrix has rank {rank} < {n_columns} columns; "
            f"offending columns: {self.columns}"
        )


class UnadjustedLonelyStratum(EstimationError):
    """Raised when a stratum has one PSU and no lonely-PSU adjustment is set."""

    def __init__(self, strata: Sequence[Any]):
        self.strata = list(strata)
        super().__init__(
            f"{len(self.strata)} stratum/strata with a single PSU: "
            f"{_preview(self.strata)}. Set lonely_psu='adjust' (or 'certainty', "
            "'average') to estimate variances."
        )


def _preview(values: Iterable[Any], limit: int = 10) -> List[Any]:
    """First few distinct values, for error messages."""
    seen: List[Any] = []
    for v in values:
        if v not in seen:
            seen.append(v)
        if len(seen) >= limit:
            break
    return seen
