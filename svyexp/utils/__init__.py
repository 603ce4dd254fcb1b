"""Shared utilities for svyexp."""

from .error_handling import (
    SvyExpError,
    ConfigurationError,
    DataError,
    DomainViolation,
    EstimationError,
    SingularDesignMatrix,
    UnadjustedLonelyStratum,
)

__all__ = [
    "SvyExpError",
    "ConfigurationError",
    "DataError",
    "DomainViolation",
    "EstimationError",
    "SingularDesignMatrix",
    "UnadjustedLonelyStratum",
]
