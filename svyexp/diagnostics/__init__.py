"""Goodness-of-fit diagnostics for fitted survey GLMs."""

from .models import (
    Status,
    status_from_pvalue,
    CorrelationTest,
    LinkTest,
    GroupedFitTest,
)
from .goodness_of_fit import (
    correlation_test,
    link_test,
    assign_groups,
    grouped_fit_test,
)
from .suite import DiagnosticSuite, run_diagnostics

__all__ = [
    # Models
    "Status",
    "status_from_pvalue",
    "CorrelationTest",
    "LinkTest",
    "GroupedFitTest",
    # Tests
    "correlation_test",
    "link_test",
    "assign_groups",
    "grouped_fit_test",
    # Suite
    "DiagnosticSuite",
    "run_diagnostics",
]
