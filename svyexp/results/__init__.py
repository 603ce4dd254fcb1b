"""Tables and plots for analysis results."""

from .tables import (
    coefficient_table,
    marginal_effects_table,
    render_coefficient_table,
    render_marginal_effects,
    render_diagnostics,
    print_report,
    label_value,
)
from .visualization import plot_interaction

__all__ = [
    "coefficient_table",
    "marginal_effects_table",
    "render_coefficient_table",
    "render_marginal_effects",
    "render_diagnostics",
    "print_report",
    "label_value",
    "plot_interaction",
]
