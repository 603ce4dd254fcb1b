"""
Tabular presentation of fitted models, marginal effects and diagnostics.
"""

from typing import Any, Dict, Optional

import pandas as pd
from rich.console import Console
from rich.table import Table

from .. import constants
from ..core.glm import SurveyGLMResults
from ..core.models import MarginalEffectsResult
from ..data.schema import Gender, PovertyCategory
from ..diagnostics.models import Status
from ..diagnostics.suite import DiagnosticSuite

_STATUS_STYLE = {
    Status.GOOD: "[green]✓ good[/green]",
    Status.WARNING: "[yellow]⚠ warning[/yellow]",
    Status.CRITICAL: "[red]✗ critical[/red]",
}

# Display labels for known coded columns
VALUE_LABELS: Dict[str, Dict[int, str]] = {
    constants.GENDER: Gender.labels(),
    constants.POVCAT: PovertyCategory.labels(),
}


def label_value(column: Optional[str], value: Any) -> str:
    """Display label for a coded value, e.g. povcat 2 -> "2 Near Poor"."""
    labels = VALUE_LABELS.get(column or "", {})
    if value in labels:
        return f"{value} {labels[value]}"
    return str(value)


def coefficient_table(results: SurveyGLMResults, alpha: float = 0.05) -> pd.DataFrame:
    """Coefficient table with design-based SEs, CIs and significance stars."""
    return results.coefficient_table(alpha)


def marginal_effects_table(effects: MarginalEffectsResult) -> pd.DataFrame:
    """Marginal effects as a DataFrame: level, stratum, AME, CI."""
    frame = effects.to_frame()
    if frame.empty:
        return frame
    frame["stars"] = [constants.significance_stars(p) for p in frame["p_value"]]
    columns = ["level", "contrast", "by_value", "estimate", "standard_error",
               "ci_lower", "ci_upper", "p_value", "stars"]
    return frame[columns].rename(columns={"by_value": effects.by or "by"})


def render_coefficient_table(
    results: SurveyGLMResults, alpha: float = 0.05, title: Optional[str] = None
) -> Table:
    table = Table(title=title or f"Survey GLM coefficients: {results.spec.name}")
    level = int(round((1 - alpha) * 100))
    table.add_column("Term", style="cyan")
    table.add_column("Estimate", justify="right")
    table.add_column("Std. error", justify="right")
    table.add_column(f"{level}% CI", justify="right")
    table.add_column("p", justify="right")
    table.add_column("", style="bold")

    for row in coefficient_table(results, alpha).itertuples(index=False):
        table.add_row(
            row.term,
            f"{row.estimate:,.1f}",
            f"{row.std_error:,.1f}",
            f"[{row.ci_lower:,.1f}, {row.ci_upper:,.1f}]",
            f"{row.p_value:.4f}",
            row.stars,
        )
    return table


def render_marginal_effects(
    effects: MarginalEffectsResult, title: Optional[str] = None
) -> Table:
    level = int(round((1 - effects.alpha) * 100))
    table = Table(title=title or f"Average marginal effects of {effects.variable}")
    table.add_column(effects.variable, style="cyan")
    table.add_column("vs", style="dim")
    if effects.by:
        table.add_column(effects.by)
    table.add_column("AME", justify="right")
    table.add_column(f"{level}% CI", justify="right")
    table.add_column("p", justify="right")

    for effect in effects.effects:
        cells = [
            label_value(effects.variable, effect.level),
            "" if effect.contrast is None else str(effect.contrast),
        ]
        if effects.by:
            cells.append(label_value(effects.by, effect.by_value))
        cells += [
            f"{effect.estimate:,.1f}",
            f"[{effect.ci_lower:,.1f}, {effect.ci_upper:,.1f}]",
            f"{effect.p_value:.4f}",
        ]
        table.add_row(*cells)
    return table


def render_diagnostics(suite: DiagnosticSuite) -> Table:
    table = Table(title="Goodness of fit")
    table.add_column("Check", style="cyan")
    table.add_column("Statistic", justify="right")
    table.add_column("p", justify="right")
    table.add_column("Status")

    statuses = suite.statuses
    c, lk, g = suite.correlation, suite.link, suite.grouped_fit
    table.add_row(
        c.name, f"r = {c.correlation:.4f}", f"{c.p_value:.4f}", _STATUS_STYLE[statuses[c.name]]
    )
    table.add_row(
        lk.name,
        f"hat = {lk.hat_coef:.4g}, hat² = {lk.hatsq_coef:.3g}",
        f"{lk.hatsq_p_value:.4f}",
        _STATUS_STYLE[statuses[lk.name]],
    )
    table.add_row(
        g.name,
        f"X² = {g.statistic:.3f} ({g.df} df)",
        f"{g.p_value:.4f}",
        _STATUS_STYLE[statuses[g.name]],
    )
    return table


def print_report(report: Any, console: Optional[Console] = None) -> None:
    """Print coefficient, diagnostic and marginal-effect tables for a pipeline run."""
    console = console or Console()
    console.print(render_coefficient_table(report.model))
    console.print(
        "Signif. codes: 0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1", style="dim"
    )
    console.print(render_diagnostics(report.diagnostics))
    console.print(render_marginal_effects(report.marginal_effects))
