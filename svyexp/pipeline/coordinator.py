"""
Expenditure pipeline coordinator - runs the analysis stages in order.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import matplotlib.pyplot as plt
import pandas as pd
from rich.console import Console
from rich.table import Table

from ..config import AnalysisConfig
from ..core.glm import SurveyGLMResults
from ..core.models import MarginalEffectsResult
from ..data.loaders import DataSource
from ..diagnostics.suite import DiagnosticSuite
from ..results.tables import print_report
from ..results.visualization import plot_interaction
from ..survey.design import SurveyDesign
from .stages import (
    design_stage,
    diagnostics_stage,
    fit_stage,
    load_stage,
    margins_stage,
    recode_stage,
    source_from_config,
)

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    """Everything a pipeline run produced."""

    respondents: pd.DataFrame
    design: SurveyDesign
    model: SurveyGLMResults
    diagnostics: DiagnosticSuite
    marginal_effects: MarginalEffectsResult
    margins: pd.DataFrame
    figure: plt.Figure
    stage_times: Dict[str, float] = field(default_factory=dict)

    @property
    def total_time(self) -> float:
        return sum(self.stage_times.values())


class ExpenditurePipeline:
    """
    Runs load -> recode -> design -> fit -> diagnostics -> margins.

    Example:
        pipeline = ExpenditurePipeline(AnalysisConfig.from_yaml("analysis.yaml"))
        report = pipeline.run()
        report.marginal_effects.as_dict()
    """

    def __init__(self, config: Optional[AnalysisConfig] = None, console: Optional[Console] = None):
        self.config = config or AnalysisConfig()
        self.config.validate()
        self.console = console or Console()
        self.stage_times: Dict[str, float] = {}

    def run(self, source: Optional[DataSource] = None) -> AnalysisReport:
        """
        Execute all stages.

        Args:
            source: Data source; built from config.data when None

        Returns:
            AnalysisReport
        """
        self.stage_times = {}
        cfg = self.config
        logger.info("Starting expenditure analysis")
        self._print_configuration()

        try:
            source = source or source_from_config(cfg.data)
            respondents = self._run_stage("load", load_stage, source, cfg.data)
            recoded = self._run_stage("recode", recode_stage, respondents)
            design = self._run_stage("design", design_stage, recoded, cfg.design)
            model = self._run_stage("fit", fit_stage, design, cfg.model)
            diagnostics = self._run_stage(
                "diagnostics", diagnostics_stage, model, cfg.diagnostics
            )
            effects, margins = self._run_stage(
                "margins", margins_stage, model, cfg.margins, cfg.model.reference_level
            )
        except Exception as e:
            logger.error(f"Pipeline execution failed: {e}")
            self.console.print(f"[red]✗ Pipeline execution failed: {e}[/red]")
            raise

        plot_path = cfg.output.plot_path
        figure = plot_interaction(
            margins,
            x=cfg.margins.variable,
            series=cfg.margins.by,
            save_path=Path(plot_path) if plot_path else None,
        )

        report = AnalysisReport(
            respondents=recoded,
            design=design,
            model=model,
            diagnostics=diagnostics,
            marginal_effects=effects,
            margins=margins,
            figure=figure,
            stage_times=dict(self.stage_times),
        )

        if cfg.output.show_tables:
            print_report(report, self.console)
        self._print_timing()
        logger.info(f"Analysis finished in {report.total_time:.2f}s")
        return report

    def _run_stage(
        self, stage_name: str, stage_func: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> Any:
        """Run a pipeline stage with timing and error handling."""
        stage_start = time.time()
        title = stage_name.replace("_", " ").title()
        self.console.print(f"[bold cyan]Stage: {title}[/bold cyan]")

        try:
            result = stage_func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Stage {stage_name} failed: {e}")
            self.console.print(f"[red]✗ Stage {stage_name} failed: {e}[/red]")
            raise

        stage_time = time.time() - stage_start
        self.stage_times[stage_name] = stage_time
        logger.debug(f"Stage {stage_name} took {stage_time:.3f}s")
        self.console.print(f"[green]✓ {title} completed in {stage_time:.2f}s[/green]")
        return result

    def _print_configuration(self) -> None:
        model = self.config.model
        table = Table(title="Analysis configuration", show_header=False)
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        table.add_row("Data", str(self.config.data.path or "<in-memory>"))
        table.add_row("Variance power", f"{model.var_power:g}")
        table.add_row("Link power", f"{model.link_power:g}")
        table.add_row("Reference povcat", str(model.reference_level))
        table.add_row("Lonely PSU", self.config.design.lonely_psu)
        table.add_row("Fit groups", str(self.config.diagnostics.n_groups))
        self.console.print(table)

    def _print_timing(self) -> None:
        table = Table(title="Stage timing")
        table.add_column("Stage", style="cyan")
        table.add_column("Seconds", justify="right")
        for name, seconds in self.stage_times.items():
            table.add_row(name, f"{seconds:.3f}")
        self.console.print(table)
