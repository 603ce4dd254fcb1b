"""
Pipeline stages.

Each stage is a plain function of the previous stage's output and its config
section. Stages do not touch the console; the coordinator announces and times
them.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd

from .. import constants
from ..config import (
    DataConfig,
    DesignConfig,
    DiagnosticsConfig,
    MarginsConfig,
    ModelConfig,
)
from ..core.family import TweedieSpec
from ..core.glm import SurveyGLMResults, fit_survey_glm
from ..core.marginal_effects import average_marginal_effects, predictive_margins
from ..core.models import MarginalEffectsResult
from ..data.loaders import (
    CsvDataSource,
    DataSource,
    RespondentLoader,
    StataDataSource,
)
from ..data.recode import recode_respondents
from ..diagnostics.suite import DiagnosticSuite, run_diagnostics
from ..survey.design import SurveyDesign
from ..utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


def source_from_config(config: DataConfig) -> DataSource:
    """Build a file source from the data section."""
    if not config.path:
        raise ConfigurationError("data.path is required when no source is given")
    fmt = config.format
    if fmt is None:
        fmt = "stata" if Path(config.path).suffix.lower() == ".dta" else "csv"
    if fmt == "stata":
        return StataDataSource(config.path)
    return CsvDataSource(config.path)


def load_stage(source: DataSource, config: DataConfig) -> pd.DataFrame:
    """Raw source -> canonical respondent columns."""
    return RespondentLoader(config.columns).load_from_source(source)


def recode_stage(respondents: pd.DataFrame) -> pd.DataFrame:
    """Canonical columns -> analysis frame with gender and categorical povcat."""
    return recode_respondents(respondents)


def design_stage(recoded: pd.DataFrame, config: DesignConfig) -> SurveyDesign:
    return SurveyDesign(
        recoded,
        psu=constants.PSU,
        strata=constants.STRATUM,
        weights=constants.WEIGHT,
        lonely_psu=config.lonely_psu,
    )


def fit_stage(design: SurveyDesign, config: ModelConfig) -> SurveyGLMResults:
    spec = TweedieSpec(var_power=config.var_power, link_power=config.link_power)
    return fit_survey_glm(
        design,
        spec=spec,
        reference=config.reference_level,
        maxiter=config.maxiter,
        tol=config.tol,
    )


def diagnostics_stage(
    results: SurveyGLMResults, config: DiagnosticsConfig
) -> DiagnosticSuite:
    return run_diagnostics(results, n_groups=config.n_groups, alpha=config.alpha)


def margins_stage(
    results: SurveyGLMResults,
    config: MarginsConfig,
    reference: Optional[int] = None,
) -> Tuple[MarginalEffectsResult, pd.DataFrame]:
    """AMEs of the margins variable and its predictive margins.

    Returns:
        (marginal effects, predictive margins frame)
    """
    effects = average_marginal_effects(
        results,
        variable=config.variable,
        by=config.by,
        at=config.at,
        reference=reference if config.variable == constants.POVCAT else None,
        alpha=config.alpha,
    )
    margins = predictive_margins(
        results,
        variable=config.variable,
        by=config.by,
        at=config.at,
        alpha=config.alpha,
    )
    return effects, margins
