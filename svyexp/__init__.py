"""svyexp: survey-weighted Tweedie GLMs for health expenditure.

Fits total expenditure on gender, poverty category and their interaction
through a stratified, clustered, weighted survey design:
- Recode sex to a 0/1 gender indicator and povcat to a factor
- Fit a gamma / identity-link GLM with design-based standard errors
- Check fit with correlation, link and grouped goodness-of-fit tests
- Report average marginal effects of poverty category by gender

Example:
    from svyexp import AnalysisConfig, ExpenditurePipeline, CsvDataSource

    config = AnalysisConfig.from_yaml("analysis.yaml")
    report = ExpenditurePipeline(config).run(CsvDataSource("h209.csv"))

    print(report.model.summary())
    print(report.diagnostics.to_summary())
    print(report.marginal_effects.as_dict())
"""

__version__ = "0.1.0"

from .config import AnalysisConfig

# Data loading and recoding
from .data import (
    Sex,
    Gender,
    PovertyCategory,
    CsvDataSource,
    StataDataSource,
    DataFrameSource,
    ColumnMap,
    RespondentLoader,
    recode_gender,
    declare_poverty_category,
    recode_respondents,
    simulate_expenditure_survey,
)

# Survey design
from .survey import SurveyDesign, SurveyEstimate, LonelyPSU

# Model and marginal effects
from .core import (
    TweedieSpec,
    SurveyGLMResults,
    fit_survey_glm,
    interaction_formula,
    average_marginal_effects,
    pairwise_contrasts,
    predictive_margins,
    MarginalEffect,
    MarginalEffectsResult,
)

# Diagnostics
from .diagnostics import (
    DiagnosticSuite,
    run_diagnostics,
    correlation_test,
    link_test,
    grouped_fit_test,
    Status,
)

# Presentation
from .results import coefficient_table, marginal_effects_table, plot_interaction

# Pipeline
from .pipeline import ExpenditurePipeline, AnalysisReport

# Errors
from .utils.error_handling import (
    SvyExpError,
    ConfigurationError,
    DataError,
    DomainViolation,
    EstimationError,
    SingularDesignMatrix,
    UnadjustedLonelyStratum,
)

__all__ = [
    "__version__",
    # Config
    "AnalysisConfig",
    # Data
    "Sex",
    "Gender",
    "PovertyCategory",
    "CsvDataSource",
    "StataDataSource",
    "DataFrameSource",
    "ColumnMap",
    "RespondentLoader",
    "recode_gender",
    "declare_poverty_category",
    "recode_respondents",
    "simulate_expenditure_survey",
    # Survey design
    "SurveyDesign",
    "SurveyEstimate",
    "LonelyPSU",
    # Model
    "TweedieSpec",
    "SurveyGLMResults",
    "fit_survey_glm",
    "interaction_formula",
    "average_marginal_effects",
    "pairwise_contrasts",
    "predictive_margins",
    "MarginalEffect",
    "MarginalEffectsResult",
    # Diagnostics
    "DiagnosticSuite",
    "run_diagnostics",
    "correlation_test",
    "link_test",
    "grouped_fit_test",
    "Status",
    # Presentation
    "coefficient_table",
    "marginal_effects_table",
    "plot_interaction",
    # Pipeline
    "ExpenditurePipeline",
    "AnalysisReport",
    # Errors
    "SvyExpError",
    "ConfigurationError",
    "DataError",
    "DomainViolation",
    "EstimationError",
    "SingularDesignMatrix",
    "UnadjustedLonelyStratum",
]
