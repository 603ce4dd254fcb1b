"""Core model fitting and marginal effects.

This module contains:
- TweedieSpec: variance power / link power pair mapped to a statsmodels family
- fit_survey_glm: IRLS fit with design-based coefficient covariance
- Marginal effects: AMEs, pairwise contrasts and predictive margins
"""

from .family import TweedieSpec
from .glm import (
    SurveyGLMResults,
    fit_survey_glm,
    interaction_formula,
    readable_term,
)
from .marginal_effects import (
    average_marginal_effects,
    pairwise_contrasts,
    predictive_margins,
)
from .models import MarginalEffect, MarginalEffectsResult

__all__ = [
    # Model
    "TweedieSpec",
    "SurveyGLMResults",
    "fit_survey_glm",
    "interaction_formula",
    "readable_term",
    # Marginal effects
    "average_marginal_effects",
    "pairwise_contrasts",
    "predictive_margins",
    "MarginalEffect",
    "MarginalEffectsResult",
]
