"""Shared test fixtures for the svyexp test suite.

This file is automatically loaded by pytest and provides common fixtures
built from the synthetic expenditure generator.

Key fixtures:
- raw_survey: 2,000-row raw extract (2 strata x 2 PSUs, unit weights)
- respondents: raw_survey after recoding
- design: SurveyDesign over respondents
- fitted_model: gamma / identity-link fit of the interaction model
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from svyexp.core.glm import SurveyGLMResults, fit_survey_glm
from svyexp.data.recode import recode_respondents
from svyexp.data.synthetic import simulate_expenditure_survey
from svyexp.survey.design import SurveyDesign


def make_design(frame: pd.DataFrame, lonely_psu: str = "adjust") -> SurveyDesign:
    """Recode a raw extract and wrap it in a design."""
    return SurveyDesign(
        recode_respondents(frame),
        psu="psu",
        strata="stratum",
        weights="weight",
        lonely_psu=lonely_psu,
    )


def replicate_rows(frame: pd.DataFrame, k: int) -> pd.DataFrame:
    """Each row k times with its weight divided by k; ids stay unique."""
    replicated = pd.concat([frame] * k, ignore_index=True)
    replicated["weight"] = replicated["weight"] / k
    replicated["id"] = np.arange(1, len(replicated) + 1)
    return replicated


# ============================================================================
# Synthetic Survey Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def raw_survey() -> pd.DataFrame:
    """Raw synthetic extract; session-scoped, do not modify."""
    return simulate_expenditure_survey(n=2000, seed=42)


@pytest.fixture
def respondents(raw_survey: pd.DataFrame) -> pd.DataFrame:
    return recode_respondents(raw_survey)


@pytest.fixture
def design(respondents: pd.DataFrame) -> SurveyDesign:
    return SurveyDesign(respondents, psu="psu", strata="stratum", weights="weight")


@pytest.fixture(scope="session")
def fitted_model(raw_survey: pd.DataFrame) -> SurveyGLMResults:
    """Default interaction model fit; session-scoped for speed."""
    return fit_survey_glm(make_design(raw_survey))


@pytest.fixture
def small_frame() -> pd.DataFrame:
    """Four rows, one per PSU, in two strata."""
    return pd.DataFrame(
        {
            "y": [1.0, 2.0, 3.0, 5.0],
            "weight": [1.0, 1.0, 2.0, 2.0],
            "stratum": [1, 1, 2, 2],
            "psu": [1, 2, 1, 2],
        }
    )


@pytest.fixture
def design_factory():
    """make_design as a fixture, for tests that build their own extracts."""
    return make_design


@pytest.fixture
def replicate():
    return replicate_rows
