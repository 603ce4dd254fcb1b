"""Data loading, domains and recoding.

This module contains:
- Domains: enumerated codes for sex, gender and poverty category
- Loaders: CSV/Stata/DataFrame sources and the respondent column selector
- Recoder: sex -> gender, povcat -> categorical factor
- Synthetic: respondent extracts with a known generating model
"""

from .schema import Sex, Gender, PovertyCategory, SEX_TO_GENDER
from .loaders import (
    DataSource,
    CsvDataSource,
    StataDataSource,
    DataFrameSource,
    ColumnMap,
    RespondentLoader,
)
from .recode import recode_gender, declare_poverty_category, recode_respondents
from .synthetic import (
    GENERATING_COEFFICIENTS,
    expected_expenditure,
    simulate_expenditure_survey,
)

__all__ = [
    # Domains
    "Sex",
    "Gender",
    "PovertyCategory",
    "SEX_TO_GENDER",
    # Loading
    "DataSource",
    "CsvDataSource",
    "StataDataSource",
    "DataFrameSource",
    "ColumnMap",
    "RespondentLoader",
    # Recoding
    "recode_gender",
    "declare_poverty_category",
    "recode_respondents",
    # Synthetic data
    "GENERATING_COEFFICIENTS",
    "expected_expenditure",
    "simulate_expenditure_survey",
]
