"""Data loading for respondent extracts.

Sources only know how to produce a raw DataFrame; RespondentLoader renames the
survey's column names to the canonical ones, keeps the required subset and
checks the columns that have no recoding step of their own.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Protocol

import numpy as np
import pandas as pd

from .. import constants
from ..utils.error_handling import DataError, DomainViolation

logger = logging.getLogger(__name__)


class DataSource(Protocol):
    """Protocol for data sources."""

    def load(self) -> pd.DataFrame:
        """Load raw data as a DataFrame."""
        ...


class CsvDataSource:
    """Load data from CSV/TSV files."""

    def __init__(self, file_path: str, **pandas_kwargs: Any):
        self.file_path = Path(file_path)
        self.pandas_kwargs = pandas_kwargs

        if self.file_path.suffix.lower() not in [".csv", ".tsv"]:
            raise DataError(f"File must have .csv or .tsv extension: {file_path}")

    def load(self) -> pd.DataFrame:
        if not self.file_path.exists():
            raise DataError(f"CSV file not found: {self.file_path}")
        kwargs = dict(self.pandas_kwargs)
        if self.file_path.suffix.lower() == ".tsv":
            kwargs.setdefault("sep", "\t")
        return pd.read_csv(self.file_path, **kwargs)


class StataDataSource:
    """Load data from Stata .dta files (the format the survey publishes)."""

    def __init__(self, file_path: str, **pandas_kwargs: Any):
        self.file_path = Path(file_path)
        self.pandas_kwargs = pandas_kwargs

    def load(self) -> pd.DataFrame:
        if not self.file_path.exists():
            raise DataError(f"Stata file not found: {self.file_path}")
        # Keep numeric codes; labelled categoricals would hide 1/2 and 1..5
        kwargs = {"convert_categoricals": False, **self.pandas_kwargs}
        return pd.read_stata(self.file_path, **kwargs)


class DataFrameSource:
    """Wrap an in-memory DataFrame."""

    def __init__(self, frame: pd.DataFrame):
        self.frame = frame

    def load(self) -> pd.DataFrame:
        return self.frame


@dataclass
class ColumnMap:
    """Source column name for each canonical respondent field."""

    id: str = constants.ID
    weight: str = constants.WEIGHT
    stratum: str = constants.STRATUM
    psu: str = constants.PSU
    totexp: str = constants.TOTEXP
    sex: str = constants.SEX
    povcat: str = constants.POVCAT

    def renames(self) -> Dict[str, str]:
        """Mapping of source name -> canonical name."""
        return {
            self.id: constants.ID,
            self.weight: constants.WEIGHT,
            self.stratum: constants.STRATUM,
            self.psu: constants.PSU,
            self.totexp: constants.TOTEXP,
            self.sex: constants.SEX,
            self.povcat: constants.POVCAT,
        }


class RespondentLoader:
    """Selects and validates the respondent columns from a raw table."""

    def __init__(self, columns: ColumnMap = None):
        self.columns = columns or ColumnMap()

    def load_from_source(self, source: DataSource) -> pd.DataFrame:
        """Load, rename and validate respondent records.

        Returns:
            DataFrame with exactly the canonical columns, in canonical order
        """
        raw = source.load()
        return self.select(raw)

    def select(self, raw: pd.DataFrame) -> pd.DataFrame:
        renames = self.columns.renames()
        # Case-insensitive match: survey releases flip between upper and lower case
        lookup = {str(col).lower(): col for col in raw.columns}
        missing = [src for src in renames if src.lower() not in lookup]
        if missing:
            raise DataError(f"Missing required columns: {missing}")

        frame = raw[[lookup[src.lower()] for src in renames]].copy()
        frame.columns = list(renames.values())
        frame = frame[constants.REQUIRED_COLUMNS].reset_index(drop=True)

        self._validate(frame)
        logger.info(f"Loaded {len(frame)} respondents")
        return frame

    def _validate(self, frame: pd.DataFrame) -> None:
        if frame.empty:
            raise DataError("No respondent rows in source")

        if frame[constants.ID].duplicated().any():
            dupes = frame.loc[frame[constants.ID].duplicated(), constants.ID]
            raise DataError(f"Duplicate respondent ids: {dupes.head(5).tolist()}")

        totexp = pd.to_numeric(frame[constants.TOTEXP], errors="coerce")
        bad = totexp.isna() | (totexp < 0)
        if bad.any():
            raise DomainViolation(
                constants.TOTEXP, frame.loc[bad, constants.TOTEXP].tolist(), int(bad.sum())
            )

        weight = pd.to_numeric(frame[constants.WEIGHT], errors="coerce")
        bad = ~np.isfinite(weight) | (weight <= 0)
        if bad.any():
            raise DomainViolation(
                constants.WEIGHT, frame.loc[bad, constants.WEIGHT].tolist(), int(bad.sum())
            )

        n_zero = int((totexp == 0).sum())
        if n_zero:
            logger.info(f"{n_zero} respondents with zero total expenditure")
