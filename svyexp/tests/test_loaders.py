"""Tests for data sources and the respondent loader."""

from pathlib import Path

import pandas as pd
import pytest

from svyexp.data.loaders import (
    ColumnMap,
    CsvDataSource,
    DataFrameSource,
    RespondentLoader,
    StataDataSource,
)
from svyexp.utils.error_handling import DataError, DomainViolation

CANONICAL = ["id", "weight", "stratum", "psu", "totexp", "sex", "povcat"]


def _survey_release(raw: pd.DataFrame) -> pd.DataFrame:
    """The synthetic extract under survey-release column names plus extras."""
    release = raw.rename(
        columns={
            "id": "DUPERSID",
            "weight": "PERWT17F",
            "stratum": "VARSTR",
            "psu": "VARPSU",
            "totexp": "TOTEXP17",
            "sex": "SEX",
            "povcat": "POVCAT17",
        }
    )
    release["AGE17X"] = 40
    return release


RELEASE_COLUMNS = ColumnMap(
    id="dupersid",
    weight="perwt17f",
    stratum="varstr",
    psu="varpsu",
    totexp="totexp17",
    sex="sex",
    povcat="povcat17",
)


class TestRespondentLoader:
    def test_canonical_frame(self, raw_survey: pd.DataFrame) -> None:
        frame = RespondentLoader().load_from_source(DataFrameSource(raw_survey))

        assert list(frame.columns) == CANONICAL
        assert len(frame) == 2000

    def test_renames_case_insensitively(self, raw_survey: pd.DataFrame) -> None:
        loader = RespondentLoader(RELEASE_COLUMNS)
        frame = loader.load_from_source(DataFrameSource(_survey_release(raw_survey)))

        assert list(frame.columns) == CANONICAL
        assert "AGE17X" not in frame.columns
        pd.testing.assert_series_equal(frame["totexp"], raw_survey["totexp"])

    def test_missing_column(self, raw_survey: pd.DataFrame) -> None:
        with pytest.raises(DataError, match="povcat"):
            RespondentLoader().select(raw_survey.drop(columns=["povcat"]))

    def test_duplicate_ids(self, raw_survey: pd.DataFrame) -> None:
        raw = raw_survey.copy()
        raw.loc[1, "id"] = raw.loc[0, "id"]
        with pytest.raises(DataError, match="Duplicate"):
            RespondentLoader().select(raw)

    def test_negative_expenditure(self, raw_survey: pd.DataFrame) -> None:
        raw = raw_survey.copy()
        raw.loc[3, "totexp"] = -1.0
        with pytest.raises(DomainViolation) as exc_info:
            RespondentLoader().select(raw)
        assert exc_info.value.column == "totexp"

    def test_zero_weight(self, raw_survey: pd.DataFrame) -> None:
        raw = raw_survey.copy()
        raw.loc[0, "weight"] = 0.0
        with pytest.raises(DomainViolation):
            RespondentLoader().select(raw)

    def test_zero_expenditure_allowed(self, raw_survey: pd.DataFrame) -> None:
        raw = raw_survey.copy()
        raw.loc[0, "totexp"] = 0.0
        frame = RespondentLoader().select(raw)
        assert frame.loc[0, "totexp"] == 0.0

    def test_empty_source(self, raw_survey: pd.DataFrame) -> None:
        with pytest.raises(DataError):
            RespondentLoader().select(raw_survey.iloc[:0])


class TestFileSources:
    def test_csv_round_trip(self, raw_survey: pd.DataFrame, tmp_path: Path) -> None:
        path = tmp_path / "extract.csv"
        raw_survey.to_csv(path, index=False)

        frame = RespondentLoader().load_from_source(CsvDataSource(str(path)))
        assert len(frame) == len(raw_survey)
        assert frame["sex"].tolist() == raw_survey["sex"].tolist()

    def test_tsv(self, raw_survey: pd.DataFrame, tmp_path: Path) -> None:
        path = tmp_path / "extract.tsv"
        raw_survey.head(50).to_csv(path, sep="\t", index=False)

        frame = CsvDataSource(str(path)).load()
        assert list(frame.columns) == CANONICAL

    def test_csv_bad_extension(self) -> None:
        with pytest.raises(DataError):
            CsvDataSource("extract.json")

    def test_csv_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(DataError, match="not found"):
            CsvDataSource(str(tmp_path / "missing.csv")).load()

    def test_stata(self, raw_survey: pd.DataFrame, tmp_path: Path) -> None:
        path = tmp_path / "extract.dta"
        raw_survey.head(100).to_stata(path, write_index=False)

        frame = RespondentLoader().load_from_source(StataDataSource(str(path)))
        assert len(frame) == 100
        assert set(frame["povcat"].unique()) <= {1, 2, 3, 4, 5}

    def test_stata_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(DataError):
            StataDataSource(str(tmp_path / "missing.dta")).load()
