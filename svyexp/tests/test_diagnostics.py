"""Tests for the goodness-of-fit diagnostics."""

import numpy as np
import pandas as pd
import pytest

from svyexp.core.glm import SurveyGLMResults, fit_survey_glm
from svyexp.diagnostics import (
    DiagnosticSuite,
    Status,
    assign_groups,
    correlation_test,
    grouped_fit_test,
    link_test,
    run_diagnostics,
    status_from_pvalue,
)


class TestCorrelationTest:
    def test_detects_correlated_residuals(self) -> None:
        rng = np.random.default_rng(0)
        fitted = np.linspace(1, 10, 300)
        residuals = 0.5 * fitted + rng.normal(0, 1, 300)

        result = correlation_test(fitted, residuals)
        assert result.correlation > 0.5
        assert result.p_value < 0.001
        assert result.n == 300

    def test_errors(self) -> None:
        with pytest.raises(ValueError):
            correlation_test([1.0, 2.0, 3.0], [1.0, 2.0])
        with pytest.raises(ValueError):
            correlation_test([1.0, np.nan, 3.0], [1.0, 2.0, 3.0])
        with pytest.raises(ValueError):
            correlation_test([1.0, 2.0], [0.1, 0.2])


class TestLinkTest:
    def test_detects_curvature(self) -> None:
        rng = np.random.default_rng(1)
        fitted = np.linspace(1, 10, 400)
        observed = fitted**2 + rng.normal(0, 1, 400)

        result = link_test(observed, fitted)
        assert result.hatsq_coef == pytest.approx(1.0, rel=0.05)
        assert result.p_value == result.hatsq_p_value
        assert result.p_value < 0.001

    def test_linear_response_passes(self) -> None:
        rng = np.random.default_rng(2)
        fitted = np.linspace(100, 1000, 400)
        observed = fitted + rng.normal(0, 20, 400)

        result = link_test(observed, fitted)
        assert result.hat_coef == pytest.approx(1.0, abs=0.2)
        assert abs(result.hatsq_coef) < 1e-3

    def test_needs_distinct_fitted(self) -> None:
        with pytest.raises(ValueError):
            link_test([1.0, 2.0, 3.0, 4.0], [1.0, 1.0, 2.0, 2.0])


class TestGroupAssignment:
    """Ranking by fitted value with ties broken by row position."""

    def test_all_tied(self) -> None:
        groups = assign_groups(np.ones(9), n_groups=3)
        np.testing.assert_array_equal(groups, [0, 0, 0, 1, 1, 1, 2, 2, 2])

    def test_ties_follow_row_order(self) -> None:
        fitted = np.array([2.0, 1.0, 2.0, 1.0, 2.0, 1.0])
        groups = assign_groups(fitted, n_groups=3)
        # Sorted order: rows 1, 3, 5 (value 1) then 0, 2, 4 (value 2)
        np.testing.assert_array_equal(groups, [1, 0, 2, 0, 2, 1])

    def test_uneven_split(self) -> None:
        groups = assign_groups(np.arange(10, dtype=float), n_groups=3)
        assert np.bincount(groups).tolist() == [4, 3, 3]

    def test_errors(self) -> None:
        with pytest.raises(ValueError):
            assign_groups(np.arange(10.0), n_groups=2)
        with pytest.raises(ValueError):
            assign_groups(np.arange(5.0), n_groups=10)


class TestGroupedFitTest:
    def test_deterministic(self) -> None:
        rng = np.random.default_rng(3)
        # Coarse fitted values so many rows tie
        fitted = np.round(rng.uniform(1000, 5000, 500), -2)
        observed = rng.gamma(100, fitted / 100)

        first = grouped_fit_test(observed, fitted, n_groups=10)
        second = grouped_fit_test(observed.copy(), fitted.copy(), n_groups=10)

        np.testing.assert_array_equal(first.groups, second.groups)
        assert first.statistic == second.statistic
        assert first.p_value == second.p_value
        pd.testing.assert_frame_equal(first.table, second.table)

    def test_table(self) -> None:
        fitted = np.linspace(10, 100, 100)
        result = grouped_fit_test(fitted * 1.01, fitted, n_groups=5, dispersion=1.0)

        assert list(result.table.columns) == [
            "group", "n", "observed", "expected", "variance",
            "fitted_min", "fitted_max", "contribution",
        ]
        assert result.table["n"].tolist() == [20] * 5
        assert result.df == 3
        assert result.dispersion == 1.0
        assert result.max_relative_gap == pytest.approx(0.01)
        assert result.statistic == pytest.approx(result.table["contribution"].sum())

    def test_statistic_by_hand(self) -> None:
        fitted = np.array([1.0, 1.0, 2.0, 2.0, 3.0, 3.0])
        observed = np.array([2.0, 2.0, 2.0, 2.0, 3.0, 3.0])
        result = grouped_fit_test(
            observed, fitted, n_groups=3, var_power=2.0, dispersion=0.5
        )
        # Only the first group misses: (4 - 2)^2 / (0.5 * 2)
        assert result.statistic == pytest.approx(4.0)

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            grouped_fit_test(np.ones(10), np.ones(11))


class TestStatus:
    @pytest.mark.parametrize(
        "p_value,expected",
        [
            (0.5, Status.GOOD),
            (0.02, Status.WARNING),
            (0.001, Status.CRITICAL),
            (float("nan"), Status.GOOD),
        ],
    )
    def test_status_from_pvalue(self, p_value: float, expected: Status) -> None:
        assert status_from_pvalue(p_value, alpha=0.05) == expected


class TestSuite:
    def test_correct_model_passes(self, fitted_model: SurveyGLMResults) -> None:
        """Data generated under the fitted model: no check should fire."""
        suite = run_diagnostics(fitted_model)

        assert isinstance(suite, DiagnosticSuite)
        assert suite.correlation.p_value > 0.05
        assert suite.link.p_value > 0.05
        assert suite.grouped_fit.p_value > 0.05
        assert not suite.has_issues
        assert suite.overall_status == Status.GOOD
        assert "Overall: good" in suite.to_summary()

    def test_groups_straddle_cells(self, fitted_model: SurveyGLMResults) -> None:
        """Unequal cell sizes leave some groups mixing two fitted values."""
        grouped = run_diagnostics(fitted_model).grouped_fit

        assert grouped.table["n"].tolist() == [200] * 10
        assert (grouped.table["fitted_min"] < grouped.table["fitted_max"]).any()
        assert grouped.statistic > 0
        assert grouped.max_relative_gap > 0

    def test_missing_interaction_is_flagged(
        self, fitted_model: SurveyGLMResults
    ) -> None:
        additive = fit_survey_glm(
            fitted_model.design,
            formula="totexp ~ gender + C(povcat, Treatment(reference=1))",
        )
        suite = run_diagnostics(additive)

        assert suite.grouped_fit.p_value < 0.001
        assert suite.has_issues
        assert suite.overall_status == Status.CRITICAL
