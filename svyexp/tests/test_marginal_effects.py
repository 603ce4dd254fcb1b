"""Tests for average marginal effects, pairwise contrasts and predictive margins."""

import numpy as np
import pandas as pd
import pytest

from svyexp.core.family import TweedieSpec
from svyexp.core.glm import SurveyGLMResults, fit_survey_glm
from svyexp.core.marginal_effects import (
    average_marginal_effects,
    pairwise_contrasts,
    predictive_margins,
)
from svyexp.core.models import MarginalEffectsResult
from svyexp.data.synthetic import simulate_expenditure_survey
from svyexp.survey.design import SurveyDesign


def _term(level: int, reference: int = 1, interaction: bool = False) -> str:
    name = f"C(povcat, Treatment(reference={reference}))[T.{level}]"
    return f"gender:{name}" if interaction else name


def _combination_se(results: SurveyGLMResults, weights: dict) -> float:
    """SE of a linear combination of coefficients."""
    g = np.array([weights.get(t, 0.0) for t in results.term_names])
    return float(np.sqrt(g @ results.cov_params().to_numpy() @ g))


class TestAverageMarginalEffects:
    """Under the identity link, AMEs are sums of coefficients."""

    def test_default_keys(self, fitted_model: SurveyGLMResults) -> None:
        effects = average_marginal_effects(fitted_model)

        assert isinstance(effects, MarginalEffectsResult)
        assert len(effects) == 8
        assert set(effects.as_dict()) == {
            (level, g) for level in (2, 3, 4, 5) for g in (0, 1)
        }

    @pytest.mark.parametrize("level", [2, 3, 4, 5])
    @pytest.mark.parametrize("gender", [0, 1])
    def test_equals_coefficient_sum(
        self, fitted_model: SurveyGLMResults, level: int, gender: int
    ) -> None:
        effect = average_marginal_effects(fitted_model).get(level, gender)
        params = fitted_model.params
        combination = {_term(level): 1.0, _term(level, interaction=True): float(gender)}

        expected = sum(params[t] * w for t, w in combination.items())
        assert effect.estimate == pytest.approx(expected, rel=1e-8)
        assert effect.standard_error == pytest.approx(
            _combination_se(fitted_model, combination), rel=1e-6
        )
        assert effect.contrast == 1
        assert effect.ci_lower < effect.estimate < effect.ci_upper

    def test_pooled(self, fitted_model: SurveyGLMResults) -> None:
        effects = average_marginal_effects(fitted_model, by=None)
        params = fitted_model.params

        assert len(effects) == 4
        share = np.average(
            fitted_model.design.data["gender"], weights=fitted_model.design.weights
        )
        expected = params[_term(4)] + share * params[_term(4, interaction=True)]
        assert effects.get(4).estimate == pytest.approx(expected, rel=1e-8)

    def test_at_restricts_by_values(self, fitted_model: SurveyGLMResults) -> None:
        effects = average_marginal_effects(fitted_model, at=[1])
        assert {e.by_value for e in effects.effects} == {1}

    def test_binary_variable(self, fitted_model: SurveyGLMResults) -> None:
        effects = average_marginal_effects(fitted_model, variable="gender", by="povcat")
        params = fitted_model.params

        assert len(effects) == 5
        assert effects.get(1, 1).estimate == pytest.approx(params["gender"], rel=1e-8)
        assert effects.get(1, 3).estimate == pytest.approx(
            params["gender"] + params[_term(3, interaction=True)], rel=1e-8
        )

    def test_continuous_variable(self) -> None:
        rng = np.random.default_rng(11)
        idx = np.arange(600)
        x = (idx % 6).astype(float)
        frame = pd.DataFrame(
            {
                "y": rng.gamma(100.0, (50.0 + 5.0 * x) / 100.0),
                "x": x,
                "weight": 1.0,
                "stratum": idx % 2 + 1,
                "psu": (idx // 2) % 2 + 1,
            }
        )
        design = SurveyDesign(frame, psu="psu", strata="stratum", weights="weight")
        results = fit_survey_glm(design, formula="y ~ x", spec=TweedieSpec(2.0, 1.0))

        effect = average_marginal_effects(results, variable="x", by=None).get("dy/dx")
        assert effect.estimate == pytest.approx(results.params["x"], rel=1e-6)

    def test_reference_override(self, fitted_model: SurveyGLMResults) -> None:
        against_3 = average_marginal_effects(fitted_model, reference=3)
        pairwise = pairwise_contrasts(fitted_model)

        assert against_3.get(1, 0).estimate == pytest.approx(
            -pairwise.get(3, 0, contrast=1).estimate, rel=1e-8
        )

    def test_errors(self, fitted_model: SurveyGLMResults) -> None:
        with pytest.raises(KeyError):
            average_marginal_effects(fitted_model, variable="age")
        with pytest.raises(ValueError):
            average_marginal_effects(fitted_model, by="povcat")
        with pytest.raises(ValueError):
            average_marginal_effects(fitted_model, reference=9)
        with pytest.raises(KeyError):
            average_marginal_effects(fitted_model).get(1, 0)

    def test_to_frame(self, fitted_model: SurveyGLMResults) -> None:
        frame = average_marginal_effects(fitted_model).to_frame()
        assert len(frame) == 8
        assert {"level", "by_value", "estimate", "standard_error", "p_value"} <= set(
            frame.columns
        )


class TestReferenceNeutrality:
    """Pairwise contrasts do not depend on the parameterisation."""

    def test_pairwise_unchanged_by_reference(
        self, fitted_model: SurveyGLMResults
    ) -> None:
        refit = fit_survey_glm(fitted_model.design, reference=3)
        assert _term(1, reference=3) in refit.term_names

        original = pairwise_contrasts(fitted_model).pairs()
        reparameterised = pairwise_contrasts(refit).pairs()

        assert set(original) == set(reparameterised)
        assert len(original) == 20
        for key, effect in original.items():
            other = reparameterised[key]
            assert other.estimate == pytest.approx(effect.estimate, rel=1e-6, abs=1e-6)
            assert other.standard_error == pytest.approx(
                effect.standard_error, rel=1e-6
            )

    def test_fitted_values_unchanged(self, fitted_model: SurveyGLMResults) -> None:
        refit = fit_survey_glm(fitted_model.design, reference=5)
        np.testing.assert_allclose(refit.fitted, fitted_model.fitted, rtol=1e-8)


class TestPredictiveMargins:
    def test_margins_are_cell_means(self, fitted_model: SurveyGLMResults) -> None:
        margins = predictive_margins(fitted_model)
        data = fitted_model.design.data
        cell_means = data.groupby(["povcat", "gender"], observed=True)["totexp"].mean()

        assert list(margins.columns) == [
            "povcat", "gender", "margin", "std_error", "ci_lower", "ci_upper"
        ]
        assert len(margins) == 10
        for row in margins.itertuples(index=False):
            assert row.margin == pytest.approx(cell_means[(row.povcat, row.gender)], rel=1e-6)
            assert row.ci_lower < row.margin < row.ci_upper

    def test_pooled_margins(self, fitted_model: SurveyGLMResults) -> None:
        margins = predictive_margins(fitted_model, by=None)
        assert list(margins.columns) == [
            "povcat", "margin", "std_error", "ci_lower", "ci_upper"
        ]
        assert margins["povcat"].tolist() == [1, 2, 3, 4, 5]


def test_replication_invariance(design_factory, replicate) -> None:
    """AMEs and their design SEs survive k-fold replication at weight / k."""
    weights = 1.0 + np.arange(2000) % 3
    raw = simulate_expenditure_survey(n=2000, weights=weights, seed=3)

    base = average_marginal_effects(fit_survey_glm(design_factory(raw))).to_frame()
    replicated = average_marginal_effects(
        fit_survey_glm(design_factory(replicate(raw, 3)))
    ).to_frame()

    assert replicated[["level", "by_value"]].equals(base[["level", "by_value"]])
    np.testing.assert_allclose(replicated["estimate"], base["estimate"], rtol=1e-6)
    np.testing.assert_allclose(
        replicated["standard_error"], base["standard_error"], rtol=1e-6
    )
