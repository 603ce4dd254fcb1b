"""Diagnostic suite - the three goodness-of-fit checks for one fitted model."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Union

from .. import constants
from ..core.glm import SurveyGLMResults
from .goodness_of_fit import correlation_test, grouped_fit_test, link_test
from .models import (
    CorrelationTest,
    GroupedFitTest,
    LinkTest,
    Status,
    status_from_pvalue,
)

logger = logging.getLogger(__name__)

DiagnosticTest = Union[CorrelationTest, LinkTest, GroupedFitTest]


@dataclass
class DiagnosticSuite:
    """Goodness-of-fit results with a status per check."""

    correlation: CorrelationTest
    link: LinkTest
    grouped_fit: GroupedFitTest
    alpha: float = constants.DEFAULT_ALPHA

    @property
    def tests(self) -> List[DiagnosticTest]:
        return [self.correlation, self.link, self.grouped_fit]

    @property
    def statuses(self) -> Dict[str, Status]:
        return {t.name: status_from_pvalue(t.p_value, self.alpha) for t in self.tests}

    @property
    def has_issues(self) -> bool:
        return any(s != Status.GOOD for s in self.statuses.values())

    @property
    def overall_status(self) -> Status:
        statuses = set(self.statuses.values())
        if Status.CRITICAL in statuses:
            return Status.CRITICAL
        if Status.WARNING in statuses:
            return Status.WARNING
        return Status.GOOD

    def to_summary(self) -> str:
        lines = ["=" * 60, "GOODNESS OF FIT", "=" * 60]
        c, lk, g = self.correlation, self.link, self.grouped_fit
        lines.append(
            f"{c.name}: r = {c.correlation:.4f}, p = {c.p_value:.4f} "
            f"[{self.statuses[c.name].value}]"
        )
        lines.append(
            f"{lk.name}: hat = {lk.hat_coef:.4g} (p = {lk.hat_p_value:.4f}), "
            f"hat^2 = {lk.hatsq_coef:.4g} (p = {lk.hatsq_p_value:.4f}) "
            f"[{self.statuses[lk.name].value}]"
        )
        lines.append(
            f"{g.name}: X2 = {g.statistic:.3f} on {g.df} df, p = {g.p_value:.4f} "
            f"[{self.statuses[g.name].value}]"
        )
        lines.append(f"Overall: {self.overall_status.value}")
        return "\n".join(lines)


def run_diagnostics(
    results: SurveyGLMResults,
    n_groups: int = constants.DEFAULT_N_GROUPS,
    alpha: float = constants.DEFAULT_ALPHA,
) -> DiagnosticSuite:
    """Run the correlation, link and grouped-fit checks on a fitted model."""
    suite = DiagnosticSuite(
        correlation=correlation_test(results.fitted, results.residuals),
        link=link_test(results.endog, results.fitted),
        grouped_fit=grouped_fit_test(
            results.endog,
            results.fitted,
            n_groups=n_groups,
            var_power=results.spec.var_power,
        ),
        alpha=alpha,
    )
    if suite.has_issues:
        flagged = [name for name, s in suite.statuses.items() if s != Status.GOOD]
        logger.warning(f"Goodness-of-fit checks flagged: {flagged}")
    else:
        logger.info("Goodness-of-fit checks found no misspecification")
    return suite
