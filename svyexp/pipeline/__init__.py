"""
Expenditure analysis pipeline.

Ordered stages over typed outputs; each stage can be run on its own.
"""

from .coordinator import ExpenditurePipeline, AnalysisReport

# Also export stages for testing/customization
from .stages import (
    source_from_config,
    load_stage,
    recode_stage,
    design_stage,
    fit_stage,
    diagnostics_stage,
    margins_stage,
)

__all__ = [
    "ExpenditurePipeline",
    "AnalysisReport",
    "source_from_config",
    "load_stage",
    "recode_stage",
    "design_stage",
    "fit_stage",
    "diagnostics_stage",
    "margins_stage",
]
