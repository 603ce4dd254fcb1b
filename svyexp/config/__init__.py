"""
Configuration for svyexp analysis runs.
"""

from .simple import (
    AnalysisConfig,
    DataConfig,
    DesignConfig,
    ModelConfig,
    DiagnosticsConfig,
    MarginsConfig,
    OutputConfig,
)

__all__ = [
    "AnalysisConfig",
    "DataConfig",
    "DesignConfig",
    "ModelConfig",
    "DiagnosticsConfig",
    "MarginsConfig",
    "OutputConfig",
]
