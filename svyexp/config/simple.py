"""
Configuration for an expenditure analysis run.

Simple dataclasses with sensible defaults; the defaults reproduce the
gamma / identity-link interaction model with lonely-PSU adjustment.
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml

from .. import constants
from ..data.loaders import ColumnMap
from ..survey.design import LonelyPSU
from ..utils.error_handling import ConfigurationError


@dataclass
class DataConfig:
    """Where the respondent extract lives and how its columns are named."""

    path: Optional[str] = None
    format: Optional[Literal["csv", "stata"]] = None  # inferred from suffix if None
    columns: ColumnMap = field(default_factory=ColumnMap)


@dataclass
class DesignConfig:
    """Survey design options."""

    lonely_psu: str = LonelyPSU.ADJUST.value


@dataclass
class ModelConfig:
    """Tweedie GLM options."""

    var_power: float = constants.DEFAULT_VAR_POWER
    link_power: float = constants.DEFAULT_LINK_POWER
    reference_level: int = constants.DEFAULT_REFERENCE_LEVEL
    maxiter: int = constants.DEFAULT_MAXITER
    tol: float = constants.DEFAULT_TOL


@dataclass
class DiagnosticsConfig:
    """Goodness-of-fit options."""

    n_groups: int = constants.DEFAULT_N_GROUPS
    alpha: float = constants.DEFAULT_ALPHA


@dataclass
class MarginsConfig:
    """Marginal effects options."""

    variable: str = constants.POVCAT
    by: Optional[str] = constants.GENDER
    at: Optional[List[Any]] = field(default_factory=lambda: [0, 1])
    alpha: float = constants.DEFAULT_ALPHA


@dataclass
class OutputConfig:
    """Presentation options."""

    plot_path: Optional[str] = None
    show_tables: bool = True


_SECTIONS = {
    "data": DataConfig,
    "design": DesignConfig,
    "model": ModelConfig,
    "diagnostics": DiagnosticsConfig,
    "margins": MarginsConfig,
    "output": OutputConfig,
}


@dataclass
class AnalysisConfig:
    """Complete analysis configuration."""

    data: DataConfig = field(default_factory=DataConfig)
    design: DesignConfig = field(default_factory=DesignConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    margins: MarginsConfig = field(default_factory=MarginsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        """Build a config from nested dictionaries, rejecting unknown keys."""
        data = dict(data or {})
        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise ConfigurationError(f"Unknown configuration sections: {sorted(unknown)}")

        kwargs = {}
        for name, section_cls in _SECTIONS.items():
            section = dict(data.get(name) or {})
            allowed = {f.name for f in fields(section_cls)}
            bad = set(section) - allowed
            if bad:
                raise ConfigurationError(f"Unknown keys in '{name}': {sorted(bad)}")
            if name == "data" and "columns" in section:
                try:
                    section["columns"] = ColumnMap(**(section["columns"] or {}))
                except TypeError as e:
                    raise ConfigurationError(f"Invalid data.columns: {e}")
            kwargs[name] = section_cls(**section)

        config = cls(**kwargs)
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "AnalysisConfig":
        """Load config from YAML."""
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {path}")
        return cls.from_dict(data or {})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def validate(self) -> None:
        """Raise ConfigurationError on invalid values."""
        try:
            LonelyPSU(self.design.lonely_psu)
        except ValueError:
            raise ConfigurationError(
                f"design.lonely_psu must be one of {[m.value for m in LonelyPSU]}, "
                f"got {self.design.lonely_psu!r}"
            )
        if self.model.var_power < 0 or 0 < self.model.var_power < 1:
            raise ConfigurationError(
                f"model.var_power must be 0 or >= 1, got {self.model.var_power}"
            )
        if self.model.maxiter < 1:
            raise ConfigurationError("model.maxiter must be positive")
        if self.model.tol <= 0:
            raise ConfigurationError("model.tol must be positive")
        if self.diagnostics.n_groups < 3:
            raise ConfigurationError("diagnostics.n_groups must be at least 3")
        for section in ("diagnostics", "margins"):
            alpha = getattr(self, section).alpha
            if not 0 < alpha < 1:
                raise ConfigurationError(f"{section}.alpha must be in (0, 1), got {alpha}")
        if self.margins.by is not None and self.margins.by == self.margins.variable:
            raise ConfigurationError("margins.by must differ from margins.variable")
        if self.data.format not in (None, "csv", "stata"):
            raise ConfigurationError(f"Unsupported data.format: {self.data.format!r}")
