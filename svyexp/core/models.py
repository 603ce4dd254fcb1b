"""Result models for marginal effects."""

from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, Field


class MarginalEffect(BaseModel):
    """Average change in predicted response for one contrast."""

    variable: str = Field(..., description="Predictor being changed")
    level: Any = Field(..., description="Level (or value) the predictor is set to")
    contrast: Any = Field(None, description="Level it is compared against")
    by: Optional[str] = Field(None, description="Covariate held fixed")
    by_value: Any = Field(None, description="Value the covariate is held at")
    estimate: float = Field(..., description="Design-weighted average effect")
    standard_error: float = Field(..., ge=0, description="Delta-method SE")
    ci_lower: float
    ci_upper: float
    p_value: float = Field(..., ge=0, le=1)

    @property
    def key(self) -> Tuple[Any, Any]:
        return (self.level, self.by_value)

    @property
    def significant(self) -> bool:
        return not (self.ci_lower <= 0 <= self.ci_upper)


class MarginalEffectsResult(BaseModel):
    """Collection of marginal effects keyed by (level, by_value)."""

    variable: str
    by: Optional[str] = None
    alpha: float = Field(0.05, gt=0, lt=1)
    effects: List[MarginalEffect] = Field(default_factory=list)

    def as_dict(self) -> Dict[Tuple[Any, Any], MarginalEffect]:
        """Effects keyed by (level, by_value); for contrasts against one reference."""
        return {effect.key: effect for effect in self.effects}

    def pairs(self) -> Dict[Tuple[Any, Any, Any], MarginalEffect]:
        """Effects keyed by (contrast, level, by_value), for pairwise contrasts."""
        return {(e.contrast, e.level, e.by_value): e for e in self.effects}

    def get(self, level: Any, by_value: Any = None, contrast: Any = None) -> MarginalEffect:
        try:
            if contrast is not None:
                return self.pairs()[(contrast, level, by_value)]
            return self.as_dict()[(level, by_value)]
        except KeyError:
            raise KeyError(
                f"No effect of {self.variable}={level!r} at {self.by}={by_value!r}"
            )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([effect.model_dump() for effect in self.effects])

    def __len__(self) -> int:
        return len(self.effects)
