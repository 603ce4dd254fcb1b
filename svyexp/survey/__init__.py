"""Survey design estimation (stratified, clustered, weighted samples)."""

from .design import SurveyDesign, SurveyEstimate, LonelyPSU

__all__ = ["SurveyDesign", "SurveyEstimate", "LonelyPSU"]
