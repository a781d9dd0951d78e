"""Numeric building blocks: window statistics, local linear fits, guided filtering."""

from .guided import guided_filter
from .linear import LocalLinearModel, fit_local_linear_model, invert_3x3
from .windows import IntegralImage, WindowStats, window_area, window_mean, windowed_mean_and_covariance

__all__ = [
    "guided_filter",
    "LocalLinearModel",
    "fit_local_linear_model",
    "invert_3x3",
    "IntegralImage",
    "WindowStats",
    "window_area",
    "window_mean",
    "windowed_mean_and_covariance",
]
