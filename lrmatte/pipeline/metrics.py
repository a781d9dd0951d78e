"""Metrics for evaluating estimated mattes against ground truth."""

from __future__ import annotations

import numpy as np

from lrmatte.utils.img import to_unit_range


def _unknown_errors(alpha: np.ndarray, ground_truth: np.ndarray, unknown: np.ndarray) -> np.ndarray:
    alpha = to_unit_range(alpha)
    ground_truth = to_unit_range(ground_truth)
    if ground_truth.ndim == 3:
        ground_truth = ground_truth[..., 0]
    if alpha.shape != ground_truth.shape or alpha.shape != unknown.shape:
        raise ValueError("alpha, ground truth and unknown mask must share a shape")
    return (alpha - ground_truth)[unknown.astype(bool)]


def unknown_rmse(alpha: np.ndarray, ground_truth: np.ndarray, unknown: np.ndarray) -> float:
    """Root-mean-square alpha error over the unknown region."""
    errors = _unknown_errors(alpha, ground_truth, unknown)
    if errors.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(errors**2)))


def unknown_sad(alpha: np.ndarray, ground_truth: np.ndarray, unknown: np.ndarray) -> float:
    """Sum of absolute alpha differences over the unknown region, in thousands."""
    errors = _unknown_errors(alpha, ground_truth, unknown)
    return float(np.abs(errors).sum() / 1000.0)
