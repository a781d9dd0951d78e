"""Per-window ridge regression of a scalar field on three color channels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from lrmatte.solver.windows import WindowStats, window_mean


@dataclass
class LocalLinearModel:
    """Affine model ``value ~ a . color + b`` held for every pixel."""

    a: np.ndarray  # ...x3
    b: np.ndarray  # ...

    def reconstruct(self, color: np.ndarray) -> np.ndarray:
        return self.b + np.einsum("...c,...c->...", self.a, color)

    def smoothed(self, radius: int) -> "LocalLinearModel":
        """Average ``a`` and ``b`` over every window of ``radius`` covering each pixel."""
        a = np.stack([window_mean(self.a[..., c], radius) for c in range(self.a.shape[-1])], axis=-1)
        return LocalLinearModel(a=a, b=window_mean(self.b, radius))


def invert_3x3(matrix: np.ndarray) -> np.ndarray:
    """Closed-form inverse of a stack of 3x3 matrices (adjugate over determinant)."""
    m = np.asarray(matrix, dtype=np.float64)
    if m.shape[-2:] != (3, 3):
        raise ValueError(f"Expected trailing 3x3 matrices, got shape {m.shape}")

    m00, m01, m02 = m[..., 0, 0], m[..., 0, 1], m[..., 0, 2]
    m10, m11, m12 = m[..., 1, 0], m[..., 1, 1], m[..., 1, 2]
    m20, m21, m22 = m[..., 2, 0], m[..., 2, 1], m[..., 2, 2]

    c00 = m11 * m22 - m12 * m21
    c01 = m12 * m20 - m10 * m22
    c02 = m10 * m21 - m11 * m20
    det = m00 * c00 + m01 * c01 + m02 * c02
    if np.any(det == 0):
        raise np.linalg.LinAlgError("Singular 3x3 matrix")

    inverse = np.empty_like(m)
    inverse[..., 0, 0] = c00
    inverse[..., 1, 0] = c01
    inverse[..., 2, 0] = c02
    inverse[..., 0, 1] = m02 * m21 - m01 * m22
    inverse[..., 1, 1] = m00 * m22 - m02 * m20
    inverse[..., 2, 1] = m01 * m20 - m00 * m21
    inverse[..., 0, 2] = m01 * m12 - m02 * m11
    inverse[..., 1, 2] = m02 * m10 - m00 * m12
    inverse[..., 2, 2] = m00 * m11 - m01 * m10
    inverse /= det[..., None, None]
    return inverse


def fit_local_linear_model(
    mean_color: np.ndarray,
    mean_alpha: np.ndarray,
    cov_color: np.ndarray,
    cov_color_alpha: np.ndarray,
    epsilon: float,
) -> LocalLinearModel:
    """Solve ``a = (cov_color + eps I)^-1 cov_color_alpha`` and ``b = mean_alpha - a . mean_color``.

    Inputs broadcast over any leading pixel dimensions, so a whole image
    (``HxW``) and a single pixel (no leading dims) are handled alike.
    """
    if epsilon <= 0:
        raise ValueError(f"epsilon must be positive, got {epsilon}")
    sigma = np.asarray(cov_color, dtype=np.float64) + epsilon * np.eye(3)
    a = np.einsum("...ij,...j->...i", invert_3x3(sigma), np.asarray(cov_color_alpha, dtype=np.float64))
    b = np.asarray(mean_alpha, dtype=np.float64) - np.einsum("...c,...c->...", a, mean_color)
    return LocalLinearModel(a=a, b=b)


def color_covariance(stats: WindowStats, channels: Sequence[int] = (0, 1, 2)) -> np.ndarray:
    """Assemble the ``...x3x3`` color covariance from pairwise window statistics."""
    rows = [np.stack([stats.cov(i, j) for j in channels], axis=-1) for i in channels]
    return np.stack(rows, axis=-2)


def fit_from_stats(stats: WindowStats, target: int, epsilon: float) -> LocalLinearModel:
    """Fit the model for field ``target`` against fields 0..2 of ``stats``."""
    mean_color = np.stack(stats.means[:3], axis=-1)
    cov_color_alpha = np.stack([stats.cov(c, target) for c in range(3)], axis=-1)
    return fit_local_linear_model(
        mean_color=mean_color,
        mean_alpha=stats.means[target],
        cov_color=color_covariance(stats),
        cov_color_alpha=cov_color_alpha,
        epsilon=epsilon,
    )
