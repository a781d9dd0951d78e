"""Color-guided edge-preserving filter."""

from __future__ import annotations

import numpy as np

from lrmatte.solver.linear import fit_from_stats
from lrmatte.solver.windows import windowed_mean_and_covariance


def guided_filter(guide: np.ndarray, target: np.ndarray, radius: int, epsilon: float) -> np.ndarray:
    """Smooth ``target`` while following the edges of the 3-channel ``guide``.

    Fits ``target ~ a . guide + b`` in every ``(2r+1)^2`` window, averages the
    coefficients over all windows covering a pixel and evaluates the averaged
    model at the pixel's guide color.
    """
    guide = np.asarray(guide, dtype=np.float64)
    target = np.asarray(target, dtype=np.float64)
    if guide.ndim != 3 or guide.shape[2] != 3:
        raise ValueError("Guide must be an HxWx3 array")
    if target.shape != guide.shape[:2]:
        raise ValueError("Target must match the guide's spatial shape")

    fields = [guide[..., 0], guide[..., 1], guide[..., 2], target]
    pairs = [(i, j) for i in range(3) for j in range(i, 3)] + [(c, 3) for c in range(3)]
    stats = windowed_mean_and_covariance(fields, None, radius * 2 + 1, pairs=pairs)
    model = fit_from_stats(stats, target=3, epsilon=epsilon)
    return model.smoothed(radius).reconstruct(guide)
