"""Summed-area tables and confidence-weighted window statistics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np


class IntegralImage:
    """Summed-area table over a 2-D scalar field.

    ``table[y, x]`` holds the sum of ``field[:y, :x]``, so the table is one row
    and one column larger than the field.
    """

    def __init__(self, field: np.ndarray) -> None:
        values = np.ascontiguousarray(field, dtype=np.float64)
        if values.ndim != 2:
            raise ValueError(f"Expected a 2-D field, got shape {values.shape}")
        self.shape: Tuple[int, int] = values.shape
        self.table = cv2.integral(values, sdepth=cv2.CV_64F)

    def range_sum(self, x1, y1, x2, y2):
        """Sum over the inclusive rectangle ``[x1, x2] x [y1, y2]`` clipped to the field.

        Coordinates may be scalars or broadcastable integer arrays. A rectangle
        lying entirely outside the field sums to zero.
        """
        height, width = self.shape
        col_lo = np.clip(x1, 0, width)
        col_hi = np.maximum(np.clip(np.add(x2, 1), 0, width), col_lo)
        row_lo = np.clip(y1, 0, height)
        row_hi = np.maximum(np.clip(np.add(y2, 1), 0, height), row_lo)
        table = self.table
        return (
            table[row_hi, col_hi]
            - table[row_lo, col_hi]
            - table[row_hi, col_lo]
            + table[row_lo, col_lo]
        )

    def window_sum(self, radius: int) -> np.ndarray:
        """Sum over the clipped ``(2r+1)^2`` window centred on every pixel."""
        row_lo, row_hi, col_lo, col_hi = _window_bounds(self.shape, radius)
        table = self.table
        return (
            table[row_hi[:, None], col_hi[None, :]]
            - table[row_lo[:, None], col_hi[None, :]]
            - table[row_hi[:, None], col_lo[None, :]]
            + table[row_lo[:, None], col_lo[None, :]]
        )


def _window_bounds(shape: Tuple[int, int], radius: int):
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")
    height, width = shape
    rows = np.arange(height)
    cols = np.arange(width)
    row_lo = np.clip(rows - radius, 0, height)
    row_hi = np.clip(rows + radius + 1, 0, height)
    col_lo = np.clip(cols - radius, 0, width)
    col_hi = np.clip(cols + radius + 1, 0, width)
    return row_lo, row_hi, col_lo, col_hi


def window_area(shape: Tuple[int, int], radius: int) -> np.ndarray:
    """Number of in-bounds pixels inside each pixel's clipped window."""
    row_lo, row_hi, col_lo, col_hi = _window_bounds(shape, radius)
    return ((row_hi - row_lo)[:, None] * (col_hi - col_lo)[None, :]).astype(np.float64)


def _safe_divide(numerator: np.ndarray, denominator: np.ndarray) -> np.ndarray:
    out = np.zeros_like(numerator, dtype=np.float64)
    np.divide(numerator, denominator, out=out, where=denominator != 0)
    return out


def window_mean(field: np.ndarray, radius: int, weights: Optional[np.ndarray] = None) -> np.ndarray:
    """Weighted mean of ``field`` over every pixel's clipped window."""
    field = np.asarray(field, dtype=np.float64)
    if weights is None:
        return IntegralImage(field).window_sum(radius) / window_area(field.shape, radius)
    weights = np.asarray(weights, dtype=np.float64)
    weight_sum = IntegralImage(weights).window_sum(radius)
    return _safe_divide(IntegralImage(field * weights).window_sum(radius), weight_sum)


@dataclass
class WindowStats:
    """Per-pixel window means and pairwise covariances of a set of fields."""

    means: List[np.ndarray]
    covariances: Dict[Tuple[int, int], np.ndarray]
    weight_sum: np.ndarray

    def cov(self, i: int, j: int) -> np.ndarray:
        return self.covariances[(i, j)]


def windowed_mean_and_covariance(
    fields: Sequence[np.ndarray],
    weights: Optional[np.ndarray],
    window_size: int,
    pairs: Optional[Iterable[Tuple[int, int]]] = None,
) -> WindowStats:
    """Weighted local means and covariances ``E[XY] - E[X]E[Y]``.

    Every expectation is ``sum(w * value) / sum(w)`` over the window clipped at
    the image border; with ``weights=None`` the divisor is the clipped pixel
    count. ``pairs`` limits which covariances are computed (all pairs by
    default); both orderings of a pair map to the same array. Windows whose
    weights sum to zero get zero mean and covariance.
    """
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    if not fields:
        raise ValueError("At least one field is required")
    radius = (window_size - 1) // 2
    values = [np.asarray(f, dtype=np.float64) for f in fields]
    shape = values[0].shape
    for value in values:
        if value.shape != shape:
            raise ValueError("All fields must share the same shape")

    if weights is None:
        w = None
        weight_sum = window_area(shape, radius)
    else:
        w = np.asarray(weights, dtype=np.float64)
        if w.shape != shape:
            raise ValueError("Weights must match the field shape")
        weight_sum = IntegralImage(w).window_sum(radius)

    def expectation(product: np.ndarray) -> np.ndarray:
        weighted = product if w is None else product * w
        return _safe_divide(IntegralImage(weighted).window_sum(radius), weight_sum)

    means = [expectation(value) for value in values]

    if pairs is None:
        pairs = [(i, j) for i in range(len(values)) for j in range(i, len(values))]

    covariances: Dict[Tuple[int, int], np.ndarray] = {}
    for i, j in pairs:
        if (i, j) in covariances:
            continue
        cov = expectation(values[i] * values[j]) - means[i] * means[j]
        cov[weight_sum == 0] = 0.0
        covariances[(i, j)] = cov
        covariances[(j, i)] = cov

    return WindowStats(means=means, covariances=covariances, weight_sum=weight_sum)
