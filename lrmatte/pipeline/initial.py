"""Initial alpha and confidence from the nearest known foreground/background colors."""

from __future__ import annotations

import logging

import numpy as np

from lrmatte.config import MIN_CONFIDENCE
from lrmatte.pipeline.boundary import BoundaryMap
from lrmatte.pipeline.state import MattingState, apply_hard_constraints

logger = logging.getLogger(__name__)

_DEGENERATE_EPS = 1e-6


def estimate_initial_alpha(
    image: np.ndarray,
    fg_mask: np.ndarray,
    bg_mask: np.ndarray,
    fg_boundary: BoundaryMap,
    bg_boundary: BoundaryMap,
    color_variance: float = 100.0,
    min_confidence: float = MIN_CONFIDENCE,
    degenerate_alpha: float = 0.5,
) -> MattingState:
    """Project each pixel onto the segment between its nearest F and B colors.

    Colors are taken in the image's own 0..255 units, matching
    ``color_variance``. Pixels whose color is badly explained by the blend
    ``alpha * F + (1 - alpha) * B`` get a low confidence.
    """
    color = np.asarray(image, dtype=np.float64)
    fg_color = fg_boundary.nearest_colors(color)
    bg_color = bg_boundary.nearest_colors(color)

    diff_fb = fg_color - bg_color
    numerator = np.sum((color - bg_color) * diff_fb, axis=-1)
    denominator = np.sum(diff_fb * diff_fb, axis=-1)

    degenerate = np.abs(denominator) <= _DEGENERATE_EPS
    alpha = np.full(denominator.shape, degenerate_alpha, dtype=np.float64)
    np.divide(numerator, denominator, out=alpha, where=~degenerate)
    alpha = np.clip(alpha, 0.0, 1.0)

    blend = alpha[..., None] * fg_color + (1.0 - alpha[..., None]) * bg_color
    residual = np.sum((color - blend) ** 2, axis=-1)
    confidence = np.maximum(np.exp(-residual / (2.0 * color_variance)), min_confidence)

    apply_hard_constraints(alpha, confidence, fg_mask, bg_mask)

    unknown = ~(fg_mask | bg_mask)
    degenerate_unknown = int(np.count_nonzero(degenerate & unknown))
    if degenerate_unknown:
        logger.debug(
            "%d unknown pixel(s) have indistinguishable F/B colors; using alpha=%.2f",
            degenerate_unknown,
            degenerate_alpha,
        )
    return MattingState(alpha=alpha, confidence=confidence, iteration=0)
