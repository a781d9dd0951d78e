"""Nearest known-region pixel lookup via distance transforms."""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from lrmatte.errors import MattingInputError


@dataclass(frozen=True)
class BoundaryMap:
    """For every pixel, the flat index of and distance to the nearest mask pixel."""

    nearest_index: np.ndarray  # HxW int64
    distance: np.ndarray  # HxW float64

    def nearest_colors(self, image: np.ndarray) -> np.ndarray:
        """Colors of the nearest mask pixel, shaped like ``image``."""
        flat = image.reshape(-1, image.shape[-1])
        return flat[self.nearest_index]


def compute_boundary_map(mask: np.ndarray) -> BoundaryMap:
    """Euclidean nearest-neighbour map from every pixel to the ``True`` pixels of ``mask``."""
    mask = np.asarray(mask).astype(bool)
    if mask.ndim != 2:
        raise MattingInputError(f"Expected an HxW mask, got shape {mask.shape}")
    if not mask.any():
        raise MattingInputError("Cannot build a boundary map for an empty mask")

    # distanceTransform measures the distance to the nearest zero pixel.
    source = (~mask).astype(np.uint8)
    distance, labels = cv2.distanceTransformWithLabels(
        source,
        cv2.DIST_L2,
        cv2.DIST_MASK_5,
        labelType=cv2.DIST_LABEL_PIXEL,
    )

    lookup = np.zeros(int(labels.max()) + 1, dtype=np.int64)
    lookup[labels[mask]] = np.flatnonzero(mask)
    nearest = lookup[labels]

    own = np.arange(mask.size, dtype=np.int64).reshape(mask.shape)
    nearest[mask] = own[mask]
    distance = distance.astype(np.float64)
    distance[mask] = 0.0
    return BoundaryMap(nearest_index=nearest, distance=distance)
