"""Region masks: trimap thresholding and input validation."""

from __future__ import annotations

from typing import Tuple

import numpy as np

from lrmatte.errors import MaskOverlapError, MattingInputError


def masks_from_trimap(
    trimap: np.ndarray,
    fg_threshold: int = 200,
    bg_threshold: int = 100,
) -> Tuple[np.ndarray, np.ndarray]:
    """Split a 0..255 trimap into (foreground, background) boolean masks."""
    trimap = np.asarray(trimap)
    if trimap.ndim == 3:
        trimap = trimap[..., 0]
    if trimap.ndim != 2:
        raise MattingInputError(f"Expected an HxW trimap, got shape {trimap.shape}")
    if bg_threshold > fg_threshold:
        raise MattingInputError("bg_threshold must not exceed fg_threshold")
    foreground = trimap > fg_threshold
    background = trimap < bg_threshold
    return foreground, background


def unknown_mask(fg_mask: np.ndarray, bg_mask: np.ndarray) -> np.ndarray:
    return ~(fg_mask | bg_mask)


def validate_inputs(
    image: np.ndarray,
    fg_mask: np.ndarray,
    bg_mask: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Check the image/mask contract once and return normalized copies."""
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 3:
        raise MattingInputError(f"Expected an HxWx3 image, got shape {image.shape}")
    if image.dtype != np.uint8:
        raise MattingInputError(f"Expected an 8-bit image with values 0..255, got dtype {image.dtype}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise MattingInputError("Image must contain at least one pixel")

    fg = np.asarray(fg_mask).astype(bool)
    bg = np.asarray(bg_mask).astype(bool)
    for name, mask in (("foreground", fg), ("background", bg)):
        if mask.shape != image.shape[:2]:
            raise MattingInputError(
                f"{name} mask shape {mask.shape} does not match image shape {image.shape[:2]}"
            )
        if not mask.any():
            raise MattingInputError(f"{name} mask is empty")

    overlap = int(np.count_nonzero(fg & bg))
    if overlap:
        raise MaskOverlapError(overlap)
    return image, fg, bg
