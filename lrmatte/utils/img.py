"""Image loading and conversion helpers for lrmatte."""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np


def load_image(path: Path) -> np.ndarray:
    """Read an 8-bit 3-channel image (OpenCV BGR order)."""
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    return image


def load_trimap(path: Path) -> np.ndarray:
    """Read a trimap as an 8-bit single-channel array."""
    trimap = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if trimap is None:
        raise FileNotFoundError(f"Could not read trimap: {path}")
    return trimap


def values_to_uint8(values: np.ndarray) -> np.ndarray:
    """Map values in [0,1] to 0..255, saturating outside that range."""
    return np.clip(np.asarray(values, dtype=np.float64) * 255.0 + 0.5, 0.0, 255.0).astype(np.uint8)


def to_unit_range(values: np.ndarray) -> np.ndarray:
    """Float copy in [0,1]; 8-bit inputs are divided by 255."""
    values = np.asarray(values)
    if values.dtype == np.uint8:
        return values.astype(np.float64) / 255.0
    return values.astype(np.float64)


def save_gray(path: Path, values: np.ndarray) -> None:
    """Write a [0,1] scalar field as an 8-bit grayscale image."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), values_to_uint8(values)):
        raise RuntimeError(f"Failed to write image: {path}")
