"""Synthetic image/trimap pairs for demos and tests."""

from __future__ import annotations

from typing import Tuple

import numpy as np

TRIMAP_FOREGROUND = 255
TRIMAP_BACKGROUND = 0
TRIMAP_UNKNOWN = 128


def _regions(size: int, inner: int, outer: int):
    if not 0 < inner < outer:
        raise ValueError("Expected 0 < inner < outer")
    center = size // 2
    ys, xs = np.mgrid[0:size, 0:size]
    dx = np.abs(xs - center)
    dy = np.abs(ys - center)
    ring = np.maximum(dx, dy)
    foreground = (dx < inner) & (dy < inner)
    background = (dx > outer) | (dy > outer)
    return xs, ys, center, ring, foreground, background


def _trimap(foreground: np.ndarray, background: np.ndarray) -> np.ndarray:
    trimap = np.full(foreground.shape, TRIMAP_UNKNOWN, dtype=np.uint8)
    trimap[foreground] = TRIMAP_FOREGROUND
    trimap[background] = TRIMAP_BACKGROUND
    return trimap


def ramp_scene(size: int = 100, inner: int = 20, outer: int = 30) -> Tuple[np.ndarray, np.ndarray]:
    """White square on black with a linear white-to-black band in between.

    The band's intensity falls linearly with the Chebyshev distance from the
    centre, from white next to the foreground to black next to the background.
    """
    _, _, _, ring, foreground, background = _regions(size, inner, outer)
    # Band pixels have ring distance in [inner, outer].
    ramp = 1.0 - (ring - (inner - 1)) / float(outer - inner + 2)
    intensity = np.where(foreground, 1.0, np.where(background, 0.0, ramp))
    gray = np.clip(np.round(intensity * 255.0), 0, 255).astype(np.uint8)
    image = np.repeat(gray[..., None], 3, axis=2)
    return image, _trimap(foreground, background)


def cross_scene(size: int = 100, inner: int = 20, outer: int = 30) -> Tuple[np.ndarray, np.ndarray]:
    """White square on black; the unknown band is black except a white and a gray line through the centre."""
    xs, ys, center, _, foreground, background = _regions(size, inner, outer)
    gray = np.zeros((size, size), dtype=np.uint8)
    gray[foreground] = 255
    band = ~(foreground | background)
    gray[band & (ys == center)] = 128
    gray[band & (xs == center)] = 255
    image = np.repeat(gray[..., None], 3, axis=2)
    return image, _trimap(foreground, background)
