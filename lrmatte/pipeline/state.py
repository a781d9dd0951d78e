"""Immutable alpha/confidence snapshot carried between refinement iterations."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class MattingState:
    alpha: np.ndarray  # HxW float64 in [0, 1]
    confidence: np.ndarray  # HxW float64 in [min_confidence, 1]
    iteration: int = 0

    def __post_init__(self) -> None:
        if self.alpha.shape != self.confidence.shape:
            raise ValueError("alpha and confidence must share a shape")
        # Snapshots are shared with observers and worker threads.
        self.alpha.setflags(write=False)
        self.confidence.setflags(write=False)


def apply_hard_constraints(
    alpha: np.ndarray,
    confidence: np.ndarray,
    fg_mask: np.ndarray,
    bg_mask: np.ndarray,
) -> None:
    """Force known pixels back to (1, 1) for foreground and (0, 1) for background, in place."""
    alpha[fg_mask] = 1.0
    confidence[fg_mask] = 1.0
    alpha[bg_mask] = 0.0
    confidence[bg_mask] = 1.0
