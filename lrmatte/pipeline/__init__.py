"""Trimap-driven matting pipeline stages."""

from .boundary import BoundaryMap, compute_boundary_map
from .initial import estimate_initial_alpha
from .refine import AlphaRefiner, MattingResult, fuse_scales, refine_alpha, refine_step, run_refinement
from .state import MattingState
from .trimap import masks_from_trimap, unknown_mask, validate_inputs

__all__ = [
    "BoundaryMap",
    "compute_boundary_map",
    "estimate_initial_alpha",
    "AlphaRefiner",
    "MattingResult",
    "fuse_scales",
    "refine_alpha",
    "refine_step",
    "run_refinement",
    "MattingState",
    "masks_from_trimap",
    "unknown_mask",
    "validate_inputs",
]
