"""Confidence-weighted multi-scale local-linear alpha matting."""

from .config import MattingConfig, WindowScale, load_yaml_config, pyramid_scales
from .errors import ConfigError, MaskOverlapError, MattingInputError
from .pipeline import AlphaRefiner, MattingResult, MattingState, masks_from_trimap, refine_alpha

__version__ = "0.1.0"

__all__ = [
    "MattingConfig",
    "WindowScale",
    "load_yaml_config",
    "pyramid_scales",
    "ConfigError",
    "MaskOverlapError",
    "MattingInputError",
    "AlphaRefiner",
    "MattingResult",
    "MattingState",
    "masks_from_trimap",
    "refine_alpha",
]
