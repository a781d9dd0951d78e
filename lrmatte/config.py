"""Configuration dataclasses and utilities for lrmatte."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from lrmatte.errors import ConfigError

MIN_CONFIDENCE = 0.1


@dataclass(frozen=True)
class WindowScale:
    """One local-window configuration: half size, ridge term and fusion weight."""

    radius: int = 3
    epsilon: float = 1e-5
    weight: float = 1.0

    @property
    def window_size(self) -> int:
        return self.radius * 2 + 1


@dataclass
class TrimapConfig:
    fg_threshold: int = 200
    bg_threshold: int = 100


@dataclass
class RefineConfig:
    iterations: int = 10
    scales: List[WindowScale] = field(default_factory=lambda: [WindowScale()])
    workers: int = 1
    tolerance: Optional[float] = None
    min_confidence: float = MIN_CONFIDENCE
    color_variance: float = 100.0  # in squared 0..255 color units
    degenerate_alpha: float = 0.5


@dataclass
class OutputConfig:
    snapshot_dir: Optional[Path] = None
    save_confidence: bool = True


@dataclass
class MattingConfig:
    trimap: TrimapConfig = field(default_factory=TrimapConfig)
    refine: RefineConfig = field(default_factory=RefineConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> "MattingConfig":
        """Raise :class:`ConfigError` when a value cannot drive the pipeline."""
        validate_scales(self.refine.scales)
        if self.refine.iterations < 0:
            raise ConfigError(f"iterations must be >= 0, got {self.refine.iterations}")
        if self.refine.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.refine.workers}")
        if self.refine.tolerance is not None and self.refine.tolerance < 0:
            raise ConfigError("tolerance must be non-negative")
        if not 0.0 < self.refine.min_confidence <= 1.0:
            raise ConfigError("min_confidence must lie in (0, 1]")
        if self.refine.color_variance <= 0:
            raise ConfigError("color_variance must be positive")
        if not 0.0 <= self.refine.degenerate_alpha <= 1.0:
            raise ConfigError("degenerate_alpha must lie in [0, 1]")
        if not 0 <= self.trimap.bg_threshold <= self.trimap.fg_threshold <= 255:
            raise ConfigError(
                "trimap thresholds must satisfy 0 <= bg_threshold <= fg_threshold <= 255"
            )
        return self

    @staticmethod
    def from_dict(config: Dict[str, Any], base_dir: Optional[Path] = None) -> "MattingConfig":
        """Build a MattingConfig from nested dictionaries."""
        trimap_cfg = config.get("trimap", {}) or {}
        refine_cfg = dict(config.get("refine", {}) or {})
        output_cfg = dict(config.get("output", {}) or {})

        def resolve_relative_to_base(value: Optional[str]) -> Optional[Path]:
            if value is None:
                return None
            path = Path(value)
            if path.is_absolute() or base_dir is None:
                return path
            return base_dir / path

        scales_cfg = refine_cfg.pop("scales", None)

        if "snapshot_dir" in output_cfg:
            output_cfg["snapshot_dir"] = resolve_relative_to_base(output_cfg.get("snapshot_dir"))

        try:
            if scales_cfg is None:
                scales = [WindowScale()]
            else:
                scales = [WindowScale(**scale) for scale in scales_cfg]
            return MattingConfig(
                trimap=TrimapConfig(**trimap_cfg),
                refine=RefineConfig(scales=scales, **refine_cfg),
                output=OutputConfig(**output_cfg),
            )
        except TypeError as exc:
            raise ConfigError(f"Unknown configuration key: {exc}") from exc


def validate_scales(scales: List[WindowScale]) -> None:
    if not scales:
        raise ConfigError("At least one window scale is required")
    for scale in scales:
        if scale.radius < 1:
            raise ConfigError(f"Window radius must be >= 1, got {scale.radius}")
        if scale.epsilon <= 0:
            raise ConfigError(f"Ridge epsilon must be positive, got {scale.epsilon}")
        if scale.weight <= 0:
            raise ConfigError(f"Scale weight must be positive, got {scale.weight}")


def pyramid_scales(
    width: int,
    base_radius: int = 3,
    epsilon: float = 1e-5,
    weight: float = 1.0,
) -> List[WindowScale]:
    """Radii doubling from ``base_radius`` while they stay below half the image width."""
    scales: List[WindowScale] = []
    radius = base_radius
    while radius < width / 2:
        scales.append(WindowScale(radius=radius, epsilon=epsilon, weight=weight))
        radius *= 2
    if not scales:
        scales.append(WindowScale(radius=max(1, base_radius), epsilon=epsilon, weight=weight))
    return scales


def load_yaml_config(path: Path) -> MattingConfig:
    """Load a YAML configuration file into a MattingConfig."""
    import yaml

    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    return MattingConfig.from_dict(raw, base_dir=path.parent)
