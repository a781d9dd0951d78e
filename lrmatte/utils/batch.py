"""Directory layout of batch matting runs and their summary file."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

SUMMARY_NAME = "summary.json"


@dataclass(frozen=True)
class BatchItem:
    name: str
    image_path: Path
    trimap_path: Path
    output_path: Path
    ground_truth_path: Optional[Path] = None


def collect_batch_items(
    images_dir: Path,
    trimaps_dir: Path,
    out_dir: Path,
    ground_truth_dir: Optional[Path] = None,
    overwrite: bool = False,
) -> Tuple[List[BatchItem], List[str]]:
    """Pair every PNG in ``images_dir`` with its same-named trimap.

    Returns the items still to be matted and the names skipped because their
    output already exists. Images without a trimap are logged and left out.
    """
    image_paths = sorted(images_dir.glob("*.png"))
    if not image_paths:
        raise FileNotFoundError(f"No PNG images found in {images_dir}")
    out_dir.mkdir(parents=True, exist_ok=True)

    items: List[BatchItem] = []
    skipped: List[str] = []
    for image_path in image_paths:
        name = image_path.name
        output_path = out_dir / name
        if output_path.exists() and not overwrite:
            skipped.append(name)
            continue
        trimap_path = trimaps_dir / name
        if not trimap_path.exists():
            logger.warning("No trimap for %s; skipping", name)
            continue

        ground_truth_path = None
        if ground_truth_dir is not None:
            ground_truth_path = ground_truth_dir / name
            if not ground_truth_path.exists():
                logger.warning("No ground truth for %s; it will not be scored", name)
                ground_truth_path = None
        items.append(BatchItem(name, image_path, trimap_path, output_path, ground_truth_path))
    return items, skipped


def write_summary(out_dir: Path, results: Dict[str, Dict[str, float]], skipped: List[str]) -> Path:
    """Write per-image results, skipped names and the mean RMSE/SAD of scored images."""
    scored = [entry for entry in results.values() if "rmse" in entry]
    mean: Dict[str, float] = {}
    if scored:
        mean = {key: float(np.mean([entry[key] for entry in scored])) for key in ("rmse", "sad")}

    path = out_dir / SUMMARY_NAME
    with path.open("w", encoding="utf-8") as fh:
        json.dump({"images": results, "skipped": sorted(skipped), "mean": mean}, fh, indent=2, sort_keys=True)
    return path
