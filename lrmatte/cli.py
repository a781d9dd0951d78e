"""Command-line utilities for trimap-based alpha matting."""
from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Dict, Iterable, Optional

import cv2
from tqdm import tqdm

from .config import MattingConfig, WindowScale, load_yaml_config, pyramid_scales
from .pipeline.metrics import unknown_rmse, unknown_sad
from .pipeline.refine import AlphaRefiner, MattingResult
from .pipeline.trimap import unknown_mask
from .utils.batch import collect_batch_items, write_summary
from .utils.img import load_image, load_trimap, save_gray
from .utils.snapshots import SnapshotWriter
from .utils.synthetic import cross_scene, ramp_scene


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _config_from_args(args: argparse.Namespace, width: Optional[int] = None) -> MattingConfig:
    config = load_yaml_config(args.config) if args.config is not None else MattingConfig()
    refine_cfg = config.refine

    if args.iterations is not None:
        refine_cfg.iterations = args.iterations
    if args.workers is not None:
        refine_cfg.workers = args.workers
    if args.tolerance is not None:
        refine_cfg.tolerance = args.tolerance

    epsilon = args.epsilon if args.epsilon is not None else refine_cfg.scales[0].epsilon
    if args.radius:
        refine_cfg.scales = [WindowScale(radius=r, epsilon=epsilon) for r in args.radius]
    elif args.pyramid and width is not None:
        refine_cfg.scales = pyramid_scales(width, base_radius=refine_cfg.scales[0].radius, epsilon=epsilon)
    elif args.epsilon is not None:
        refine_cfg.scales = [WindowScale(s.radius, epsilon, s.weight) for s in refine_cfg.scales]

    if getattr(args, "snapshot_dir", None) is not None:
        config.output.snapshot_dir = args.snapshot_dir
    return config.validate()


def _refine_one(
    refiner: AlphaRefiner,
    image,
    trimap,
    snapshot_dir: Optional[Path],
    save_confidence: bool,
    progress: bool,
    prefix: str = "",
) -> MattingResult:
    if snapshot_dir is None:
        return refiner.run(image, trimap, progress=progress)
    with SnapshotWriter(snapshot_dir, save_confidence=save_confidence, prefix=prefix) as writer:
        return refiner.run(image, trimap, observer=writer, progress=progress)


def _score(result: MattingResult, refiner: AlphaRefiner, trimap, ground_truth) -> Dict[str, float]:
    fg_mask, bg_mask = refiner.masks(trimap)
    unknown = unknown_mask(fg_mask, bg_mask)
    return {
        "rmse": unknown_rmse(result.alpha, ground_truth, unknown),
        "sad": unknown_sad(result.alpha, ground_truth, unknown),
    }


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _command_refine(args: argparse.Namespace) -> MattingResult:
    image = load_image(args.image)
    trimap = load_trimap(args.trimap)
    config = _config_from_args(args, width=image.shape[1])
    refiner = AlphaRefiner(config)

    start = time.perf_counter()
    result = _refine_one(
        refiner,
        image,
        trimap,
        config.output.snapshot_dir,
        config.output.save_confidence,
        progress=True,
    )
    elapsed = time.perf_counter() - start
    save_gray(args.out, result.alpha)
    print(f"Refined {args.image.name} in {elapsed:.2f}s ({result.state.iteration} iterations) -> {args.out}")

    if args.ground_truth is not None:
        scores = _score(result, refiner, trimap, load_trimap(args.ground_truth))
        print(f"RMSE (unknown region): {scores['rmse']:.5f}  SAD: {scores['sad']:.3f}")
    return result


def _command_batch(args: argparse.Namespace) -> Dict[str, Dict[str, float]]:
    items, skipped = collect_batch_items(
        args.images,
        args.trimaps,
        args.out,
        ground_truth_dir=args.ground_truth,
        overwrite=args.overwrite,
    )

    results: Dict[str, Dict[str, float]] = {}
    for item in tqdm(items, desc="lrmatte batch"):
        image = load_image(item.image_path)
        trimap = load_trimap(item.trimap_path)
        refiner = AlphaRefiner(_config_from_args(args, width=image.shape[1]))
        result = _refine_one(
            refiner,
            image,
            trimap,
            refiner.config.output.snapshot_dir,
            refiner.config.output.save_confidence,
            progress=False,
            prefix=f"{item.image_path.stem}_",
        )
        save_gray(item.output_path, result.alpha)

        entry: Dict[str, float] = {"iterations": float(result.state.iteration)}
        if item.ground_truth_path is not None:
            entry.update(_score(result, refiner, trimap, load_trimap(item.ground_truth_path)))
        results[item.name] = entry

    summary_path = write_summary(args.out, results, skipped)
    print(f"Processed {len(results)} image(s), skipped {len(skipped)} existing output(s) -> {summary_path}")
    return results


def _command_demo(args: argparse.Namespace) -> MattingResult:
    args.out.mkdir(parents=True, exist_ok=True)
    scene = ramp_scene if args.scene == "ramp" else cross_scene
    image, trimap = scene(size=args.size)
    config = _config_from_args(args, width=image.shape[1])
    refiner = AlphaRefiner(config)

    cv2.imwrite(str(args.out / "image.png"), image)
    cv2.imwrite(str(args.out / "trimap.png"), trimap)
    result = _refine_one(
        refiner,
        image,
        trimap,
        config.output.snapshot_dir,
        config.output.save_confidence,
        progress=True,
    )
    save_gray(args.out / "alpha.png", result.alpha)
    print(f"Demo '{args.scene}' written to {args.out}")
    return result


# ---------------------------------------------------------------------------
# Subcommand parser builders
# ---------------------------------------------------------------------------


def _add_refine_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, default=None, help="YAML config (defaults built in)")
    parser.add_argument("--iterations", type=int, default=None)
    parser.add_argument(
        "--radius",
        type=int,
        action="append",
        default=None,
        help="Window radius; repeat for several scales",
    )
    parser.add_argument("--pyramid", action="store_true", help="Double the radius while below half the width")
    parser.add_argument("--epsilon", type=float, default=None, help="Ridge term for every scale")
    parser.add_argument("--workers", type=int, default=None, help="Threads used across scales")
    parser.add_argument("--tolerance", type=float, default=None, help="Stop once max alpha change drops below")
    parser.add_argument("--snapshot-dir", type=Path, default=None, help="Write per-iteration debug images here")
    parser.add_argument("--verbose", action="store_true")


def _add_refine_subparser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("refine", help="Estimate the alpha matte of a single image")
    parser.add_argument("--image", required=True, type=Path)
    parser.add_argument("--trimap", required=True, type=Path)
    parser.add_argument("--out", required=True, type=Path, help="Output alpha PNG")
    parser.add_argument("--ground-truth", type=Path, default=None, help="Ground-truth alpha for scoring")
    _add_refine_options(parser)
    parser.set_defaults(func=_command_refine)


def _add_batch_subparser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("batch", help="Estimate mattes for a directory of images")
    parser.add_argument("--images", required=True, type=Path)
    parser.add_argument("--trimaps", required=True, type=Path)
    parser.add_argument("--out", required=True, type=Path)
    parser.add_argument("--ground-truth", type=Path, default=None)
    parser.add_argument("--overwrite", action="store_true", help="Recompute outputs that already exist")
    _add_refine_options(parser)
    parser.set_defaults(func=_command_batch)


def _add_demo_subparser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("demo", help="Run on a generated test scene")
    parser.add_argument("--out", required=True, type=Path)
    parser.add_argument("--scene", choices=["ramp", "cross"], default="ramp")
    parser.add_argument("--size", type=int, default=100)
    _add_refine_options(parser)
    parser.set_defaults(func=_command_demo)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Confidence-weighted local-linear alpha matting")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_refine_subparser(subparsers)
    _add_batch_subparser(subparsers)
    _add_demo_subparser(subparsers)
    return parser


def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
