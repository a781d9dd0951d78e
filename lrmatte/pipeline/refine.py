"""Confidence-weighted multi-scale local-linear alpha refinement."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from lrmatte.config import MIN_CONFIDENCE, MattingConfig, RefineConfig, WindowScale, validate_scales
from lrmatte.pipeline.boundary import compute_boundary_map
from lrmatte.pipeline.initial import estimate_initial_alpha
from lrmatte.pipeline.state import MattingState, apply_hard_constraints
from lrmatte.pipeline.trimap import masks_from_trimap, validate_inputs
from lrmatte.solver.guided import guided_filter
from lrmatte.solver.linear import fit_from_stats
from lrmatte.solver.windows import windowed_mean_and_covariance

logger = logging.getLogger(__name__)

Observer = Callable[[str, MattingState], None]

# Covariances needed for the alpha regression: color/color and color/alpha.
_REGRESSION_PAIRS = [(i, j) for i in range(3) for j in range(i, 3)] + [(c, 3) for c in range(3)]


@dataclass(frozen=True)
class MattingProblem:
    """Frozen inputs shared by every iteration."""

    color: np.ndarray  # HxWx3 float64 in [0, 1]
    fg_mask: np.ndarray
    bg_mask: np.ndarray


@dataclass
class ScaleContribution:
    scale: WindowScale
    candidate: np.ndarray
    window_confidence: np.ndarray


@dataclass
class MattingResult:
    alpha: np.ndarray
    state: MattingState
    deltas: List[float] = field(default_factory=list)
    stopped_early: bool = False


def reconstruct_scale(problem: MattingProblem, state: MattingState, scale: WindowScale) -> ScaleContribution:
    """Regress alpha on color inside every window of one scale and rebuild a candidate matte."""
    color = problem.color
    radius = scale.radius
    fields = [color[..., 0], color[..., 1], color[..., 2], state.alpha]
    stats = windowed_mean_and_covariance(
        fields,
        state.confidence,
        scale.window_size,
        pairs=_REGRESSION_PAIRS,
    )
    model = fit_from_stats(stats, target=3, epsilon=scale.epsilon)
    candidate = np.clip(model.smoothed(radius).reconstruct(color), 0.0, 1.0)

    window_confidence = np.clip(
        guided_filter(color, state.confidence, radius, scale.epsilon),
        0.0,
        1.0,
    )
    return ScaleContribution(scale=scale, candidate=candidate, window_confidence=window_confidence)


def fuse_scales(
    contributions: Sequence[ScaleContribution],
    previous: MattingState,
    fg_mask: np.ndarray,
    bg_mask: np.ndarray,
    min_confidence: float = MIN_CONFIDENCE,
) -> Tuple[MattingState, int]:
    """Weighted average of the per-scale candidates.

    Returns the new state and the number of pixels no scale had confidence
    for; those keep their previous alpha and confidence.
    """
    shape = previous.alpha.shape
    value_sum = np.zeros(shape, dtype=np.float64)
    weight_sum = np.zeros(shape, dtype=np.float64)
    weight_sum2 = np.zeros(shape, dtype=np.float64)
    for contribution in contributions:
        weighted = contribution.scale.weight * contribution.window_confidence
        value_sum += weighted * contribution.candidate
        weight_sum += weighted
        weight_sum2 += weighted * contribution.window_confidence

    resolved = weight_sum != 0
    alpha = np.array(previous.alpha, dtype=np.float64)
    confidence = np.array(previous.confidence, dtype=np.float64)
    alpha[resolved] = np.clip(value_sum[resolved] / weight_sum[resolved], 0.0, 1.0)
    confidence[resolved] = np.clip(weight_sum2[resolved] / weight_sum[resolved], min_confidence, 1.0)

    apply_hard_constraints(alpha, confidence, fg_mask, bg_mask)
    unresolved = int(resolved.size - np.count_nonzero(resolved))
    return MattingState(alpha=alpha, confidence=confidence, iteration=previous.iteration + 1), unresolved


def refine_step(
    problem: MattingProblem,
    state: MattingState,
    scales: Sequence[WindowScale],
    executor: Optional[Executor] = None,
    min_confidence: float = MIN_CONFIDENCE,
) -> MattingState:
    """One full pass over every scale followed by fusion."""
    if executor is None:
        contributions = [reconstruct_scale(problem, state, scale) for scale in scales]
    else:
        contributions = list(executor.map(lambda scale: reconstruct_scale(problem, state, scale), scales))

    new_state, unresolved = fuse_scales(
        contributions,
        state,
        problem.fg_mask,
        problem.bg_mask,
        min_confidence=min_confidence,
    )
    if unresolved:
        logger.debug(
            "Iteration %d: %d pixel(s) had no confident scale; kept previous values",
            new_state.iteration,
            unresolved,
        )
    return new_state


def run_refinement(
    image: np.ndarray,
    fg_mask: np.ndarray,
    bg_mask: np.ndarray,
    settings: Optional[RefineConfig] = None,
    observer: Optional[Observer] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    progress: bool = False,
) -> MattingResult:
    """Initial estimate followed by ``settings.iterations`` refinement passes."""
    settings = settings or RefineConfig()
    validate_scales(settings.scales)
    image, fg_mask, bg_mask = validate_inputs(image, fg_mask, bg_mask)

    logger.info(
        "Refining %dx%d matte: %d unknown pixel(s), %d scale(s), %d iteration(s)",
        image.shape[1],
        image.shape[0],
        int(np.count_nonzero(~(fg_mask | bg_mask))),
        len(settings.scales),
        settings.iterations,
    )

    state = estimate_initial_alpha(
        image,
        fg_mask,
        bg_mask,
        compute_boundary_map(fg_mask),
        compute_boundary_map(bg_mask),
        color_variance=settings.color_variance,
        min_confidence=settings.min_confidence,
        degenerate_alpha=settings.degenerate_alpha,
    )
    if observer is not None:
        observer("initial", state)

    problem = MattingProblem(
        color=np.asarray(image, dtype=np.float64) / 255.0,
        fg_mask=fg_mask,
        bg_mask=bg_mask,
    )
    result = MattingResult(alpha=state.alpha, state=state)

    executor: Optional[ThreadPoolExecutor] = None
    if settings.workers > 1 and len(settings.scales) > 1:
        executor = ThreadPoolExecutor(max_workers=min(settings.workers, len(settings.scales)))
    try:
        for _ in tqdm(range(settings.iterations), desc="lrmatte refine", disable=not progress):
            if should_stop is not None and should_stop():
                logger.info("Refinement cancelled after %d iteration(s)", state.iteration)
                result.stopped_early = True
                break

            new_state = refine_step(
                problem,
                state,
                settings.scales,
                executor=executor,
                min_confidence=settings.min_confidence,
            )
            delta = float(np.max(np.abs(new_state.alpha - state.alpha)))
            result.deltas.append(delta)
            logger.debug("Iteration %d: max alpha change %.6f", new_state.iteration, delta)
            state = new_state
            if observer is not None:
                observer("iteration", state)

            if settings.tolerance is not None and delta < settings.tolerance:
                logger.info("Converged after %d iteration(s) (delta %.2e)", state.iteration, delta)
                result.stopped_early = state.iteration < settings.iterations
                break
    finally:
        if executor is not None:
            executor.shutdown(wait=True)

    # The state arrays are frozen snapshots; callers get their own copy.
    result.alpha = state.alpha.copy()
    result.state = state
    return result


def refine_alpha(
    image: np.ndarray,
    fg_mask: np.ndarray,
    bg_mask: np.ndarray,
    scales: Optional[Sequence[WindowScale]] = None,
    iterations: int = 10,
    *,
    observer: Optional[Observer] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    workers: int = 1,
    tolerance: Optional[float] = None,
) -> np.ndarray:
    """Estimate an ``HxW`` alpha matte in [0, 1] for a 0..255 ``HxWx3`` image."""
    settings = RefineConfig(
        iterations=iterations,
        scales=list(scales) if scales is not None else [WindowScale()],
        workers=workers,
        tolerance=tolerance,
    )
    MattingConfig(refine=settings).validate()
    return run_refinement(image, fg_mask, bg_mask, settings, observer=observer, should_stop=should_stop).alpha


class AlphaRefiner:
    """Runs trimap thresholding and refinement from a :class:`MattingConfig`."""

    def __init__(self, config: Optional[MattingConfig] = None) -> None:
        self.config = (config or MattingConfig()).validate()

    def masks(self, trimap: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return masks_from_trimap(
            trimap,
            fg_threshold=self.config.trimap.fg_threshold,
            bg_threshold=self.config.trimap.bg_threshold,
        )

    def run(
        self,
        image: np.ndarray,
        trimap: np.ndarray,
        observer: Optional[Observer] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        progress: bool = False,
    ) -> MattingResult:
        fg_mask, bg_mask = self.masks(trimap)
        return run_refinement(
            image,
            fg_mask,
            bg_mask,
            self.config.refine,
            observer=observer,
            should_stop=should_stop,
            progress=progress,
        )
