import numpy as np
import pytest

from lrmatte.config import RefineConfig, WindowScale
from lrmatte.errors import MaskOverlapError, MattingInputError
from lrmatte.pipeline.refine import ScaleContribution, fuse_scales, refine_alpha, run_refinement
from lrmatte.pipeline.state import MattingState
from lrmatte.pipeline.trimap import masks_from_trimap
from lrmatte.utils.synthetic import cross_scene


def test_ramp_scene_converges_to_hard_constraints(ramp):
    image, _, fg_mask, bg_mask = ramp

    alpha = refine_alpha(image, fg_mask, bg_mask, [WindowScale(radius=3, epsilon=1e-5)], iterations=10)

    assert alpha.shape == (100, 100)
    assert alpha[50, 50] == 1.0
    for corner in [(0, 0), (0, 99), (99, 0), (99, 99)]:
        assert alpha[corner] == 0.0
    assert alpha.min() >= 0.0 and alpha.max() <= 1.0


def test_refinement_keeps_the_ramp_band_affine(ramp):
    image, _, fg_mask, bg_mask = ramp
    initial = run_refinement(image, fg_mask, bg_mask, RefineConfig(iterations=0)).alpha

    alpha = refine_alpha(image, fg_mask, bg_mask, iterations=10)

    # Alpha is an exact affine function of color across the band.
    band = alpha[50, 70:81]
    assert np.all(np.diff(band) < 0)
    assert np.allclose(band, initial[50, 70:81], atol=1e-2)


def test_cross_scene_lines_follow_their_colors():
    image, trimap = cross_scene(size=100)
    fg_mask, bg_mask = masks_from_trimap(trimap)

    alpha = refine_alpha(image, fg_mask, bg_mask, iterations=10)

    gray_line = np.concatenate([alpha[50, 72:79], alpha[50, 21:28]])
    white_line = np.concatenate([alpha[72:79, 50], alpha[21:28, 50]])
    assert np.allclose(gray_line, 128.0 / 255.0, atol=2e-2)
    assert np.all(white_line > 0.98)
    assert np.all(alpha[75, 72:79] < 2e-2)


def test_invariants_hold_after_every_iteration(ramp):
    image, _, fg_mask, bg_mask = ramp
    seen = []

    def observer(stage, state):
        seen.append((stage, state.iteration))
        assert np.all(state.alpha[fg_mask] == 1.0)
        assert np.all(state.confidence[fg_mask] == 1.0)
        assert np.all(state.alpha[bg_mask] == 0.0)
        assert np.all(state.confidence[bg_mask] == 1.0)
        assert state.alpha.min() >= 0.0 and state.alpha.max() <= 1.0
        assert state.confidence.min() >= 0.1 and state.confidence.max() <= 1.0

    refine_alpha(image, fg_mask, bg_mask, iterations=4, observer=observer)

    assert seen == [("initial", 0), ("iteration", 1), ("iteration", 2), ("iteration", 3), ("iteration", 4)]


def test_repeated_runs_are_bit_identical(rng):
    image = rng.integers(0, 256, size=(40, 50, 3), dtype=np.uint8)
    fg_mask = np.zeros((40, 50), dtype=bool)
    bg_mask = np.zeros((40, 50), dtype=bool)
    fg_mask[15:25, 20:30] = True
    bg_mask[:, :5] = True
    bg_mask[:, -5:] = True
    scales = [WindowScale(radius=2), WindowScale(radius=5, epsilon=1e-4, weight=0.5)]

    first = refine_alpha(image, fg_mask, bg_mask, scales, iterations=3)
    second = refine_alpha(image, fg_mask, bg_mask, scales, iterations=3)
    threaded = refine_alpha(image, fg_mask, bg_mask, scales, iterations=3, workers=2)

    assert np.array_equal(first, second)
    assert np.array_equal(first, threaded)


def test_zero_confidence_pixels_keep_previous_values():
    shape = (4, 4)
    fg_mask = np.zeros(shape, dtype=bool)
    bg_mask = np.zeros(shape, dtype=bool)
    fg_mask[0, 0] = True
    bg_mask[3, 3] = True
    previous = MattingState(alpha=np.full(shape, 0.25), confidence=np.full(shape, 0.4), iteration=2)

    window_confidence = np.full(shape, 0.8)
    window_confidence[1, 2] = 0.0
    contribution = ScaleContribution(
        scale=WindowScale(),
        candidate=np.full(shape, 0.9),
        window_confidence=window_confidence,
    )

    state, unresolved = fuse_scales([contribution], previous, fg_mask, bg_mask)

    assert unresolved == 1
    assert state.iteration == 3
    assert state.alpha[1, 2] == 0.25
    assert state.confidence[1, 2] == 0.4
    assert np.isclose(state.alpha[2, 1], 0.9)
    assert np.isclose(state.confidence[2, 1], 0.8)
    assert state.alpha[0, 0] == 1.0 and state.alpha[3, 3] == 0.0


def test_fusion_weights_scales_by_weight_and_confidence():
    shape = (2, 2)
    fg_mask = np.zeros(shape, dtype=bool)
    bg_mask = np.zeros(shape, dtype=bool)
    previous = MattingState(alpha=np.zeros(shape), confidence=np.full(shape, 0.5))
    contributions = [
        ScaleContribution(WindowScale(radius=1, weight=1.0), np.full(shape, 0.2), np.full(shape, 0.5)),
        ScaleContribution(WindowScale(radius=2, weight=3.0), np.full(shape, 0.6), np.full(shape, 1.0)),
    ]

    state, _ = fuse_scales(contributions, previous, fg_mask, bg_mask)

    # weights 0.5 and 3.0
    assert np.allclose(state.alpha, (0.5 * 0.2 + 3.0 * 0.6) / 3.5)
    assert np.allclose(state.confidence, (0.5 * 0.5 + 3.0 * 1.0) / 3.5)


def test_cancellation_between_iterations(ramp):
    image, _, fg_mask, bg_mask = ramp
    calls = []

    def should_stop():
        calls.append(True)
        return len(calls) > 2

    result = run_refinement(image, fg_mask, bg_mask, RefineConfig(iterations=10), should_stop=should_stop)

    assert result.state.iteration == 2
    assert result.stopped_early
    assert len(result.deltas) == 2


def test_tolerance_stops_early(ramp):
    image, _, fg_mask, bg_mask = ramp

    result = run_refinement(image, fg_mask, bg_mask, RefineConfig(iterations=10, tolerance=1.0))

    assert result.state.iteration == 1
    assert result.stopped_early


def test_zero_iterations_returns_initial_estimate(ramp):
    image, _, fg_mask, bg_mask = ramp
    result = run_refinement(image, fg_mask, bg_mask, RefineConfig(iterations=0))
    assert result.state.iteration == 0
    assert result.deltas == []


def test_overlapping_masks_are_rejected(ramp):
    image, _, fg_mask, bg_mask = ramp
    bg_mask = bg_mask.copy()
    bg_mask[50, 50] = True
    with pytest.raises(MaskOverlapError) as excinfo:
        refine_alpha(image, fg_mask, bg_mask, iterations=1)
    assert excinfo.value.count == 1
    assert isinstance(excinfo.value, ValueError)


@pytest.mark.parametrize(
    "image_shape,mask_shape",
    [((10, 10), (10, 10)), ((10, 10, 4), (10, 10)), ((10, 10, 3), (10, 9))],
)
def test_malformed_inputs_are_rejected(image_shape, mask_shape):
    image = np.zeros(image_shape, dtype=np.uint8)
    fg_mask = np.zeros(mask_shape, dtype=bool)
    bg_mask = np.zeros(mask_shape, dtype=bool)
    fg_mask[0, 0] = True
    bg_mask[-1, -1] = True
    with pytest.raises(MattingInputError):
        refine_alpha(image, fg_mask, bg_mask, iterations=1)


def test_input_arrays_are_not_mutated(ramp):
    image, _, fg_mask, bg_mask = ramp
    image_before = image.copy()
    fg_before = fg_mask.copy()

    refine_alpha(image, fg_mask, bg_mask, iterations=1)

    assert np.array_equal(image, image_before)
    assert np.array_equal(fg_mask, fg_before)


def test_float_images_are_rejected(ramp):
    image, _, fg_mask, bg_mask = ramp
    with pytest.raises(MattingInputError):
        refine_alpha(image / 255.0, fg_mask, bg_mask, iterations=1)


def test_returned_alpha_is_a_writable_copy(ramp):
    image, _, fg_mask, bg_mask = ramp

    alpha = refine_alpha(image, fg_mask, bg_mask, iterations=1)
    assert alpha.flags.writeable

    result = run_refinement(image, fg_mask, bg_mask, RefineConfig(iterations=1))
    result.alpha[0, 0] = 0.5
    assert result.state.alpha[0, 0] == 0.0
    assert not result.state.alpha.flags.writeable
