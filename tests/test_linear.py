import numpy as np
import pytest

from lrmatte.solver.guided import guided_filter
from lrmatte.solver.linear import LocalLinearModel, fit_from_stats, fit_local_linear_model, invert_3x3
from lrmatte.solver.windows import windowed_mean_and_covariance


def _random_spd(rng, count):
    base = rng.normal(size=(count, 3, 3))
    return base @ np.swapaxes(base, -1, -2) + 0.1 * np.eye(3)


def test_invert_3x3_matches_numpy(rng):
    matrices = _random_spd(rng, 50)
    inverse = invert_3x3(matrices)
    assert np.allclose(inverse, np.linalg.inv(matrices))
    assert np.allclose(matrices @ inverse, np.eye(3), atol=1e-9)


def test_invert_3x3_rejects_singular():
    with pytest.raises(np.linalg.LinAlgError):
        invert_3x3(np.zeros((3, 3)))


def test_ridge_term_shrinks_slope_monotonically(rng):
    cov_color = _random_spd(rng, 1)[0] * 0.01
    cov_color_alpha = np.array([0.02, -0.01, 0.015])
    mean_color = np.array([0.4, 0.5, 0.6])

    norms = []
    for epsilon in (1e-6, 1e-5, 1e-4, 1e-3, 1e-2, 1e-1, 1.0):
        model = fit_local_linear_model(mean_color, 0.5, cov_color, cov_color_alpha, epsilon)
        norms.append(np.linalg.norm(model.a))

    assert all(later < earlier for earlier, later in zip(norms, norms[1:]))


def test_single_pixel_fit_with_zero_covariance_is_finite():
    model = fit_local_linear_model(
        mean_color=np.array([0.2, 0.2, 0.2]),
        mean_alpha=0.7,
        cov_color=np.zeros((3, 3)),
        cov_color_alpha=np.zeros(3),
        epsilon=1e-5,
    )
    assert np.allclose(model.a, 0.0)
    assert np.isclose(model.b, 0.7)


def test_affine_alpha_is_recovered_exactly(rng):
    color = rng.random((20, 20, 3))
    slope = np.array([0.3, -0.2, 0.5])
    alpha = color @ slope + 0.1

    fields = [color[..., 0], color[..., 1], color[..., 2], alpha]
    stats = windowed_mean_and_covariance(fields, None, 5)
    model = fit_from_stats(stats, target=3, epsilon=1e-9)

    assert np.allclose(model.a, slope, atol=1e-4)
    assert np.allclose(model.b, 0.1, atol=1e-4)
    assert np.allclose(model.reconstruct(color), alpha, atol=1e-4)


def test_smoothing_keeps_uniform_coefficients(rng):
    a = np.broadcast_to(np.array([0.3, -0.2, 0.5]), (8, 9, 3)).copy()
    b = np.full((8, 9), 0.1)
    model = LocalLinearModel(a=a, b=b)

    smoothed = model.smoothed(radius=2)

    assert np.allclose(smoothed.a, a)
    assert np.allclose(smoothed.b, b)
    color = rng.random((8, 9, 3))
    assert np.allclose(smoothed.reconstruct(color), model.reconstruct(color))


def test_epsilon_must_be_positive():
    with pytest.raises(ValueError):
        fit_local_linear_model(np.zeros(3), 0.0, np.eye(3), np.zeros(3), 0.0)


def test_guided_filter_keeps_constant_target_and_shape(rng):
    guide = rng.random((16, 12, 3))
    target = np.full((16, 12), 0.6)

    smoothed = guided_filter(guide, target, radius=2, epsilon=1e-4)

    assert smoothed.shape == target.shape
    assert np.allclose(smoothed, 0.6, atol=1e-6)


def test_guided_filter_preserves_edges_of_guide():
    guide = np.zeros((20, 20, 3))
    guide[:, 10:] = 1.0
    target = np.zeros((20, 20))
    target[:, 10:] = 1.0

    smoothed = guided_filter(guide, target, radius=3, epsilon=1e-5)

    assert np.allclose(smoothed[:, :10], 0.0, atol=1e-3)
    assert np.allclose(smoothed[:, 10:], 1.0, atol=1e-3)
