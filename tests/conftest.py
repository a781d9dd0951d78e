import numpy as np
import pytest

from lrmatte.pipeline.trimap import masks_from_trimap
from lrmatte.utils.synthetic import ramp_scene


@pytest.fixture
def ramp():
    image, trimap = ramp_scene(size=100, inner=20, outer=30)
    fg_mask, bg_mask = masks_from_trimap(trimap)
    return image, trimap, fg_mask, bg_mask


@pytest.fixture
def rng():
    return np.random.default_rng(0)
