import numpy as np
import pytest

from helpers import GRAY, SKIN
from skin_extractor.stack import ImageStack, pack_rgb


@pytest.fixture
def checker_rgb() -> np.ndarray:
    """4x3 RGB image alternating a skin tone and gray."""
    image = np.empty((3, 4, 3), dtype=np.uint8)
    image[...] = GRAY
    image[::2, ::2] = SKIN
    image[1::2, 1::2] = SKIN
    return image


@pytest.fixture
def small_stack(checker_rgb) -> ImageStack:
    """Two frames: the checker and an all-black frame."""
    black = np.zeros_like(checker_rgb)
    return ImageStack.from_arrays([checker_rgb, black])


@pytest.fixture
def checker_pixels(checker_rgb) -> np.ndarray:
    return pack_rgb(checker_rgb)
