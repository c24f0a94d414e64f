import numpy as np

from skin_extractor.cbcr_plane import (
    PLANE_SIZE,
    accumulate,
    flip_vertical,
    histogram_frame,
    histogram_to_rgb,
    new_histogram,
    threshold_plane,
)
from skin_extractor.ycbcr_threshold import DEFAULT_THRESHOLDS, ThresholdWindow


def test_new_histogram_is_white():
    histogram = new_histogram()
    assert histogram.shape == (PLANE_SIZE * PLANE_SIZE,)
    assert (histogram.view(np.uint32) == 0xFFFFFFFF).all()


def test_accumulate_counts_hits():
    histogram = new_histogram()
    accumulate(histogram, np.array([10.2, 10.9, 11.0]), np.array([20.5, 20.1, 20.0]))
    assert histogram[20 * PLANE_SIZE + 10] == -201
    assert histogram[20 * PLANE_SIZE + 11] == -101


def test_accumulate_wraps_instead_of_clamping():
    histogram = new_histogram()
    low = np.iinfo(np.int32).min
    histogram[0] = low + 50
    accumulate(histogram, np.array([0.3]), np.array([0.7]))
    assert histogram[0] == np.iinfo(np.int32).max - 49


def test_flip_vertical_reverses_rows():
    grid = np.arange(PLANE_SIZE * PLANE_SIZE, dtype=np.int32)
    flipped = flip_vertical(grid).reshape(PLANE_SIZE, PLANE_SIZE)
    np.testing.assert_array_equal(flipped[0], grid.reshape(PLANE_SIZE, PLANE_SIZE)[-1])
    np.testing.assert_array_equal(flip_vertical(flip_vertical(grid)), grid)


def test_histogram_frame_puts_high_cr_on_top():
    histogram = new_histogram()
    accumulate(histogram, np.array([5.0]), np.array([250.0]))
    frame = histogram_frame(histogram)
    assert frame.dtype == np.uint32
    assert frame.reshape(PLANE_SIZE, PLANE_SIZE)[PLANE_SIZE - 1 - 250, 5] == 0xFFFFFF9B


def test_histogram_to_rgb():
    histogram = new_histogram()
    accumulate(histogram, np.array([5.0] * 3), np.array([250.0] * 3))
    rgb = histogram_to_rgb(histogram_frame(histogram))
    assert rgb.shape == (PLANE_SIZE, PLANE_SIZE, 3)
    assert rgb.dtype == np.uint8
    assert rgb[0, 0].tolist() == [255, 255, 255]
    # 0xFFFFFED3
    assert rgb[PLANE_SIZE - 1 - 250, 5].tolist() == [255, 254, 211]


def test_threshold_plane_lights_the_window():
    plane = threshold_plane(DEFAULT_THRESHOLDS)
    assert plane.shape == (PLANE_SIZE, PLANE_SIZE, 3)
    lit = plane.sum(axis=2) > 0
    # Cb 120, Cr 150 is inside, drawn at row 255 - 150
    assert lit[PLANE_SIZE - 1 - 150, 120]
    assert not lit[PLANE_SIZE - 1 - 128, 128]


def test_threshold_plane_empty_window():
    plane = threshold_plane(ThresholdWindow(cb_min=10, cb_max=10, cr_min=0, cr_max=255))
    assert plane.shape == (PLANE_SIZE, PLANE_SIZE, 3)
