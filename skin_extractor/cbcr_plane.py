"""
The 256x256 CbCr plane: occurrence histograms and threshold window pictures.

Cb runs along the horizontal axis and Cr along the vertical one. Cells hold packed 0xAARRGGBB
values so a histogram can be shown directly as an RGB frame.
"""
import cv2
import numpy as np

PLANE_SIZE = 256
WHITE = np.int32(-1)  # 0xFFFFFFFF
HISTOGRAM_STEP = 100


def new_histogram() -> np.ndarray:
    """
    Allocate a blank histogram.
    :return: int32 array of 256 * 256 cells, all white.
    """
    return np.full(PLANE_SIZE * PLANE_SIZE, WHITE, dtype=np.int32)


def accumulate(histogram: np.ndarray, cb: np.ndarray, cr: np.ndarray) -> np.ndarray:
    """
    Decrement the cell of every (Cb, Cr) pair by HISTOGRAM_STEP, in place.
    Chroma values are truncated toward zero, never rounded. Cells wrap around on underflow.
    :param histogram: Histogram from new_histogram().
    :param cb: Cb values.
    :param cr: Cr values.
    :return: The same histogram.
    """
    index = np.trunc(cr).astype(np.int64).ravel() * PLANE_SIZE + np.trunc(cb).astype(np.int64).ravel()
    counts = np.bincount(index, minlength=PLANE_SIZE * PLANE_SIZE)

    # Widen, subtract, then let the cast back to int32 wrap modulo 2**32
    wide = histogram.astype(np.int64) - counts * HISTOGRAM_STEP
    histogram[:] = wide.astype(np.int32)
    return histogram


def flip_vertical(histogram: np.ndarray) -> np.ndarray:
    """Reverse the row order so that Cr grows upward."""
    return histogram.reshape(PLANE_SIZE, PLANE_SIZE)[::-1].reshape(-1).copy()


def histogram_frame(histogram: np.ndarray) -> np.ndarray:
    """
    Turn a histogram into a display frame of packed pixels, flipped vertically.
    :param histogram: int32 histogram.
    :return: uint32 frame buffer with the same bit patterns.
    """
    return flip_vertical(histogram).view(np.uint32)


def histogram_to_rgb(frame: np.ndarray) -> np.ndarray:
    """
    Unpack a histogram frame into an RGB image.
    :param frame: Packed frame from histogram_frame().
    :return: uint8 array, shape (256, 256, 3).
    """
    packed = np.asarray(frame).astype(np.uint32, copy=False).reshape(PLANE_SIZE, PLANE_SIZE)
    return np.dstack([(packed >> shift) & 0xFF for shift in (16, 8, 0)]).astype(np.uint8)


def threshold_plane(thresholds, luma: int = 192) -> np.ndarray:
    """
    Draw the CbCr plane with the acceptance window lit, oriented like the histogram frames.
    :param thresholds: A ThresholdWindow.
    :param luma: Y value used inside the window. Everything outside is drawn at Y = 0.
    :return: BGR image, dtype uint8, shape (256, 256, 3).
    """
    cb = np.tile(np.arange(PLANE_SIZE, dtype=np.float64), (PLANE_SIZE, 1))
    cr = np.tile(np.arange(PLANE_SIZE, dtype=np.float64).reshape(PLANE_SIZE, 1), (1, PLANE_SIZE))

    y_plane = np.zeros((PLANE_SIZE, PLANE_SIZE), dtype=np.uint8)
    y_plane[thresholds.contains(cb, cr)] = luma

    # OpenCV wants (Y, Cr, Cb)
    ycrcb = np.dstack([y_plane, cr.astype(np.uint8), cb.astype(np.uint8)])
    bgr = cv2.cvtColor(ycrcb, cv2.COLOR_YCrCb2BGR)
    return cv2.flip(bgr, 0)
