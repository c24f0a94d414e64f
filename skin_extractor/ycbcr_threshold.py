"""
Skin classification by thresholding the chroma channels of YCbCr.

Y  =  0.29900 * R + 0.58700 * G + 0.11400 * B
Cb = -0.16874 * R - 0.33126 * G + 0.50000 * B + 128
Cr =  0.50000 * R - 0.41869 * G - 0.08131 * B + 128

R = Y + 1.40200 * (Cr - 128)
G = Y - 0.34414 * (Cb - 128) - 0.71414 * (Cr - 128)
B = Y + 1.77200 * (Cb - 128)
"""
import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from skin_extractor.cbcr_plane import accumulate, new_histogram
from skin_extractor.errors import PreconditionError

logger = logging.getLogger(__name__)

CHROMA_OFFSET = 128.0


@dataclass(frozen=True)
class ThresholdWindow:
    """
    Exclusive bounds of the skin acceptance rectangle in the (Cb, Cr) plane.
    """
    cb_min: float = 95.0
    cb_max: float = 140.0
    cr_min: float = 140.0
    cr_max: float = 165.0

    @property
    def is_degenerate(self) -> bool:
        """True when the window cannot contain any value."""
        return self.cb_min >= self.cb_max or self.cr_min >= self.cr_max

    def contains(self, cb: np.ndarray, cr: np.ndarray) -> np.ndarray:
        """
        Test chroma values against the window, bounds excluded.
        :param cb: Cb values.
        :param cr: Cr values.
        :return: Boolean array, True inside the window.
        """
        return (cr > self.cr_min) & (cr < self.cr_max) & (cb > self.cb_min) & (cb < self.cb_max)

    def as_dict(self) -> dict:
        return {"cb_min": self.cb_min, "cb_max": self.cb_max,
                "cr_min": self.cr_min, "cr_max": self.cr_max}


DEFAULT_THRESHOLDS = ThresholdWindow()


def unpack_rgb(pixels: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Split packed 32-bit pixels into their red, green and blue bytes. The top byte is ignored.
    :param pixels: Packed pixels, any integer dtype.
    :return: (red, green, blue) as uint8 arrays of the same shape.
    """
    packed = np.asarray(pixels).astype(np.uint32, copy=False)
    red = ((packed >> 16) & 0xFF).astype(np.uint8)
    green = ((packed >> 8) & 0xFF).astype(np.uint8)
    blue = (packed & 0xFF).astype(np.uint8)
    return red, green, blue


def rgb_to_ycbcr(red: np.ndarray,
                 green: np.ndarray,
                 blue: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Forward transform, in double precision.

    Parameters
    ----------
    red, green, blue
        Channel values in [0, 255].

    Returns
    -------
    tuple of np.ndarray
        (Y, Cb, Cr) as float64.
    """
    r = np.asarray(red, dtype=np.float64)
    g = np.asarray(green, dtype=np.float64)
    b = np.asarray(blue, dtype=np.float64)

    # Keep this evaluation order, the histogram bins depend on the last bit
    y = (0.29900 * r) + (0.58700 * g) + (0.11400 * b)
    cb = (-0.16874 * r) - (0.33126 * g) + (0.50000 * b) + CHROMA_OFFSET
    cr = (0.50000 * r) - (0.41869 * g) - (0.08131 * b) + CHROMA_OFFSET
    return y, cb, cr


def ycbcr_to_rgb(y: np.ndarray,
                 cb: np.ndarray,
                 cr: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Inverse transform. Values are not clipped to [0, 255].
    :param y: Luma.
    :param cb: Blue-difference chroma.
    :param cr: Red-difference chroma.
    :return: (red, green, blue) as float64.
    """
    y = np.asarray(y, dtype=np.float64)
    cb = np.asarray(cb, dtype=np.float64) - CHROMA_OFFSET
    cr = np.asarray(cr, dtype=np.float64) - CHROMA_OFFSET
    red = y + 1.40200 * cr
    green = y - 0.34414 * cb - 0.71414 * cr
    blue = y + 1.77200 * cb
    return red, green, blue


def classify(pixels: np.ndarray,
             width: int,
             height: int,
             thresholds: ThresholdWindow = DEFAULT_THRESHOLDS) -> Tuple[np.ndarray, np.ndarray]:
    """
    Classify one frame of packed RGB pixels as skin or non-skin and build its CbCr histogram.

    Parameters
    ----------
    pixels
        Packed 0xAARRGGBB pixels, row-major, length width * height.
    width, height
        Frame size in pixels.
    thresholds
        Acceptance window, exclusive on both ends.

    Returns
    -------
    tuple of np.ndarray
        The mask (uint8, 0 or 255, same length as pixels) and the histogram (int32, 256 * 256
        cells indexed Cr * 256 + Cb, starting at white and decremented by 100 per hit).
    """
    if pixels is None:
        raise PreconditionError("No pixel buffer given.")
    flat = np.asarray(pixels).reshape(-1)
    if width <= 0 or height <= 0 or flat.size != width * height:
        raise PreconditionError(
            f"Pixel buffer holds {flat.size} values, expected {width} x {height} = {width * height}."
        )

    red, green, blue = unpack_rgb(flat)
    _, cb, cr = rgb_to_ycbcr(red, green, blue)

    histogram = new_histogram()
    accumulate(histogram, cb, cr)

    mask = thresholds.contains(cb, cr).astype(np.uint8) * np.uint8(255)
    return mask, histogram
