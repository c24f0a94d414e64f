"""
Run the YCbCr skin classifier over every frame of a stack.

Non-skin pixels of the input stack are painted 0xFFFFFFFF in place, and a new 256x256 stack
receives one CbCr histogram per frame.
"""
import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np
from tqdm import tqdm

from skin_extractor.cbcr_plane import PLANE_SIZE, histogram_frame
from skin_extractor.errors import PreconditionError
from skin_extractor.stack import ImageStack
from skin_extractor.ycbcr_threshold import DEFAULT_THRESHOLDS, ThresholdWindow, classify

logger = logging.getLogger(__name__)

FILL_VALUE = np.uint32(0xFFFFFFFF)


@dataclass
class ExtractionResult:
    """Both outputs of a run, plus the share of skin found in each frame."""
    masked: ImageStack
    histograms: ImageStack
    skin_fraction: List[float] = field(default_factory=list)


def apply_mask(pixels: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """
    Keep skin pixels, paint everything else with FILL_VALUE.
    :param pixels: Packed frame.
    :param mask: Mask from classify(), same length.
    :return: A new packed frame.
    """
    pixels = np.asarray(pixels)
    if pixels.size != np.asarray(mask).size:
        raise PreconditionError(f"Mask has {np.asarray(mask).size} values for {pixels.size} pixels.")
    return np.where(np.asarray(mask).reshape(pixels.shape) > 0, pixels.astype(np.uint32), FILL_VALUE)


def run_extraction(stack: ImageStack,
                   thresholds: ThresholdWindow = DEFAULT_THRESHOLDS,
                   show_progress: bool = False) -> ExtractionResult:
    """
    Classify every frame of a stack.

    All frames are computed before the stack is touched, so a failure leaves it unchanged.

    :param stack: Input stack. Its frames are overwritten in place on success.
    :param thresholds: Acceptance window shared by every frame of the run.
    :param show_progress: Show a tqdm bar over the frames.
    :return: The masked stack (the input object) and the histogram stack.
    :raises PreconditionError: The stack is empty or a frame has the wrong size.
    """
    if stack is None:
        raise PreconditionError("No image opened")
    stack.validate()
    if thresholds.is_degenerate:
        logger.warning("Threshold window %s is empty, no pixel will be kept", thresholds)

    masked_frames = []
    histogram_frames = []
    skin_fraction = []
    total = stack.width * stack.height

    frames = tqdm(stack.frames, desc="Frames", unit="frame", disable=not show_progress)
    for i, pixels in enumerate(frames, start=1):
        mask, histogram = classify(pixels, stack.width, stack.height, thresholds)
        masked_frames.append(apply_mask(pixels, mask))
        histogram_frames.append(histogram_frame(histogram))

        fraction = np.count_nonzero(mask) / total
        skin_fraction.append(fraction)
        logger.debug("Frame %d/%d: %.2f%% skin", i, len(stack), 100.0 * fraction)

    for i, masked in enumerate(masked_frames):
        pixels = stack.frames[i]
        if isinstance(pixels, np.ndarray) and pixels.dtype == np.uint32 and pixels.flags.writeable:
            np.copyto(pixels, masked.reshape(pixels.shape))
        else:
            # Read-only or foreign buffers get replaced instead
            stack.frames[i] = masked

    histograms = ImageStack(width=PLANE_SIZE, height=PLANE_SIZE, frames=histogram_frames)
    logger.info("Processed %d frame(s), %.2f%% skin overall", len(stack),
                100.0 * float(np.mean(skin_fraction)))
    return ExtractionResult(masked=stack, histograms=histograms, skin_fraction=skin_fraction)
