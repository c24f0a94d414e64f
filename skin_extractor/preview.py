"""
One figure of a whole run: original, skin and CbCr histogram for every frame.
"""
import logging
from pathlib import Path
from typing import List, Optional, Union

import cv2
import matplotlib.pyplot as plt
import numpy as np

from skin_extractor.cbcr_plane import histogram_to_rgb, threshold_plane
from skin_extractor.extract import ExtractionResult
from skin_extractor.ycbcr_threshold import ThresholdWindow

logger = logging.getLogger(__name__)


def save_preview(
    original: List[np.ndarray],
    result: ExtractionResult,
    path: Union[str, Path],
    thresholds: Optional[ThresholdWindow] = None,
) -> Path:
    """Plot every frame of a run in one figure and save it.

    Parameters
    ----------
    original : list[np.ndarray]
        RGB frames as they were before the run (the run overwrites the stack).
    result : ExtractionResult
        What run_extraction() returned.
    path : str | Path
        Image file to write.
    thresholds : ThresholdWindow, optional
        When given, a fourth column shows the window on the CbCr plane.
    """
    masked = result.masked.to_arrays()
    histograms = [histogram_to_rgb(frame) for frame in result.histograms.frames]

    col_titles = ["original", "skin", "CbCr histogram"]
    if thresholds is not None:
        col_titles.append("threshold window")
        plane = cv2.cvtColor(threshold_plane(thresholds), cv2.COLOR_BGR2RGB)

    rows = len(original)
    cols = len(col_titles)
    fig, axes = plt.subplots(rows, cols, figsize=(cols * 3.5, rows * 3), squeeze=False)

    for row in range(rows):
        images = [original[row], masked[row], histograms[row]]
        if thresholds is not None:
            images.append(plane)
        for c, img in enumerate(images):
            ax = axes[row, c]
            ax.imshow(img)
            ax.axis("off")
            if row == 0:
                ax.set_title(col_titles[c])

        # Row label just outside the first axis
        ax0 = axes[row, 0]
        ax0.text(
            -0.05, 0.5, f"frame {row + 1} | {100.0 * result.skin_fraction[row]:.1f}%",
            transform=ax0.transAxes, ha="right", va="center", clip_on=False,
        )

    plt.tight_layout()
    plt.subplots_adjust(left=0.1)

    path = Path(path)
    fig.savefig(path, dpi=150)
    plt.close(fig)
    logger.info("Preview written to %s", path)
    return path
