"""
Multi-frame images as lists of packed 32-bit pixel buffers, plus loading and saving them.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

import cv2
import numpy as np
from PIL import Image, ImageSequence, UnidentifiedImageError

from skin_extractor.errors import PreconditionError

logger = logging.getLogger(__name__)

OPAQUE = np.uint32(0xFF000000)
MULTIPAGE_SUFFIXES = {".tif", ".tiff"}
ALPHA_SUFFIXES = {".png", ".tif", ".tiff", ".webp"}


def pack_rgb(image: np.ndarray) -> np.ndarray:
    """
    Pack an RGB or RGBA image into 0xAARRGGBB pixels.
    :param image: uint8 array, shape (H, W, 3) or (H, W, 4), RGB order.
    :return: uint32 array of length H * W, row-major. RGB input gets an opaque alpha.
    """
    if image is None or image.ndim != 3 or image.shape[2] not in (3, 4):
        raise PreconditionError("image must have shape (H, W, 3) or (H, W, 4).")
    if image.dtype != np.uint8:
        raise PreconditionError("image must be dtype uint8.")

    channels = image.reshape(-1, image.shape[2]).astype(np.uint32)
    alpha = channels[:, 3] << 24 if image.shape[2] == 4 else OPAQUE
    return alpha | (channels[:, 0] << 16) | (channels[:, 1] << 8) | channels[:, 2]


def unpack_frame(pixels: np.ndarray, width: int, height: int, alpha: bool = False) -> np.ndarray:
    """
    Inverse of pack_rgb.
    :param pixels: Packed pixels, length width * height.
    :param width: Frame width.
    :param height: Frame height.
    :param alpha: Keep the top byte as a fourth channel.
    :return: uint8 RGB image, shape (height, width, 3), or RGBA with shape (height, width, 4).
    """
    packed = np.asarray(pixels).astype(np.uint32, copy=False)
    if packed.size != width * height:
        raise PreconditionError(f"Frame holds {packed.size} pixels, expected {width * height}.")
    packed = packed.reshape(height, width)
    shifts = (16, 8, 0, 24) if alpha else (16, 8, 0)
    return np.dstack([(packed >> shift) & 0xFF for shift in shifts]).astype(np.uint8)


@dataclass
class ImageStack:
    """
    Equally sized frames of packed pixels (+ optional source path for bookkeeping).
    """
    width: int
    height: int
    frames: List[np.ndarray] = field(default_factory=list)
    path: Optional[Path] = None

    def __len__(self) -> int:
        return len(self.frames)

    @classmethod
    def from_arrays(cls, images: Sequence[np.ndarray], path: Union[str, Path, None] = None) -> "ImageStack":
        """
        Build a stack from RGB(A) arrays that all share one shape.
        :param images: uint8 arrays, shape (H, W, 3) or (H, W, 4).
        :param path: Where the images came from, if anywhere.
        :return: The stack.
        """
        if not images:
            raise PreconditionError("No image opened")
        height, width = images[0].shape[:2]
        for i, image in enumerate(images):
            if image.shape[:2] != (height, width):
                raise PreconditionError(
                    f"Frame {i + 1} is {image.shape[1]}x{image.shape[0]}, expected {width}x{height}."
                )
        return cls(width=width, height=height, frames=[pack_rgb(image) for image in images],
                   path=Path(path) if path is not None else None)

    def validate(self) -> None:
        """
        Check that the stack can be processed.
        :raises PreconditionError: No frames, a non-positive size, or a frame of the wrong length.
        """
        if not self.frames:
            raise PreconditionError("No image opened")
        if self.width <= 0 or self.height <= 0:
            raise PreconditionError(f"Invalid frame size {self.width}x{self.height}.")
        expected = self.width * self.height
        for i, frame in enumerate(self.frames, start=1):
            if frame is None or np.asarray(frame).size != expected:
                raise PreconditionError(f"Frame {i} does not hold {expected} pixels.")

    def to_arrays(self, alpha: bool = False) -> List[np.ndarray]:
        """Unpack every frame to an RGB array, or RGBA when alpha is set."""
        return [unpack_frame(frame, self.width, self.height, alpha) for frame in self.frames]

    @property
    def has_alpha(self) -> bool:
        """True when some pixel is not fully opaque."""
        return any(((np.asarray(frame).astype(np.uint32, copy=False) >> 24) != 0xFF).any()
                   for frame in self.frames)


def _read_with_opencv(path: Path) -> List[np.ndarray]:
    """
    Read every page with OpenCV as RGB, or RGBA when the file is 8-bit with an alpha channel.
    :return: The pages, empty when OpenCV cannot decode the file.
    """
    try:
        ok, pages = cv2.imreadmulti(str(path), flags=cv2.IMREAD_UNCHANGED)
        if ok and pages and all(p.dtype == np.uint8 and p.ndim == 3 and p.shape[2] == 4 for p in pages):
            return [cv2.cvtColor(page, cv2.COLOR_BGRA2RGBA) for page in pages]
        ok, pages = cv2.imreadmulti(str(path), flags=cv2.IMREAD_COLOR)
    except cv2.error:
        return []
    if not ok:
        return []
    # OpenCV hands back BGR
    return [page[:, :, ::-1] for page in pages]


def _read_with_pillow(path: Path) -> List[np.ndarray]:
    try:
        with Image.open(path) as img:
            mode = "RGBA" if img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info else "RGB"
            return [np.array(frame.convert(mode)) for frame in ImageSequence.Iterator(img)]
    except (UnidentifiedImageError, OSError) as err:
        raise PreconditionError(f"No image opened: cannot decode {path}") from err


def load_stack(path: Union[str, Path]) -> ImageStack:
    """
    Load every frame of an image file. Alpha is kept when the file has it.
    OpenCV is tried first (multi-page TIFF and single images), Pillow afterwards (GIF and friends).
    :param path: The image to load.
    :return: The stack, frames in file order.
    :raises PreconditionError: The file is missing or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise PreconditionError(f"No image opened: {path} does not exist")

    images = _read_with_opencv(path)
    if not images:
        logger.debug("OpenCV could not read %s, trying Pillow", path)
        images = _read_with_pillow(path)

    stack = ImageStack.from_arrays(images, path=path)
    logger.info("Loaded %s: %d frame(s) of %dx%d", path.name, len(stack), stack.width, stack.height)
    return stack


def check_writable(path: Union[str, Path]) -> Path:
    """
    Make sure save_stack() can write to a path before anything is written.
    :param path: Target file.
    :return: The path.
    :raises OSError: The directory does not exist or OpenCV has no writer for the suffix.
    """
    path = Path(path)
    if not path.parent.is_dir():
        raise OSError(f"Could not write {path}: directory {path.parent} does not exist")
    if not cv2.haveImageWriter(str(path)):
        raise OSError(f"Could not write {path}: no image writer for '{path.suffix}'")
    return path


def save_stack(stack: ImageStack, path: Union[str, Path], keep_alpha: bool = True) -> List[Path]:
    """
    Write a stack to disk.
    TIFF targets get one multi-page file. Other formats get one file per frame, numbered
    <stem>_0001<suffix>, ... when there is more than one frame. Alpha is written to formats
    that hold it when some pixel is not opaque.
    :param stack: The stack to save.
    :param path: Target file.
    :param keep_alpha: False for stacks whose top byte is not alpha, like histograms.
    :return: The paths that were written.
    :raises OSError: Nothing could be written. Files written before the failure are removed.
    """
    stack.validate()
    path = check_writable(path)

    if keep_alpha and stack.has_alpha and path.suffix.lower() in ALPHA_SUFFIXES:
        pages = [cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA) for image in stack.to_arrays(alpha=True)]
    else:
        pages = [np.ascontiguousarray(image[:, :, ::-1]) for image in stack.to_arrays()]

    if path.suffix.lower() in MULTIPAGE_SUFFIXES:
        jobs = [(cv2.imwritemulti, path, pages)]
    elif len(pages) == 1:
        jobs = [(cv2.imwrite, path, pages[0])]
    else:
        jobs = [(cv2.imwrite, path.with_name(f"{path.stem}_{i:04}{path.suffix}"), page)
                for i, page in enumerate(pages, start=1)]

    written = []
    try:
        for writer, target, data in jobs:
            _write(writer, target, data)
            written.append(target)
    except OSError:
        remove_files(written)
        raise

    logger.info("Wrote %d frame(s) to %s", len(pages), os.fspath(path))
    return written


def _write(writer, path: Path, data) -> None:
    try:
        ok = writer(str(path), data)
    except cv2.error as err:
        raise OSError(f"Could not write {path}: {err}") from err
    if not ok:
        raise OSError(f"Could not write {path}")


def remove_files(paths) -> None:
    """Delete files written by a failed run, ignoring ones already gone."""
    for p in paths:
        Path(p).unlink(missing_ok=True)
