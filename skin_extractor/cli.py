"""
Command line entry point: skin-extractor INPUT [options]
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from skin_extractor.errors import PreconditionError, SkinExtractorError
from skin_extractor.extract import run_extraction
from skin_extractor.settings import dump_thresholds, load_thresholds, parse_thresholds, prompt_thresholds
from skin_extractor.stack import check_writable, load_stack, remove_files, save_stack
from skin_extractor.ycbcr_threshold import DEFAULT_THRESHOLDS, ThresholdWindow

logger = logging.getLogger("skin_extractor")

ABOUT = (
    "Skin extractor using an YCbCr thresholding.\n"
    "Pixels whose chroma falls inside the (Cb, Cr) window are kept, the rest is painted white,\n"
    "and a CbCr occurrence histogram is written for every frame.\n\n"
    "After the ImageJ Skin_Extractor plugin by Alain Lebret,\n"
    "LISIF Laboratory, PARC Group, Pierre and Marie Curie University - 2003"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skin-extractor",
        description="Extract skin from a (multi-frame) image by thresholding Cb and Cr.",
    )
    parser.add_argument("input", nargs="?", type=Path, help="Image to process, e.g. a multi-page TIFF.")
    parser.add_argument("-o", "--output", type=Path, help="Masked image (default: <input>_skin.tif).")
    parser.add_argument("--histogram", type=Path, help="CbCr histogram stack (default: <input>_cbcr.tif).")

    # Taken as strings so that bad numbers are reported like any other configuration error
    parser.add_argument("--cb-min", help=f"Lower Cb bound (default {DEFAULT_THRESHOLDS.cb_min:g}).")
    parser.add_argument("--cb-max", help=f"Upper Cb bound (default {DEFAULT_THRESHOLDS.cb_max:g}).")
    parser.add_argument("--cr-min", help=f"Lower Cr bound (default {DEFAULT_THRESHOLDS.cr_min:g}).")
    parser.add_argument("--cr-max", help=f"Upper Cr bound (default {DEFAULT_THRESHOLDS.cr_max:g}).")
    parser.add_argument("--params", type=Path, help="JSON file with cb_min, cb_max, cr_min, cr_max.")
    parser.add_argument("--save-params", type=Path, help="Write the thresholds used to this JSON file.")
    parser.add_argument("-i", "--interactive", action="store_true", help="Ask for the thresholds.")

    parser.add_argument("--preview", type=Path, help="Also save a figure of every frame.")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar over frames.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    parser.add_argument("--about", action="store_true", help="Print what this tool does and exit.")
    return parser


def default_output(path: Path, tag: str) -> Path:
    """<stem>_<tag>.tif next to the input, so every frame fits in one file."""
    return path.with_name(f"{path.stem}_{tag}.tif")


def resolve_thresholds(args: argparse.Namespace) -> ThresholdWindow:
    """
    Defaults, then the parameter file, then single flags, then the prompt.
    :param args: Parsed arguments.
    :return: The window for this run.
    """
    thresholds = DEFAULT_THRESHOLDS
    if args.params is not None:
        thresholds = load_thresholds(args.params, thresholds)
    thresholds = parse_thresholds(
        {"cb_min": args.cb_min, "cb_max": args.cb_max, "cr_min": args.cr_min, "cr_max": args.cr_max},
        thresholds,
    )
    if args.interactive:
        thresholds = prompt_thresholds(thresholds)
    return thresholds


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.about:
        print(ABOUT)
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        if args.input is None:
            raise PreconditionError("No image opened")
        stack = load_stack(args.input)
        thresholds = resolve_thresholds(args)
        logger.info("Thresholds: Cb in (%g, %g), Cr in (%g, %g)",
                    thresholds.cb_min, thresholds.cb_max, thresholds.cr_min, thresholds.cr_max)

        masked_path = check_writable(args.output or default_output(args.input, "skin"))
        histogram_path = check_writable(args.histogram or default_output(args.input, "cbcr"))
        for extra in (args.preview, args.save_params):
            if extra is not None and not extra.parent.is_dir():
                raise OSError(f"Could not write {extra}: directory {extra.parent} does not exist")

        original = stack.to_arrays() if args.preview is not None else None
        result = run_extraction(stack, thresholds, show_progress=args.progress)
    except (SkinExtractorError, OSError) as err:
        logger.error("%s", err)
        return 1

    # Either every output is written or none is left behind
    written = []
    try:
        written += save_stack(result.masked, masked_path)
        written += save_stack(result.histograms, histogram_path, keep_alpha=False)
        if args.preview is not None:
            # Imported here, matplotlib is slow to load and only needed for previews
            from skin_extractor.preview import save_preview
            written.append(save_preview(original, result, args.preview, thresholds))
        if args.save_params is not None:
            dump_thresholds(thresholds, args.save_params)
            written.append(args.save_params)
    except (OSError, ValueError) as err:
        remove_files(written)
        logger.error("%s", err)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
