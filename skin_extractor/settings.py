"""
Where threshold windows come from: numeric fields, an interactive prompt, or a JSON file.
"""
import json
import logging
import math
import sys
from dataclasses import replace
from pathlib import Path
from typing import Mapping, Optional, TextIO, Union

from skin_extractor.errors import ConfigurationError
from skin_extractor.ycbcr_threshold import DEFAULT_THRESHOLDS, ThresholdWindow

logger = logging.getLogger(__name__)

FIELDS = {
    "cb_min": "Cb min Threshold value",
    "cb_max": "Cb max Threshold value",
    "cr_min": "Cr min Threshold value",
    "cr_max": "Cr max Threshold value",
}
CANCEL_WORDS = {"q", "quit", "cancel"}


def _to_number(key: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as err:
        raise ConfigurationError(f"Invalid numeric field {key}: {value!r}") from err
    if not math.isfinite(number):
        raise ConfigurationError(f"Invalid numeric field {key}: {value!r}")
    return number


def parse_thresholds(values: Mapping[str, Union[str, float, None]],
                     defaults: ThresholdWindow = DEFAULT_THRESHOLDS) -> ThresholdWindow:
    """
    Build a window from raw field values.
    :param values: Field name -> value. Missing or None fields keep their default.
    :param defaults: Window to start from.
    :return: The new window.
    :raises ConfigurationError: Unknown field, or a value that is not a finite number.
    """
    unknown = set(values) - set(FIELDS)
    if unknown:
        raise ConfigurationError(f"Unknown threshold field(s): {', '.join(sorted(unknown))}")

    changes = {key: _to_number(key, value) for key, value in values.items() if value is not None}
    thresholds = replace(defaults, **changes)
    if thresholds.is_degenerate:
        logger.warning("Threshold window %s is empty", thresholds)
    return thresholds


def prompt_thresholds(defaults: ThresholdWindow = DEFAULT_THRESHOLDS,
                      stdin: Optional[TextIO] = None,
                      stdout: Optional[TextIO] = None) -> ThresholdWindow:
    """
    Ask for the four bounds, once. An empty answer keeps the shown default.
    :param defaults: Values offered to the user.
    :param stdin: Where answers are read from, sys.stdin by default.
    :param stdout: Where questions are written to, sys.stdout by default.
    :return: The chosen window.
    :raises ConfigurationError: The user cancelled (EOF or q/quit/cancel) or typed a non-number.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    stdout.write("Skin Extractor Settings (empty keeps the default, q cancels)\n")
    answers = {}
    for key, label in FIELDS.items():
        stdout.write(f"{label} [{getattr(defaults, key):.1f}]: ")
        stdout.flush()
        line = stdin.readline()
        if not line:
            raise ConfigurationError("Plugin cancelled")
        answer = line.strip()
        if answer.lower() in CANCEL_WORDS:
            raise ConfigurationError("Plugin cancelled")
        answers[key] = answer or None

    return parse_thresholds(answers, defaults)


def load_thresholds(path: Union[str, Path],
                    defaults: ThresholdWindow = DEFAULT_THRESHOLDS) -> ThresholdWindow:
    """
    Read a window from a JSON object such as {"cb_min": 95, "cb_max": 140, ...}.
    :param path: The parameter file.
    :param defaults: Values for fields the file leaves out.
    :return: The window.
    :raises ConfigurationError: The file is missing, is not a JSON object, or holds bad values.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as err:
        raise ConfigurationError(f"Cannot read threshold file {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigurationError(f"Threshold file {path} must hold a JSON object")
    return parse_thresholds(data, defaults)


def dump_thresholds(thresholds: ThresholdWindow, path: Union[str, Path]) -> None:
    """Write a window as JSON, readable by load_thresholds()."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(thresholds.as_dict(), f, indent=2)
