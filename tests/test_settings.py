import io
import json

import pytest

from skin_extractor.errors import ConfigurationError
from skin_extractor.settings import dump_thresholds, load_thresholds, parse_thresholds, prompt_thresholds
from skin_extractor.ycbcr_threshold import DEFAULT_THRESHOLDS, ThresholdWindow


def test_parse_keeps_defaults_for_missing_fields():
    thresholds = parse_thresholds({"cb_min": "90", "cr_max": 170.5, "cb_max": None})
    assert thresholds == ThresholdWindow(cb_min=90, cb_max=140, cr_min=140, cr_max=170.5)


@pytest.mark.parametrize("value", ["abc", "", "nan", "inf", [1]])
def test_parse_rejects_non_numbers(value):
    with pytest.raises(ConfigurationError, match="Invalid numeric field"):
        parse_thresholds({"cr_min": value})


def test_parse_rejects_unknown_fields():
    with pytest.raises(ConfigurationError, match="y_min"):
        parse_thresholds({"y_min": 3})


def test_parse_accepts_degenerate_window(caplog):
    thresholds = parse_thresholds({"cb_min": 150})
    assert thresholds.is_degenerate
    assert "empty" in caplog.text


def test_prompt_reads_four_fields():
    stdin = io.StringIO("100\n\n150\n160\n")
    stdout = io.StringIO()
    thresholds = prompt_thresholds(stdin=stdin, stdout=stdout)

    assert thresholds == ThresholdWindow(cb_min=100, cb_max=140, cr_min=150, cr_max=160)
    assert "Cb min Threshold value [95.0]" in stdout.getvalue()
    assert "Cr max Threshold value [165.0]" in stdout.getvalue()


def test_prompt_shows_given_defaults():
    stdout = io.StringIO()
    defaults = ThresholdWindow(cb_min=80)
    assert prompt_thresholds(defaults, io.StringIO("\n\n\n\n"), stdout) == defaults
    assert "[80.0]" in stdout.getvalue()


@pytest.mark.parametrize("answers", ["100\nq\n", "cancel\n", "100\n120\n"])
def test_prompt_cancel(answers):
    with pytest.raises(ConfigurationError, match="Plugin cancelled"):
        prompt_thresholds(stdin=io.StringIO(answers), stdout=io.StringIO())


def test_prompt_invalid_number():
    with pytest.raises(ConfigurationError, match="Invalid numeric field"):
        prompt_thresholds(stdin=io.StringIO("100\nlots\n150\n160\n"), stdout=io.StringIO())


def test_json_round_trip(tmp_path):
    path = tmp_path / "params.json"
    window = ThresholdWindow(cb_min=77, cb_max=127, cr_min=133, cr_max=173)
    dump_thresholds(window, path)
    assert json.loads(path.read_text(encoding="utf-8"))["cr_max"] == 173
    assert load_thresholds(path) == window


def test_json_partial_file(tmp_path):
    path = tmp_path / "params.json"
    path.write_text('{"cb_min": 90}', encoding="utf-8")
    assert load_thresholds(path) == ThresholdWindow(cb_min=90)


@pytest.mark.parametrize("content", ["{not json", "[95, 140, 140, 165]", '{"cb_min": "x"}'])
def test_json_bad_files(tmp_path, content):
    path = tmp_path / "params.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_thresholds(path)


def test_json_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_thresholds(tmp_path / "missing.json")


def test_default_is_untouched_by_parsing():
    parse_thresholds({"cb_min": 1})
    assert DEFAULT_THRESHOLDS.cb_min == 95
