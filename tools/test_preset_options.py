#!/usr/bin/env python3
"""Tests for build option loading and validation."""

import argparse
import json
import logging

import pytest

from preset_options import BuildOptions, load_options, merge_cli_args


def test_defaults():
    options = BuildOptions()
    assert options.preset_type == "multisampler"
    assert (options.sample_rate, options.channels) == (0, 0)
    options.validate()


def test_load_options(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({
        "preset_name": "Strings",
        "preset_type": "drum",
        "sample_rate": 22050,
        "engine": {"volume": 12000},
        "colour": "red",
    }))
    options = load_options(str(path))
    assert options.preset_name == "Strings"
    assert options.preset_type == "drum"
    assert options.sample_rate == 22050
    assert options.engine == {"volume": 12000}
    assert options.max_workers == 4


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_invalid_file_gives_defaults(tmp_path, content):
    path = tmp_path / "options.json"
    path.write_text(content)
    assert load_options(str(path)) == BuildOptions()


def test_missing_file_gives_defaults(tmp_path):
    assert load_options(str(tmp_path / "nope.json")) == BuildOptions()


@pytest.mark.parametrize(
    "kwargs",
    [{"preset_type": "synth"}, {"sample_rate": -1}, {"channels": 3}, {"max_workers": 0}],
)
def test_validate_rejects(kwargs):
    with pytest.raises(ValueError):
        BuildOptions(**kwargs).validate()


def test_unusual_sample_rate_is_allowed(caplog):
    with caplog.at_level(logging.WARNING, logger="preset_options"):
        BuildOptions(sample_rate=48000).validate()
    assert [r.name for r in caplog.records] == ["preset_options"]


def test_unknown_keys_are_logged(tmp_path, caplog):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"colour": "red"}))
    with caplog.at_level(logging.WARNING, logger="preset_options"):
        assert load_options(str(path)) == BuildOptions()
    assert any("colour" in r.getMessage() and r.name == "preset_options" for r in caplog.records)


def test_merge_cli_args():
    options = BuildOptions(preset_name="From file", sample_rate=22050)
    args = argparse.Namespace(
        preset_name=None,
        preset_type="drum",
        sample_rate=None,
        channels=1,
        max_workers=None,
        embed_metadata=True,
    )
    merged = merge_cli_args(options, args)
    assert merged.preset_name == "From file"
    assert merged.preset_type == "drum"
    assert merged.sample_rate == 22050
    assert merged.channels == 1
    assert merged.max_workers == 4
    assert merged.embed_metadata
