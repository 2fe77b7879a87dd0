"""Tests for configuration loading and validation."""

import pytest

from gamenight.config_loader import (
    DEFAULT_CONFIG,
    ConfigError,
    load_and_validate_config,
    load_config,
    validate_config,
)


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_load_config(tmp_path):
    path = write(tmp_path, "db_path: data/nights.sqlite\ndefault_title: Board Games\n")
    assert load_config(path) == {"db_path": "data/nights.sqlite", "default_title": "Board Games"}


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "empty"),
        ("- a\n- b\n", "mapping"),
        ("palette: [unclosed\n", "Invalid YAML"),
    ],
)
def test_load_config_bad_content(tmp_path, text, message):
    with pytest.raises(ConfigError, match=message):
        load_config(write(tmp_path, text))


def test_defaults_fill_missing_keys():
    assert validate_config({}) == DEFAULT_CONFIG


def test_palette_normalized_to_upper_case():
    palette = ["#aabbcc", "#112233", "#445566", "#778899", "#ddeeff", "#000000"]
    validated = validate_config({"palette": palette})
    assert validated["palette"][0] == "#AABBCC"


@pytest.mark.parametrize(
    "palette, message",
    [
        ("#FFFFFF", "list"),
        (["#FFF", "#000000", "#111111", "#222222", "#333333", "#444444"], "#RRGGBB"),
        (["#AABBCC", "#aabbcc", "#111111", "#222222", "#333333", "#444444"], "unique"),
        (["#000000", "#111111"], "at least 6"),
    ],
)
def test_invalid_palette(palette, message):
    with pytest.raises(ConfigError, match=message):
        validate_config({"palette": palette})


def test_log_level():
    assert validate_config({"log_level": "debug"})["log_level"] == "DEBUG"
    with pytest.raises(ConfigError, match="log_level"):
        validate_config({"log_level": "LOUD"})


@pytest.mark.parametrize("key", ["db_path", "default_title"])
def test_blank_strings_rejected(key):
    with pytest.raises(ConfigError, match=key):
        validate_config({key: "  "})


def test_load_and_validate_config(tmp_path):
    path = write(tmp_path, "log_level: info\n")
    config = load_and_validate_config(path)
    assert config["log_level"] == "INFO"
    assert config["db_path"] == DEFAULT_CONFIG["db_path"]
