"""Tests for settings loading and logging setup."""

import logging

import pytest

from hostprobe.config import Settings, load_settings
from hostprobe.log import setup_logging


def test_defaults():
    """Test an empty environment yields the defaults."""
    assert load_settings({}) == Settings()
    assert Settings().port == 8080
    assert Settings().sample_interval == 1.0


def test_reads_environment():
    """Test HOSTPROBE_* variables override the defaults."""
    settings = load_settings(
        {
            "HOSTPROBE_HOST": "0.0.0.0",
            "HOSTPROBE_PORT": "9000",
            "HOSTPROBE_SAMPLE_INTERVAL": "0.5",
            "HOSTPROBE_LOG_LEVEL": "debug",
        }
    )
    assert settings == Settings(host="0.0.0.0", port=9000, sample_interval=0.5, log_level="DEBUG")


def test_blank_values_fall_back():
    """Test blank variables are treated as unset."""
    assert load_settings({"HOSTPROBE_PORT": " ", "HOSTPROBE_HOST": ""}) == Settings()


@pytest.mark.parametrize(
    "environ,name",
    [
        ({"HOSTPROBE_PORT": "http"}, "HOSTPROBE_PORT"),
        ({"HOSTPROBE_PORT": "70000"}, "HOSTPROBE_PORT"),
        ({"HOSTPROBE_SAMPLE_INTERVAL": "fast"}, "HOSTPROBE_SAMPLE_INTERVAL"),
        ({"HOSTPROBE_SAMPLE_INTERVAL": "0"}, "HOSTPROBE_SAMPLE_INTERVAL"),
    ],
)
def test_invalid_values(environ, name):
    """Test malformed values raise ValueError naming the variable."""
    with pytest.raises(ValueError, match=name):
        load_settings(environ)


def test_setup_logging_sets_level():
    """Test setup_logging accepts names and numbers."""
    root = logging.getLogger()
    previous = root.level
    try:
        setup_logging("warning")
        assert root.level == logging.WARNING
        setup_logging(logging.DEBUG)
        assert root.level == logging.DEBUG
        setup_logging("nonsense")
        assert root.level == logging.INFO
    finally:
        root.setLevel(previous)
