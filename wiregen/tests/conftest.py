"""Unit tests configuration file."""

import os

import pytest

from wiregen.generator import load_model

GEOMETRY_SCHEMA = os.path.join(os.path.dirname(os.path.realpath(__file__)), "generator", "geometry.wg")


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def geometry():
    """Type model of the geometry.wg sample schema."""
    return load_model([GEOMETRY_SCHEMA])
