"""
Pytest configuration and shared fixtures for ptimer-cli tests.
"""

import json
import os
import shutil
import sys
import tempfile

import pytest
import yaml
from click.testing import CliRunner

# Add src directory to path so we can import modules
src_path = os.path.join(os.path.dirname(__file__), "..", "src")
sys.path.insert(0, src_path)

from ptimer_cli.pipeline import create

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
SOUND_BYTES = b"ID3\x03\x00" + bytes(range(64))


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line("markers", "integration: tests that run a whole pipeline")
    config.addinivalue_line("markers", "cli: tests that go through the command line")


def write_document(directory, name, document):
    """Write a program description (YAML or JSON by extension) and return its path."""
    filepath = os.path.join(directory, name)
    with open(filepath, "w", encoding="utf-8") as f:
        if name.endswith(".json"):
            json.dump(document, f, indent=2)
        else:
            yaml.safe_dump(document, f, sort_keys=False)
    return filepath


@pytest.fixture
def cli_runner():
    """Provide a Click CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that gets cleaned up after test."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def source_dir(temp_dir):
    """Provide a directory holding program sources and their assets."""
    source_dir = os.path.join(temp_dir, "source")
    os.makedirs(os.path.join(source_dir, "sounds"), exist_ok=True)
    os.makedirs(os.path.join(source_dir, "icons"), exist_ok=True)
    with open(os.path.join(source_dir, "sounds", "bell.mp3"), "wb") as f:
        f.write(SOUND_BYTES)
    with open(os.path.join(source_dir, "icons", "coffee.png"), "wb") as f:
        f.write(PNG_BYTES)
    return source_dir


@pytest.fixture
def pomodoro_program():
    """Provide the three-step program with no branches and no assets."""
    return {
        "title": "Pomodoro",
        "steps": [
            {"id": "Prep", "title": "Prepare", "duration": 300},
            {"id": "Work", "duration": 1500},
            {"id": "Break", "duration": 300},
        ],
    }


@pytest.fixture
def media_program():
    """Provide a program that uses every field, branches and bundles assets."""
    return {
        "version": 1,
        "title": "Coffee Break",
        "description": "Brew, drink, repeat.",
        "lang": "en-US",
        "default_duration": 60,
        "steps": [
            {
                "id": "grind",
                "title": "Grind beans",
                "body": "Medium-fine.\nAbout 18 grams.",
                "duration": "1m30s",
                "assets": ["icons/coffee.png", "./sounds/bell.mp3"],
                "action": "alert",
            },
            {
                "id": "brew",
                "title": "Brew",
                "duration": 240,
                "assets": ["sounds/bell.mp3"],
                "action": "auto-advance",
            },
            {"id": "drink", "title": "Drink", "next": "grind"},
        ],
    }


@pytest.fixture
def pomodoro_source(source_dir, pomodoro_program):
    """Write the pomodoro program and return its path."""
    return write_document(source_dir, "pomodoro.yaml", pomodoro_program)


@pytest.fixture
def media_source(source_dir, media_program):
    """Write the media program and return its path."""
    return write_document(source_dir, "coffee.yaml", media_program)


@pytest.fixture
def pomodoro_container(temp_dir, pomodoro_source):
    """Compile the pomodoro program and return the container path."""
    output = os.path.join(temp_dir, "pomodoro.ptimer")
    create(pomodoro_source, output)
    return output


@pytest.fixture
def media_container(temp_dir, media_source):
    """Compile the media program and return the container path."""
    output = os.path.join(temp_dir, "coffee.ptimer")
    create(media_source, output)
    return output
