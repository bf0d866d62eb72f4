"""Pytest configuration and fixtures for lebar tests."""

import json
import sys
from pathlib import Path
from typing import Any, Dict
from unittest.mock import Mock

import pytest
import yaml

# Make the lebar package importable without installing it
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from lebar.config import Config, parse_config  # noqa: E402
from lebar.runner import ProcessRunner  # noqa: E402


@pytest.fixture
def config_data() -> Dict[str, Any]:
    """Configuration document with two shell blocks and one click handler."""
    return {
        "separator": " | ",
        "symbol_lists": [
            {"name": "battery", "symbols": ["empty", "low", "half", "high", "full"]},
            {"name": "hot", "symbols": ["warm", "hot", "melting"]},
        ],
        "blocks": [
            {
                "name": "cpu",
                "interval": 1,
                "interpreter": "sh -c",
                "script": "echo 42%",
                "output": {"full_text": "CPU {{ Text }}"},
            },
            {
                "name": "sound",
                "interval": 5,
                "command": "echo 75",
                "output": {
                    "full_text": "{{ Symbol(Text, 'battery') }} {{ Text }}%",
                    "color": "#a6e3a1",
                },
                "mouse_events": {
                    "Left": {"command": "amixer set Master toggle"},
                    "ScrollUp": {"interpreter": "sh -c", "script": "amixer set Master 2%+"},
                },
            },
        ],
    }


@pytest.fixture
def sample_config(config_data) -> Config:
    """Validated sample configuration."""
    return parse_config(config_data)


@pytest.fixture
def config_file(tmp_path, config_data) -> Path:
    """Sample configuration written to a YAML file."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config_data, allow_unicode=True), encoding="utf-8")
    return path


@pytest.fixture
def mock_runner() -> Mock:
    """Process runner that never spawns anything."""
    runner = Mock(spec=ProcessRunner)
    runner.run.return_value = ""
    return runner



def click_record(name: str, button: int = 1, **extra) -> str:
    """Serialize a click event the way i3bar sends it."""
    data = {
        "name": name,
        "instance": extra.pop("instance", None),
        "button": button,
        "x": extra.pop("x", 1800),
        "y": extra.pop("y", 10),
        "relative_x": 12,
        "relative_y": 8,
        "width": 60,
        "height": 22,
        "scale": 1,
        "modifiers": [],
    }
    data.update(extra)
    return json.dumps(data)


@pytest.fixture
def make_click_record():
    """Factory for i3bar click event lines."""
    return click_record
