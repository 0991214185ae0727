"""Pytest configuration for e2e tests.

These tests drive whole runs through the public entry points and check the
artifacts they leave behind.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dronesim.config import SimulationSettings


@pytest.fixture
def output_settings(tmp_path: Path) -> SimulationSettings:
    """Seeded default settings with both CSV logs under tmp_path."""
    return SimulationSettings(
        _env_file=None,
        seed=2024,
        telemetry_path=tmp_path / "telemetry.csv",
        comms_log_path=tmp_path / "comms_log.csv",
    )
