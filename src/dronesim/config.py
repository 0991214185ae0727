"""Configuration loading for simulation runs.

Pydantic-based settings read from environment variables (``DRONESIM_`` prefix)
and an optional .env file. The cipher key is a SecretStr so it never shows up
in logs or reprs.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dronesim.engine.cipher import DEFAULT_KEY
from dronesim.model.vector import Vector2
from dronesim.model.world import World

if TYPE_CHECKING:
    from dronesim.engine.network import EventSink, Network

logger = logging.getLogger(__name__)


class SimulationSettings(BaseSettings):
    """Settings for the world, the comms network and the report cadence.

    Environment Variables:
        DRONESIM_GRAVITY_X / DRONESIM_GRAVITY_Y: Gravity vector (default 0, -9.8)
        DRONESIM_WORLD_WIDTH / DRONESIM_WORLD_HEIGHT: World bounds in meters
        DRONESIM_BASE_LATENCY: Mean one-way latency in seconds (default 0.5)
        DRONESIM_JITTER: Uniform jitter amplitude in seconds (default 0.2)
        DRONESIM_DROP_PROBABILITY: Per-message loss probability (default 0.15)
        DRONESIM_REPORT_INTERVAL: Seconds between status reports (default 0.5)
        DRONESIM_CIPHER_KEY: Shared XOR key for the comms link
        DRONESIM_SEED: Seed for the network's random source (unset = entropy)
        DRONESIM_HUB_NAME: Name of the receiving hub node (default HQ)
        DRONESIM_TELEMETRY_PATH / DRONESIM_COMMS_LOG_PATH: CSV output paths

    Example:
        >>> settings = SimulationSettings()  # Loads from environment
        >>> settings = SimulationSettings(drop_probability=0.0, seed=7)
    """

    model_config = SettingsConfigDict(
        env_prefix="DRONESIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # World
    gravity_x: float = Field(default=0.0, description="Gravity x component (m/s^2)")
    gravity_y: float = Field(default=-9.8, description="Gravity y component (m/s^2)")
    world_width: float = Field(default=100.0, gt=0, description="World width (m)")
    world_height: float = Field(default=100.0, gt=0, description="World height (m)")

    # Comms network
    base_latency: float = Field(default=0.5, ge=0.0, description="Base latency (s)")
    jitter: float = Field(default=0.2, ge=0.0, description="Jitter amplitude (s)")
    drop_probability: float = Field(
        default=0.15,
        ge=0.0,
        le=1.0,
        description="Probability that a message is lost",
    )
    cipher_key: SecretStr = Field(
        default=SecretStr(DEFAULT_KEY),
        description="Shared XOR key for message payloads",
    )
    seed: int | None = Field(default=None, description="Random seed for the network")

    # Reporting
    report_interval: float = Field(default=0.5, gt=0, description="Status report period (s)")
    hub_name: str = Field(default="HQ", min_length=1, description="Hub node name")

    # Output
    telemetry_path: Path | None = Field(default=None, description="Telemetry CSV path")
    comms_log_path: Path | None = Field(default=None, description="Comms event CSV path")

    @model_validator(mode="after")
    def check_cipher_key(self) -> SimulationSettings:
        """Reject an empty cipher key; XOR needs at least one key byte."""
        if not self.cipher_key.get_secret_value():
            raise ValueError("cipher_key must not be empty")
        return self

    def build_world(self) -> World:
        """Create the World described by these settings."""
        return World(
            gravity=Vector2(self.gravity_x, self.gravity_y),
            width=self.world_width,
            height=self.world_height,
        )

    def build_network(self, event_sink: EventSink | None = None) -> Network:
        """Create a Network with these latency, jitter, drop and key settings."""
        from dronesim.engine.network import Network

        return Network(
            base_latency=self.base_latency,
            jitter=self.jitter,
            drop_probability=self.drop_probability,
            key=self.cipher_key.get_secret_value(),
            seed=self.seed,
            event_sink=event_sink,
        )

    def __repr__(self) -> str:
        """Safe representation that never exposes the cipher key."""
        return (
            f"SimulationSettings("
            f"world={self.world_width}x{self.world_height}, "
            f"gravity=({self.gravity_x}, {self.gravity_y}), "
            f"latency={self.base_latency}s+/-{self.jitter}s, "
            f"drop={self.drop_probability}, "
            f"report_interval={self.report_interval}s, "
            f"seed={self.seed}, "
            f"cipher_key=*****"
            f")"
        )


@lru_cache
def get_settings() -> SimulationSettings:
    """Get cached settings singleton.

    To reload from the environment, call get_settings.cache_clear() first.
    """
    settings = SimulationSettings()
    logger.info("Loaded simulation settings: %r", settings)
    return settings
