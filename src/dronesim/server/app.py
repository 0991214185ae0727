"""FastAPI server with REST API and WebSocket frame streaming.

Provides:
- WebSocket /ws/frames: Stream projected Frames at ~30 FPS
- REST API for world state, drones, thrust commands and comms statistics
- Play/pause/step/reset control of the background simulation thread
"""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import asdict
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field

from dronesim.config import SimulationSettings, get_settings
from dronesim.engine.network import NetworkSummary, NodeInbox
from dronesim.engine.simulator import CommandResult, Simulator, node_name_for
from dronesim.model.vector import Vector2
from dronesim.projection.projector import Frame, project
from dronesim.scenarios.patrol import create_simulator

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from dronesim.model.drone import Drone

logger = logging.getLogger(__name__)

DEFAULT_DT = 0.05  # seconds of simulation per background tick


class ThrustMode(StrEnum):
    """How a thrust command interprets its vector."""

    DIRECTION = "direction"
    FORCE = "force"
    CLEAR = "clear"


class SimulationState:
    """Thread-safe simulation state manager.

    Owns the Simulator and serializes every access to it behind one lock,
    so the background stepping thread and the request handlers never see a
    half-finished step.
    """

    def __init__(
        self,
        settings: SimulationSettings | None = None,
        dt: float = DEFAULT_DT,
    ) -> None:
        """Initialize simulation state with the patrol scenario, paused."""
        self._settings = settings if settings is not None else get_settings()
        self._sim = create_simulator(self._settings)
        self._dt = dt
        self._running = False
        self._paused = True  # Start paused
        self._speed = 1.0
        self._lock = threading.Lock()
        self._latest_frame: Frame | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def simulator(self) -> Simulator:
        """Current simulator (thread-safe reference)."""
        with self._lock:
            return self._sim

    @property
    def dt(self) -> float:
        return self._dt

    @property
    def paused(self) -> bool:
        """Check if simulation is paused."""
        with self._lock:
            return self._paused

    @paused.setter
    def paused(self, value: bool) -> None:
        with self._lock:
            self._paused = value

    @property
    def speed(self) -> float:
        """Simulation speed multiplier."""
        with self._lock:
            return self._speed

    @speed.setter
    def speed(self, value: float) -> None:
        """Set simulation speed (clamped to 0.1-10.0)."""
        with self._lock:
            self._speed = max(0.1, min(10.0, value))

    @property
    def latest_frame(self) -> Frame | None:
        """Most recently projected frame."""
        with self._lock:
            return self._latest_frame

    def tick(self, steps: int = 1) -> float:
        """Advance the simulation by ``steps`` steps of ``dt`` (thread-safe).

        Returns:
            Simulation time after the last step.
        """
        with self._lock:
            for _ in range(steps):
                self._sim.step(self._dt)
            self._latest_frame = project(self._sim)
            return self._sim.time

    def reset(self) -> None:
        """Rebuild the scenario at t=0."""
        with self._lock:
            self._sim = create_simulator(self._settings)
            self._latest_frame = None

    def command_thrust(self, drone_id: int, mode: ThrustMode, vector: Vector2) -> CommandResult:
        """Apply a thrust command to one drone (thread-safe)."""
        with self._lock:
            return self._command_thrust(drone_id, mode, vector)

    def apply_thrust(
        self, drone_id: int, mode: ThrustMode, vector: Vector2
    ) -> DroneResponse | None:
        """Apply a thrust command and report the drone as it stands afterwards.

        Returns:
            The drone's state, or None if ``drone_id`` is unknown.
        """
        with self._lock:
            if self._command_thrust(drone_id, mode, vector) == CommandResult.INVALID_REFERENCE:
                return None
            return _drone_response(self._sim, self._sim.drones[drone_id])

    def _command_thrust(self, drone_id: int, mode: ThrustMode, vector: Vector2) -> CommandResult:
        if mode == ThrustMode.DIRECTION:
            return self._sim.set_drone_thrust_direction(drone_id, vector)
        if mode == ThrustMode.FORCE:
            return self._sim.set_drone_thrust_force(drone_id, vector)
        return self._sim.clear_drone_thrust(drone_id)

    # Response snapshots: each is read in full under the lock, so every field
    # comes from the same step

    def world_state(self) -> WorldStateResponse:
        """World summary (thread-safe)."""
        with self._lock:
            sim = self._sim
            return WorldStateResponse(
                time=sim.time,
                step_count=sim.step_count,
                dt=self._dt,
                speed=self._speed,
                paused=self._paused,
                width=sim.world.width,
                height=sim.world.height,
                gravity=sim.world.gravity.as_tuple(),
                drone_count=len(sim.drones),
                in_flight=len(sim.network.in_transit),
                next_report_time=sim.next_report_time,
            )

    def drone_states(self) -> list[DroneResponse]:
        """Every drone's state (thread-safe)."""
        with self._lock:
            return [_drone_response(self._sim, drone) for drone in self._sim.drones]

    def drone_state(self, drone_id: int) -> DroneResponse | None:
        """One drone's state, or None if ``drone_id`` is unknown (thread-safe)."""
        with self._lock:
            drone = self._sim.get_drone(drone_id)
            return None if drone is None else _drone_response(self._sim, drone)

    def summary(self) -> NetworkSummary:
        """Comms summary at the current simulation time (thread-safe)."""
        with self._lock:
            return self._sim.report_summary()

    def start(self) -> None:
        """Start the background simulation thread."""
        if self._running:
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._simulation_loop, daemon=True)
        self._thread.start()
        logger.info("Simulation thread started")

    def stop(self) -> None:
        """Stop the background simulation thread."""
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
        logger.info("Simulation thread stopped")

    def _simulation_loop(self) -> None:
        """Step in real time: one dt of simulation per dt of wall clock, times speed."""
        while self._running and not self._stop_event.is_set():
            if not self.paused:
                self.tick()
            self._stop_event.wait(timeout=self._dt / self.speed)


# Global simulation state
_sim_state: SimulationState | None = None


def get_sim_state() -> SimulationState:
    """Get or create the global simulation state."""
    global _sim_state
    if _sim_state is None:
        _sim_state = SimulationState()
    return _sim_state


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager: start/stop simulation thread."""
    sim = get_sim_state()
    sim.start()
    yield
    sim.stop()


app = FastAPI(
    title="dronesim",
    description="Drone fleet physics with a lossy, delayed comms network",
    version="0.1.0",
    lifespan=lifespan,
)


# Pydantic models for REST requests and responses


class DroneResponse(BaseModel):
    """Response model for drone state."""

    id: int = Field(description="Drone ID (creation index)")
    node: str = Field(description="Network node name")
    time: float = Field(description="Simulation time of this snapshot (s)")
    x: float = Field(description="X position (m)")
    y: float = Field(description="Y position (m)")
    vx: float = Field(description="X velocity (m/s)")
    vy: float = Field(description="Y velocity (m/s)")
    thrust_x: float = Field(description="X thrust (N)")
    thrust_y: float = Field(description="Y thrust (N)")
    mass: float = Field(description="Mass (kg)")
    max_thrust: float = Field(description="Thrust limit (N)")
    max_speed: float = Field(description="Speed limit (m/s), 0 = none")


class WorldStateResponse(BaseModel):
    """Response model for the world summary."""

    time: float = Field(description="Simulation time (s)")
    step_count: int = Field(description="Steps taken")
    dt: float = Field(description="Step size (s)")
    speed: float = Field(description="Speed multiplier")
    paused: bool = Field(description="Whether the background loop is paused")
    width: float = Field(description="World width (m)")
    height: float = Field(description="World height (m)")
    gravity: tuple[float, float] = Field(description="Gravity vector (m/s^2)")
    drone_count: int = Field(description="Number of drones")
    in_flight: int = Field(description="Messages in flight")
    next_report_time: float = Field(description="Time of next status batch (s)")


class ThrustRequest(BaseModel):
    """Request model for a thrust command."""

    mode: ThrustMode = Field(description="direction, force or clear")
    x: float = Field(default=0.0, description="X component")
    y: float = Field(default=0.0, description="Y component")


class StepRequest(BaseModel):
    """Request model for manual stepping."""

    steps: int = Field(default=1, ge=1, le=10000, description="Steps of dt to run")


class ControlCommandResponse(BaseModel):
    """Response model for control commands."""

    success: bool = Field(description="Whether command succeeded")
    message: str = Field(description="Status message")


def _drone_response(sim: Simulator, drone: Drone) -> DroneResponse:
    # Caller holds the SimulationState lock
    return DroneResponse(
        id=drone.id,
        node=node_name_for(drone.id),
        time=sim.time,
        x=drone.position.x,
        y=drone.position.y,
        vx=drone.velocity.x,
        vy=drone.velocity.y,
        thrust_x=drone.thrust.x,
        thrust_y=drone.thrust.y,
        mass=drone.params.mass,
        max_thrust=drone.params.max_thrust,
        max_speed=drone.params.max_speed,
    )


# REST endpoints


@app.get("/api/world", response_model=WorldStateResponse, tags=["world"])
async def get_world() -> WorldStateResponse:
    """Get current world state summary."""
    return get_sim_state().world_state()


def _drone_not_found(drone_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Drone {drone_id} not found",
    )


@app.get("/api/drones", response_model=list[DroneResponse], tags=["drones"])
async def get_drones() -> list[DroneResponse]:
    """Get every drone's state."""
    return get_sim_state().drone_states()


@app.get("/api/drones/{drone_id}", response_model=DroneResponse, tags=["drones"])
async def get_drone(drone_id: int) -> DroneResponse:
    """Get a specific drone by id."""
    response = get_sim_state().drone_state(drone_id)
    if response is None:
        raise _drone_not_found(drone_id)
    return response


@app.post("/api/drones/{drone_id}/thrust", response_model=DroneResponse, tags=["drones"])
async def set_thrust(drone_id: int, request: ThrustRequest) -> DroneResponse:
    """Set a drone's thrust by direction or force, or clear it."""
    response = get_sim_state().apply_thrust(
        drone_id, request.mode, Vector2(request.x, request.y)
    )
    if response is None:
        raise _drone_not_found(drone_id)
    logger.info("Thrust %s (%.2f, %.2f) on drone %d", request.mode, request.x, request.y, drone_id)
    return response


@app.get("/api/comms/summary", response_model=NetworkSummary, tags=["comms"])
async def get_comms_summary() -> NetworkSummary:
    """Delivered/dropped counters, average latency and every inbox."""
    return get_sim_state().summary()


@app.get("/api/nodes/{name}/inbox", response_model=NodeInbox, tags=["comms"])
async def get_inbox(name: str) -> NodeInbox:
    """Everything one node has received so far."""
    for node in get_sim_state().summary().nodes:
        if node.name == name:
            return node
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Node '{name}' not found",
    )


@app.post("/api/world/reset", response_model=ControlCommandResponse, tags=["world"])
async def reset_world() -> ControlCommandResponse:
    """Reset the scenario to t=0."""
    get_sim_state().reset()
    logger.info("World reset to initial state")
    return ControlCommandResponse(success=True, message="World reset to initial state")


@app.post("/api/world/pause", response_model=ControlCommandResponse, tags=["world"])
async def pause_simulation() -> ControlCommandResponse:
    """Pause the background loop."""
    get_sim_state().paused = True
    return ControlCommandResponse(success=True, message="Simulation paused")


@app.post("/api/world/play", response_model=ControlCommandResponse, tags=["world"])
async def play_simulation() -> ControlCommandResponse:
    """Resume the background loop."""
    get_sim_state().paused = False
    return ControlCommandResponse(success=True, message="Simulation playing")


@app.post("/api/world/speed", response_model=ControlCommandResponse, tags=["world"])
async def set_speed(speed: float = 1.0) -> ControlCommandResponse:
    """Set the speed multiplier (0.1-10.0)."""
    state = get_sim_state()
    state.speed = speed
    return ControlCommandResponse(success=True, message=f"Speed set to {state.speed}")


@app.post("/api/world/step", response_model=ControlCommandResponse, tags=["world"])
async def step_world(request: StepRequest) -> ControlCommandResponse:
    """Advance the simulation manually, whether paused or not."""
    now = get_sim_state().tick(request.steps)
    return ControlCommandResponse(
        success=True,
        message=f"Stepped {request.steps}, t={now:.3f}",
    )


# WebSocket frame streaming


def _frame_to_dict(frame: Frame) -> dict[str, Any]:
    """Convert a Frame dataclass to a JSON-serializable dict."""
    return asdict(frame)


EMPTY_FRAME: dict[str, Any] = {
    "time": -1.0,
    "drones": [],
    "in_flight": 0,
    "delivered": 0,
    "dropped": 0,
}


@app.websocket("/ws/frames")
async def websocket_frames(websocket: WebSocket) -> None:
    """Stream the latest Frame at ~30 FPS.

    Sends an empty frame (time -1) until the first step has been projected.
    """
    await websocket.accept()
    state = get_sim_state()
    logger.info("Frame client connected")

    try:
        interval = 1.0 / 30.0
        loop = asyncio.get_running_loop()
        while True:
            start = loop.time()
            frame = state.latest_frame
            await websocket.send_json(_frame_to_dict(frame) if frame is not None else EMPTY_FRAME)
            elapsed = loop.time() - start
            await asyncio.sleep(max(0.0, interval - elapsed))
    except WebSocketDisconnect:
        logger.info("Frame client disconnected")


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
