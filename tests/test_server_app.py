"""Tests for the FastAPI server application."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from dronesim.config import SimulationSettings
from dronesim.engine.simulator import CommandResult
from dronesim.model import Vector2
from dronesim.server import app as app_module
from dronesim.server.app import (
    EMPTY_FRAME,
    SimulationState,
    ThrustMode,
    _frame_to_dict,
    app,
    get_sim_state,
)


def make_state() -> SimulationState:
    return SimulationState(SimulationSettings(_env_file=None, seed=1, drop_probability=0.0))


@pytest.fixture
def sim_state() -> SimulationState:
    """Create a fresh simulation state for testing."""
    return make_state()


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client backed by a fresh global state; no background thread."""
    previous = app_module._sim_state
    app_module._sim_state = make_state()
    yield TestClient(app)
    app_module._sim_state = previous


class TestSimulationState:
    """Tests for SimulationState class."""

    def test_initial_state(self, sim_state: SimulationState) -> None:
        """Starts paused at t=0 with the patrol fleet."""
        assert sim_state.paused is True
        assert sim_state.speed == 1.0
        assert sim_state.simulator.time == 0.0
        assert len(sim_state.simulator.drones) == 3
        assert sim_state.latest_frame is None

    def test_speed_setting(self, sim_state: SimulationState) -> None:
        """Speed multiplier is clamped to 0.1-10."""
        sim_state.speed = 2.0
        assert sim_state.speed == 2.0

        sim_state.speed = 15.0
        assert sim_state.speed == 10.0

        sim_state.speed = 0.01
        assert sim_state.speed == 0.1

    def test_tick_advances_and_projects(self, sim_state: SimulationState) -> None:
        """tick() steps the simulator and refreshes the latest frame."""
        sim_state.tick(4)

        assert sim_state.simulator.step_count == 4
        frame = sim_state.latest_frame
        assert frame is not None
        assert frame.time == sim_state.simulator.time
        assert len(frame.drones) == 3

    def test_reset_restores_initial_state(self, sim_state: SimulationState) -> None:
        """reset() rebuilds the scenario at t=0."""
        sim_state.tick(10)
        sim_state.reset()

        assert sim_state.simulator.time == 0.0
        assert sim_state.latest_frame is None

    def test_command_thrust(self, sim_state: SimulationState) -> None:
        """Thrust commands are routed by mode."""
        assert sim_state.command_thrust(0, ThrustMode.CLEAR, Vector2(0.0, 0.0)) == CommandResult.OK
        assert sim_state.simulator.drones[0].thrust == Vector2(0.0, 0.0)

        sim_state.command_thrust(0, ThrustMode.DIRECTION, Vector2(1.0, 0.0))
        assert sim_state.simulator.drones[0].thrust == Vector2(15.0, 0.0)

        sim_state.command_thrust(0, ThrustMode.FORCE, Vector2(0.0, 3.0))
        assert sim_state.simulator.drones[0].thrust == Vector2(0.0, 3.0)

    def test_command_thrust_unknown_drone(self, sim_state: SimulationState) -> None:
        result = sim_state.command_thrust(9, ThrustMode.CLEAR, Vector2(0.0, 0.0))
        assert result == CommandResult.INVALID_REFERENCE

    def test_apply_thrust_returns_updated_drone(self, sim_state: SimulationState) -> None:
        response = sim_state.apply_thrust(0, ThrustMode.FORCE, Vector2(0.0, 3.0))

        assert response is not None
        assert (response.thrust_x, response.thrust_y) == (0.0, 3.0)
        assert sim_state.apply_thrust(9, ThrustMode.CLEAR, Vector2(0.0, 0.0)) is None

    def test_drone_states_wait_for_lock(self, sim_state: SimulationState) -> None:
        """Response snapshots block while another thread holds the state lock."""
        results: list = []
        reader = threading.Thread(target=lambda: results.append(sim_state.drone_states()))

        with sim_state._lock:
            reader.start()
            reader.join(timeout=0.1)
            assert reader.is_alive()
            assert results == []
        reader.join(timeout=2.0)

        assert not reader.is_alive()
        assert [d.id for d in results[0]] == [0, 1, 2]

    def test_drone_snapshot_fields_share_one_step(self, sim_state: SimulationState) -> None:
        """Position and velocity in a snapshot match its time while the loop runs."""
        dt = sim_state.dt
        sim_state.speed = 10.0
        sim_state.paused = False
        sim_state.start()
        snapshots = []
        try:
            deadline = time.monotonic() + 0.1
            while time.monotonic() < deadline:
                snapshots.append(sim_state.drone_state(1))
        finally:
            sim_state.stop()

        assert snapshots
        for snap in snapshots:
            # Runner accelerates at 6 m/s^2 along x and holds altitude
            n = round(snap.time / dt)
            assert snap.y == pytest.approx(50.0)
            assert snap.vx == pytest.approx(6.0 * n * dt)
            assert snap.x == pytest.approx(50.0 + 6.0 * dt * dt * n * (n + 1) / 2)

    def test_thread_safety(self, sim_state: SimulationState) -> None:
        """Concurrent ticks never lose a step."""
        threads = [threading.Thread(target=sim_state.tick, args=(25,)) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sim_state.simulator.step_count == 100

    def test_start_stop_simulation(self, sim_state: SimulationState) -> None:
        """The background loop steps while playing and stops cleanly."""
        sim_state.speed = 10.0
        sim_state.paused = False
        sim_state.start()
        try:
            time.sleep(0.2)
        finally:
            sim_state.stop()

        steps = sim_state.simulator.step_count
        assert steps > 0
        time.sleep(0.05)
        assert sim_state.simulator.step_count == steps

    def test_paused_loop_does_not_step(self, sim_state: SimulationState) -> None:
        """A paused loop idles; a second start() is a no-op."""
        sim_state.start()
        sim_state.start()
        try:
            time.sleep(0.1)
        finally:
            sim_state.stop()

        assert sim_state.simulator.step_count == 0


class TestFrameToDict:
    """Tests for frame serialization."""

    def test_converts_frame_correctly(self, sim_state: SimulationState) -> None:
        sim_state.tick()
        data = _frame_to_dict(sim_state.latest_frame)

        assert set(data) == set(EMPTY_FRAME)
        assert [d["id"] for d in data["drones"]] == [0, 1, 2]
        assert {"x", "y", "world_x", "world_y", "vx", "vy", "color"} <= set(data["drones"][0])


class TestRestEndpoints:
    """Tests for the REST API."""

    def test_health_check(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "healthy"}

    def test_get_world(self, client: TestClient) -> None:
        """World summary carries clock, bounds and fleet size."""
        data = client.get("/api/world").json()

        assert data["time"] == 0.0
        assert data["paused"] is True
        assert data["width"] == 100.0
        assert data["gravity"] == [0.0, -9.8]
        assert data["drone_count"] == 3
        assert data["next_report_time"] == 0.5

    def test_get_drones(self, client: TestClient) -> None:
        data = client.get("/api/drones").json()

        assert [d["node"] for d in data] == ["Drone0", "Drone1", "Drone2"]
        assert data[0]["x"] == 10.0
        assert data[0]["max_speed"] == 10.0
        assert {d["time"] for d in data} == {0.0}

    def test_get_drone_not_found(self, client: TestClient) -> None:
        response = client.get("/api/drones/42")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_set_thrust(self, client: TestClient) -> None:
        """Force thrust is clamped and echoed back."""
        response = client.post("/api/drones/0/thrust", json={"mode": "force", "x": 30.0, "y": 40.0})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["thrust_x"] == pytest.approx(9.0)
        assert data["thrust_y"] == pytest.approx(12.0)

    def test_set_thrust_unknown_drone(self, client: TestClient) -> None:
        response = client.post("/api/drones/7/thrust", json={"mode": "clear"})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_set_thrust_bad_mode(self, client: TestClient) -> None:
        response = client.post("/api/drones/0/thrust", json={"mode": "warp"})
        assert response.status_code == 422

    def test_step_then_summary(self, client: TestClient) -> None:
        """Manual steps deliver reports to HQ."""
        response = client.post("/api/world/step", json={"steps": 40})
        assert response.json()["success"] is True

        summary = client.get("/api/comms/summary").json()
        assert summary["final_time"] == pytest.approx(2.0)
        assert summary["delivered_count"] > 0
        assert summary["dropped_count"] == 0
        assert summary["nodes"][0]["name"] == "HQ"

    def test_step_validation(self, client: TestClient) -> None:
        response = client.post("/api/world/step", json={"steps": 0})
        assert response.status_code == 422

    def test_get_inbox(self, client: TestClient) -> None:
        client.post("/api/world/step", json={"steps": 40})

        data = client.get("/api/nodes/HQ/inbox").json()
        assert data["name"] == "HQ"
        assert data["messages"]
        assert data["messages"][0]["payload"].startswith("STATUS pos=(")

    def test_get_inbox_unknown_node(self, client: TestClient) -> None:
        response = client.get("/api/nodes/Nowhere/inbox")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_reset_world(self, client: TestClient) -> None:
        client.post("/api/world/step", json={"steps": 5})
        response = client.post("/api/world/reset")

        assert response.json()["success"] is True
        assert client.get("/api/world").json()["time"] == 0.0

    def test_pause_and_play(self, client: TestClient) -> None:
        client.post("/api/world/play")
        assert get_sim_state().paused is False

        client.post("/api/world/pause")
        assert get_sim_state().paused is True

    def test_set_speed_clamped(self, client: TestClient) -> None:
        response = client.post("/api/world/speed?speed=50")
        assert response.json()["message"] == "Speed set to 10.0"


class TestWebSocket:
    """Tests for /ws/frames."""

    def test_empty_frame_before_first_step(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/frames") as websocket:
            assert websocket.receive_json() == EMPTY_FRAME

    def test_streams_latest_frame(self, client: TestClient) -> None:
        get_sim_state().tick(3)

        with client.websocket_connect("/ws/frames") as websocket:
            data = websocket.receive_json()

        assert data["time"] == pytest.approx(0.15)
        assert len(data["drones"]) == 3
