"""Command-line interface for dronesim.

    dronesim run --steps 400 --dt 0.05 --telemetry telemetry.csv --comms-log comms_log.csv
    dronesim serve --port 8000
"""

import argparse
import sys
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from dronesim.config import SimulationSettings
from dronesim.logging_config import configure_logging
from dronesim.scenarios.patrol import run_patrol


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with ``run`` and ``serve`` subcommands."""
    parser = argparse.ArgumentParser(
        prog="dronesim",
        description="dronesim - drone fleet physics over a lossy comms network",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the patrol scenario headless")
    run.add_argument("--steps", type=int, default=200, help="Number of steps (default: 200)")
    run.add_argument("--dt", type=float, default=0.05, help="Step size in s (default: 0.05)")
    run.add_argument("--seed", type=int, default=None, help="Network random seed")
    run.add_argument("--telemetry", type=Path, default=None, help="Telemetry CSV output path")
    run.add_argument("--comms-log", type=Path, default=None, help="Comms event CSV output path")
    run.add_argument(
        "--drop-probability",
        type=float,
        default=None,
        help="Override the per-message loss probability",
    )

    serve = subparsers.add_parser("serve", help="Start the HTTP/WebSocket server")
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    return parser


def _run(parser: argparse.ArgumentParser, parsed: argparse.Namespace) -> int:
    # Flags left unset fall back to DRONESIM_* environment values
    given = {
        "seed": parsed.seed,
        "telemetry_path": parsed.telemetry,
        "comms_log_path": parsed.comms_log,
        "drop_probability": parsed.drop_probability,
    }
    try:
        settings = SimulationSettings(**{k: v for k, v in given.items() if v is not None})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        parser.error(f"invalid settings: {problems}")

    sim = run_patrol(settings, steps=parsed.steps, dt=parsed.dt)
    print(sim.report_summary().format_summary())
    return 0


def _serve(parsed: argparse.Namespace) -> int:
    print(f"Starting dronesim server at http://{parsed.host}:{parsed.port}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "dronesim.server.app:app",
        host=parsed.host,
        port=parsed.port,
        reload=parsed.reload,
    )
    return 0


def main(args: list[str] | None = None) -> int:
    """Entry point.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success).
    """
    parser = build_parser()
    parsed = parser.parse_args(args)
    configure_logging()

    if parsed.command == "run":
        return _run(parser, parsed)
    return _serve(parsed)


if __name__ == "__main__":
    sys.exit(main())
