"""CSV recorders for the comms event log and the drone telemetry log.

Both writers are callables, so an instance can be passed straight in as the
network's ``event_sink`` or the simulator's ``telemetry_sink``:

    with CommsLogWriter("comms_log.csv") as comms, TelemetryWriter("telemetry.csv") as tel:
        network = Network(event_sink=comms)
        sim = Simulator(network=network, telemetry_sink=tel)
        sim.run(steps=200, dt=0.05)
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from types import TracebackType
from typing import IO, ClassVar, Self

from dronesim.engine.network import CommsEvent
from dronesim.engine.simulator import TelemetryRecord

logger = logging.getLogger(__name__)


class _CsvWriter:
    """Shared file handling: open on construction, header first, flush on close."""

    HEADER: ClassVar[tuple[str, ...]] = ()

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file: IO[str] = self.path.open("w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file, lineterminator="\n")
        self._file.write(",".join(self.HEADER) + "\n")
        self.rows_written = 0
        logger.debug("Opened %s at %s", type(self).__name__, self.path)

    def _write_row(self, row: list[object]) -> None:
        self._writer.writerow(row)
        self.rows_written += 1

    def _write_line(self, line: str) -> None:
        self._file.write(line + "\n")
        self.rows_written += 1

    @property
    def closed(self) -> bool:
        return self._file.closed

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.debug("Closed %s (%d rows)", self.path, self.rows_written)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _quote(field: str) -> str:
    return '"' + field.replace('"', '""') + '"'


def _quote_if_needed(field: str) -> str:
    if any(ch in field for ch in ',"\r\n'):
        return _quote(field)
    return field


class CommsLogWriter(_CsvWriter):
    """Writes one row per CommsEvent.

    Columns: event,time,id,from,to,latency,dropped,payload. ``dropped`` is 1
    or 0 and ``payload`` is always quoted. Node names are quoted only when
    they contain a comma, a quote or a line break.
    """

    HEADER: ClassVar[tuple[str, ...]] = (
        "event",
        "time",
        "id",
        "from",
        "to",
        "latency",
        "dropped",
        "payload",
    )

    def __call__(self, event: CommsEvent) -> None:
        # Payload always quoted, node names only when they need it (RFC 4180)
        payload = _quote(event.payload)
        self._write_line(
            ",".join(
                [
                    str(event.event),
                    repr(float(event.time)),
                    str(event.message_id),
                    _quote_if_needed(event.sender),
                    _quote_if_needed(event.recipient),
                    repr(float(event.latency)),
                    "1" if event.dropped else "0",
                    payload,
                ]
            )
        )


class TelemetryWriter(_CsvWriter):
    """Writes one row per drone per step: time,droneId,x,y,vx,vy."""

    HEADER: ClassVar[tuple[str, ...]] = ("time", "droneId", "x", "y", "vx", "vy")

    def __call__(self, record: TelemetryRecord) -> None:
        self._write_row(
            [record.time, record.drone_id, record.x, record.y, record.vx, record.vy]
        )


def read_telemetry(path: str | Path) -> list[TelemetryRecord]:
    """Load a telemetry CSV written by TelemetryWriter."""
    records = []
    with Path(path).open(newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            records.append(
                TelemetryRecord(
                    time=float(row["time"]),
                    drone_id=int(row["droneId"]),
                    x=float(row["x"]),
                    y=float(row["y"]),
                    vx=float(row["vx"]),
                    vy=float(row["vy"]),
                )
            )
    return records
