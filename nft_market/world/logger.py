"""Event log - JSONL record of what the world committed

Two record shapes share one sequence counter:

    kernel record   {"sequence", "timestamp", "event_type", ...details}
                    world_init, contract_deployed
    contract event  {"sequence", "timestamp", "tx", "contract", "event_type", "args"}
                    offered, bought, Transfer, ... from a committed invoke()

Every event of one invocation carries the same tx number. Reverted
invocations write nothing.

With a run id, the log lives at {logs_dir}/{run_id}/events.jsonl and
{logs_dir}/latest points at the newest run. Otherwise a single
output_file is truncated and reused.
"""

from __future__ import annotations

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config_schema import LoggingConfig

EVENTS_FILENAME = "events.jsonl"


def _point_latest(logs_dir: Path, run_id: str) -> None:
    latest = logs_dir / "latest"
    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.is_dir():
        shutil.rmtree(latest)
    # Relative target so the logs directory can be moved
    latest.symlink_to(run_id)


class EventLogger:
    """Append-only JSONL log of kernel records and committed contract events."""

    output_path: Path
    run_id: str | None
    _sequence: int

    def __init__(self, output_path: str | Path, run_id: str | None = None) -> None:
        """Open output_path, creating parents and truncating any old log."""
        self.output_path = Path(output_path)
        self.run_id = run_id
        self._sequence = 0
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_path.write_text("")

    @classmethod
    def from_config(
        cls,
        logging_cfg: LoggingConfig,
        run_id: str | None = None,
        output_file: str | None = None,
    ) -> "EventLogger":
        """Per-run log when run_id is given, otherwise the single output file."""
        if run_id and logging_cfg.logs_dir:
            logs_dir = Path(logging_cfg.logs_dir)
            event_logger = cls(logs_dir / run_id / EVENTS_FILENAME, run_id=run_id)
            _point_latest(logs_dir, run_id)
            return event_logger
        return cls(output_file or logging_cfg.output_file)

    def _append(self, record: dict[str, Any]) -> dict[str, Any]:
        with open(self.output_path, "a") as f:
            f.write(json.dumps(record) + "\n")
        return record

    def _next(self) -> dict[str, Any]:
        self._sequence += 1
        return {
            "sequence": self._sequence,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def log(self, event_type: str, details: dict[str, Any]) -> dict[str, Any]:
        """Write a kernel record (world_init, contract_deployed)."""
        return self._append({**self._next(), "event_type": event_type, **details})

    def log_contract_event(
        self, tx: int, contract: str, event_type: str, args: dict[str, Any]
    ) -> dict[str, Any]:
        """Write one event of committed invocation tx and return the record."""
        return self._append({
            **self._next(),
            "tx": tx,
            "contract": contract,
            "event_type": event_type,
            "args": dict(args),
        })

    def read_recent(
        self,
        n: int,
        event_type: str | None = None,
        contract: str | None = None,
    ) -> list[dict[str, Any]]:
        """The last n records, oldest first, optionally filtered.

        n <= 0 returns nothing.
        """
        if n <= 0 or not self.output_path.exists():
            return []
        records = [
            json.loads(line)
            for line in self.output_path.read_text().splitlines()
            if line
        ]
        if event_type is not None:
            records = [r for r in records if r.get("event_type") == event_type]
        if contract is not None:
            records = [r for r in records if r.get("contract") == contract]
        return records[-n:]

    @property
    def sequence(self) -> int:
        """Number of records written so far."""
        return self._sequence
