"""Local file sink — writes events to local JSON files.

Layout: {base_path}/{event_name}/{timestamp}-{uuid}.json

Each event is serialized to canonical JSON for reproducibility.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from pathlib import Path
from typing import Any

from eventgate.core.hasher import canonical_json_bytes
from eventgate.models.events import TrackableEvent, event_to_map

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


def _safe_dirname(name: str) -> str:
    return _UNSAFE.sub("_", name) or "_unnamed"


class LocalFileSink:
    """Writes events to local JSON files.

    Parameters
    ----------
    base_path:
        Root directory for event files.  Defaults to ``.eventgate/events``.
    sink_id:
        Id used by routing rules.  Defaults to ``"local_file"``.
    """

    def __init__(
        self, base_path: Path | str | None = None, sink_id: str = "local_file"
    ) -> None:
        self._base = Path(base_path) if base_path else Path(".eventgate/events")
        self._base.mkdir(parents=True, exist_ok=True)
        self._sink_id = sink_id

    @property
    def sink_id(self) -> str:
        return self._sink_id

    def accept(self, event: TrackableEvent) -> None:
        """Write the event to a JSON file under a directory named after it."""
        data = event_to_map(event)
        target_dir = self._base / _safe_dirname(data["name"])
        target_dir.mkdir(parents=True, exist_ok=True)

        stamp = event.timestamp.strftime("%Y%m%dT%H%M%S%f")
        target_file = target_dir / f"{stamp}-{uuid.uuid4().hex[:8]}.json"
        target_file.write_bytes(canonical_json_bytes(data))

        logger.debug("LocalFileSink: wrote %s to %s", data["name"], target_file)

    def list_events(self, event_name: str | None = None) -> list[Path]:
        """List event files, optionally only those for one event name."""
        if event_name is not None:
            event_dir = self._base / _safe_dirname(event_name)
            if not event_dir.exists():
                return []
            return sorted(event_dir.glob("*.json"))
        return sorted(self._base.rglob("*.json"))

    def read_event(self, path: Path) -> dict[str, Any]:
        """Read and parse a single event file."""
        return json.loads(path.read_bytes())
