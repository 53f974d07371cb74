"""Console and no-op sinks for development and tests."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.markup import escape

from eventgate.models.events import TrackableEvent, event_to_map

logger = logging.getLogger(__name__)


class ConsoleSink:
    """Prints each accepted event to the terminal with ``rich``.

    Id ``"console"`` matches the predefined ``development`` group.

    Parameters
    ----------
    console:
        Console to print to.  Defaults to a new stdout console.
    show_properties:
        Whether to print the property mapping under the event line.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        sink_id: str = "console",
        show_properties: bool = True,
    ) -> None:
        self._console = console or Console()
        self._sink_id = sink_id
        self._show_properties = show_properties

    @property
    def sink_id(self) -> str:
        return self._sink_id

    def accept(self, event: TrackableEvent) -> None:
        data = event_to_map(event)
        category = escape(data["category"] or "-")
        flags: list[str] = []
        if data["contains_pii"]:
            flags.append("PII")
        if data["is_essential"]:
            flags.append("essential")
        if data["is_high_volume"]:
            flags.append("high-volume")

        line = f"[bold cyan]{escape(data['name'])}[/bold cyan] [dim]({category})[/dim]"
        if flags:
            line += " [yellow]" + ", ".join(flags) + "[/yellow]"
        self._console.print(line)
        if self._show_properties and data["properties"]:
            self._console.print(data["properties"])
        logger.debug("ConsoleSink: printed %s", data["name"])


class NoOpSink:
    """Accepts and discards events.  Counts them, which is handy in tests."""

    def __init__(self, sink_id: str = "noop") -> None:
        self._sink_id = sink_id
        self.accepted = 0

    @property
    def sink_id(self) -> str:
        return self._sink_id

    def accept(self, event: TrackableEvent) -> None:
        self.accepted += 1
