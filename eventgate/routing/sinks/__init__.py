"""Sink protocol for eventgate event delivery.

All sinks implement the ``BaseSink`` protocol: a ``sink_id`` property and
an ``accept(event)`` method.  The dispatcher calls ``accept`` on every sink
the routing engine selected for an event.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from eventgate.models.events import TrackableEvent


@runtime_checkable
class BaseSink(Protocol):
    """Protocol that every eventgate sink must implement.

    Attributes
    ----------
    sink_id : str
        Stable identifier that routing rules and sink groups refer to
        (e.g. ``"console"``, ``"analytics"``).
    """

    @property
    def sink_id(self) -> str:
        """Return the unique id of this sink."""
        ...

    def accept(self, event: TrackableEvent) -> None:
        """Accept and deliver an event.

        Implementations may raise; the dispatcher logs the failure and
        continues with the remaining sinks.
        """
        ...
