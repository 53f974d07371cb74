"""Sink groups — named sets of sink ids targeted by routing rules."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# Sentinel id meaning "every sink currently available".
WILDCARD = "*"


class SinkGroup(BaseModel):
    """A named, ordered set of unique sink ids.

    A group listing the ``"*"`` sentinel is a wildcard: it resolves to every
    available sink, whatever else it lists.  Equality ignores the
    description.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    sink_ids: tuple[str, ...] = ()
    description: str | None = None

    @field_validator("sink_ids", mode="before")
    @classmethod
    def _dedupe(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = (value,)
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(value))
        return value

    @property
    def includes_all(self) -> bool:
        return WILDCARD in self.sink_ids

    def contains_sink(self, sink_id: str) -> bool:
        return self.includes_all or sink_id in self.sink_ids

    def combine_with(self, other: SinkGroup) -> SinkGroup:
        """Union of both groups' ids, named ``<self>_<other>``."""
        return SinkGroup(
            name=f"{self.name}_{other.name}",
            sink_ids=self.sink_ids + other.sink_ids,
            description=f"Combined group of {self.name} and {other.name}",
        )

    def excluding(self, exclude_ids: Iterable[str]) -> SinkGroup:
        excluded = set(exclude_ids)
        return SinkGroup(
            name=f"{self.name}_filtered",
            sink_ids=tuple(sid for sid in self.sink_ids if sid not in excluded),
            description=f"{self.description or self.name} (excluding {', '.join(sorted(excluded))})",
        )

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SinkGroup):
            return self.name == other.name and self.sink_ids == other.sink_ids
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.name, self.sink_ids))

    def __str__(self) -> str:
        return f"SinkGroup({self.name}: {', '.join(self.sink_ids)})"

    def to_map(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "sink_ids": list(self.sink_ids),
            "description": self.description,
            "includes_all": self.includes_all,
        }


ALL_SINKS = SinkGroup(
    name="all", sink_ids=(WILDCARD,), description="All registered sinks"
)
DEVELOPMENT_SINKS = SinkGroup(
    name="development",
    sink_ids=("console",),
    description="Development and debugging sinks",
)

PREDEFINED_GROUPS: tuple[SinkGroup, ...] = (ALL_SINKS, DEVELOPMENT_SINKS)
