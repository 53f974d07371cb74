"""Sink group registry — turns group references into concrete sink ids.

Resolution rules:

* a wildcard group (listing ``"*"``) resolves to exactly the available set;
  any explicit ids it also lists are ignored;
* any other group resolves to the intersection of its ids with the
  available set.  Ids of sinks that are not currently registered are
  dropped silently; that only means the destination is not accepting
  events right now.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from eventgate.models.groups import PREDEFINED_GROUPS, SinkGroup


def resolve_group(group: SinkGroup, available_sink_ids: Iterable[str]) -> frozenset[str]:
    """Resolve *group* against the sinks currently available."""
    available = frozenset(available_sink_ids)
    if group.includes_all:
        return available
    return frozenset(sid for sid in group.sink_ids if sid in available)


class SinkGroupRegistry:
    """Lookup table of predefined and custom groups, keyed by name.

    Custom groups shadow predefined groups of the same name.

    Parameters
    ----------
    custom_groups:
        Mapping of group name to ``SinkGroup``.  Copied on construction.
    """

    def __init__(self, custom_groups: Mapping[str, SinkGroup] | None = None) -> None:
        self._groups: dict[str, SinkGroup] = {g.name: g for g in PREDEFINED_GROUPS}
        self._groups.update(custom_groups or {})

    def lookup(self, ref: SinkGroup | str) -> SinkGroup | None:
        """Return the group for *ref*; ``SinkGroup`` values pass through."""
        if isinstance(ref, SinkGroup):
            return ref
        return self._groups.get(ref)

    def resolve(
        self, ref: SinkGroup | str, available_sink_ids: Iterable[str]
    ) -> frozenset[str]:
        """Resolve *ref* to sink ids; unknown names resolve to nothing."""
        group = self.lookup(ref)
        if group is None:
            return frozenset()
        return resolve_group(group, available_sink_ids)

    def __contains__(self, name: object) -> bool:
        return name in self._groups

    def names(self) -> list[str]:
        return list(self._groups)
