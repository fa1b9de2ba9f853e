"""Group specifier resolution for actors and entities.

A group specifier is one of:
- ``None`` (no groups),
- a single group id,
- an iterable of group ids,
- a zero-argument callable returning any of the above, or an awaitable of it.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Union

GroupId = Any
GroupSpecifier = Union[
    None,
    str,
    Iterable[GroupId],
    Callable[[], Any],
    Callable[[], Awaitable[Any]],
]


def _group_id(group: Any) -> str:
    if isinstance(group, bytes):
        return group.decode()
    return str(group)


def _normalize(groups: Any) -> frozenset[str]:
    """Group ids are compared as strings, like role names and override keys."""
    if groups is None:
        return frozenset()
    if isinstance(groups, (str, bytes, int)):
        return frozenset({_group_id(groups)})
    return frozenset(_group_id(g) for g in groups if g is not None and g != "")


async def resolve_groups(groups: GroupSpecifier) -> frozenset:
    """Resolve a group specifier into a deduplicated set of group ids.

    Providers are invoked once; awaitable results are awaited. Exceptions
    raised by a provider propagate unchanged.

    Example::

        await resolve_groups("admin")              # frozenset({"admin"})
        await resolve_groups(["a", "b", "a"])      # frozenset({"a", "b"})
        await resolve_groups(lambda: ["a"])        # frozenset({"a"})
        await resolve_groups(load_groups_async)    # whatever it returns
    """
    if callable(groups):
        groups = groups()
        if inspect.isawaitable(groups):
            groups = await groups
    if groups == "":
        return frozenset()
    return _normalize(groups)


def common_groups(actor_groups: frozenset, entity_groups: frozenset) -> frozenset:
    """Groups shared by an actor and an entity."""
    return actor_groups & entity_groups


__all__ = [
    "GroupSpecifier",
    "common_groups",
    "resolve_groups",
]
