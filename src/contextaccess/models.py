"""Ready-made actor and entity types.

Hosts usually pass their own objects, since any object with an ``id``
satisfies the contracts in :mod:`contextaccess.interfaces`. These types cover
the common remaining cases: an actor built from an already authenticated
identity, and "virtual" entities that have no class of their own (the
system, a back office, a tenant).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from .permissions.groups import GroupSpecifier
    from .permissions.profile import PermissionProfile


@dataclass(frozen=True)
class SimpleActor:
    """An actor identity.

    Attributes:
        id: Actor identifier. ``None`` or ``""`` means an unauthenticated visitor.
        groups: Group specifier (id, iterable of ids, or provider).
    """

    id: Any = None
    groups: GroupSpecifier = None

    @property
    def is_visitor(self) -> bool:
        return not self.id


VISITOR = SimpleActor()


@dataclass
class VirtualEntity:
    """A managed entity described by data rather than by a class.

    Example::

        system = VirtualEntity(
            id="System",
            permission_type_name="System",
            permission_group_ids="admin",
            permissions_profile=PermissionProfile(
                "System",
                default_group_member_operations={"Admin"},
            ),
        )
    """

    id: Any
    permission_type_name: str = "VirtualEntity"
    permission_group_ids: GroupSpecifier = None
    permissions_profile: Optional[PermissionProfile | Callable[[], Any]] = None
    custom_permission_checker: Optional[Callable[..., Any]] = None
    permission_super: Optional[Callable[[], Any]] = None
    name: str = field(default="", compare=False)


def actor_id_of(actor: Any) -> Any:
    """Return the id of an actor object, or ``actor`` itself for a raw id."""
    return getattr(actor, "id", actor)


def as_actor(actor: Any) -> Any:
    """Wrap a raw actor id into a SimpleActor; pass actor objects through."""
    if actor is None or not hasattr(actor, "id"):
        return SimpleActor(id=actor)
    return actor


def entity_type_name(entity: Any) -> str:
    """Entity type name: ``permission_type_name`` if declared, else the class name."""
    name = getattr(entity, "permission_type_name", None)
    if name:
        return str(name)
    return type(entity).__name__


__all__ = [
    "SimpleActor",
    "VISITOR",
    "VirtualEntity",
    "actor_id_of",
    "as_actor",
    "entity_type_name",
]
