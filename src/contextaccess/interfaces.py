"""Contracts consumed by the authorization engine.

- ``Actor`` — who acts. Required: ``id`` (``None`` or empty for a visitor).
  Optional: ``groups`` (a group specifier).
- ``ManagedEntity`` — what is acted on. Required: ``id``. Optional hooks:

  ``permission_group_ids``
      Group specifier of the entity.
  ``permissions_profile``
      A ``PermissionProfile`` or a zero-argument provider (sync or async)
      returning one. Instance attributes override class attributes.
  ``custom_permission_checker``
      ``(engine, actor, operation, entity, context) -> bool | Awaitable[bool]``
      replacing the standard decision for this entity. An instance attribute
      wins over one defined on the class.
  ``permission_super``
      Zero-argument provider (sync or async) of an ancestor entity consulted
      when this entity grants nothing.
  ``permission_type_name``
      Entity type name; defaults to the class name.

- ``PermissionStore`` — persistence of role assignments and definitions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .permissions.profile import PermissionProfile, Role


@runtime_checkable
class Actor(Protocol):
    """Anything with an ``id``; ``groups`` is read when present."""

    id: Any


@runtime_checkable
class ManagedEntity(Protocol):
    """Anything with an ``id``; the optional hooks are read when present."""

    id: Any


class PermissionStore(ABC):
    """Persistence backend for role assignments and role definitions.

    The decision path only calls :meth:`get_roles_for_user`. Errors raised by
    implementations propagate to the engine's caller unchanged.
    """

    @abstractmethod
    async def assign_role(self, entity: ManagedEntity, actor: Actor, role_name: str) -> None:
        """Record that ``actor`` holds ``role_name`` on ``entity``."""
        raise NotImplementedError

    @abstractmethod
    async def remove_role(self, entity: ManagedEntity, actor: Actor, role_name: str) -> None:
        """Remove one assignment if present; no-op otherwise."""
        raise NotImplementedError

    @abstractmethod
    async def get_roles_for_user(
        self,
        actor: Actor,
        entity: ManagedEntity,
        profile: PermissionProfile,
    ) -> list[Role]:
        """Roles assigned to ``actor`` on ``entity``, resolved via ``profile.roles``.

        Assigned names missing from the profile are skipped.
        """
        raise NotImplementedError

    @abstractmethod
    async def save_role(self, entity_type_name: str, role: Role) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete_role(self, role_name: str, entity_type_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_role_owners(self, entity: ManagedEntity) -> dict[str, list[str]]:
        """``actor_id → role names`` assigned on ``entity``."""
        raise NotImplementedError

    @abstractmethod
    async def get_actor_roles(self, actor_id: Any, skip: int, limit: int) -> dict[str, list[str]]:
        """``entity_id → role names`` for the actor, paginated.

        ``skip``/``limit`` count only entities where the actor holds at least
        one role.
        """
        raise NotImplementedError


__all__ = ["Actor", "ManagedEntity", "PermissionStore"]
