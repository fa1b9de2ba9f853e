"""In-process permission store."""

from __future__ import annotations

import threading
from typing import Any

from ..interfaces import PermissionStore
from ..permissions.profile import PermissionProfile, Role
from .base import resolve_assigned_roles, role_key


class MemoryPermissionStore(PermissionStore):
    """Keeps role assignments and role definitions in dictionaries.

    Assignments are kept as ``entity_id → actor_id → [role names]`` in
    insertion order, which is also the pagination order of
    :meth:`get_actor_roles`. Ids are compared as strings.

    Suitable for tests and single-process deployments; nothing survives a
    restart.
    """

    def __init__(self) -> None:
        self._assignments: dict[str, dict[str, list[str]]] = {}
        self._role_registry: dict[str, Role] = {}
        self._lock = threading.RLock()

    async def assign_role(self, entity: Any, actor: Any, role_name: str) -> None:
        entity_id = str(entity.id)
        actor_id = str(actor.id)
        with self._lock:
            self._assignments.setdefault(entity_id, {}).setdefault(actor_id, []).append(role_name)

    async def remove_role(self, entity: Any, actor: Any, role_name: str) -> None:
        entity_id = str(entity.id)
        actor_id = str(actor.id)
        with self._lock:
            entry = self._assignments.get(entity_id)
            if not entry:
                return
            role_names = entry.get(actor_id)
            if not role_names or role_name not in role_names:
                return
            role_names.remove(role_name)
            if not role_names:
                del entry[actor_id]
            if not entry:
                del self._assignments[entity_id]

    async def get_roles_for_user(self, actor: Any, entity: Any, profile: PermissionProfile) -> list[Role]:
        if not getattr(actor, "id", None):
            return []
        entity_id = str(entity.id)
        actor_id = str(actor.id)
        with self._lock:
            role_names = list(self._assignments.get(entity_id, {}).get(actor_id, ()))
        return resolve_assigned_roles(role_names, profile, actor_id=actor_id, entity_id=entity_id)

    async def save_role(self, entity_type_name: str, role: Role) -> None:
        with self._lock:
            self._role_registry[role_key(entity_type_name, role.name)] = role

    async def delete_role(self, role_name: str, entity_type_name: str) -> None:
        with self._lock:
            self._role_registry.pop(role_key(entity_type_name, role_name), None)

    async def get_saved_role(self, entity_type_name: str, role_name: str) -> Role | None:
        with self._lock:
            return self._role_registry.get(role_key(entity_type_name, role_name))

    async def get_role_owners(self, entity: Any) -> dict[str, list[str]]:
        with self._lock:
            entry = self._assignments.get(str(entity.id), {})
            return {actor_id: list(names) for actor_id, names in entry.items()}

    async def get_actor_roles(self, actor_id: Any, skip: int, limit: int) -> dict[str, list[str]]:
        actor_id = str(actor_id)
        with self._lock:
            held = [
                (entity_id, list(assignments[actor_id]))
                for entity_id, assignments in self._assignments.items()
                if assignments.get(actor_id)
            ]
        return dict(held[skip : skip + limit])


__all__ = ["MemoryPermissionStore"]
