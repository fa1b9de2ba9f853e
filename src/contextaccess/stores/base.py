"""Helpers shared by permission store implementations."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..permissions.profile import PermissionProfile, Role

logger = logging.getLogger(__name__)


def resolve_assigned_roles(
    role_names: Iterable[str],
    profile: PermissionProfile,
    *,
    actor_id: Any = None,
    entity_id: Any = None,
) -> list[Role]:
    """Map stored role names to the profile's Role objects.

    Names with no registered role (renamed or deleted roles) are skipped with
    a warning, so a stale assignment never grants anything.
    """
    roles: list[Role] = []
    registry = profile.roles
    for name in role_names:
        role = registry.get(name)
        if role is None:
            logger.warning(
                "Ignoring assignment of unknown role '%s' on %s '%s' for actor %s",
                name,
                profile.name,
                entity_id,
                actor_id,
            )
            continue
        roles.append(role)
    return roles


def role_key(entity_type_name: str, role_name: str) -> str:
    return f"{entity_type_name}.{role_name}"


__all__ = ["resolve_assigned_roles", "role_key"]
