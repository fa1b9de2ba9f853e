"""Per-entity-type permission profiles and roles.

Provides:
- ``PermissionProfile`` — tier defaults, group overrides and the role registry
  of one entity type.
- ``Role`` — immutable named bundle of operations scoped to one entity type.
- ``RoleDefinition`` — serializable form of a Role used by permission stores.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from .taxonomy import OperationTaxonomy


def _operation_set(operations: Iterable[str] | str | None) -> frozenset[str]:
    if operations is None:
        return frozenset()
    if isinstance(operations, str):
        return frozenset({operations})
    return frozenset(operations)


@dataclass(frozen=True)
class Role:
    """A named set of operations granted on entities of one type.

    Roles are created through ``AuthorizationEngine.add_role``, which also
    registers them on the type's profile and persists them.

    Attributes:
        name: Role name, unique within an entity type.
        operations: Operations granted to holders of the role.
        entity_type: Name of the entity type the role applies to.
    """

    name: str
    operations: frozenset[str] = field(default_factory=frozenset)
    entity_type: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Role name must not be empty")
        object.__setattr__(self, "operations", _operation_set(self.operations))

    def grants(self, operation: str) -> bool:
        """Check if the role lists ``operation`` (no taxonomy expansion)."""
        return operation in self.operations

    def to_definition(self) -> RoleDefinition:
        return RoleDefinition(
            name=self.name,
            entity_type=self.entity_type,
            operations=sorted(self.operations),
        )

    @classmethod
    def from_definition(cls, definition: RoleDefinition) -> Role:
        return cls(
            name=definition.name,
            operations=frozenset(definition.operations),
            entity_type=definition.entity_type,
        )


class RoleDefinition(BaseModel):
    """Stored representation of a role, for audit and introspection."""

    name: str
    entity_type: str
    operations: list[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class PermissionProfile:
    """Access policy for one entity type.

    Args:
        name: Entity type name.
        default_visitor_operations: Granted to actors without an id.
        default_user_operations: Granted to every authenticated actor.
        default_group_member_operations: Granted to actors sharing a group
            with the entity.
        group_operations: ``group_id → operations`` granted to actors in that
            group, whether or not the entity carries the group. A single
            string is accepted as a one-operation set.
        group_membership_mandatory: When set, actors sharing no group with
            the entity are granted nothing on it, assigned roles included.

    Example::

        class Workshop:
            permissions_profile = PermissionProfile(
                "Workshop",
                default_user_operations={"Buy", "Order"},
                group_operations={"IRS": "ReadDeep"},
            )
    """

    __slots__ = (
        "name",
        "default_visitor_operations",
        "default_user_operations",
        "default_group_member_operations",
        "group_operations",
        "group_membership_mandatory",
        "_roles",
        "_lock",
        "_validated",
        "__weakref__",
    )

    def __init__(
        self,
        name: str,
        *,
        default_visitor_operations: Iterable[str] | None = None,
        default_user_operations: Iterable[str] | None = None,
        default_group_member_operations: Iterable[str] | None = None,
        group_operations: Mapping[str, Iterable[str] | str] | None = None,
        group_membership_mandatory: bool = False,
    ) -> None:
        if not name:
            raise ConfigurationError("PermissionProfile name must not be empty")
        self.name = name
        self.default_visitor_operations = _operation_set(default_visitor_operations)
        self.default_user_operations = _operation_set(default_user_operations)
        self.default_group_member_operations = _operation_set(default_group_member_operations)
        self.group_operations: dict[str, frozenset[str]] = {
            str(group): _operation_set(ops) for group, ops in (group_operations or {}).items()
        }
        self.group_membership_mandatory = bool(group_membership_mandatory)
        self._roles: dict[str, Role] = {}
        self._lock = threading.RLock()
        self._validated = False

    # ── Roles ────────────────────────────────────────────

    @property
    def roles(self) -> dict[str, Role]:
        """Snapshot of the role registry (``name → Role``)."""
        with self._lock:
            return dict(self._roles)

    def get_role(self, name: str) -> Role | None:
        with self._lock:
            return self._roles.get(name)

    def register_role(self, role: Role) -> None:
        """Register ``role`` under its name, replacing any previous one."""
        with self._lock:
            self._roles[role.name] = role

    def unregister_role(self, name: str) -> Role | None:
        with self._lock:
            return self._roles.pop(name, None)

    # ── Validation ───────────────────────────────────────

    @property
    def validated(self) -> bool:
        return self._validated

    def referenced_operations(self) -> Iterable[tuple[str, str]]:
        """Yield ``(where, operation)`` for every operation the profile names."""
        for op in self.default_visitor_operations:
            yield "default_visitor_operations", op
        for op in self.default_user_operations:
            yield "default_user_operations", op
        for op in self.default_group_member_operations:
            yield "default_group_member_operations", op
        for group, ops in self.group_operations.items():
            for op in ops:
                yield f"group_operations[{group}]", op
        for role in self.roles.values():
            for op in role.operations:
                yield f"role {role.name}", op

    def validate(self, taxonomy: OperationTaxonomy) -> None:
        """Check every referenced operation against ``taxonomy``, once.

        Raises:
            ConfigurationError: naming the profile and the unknown operation.
        """
        if self._validated:
            return
        for where, op in self.referenced_operations():
            if not taxonomy.find(op):
                raise ConfigurationError(
                    f"Profile '{self.name}' references unknown operation '{op}' in {where}",
                    profile=self.name,
                    operation=op,
                )
        self._validated = True

    def __repr__(self) -> str:
        return (
            f"PermissionProfile(name={self.name!r}, "
            f"roles={sorted(self.roles)!r}, "
            f"group_membership_mandatory={self.group_membership_mandatory!r})"
        )


__all__ = [
    "PermissionProfile",
    "Role",
    "RoleDefinition",
]
