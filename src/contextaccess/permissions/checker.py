"""Standard permission decision.

``standard_permission_checker`` combines the taxonomy, the entity's profile,
assigned roles and group membership into an allow/deny answer. Custom
checkers may call it to extend rather than replace the standard logic::

    async def office_hours_only(engine, actor, operation, entity, context=None):
        if not entity.is_open():
            return False
        return await standard_permission_checker(engine, actor, operation, entity, context)
"""

from __future__ import annotations

import inspect
import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from ..exceptions import ConfigurationError
from ..models import entity_type_name
from .constants import Tier, group_role_name
from .groups import common_groups, resolve_groups

if TYPE_CHECKING:
    from ..engine import AuthorizationEngine
    from .profile import PermissionProfile, Role

logger = logging.getLogger(__name__)

# Entities visited through ancestor delegation in the current decision
_ancestor_chain: ContextVar[tuple[tuple[str, str], ...]] = ContextVar("contextaccess_ancestor_chain", default=())


def _entity_key(entity: Any) -> tuple[str, str]:
    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        # id-less entities are told apart by identity
        return entity_type_name(entity), f"<object {id(entity):#x}>"
    return entity_type_name(entity), str(entity_id)


class _Ladder:
    """Grant clauses for one (actor, entity) pair, evaluated per operation."""

    __slots__ = ("profile", "roles", "roles_by_name", "actor_groups", "common", "is_member", "is_visitor")

    def __init__(
        self,
        profile: PermissionProfile,
        roles: list[Role],
        actor_groups: frozenset,
        common: frozenset,
        is_visitor: bool,
    ) -> None:
        self.profile = profile
        self.roles = roles
        self.roles_by_name = {role.name: role for role in roles}
        self.actor_groups = actor_groups
        self.common = common
        self.is_member = bool(common)
        self.is_visitor = is_visitor

    def _assigned(self, name: str, op: str) -> bool:
        role = self.roles_by_name.get(name)
        return role is not None and op in role.operations

    def grant_reason(self, op: str) -> str | None:
        """Name of the first clause granting ``op``, or None."""
        profile = self.profile

        for role in self.roles:
            if op in role.operations:
                return f"role:{role.name}"

        for group in self.common:
            group_role = profile.get_role(group_role_name(str(group)))
            if group_role is not None and op in group_role.operations:
                return f"group-role:{group_role.name}"

        for group in self.actor_groups:
            if op in profile.group_operations.get(str(group), ()):
                return f"group-override:{group}"

        if self.is_member:
            if op in profile.default_group_member_operations or self._assigned(Tier.GROUP_MEMBER, op):
                return "tier:group-member"

        if not self.is_visitor:
            if op in profile.default_user_operations or self._assigned(Tier.USER, op):
                return "tier:user"
        else:
            if op in profile.default_visitor_operations or self._assigned(Tier.VISITOR, op):
                return "tier:visitor"

        return None


async def standard_permission_checker(
    engine: AuthorizationEngine,
    actor: Any,
    operation: str,
    entity: Any,
    context: Any = None,
) -> bool:
    """Decide whether ``actor`` may perform ``operation`` on ``entity``.

    Order of evaluation:
    1. Resolve and validate the entity's profile.
    2. Expand the operation to itself plus every implying operation.
    3. Load the actor's assigned roles on the entity.
    4. Resolve actor and entity groups; shared groups make a group member.
    5. If the profile mandates membership and the actor is not a member,
       nothing below is granted (assigned roles included).
    6. For each implied operation, grant on the first matching clause:
       assigned role, ``MemberOf<group>`` role of a shared group, group
       override of any actor group, group-member defaults, user defaults,
       visitor defaults.
    7. Otherwise delegate to ``entity.permission_super`` when present.

    Args:
        engine: The engine providing taxonomy, profiles and store.
        actor: Actor object (``id``, optional ``groups``).
        operation: A declared operation name.
        entity: Managed entity.
        context: Opaque value, only forwarded to custom checkers.

    Returns:
        True if allowed.

    Raises:
        ConfigurationError: Invalid profile, or ancestor chain too deep/cyclic.
    """
    profile = await engine.find_profile(entity)
    profile.validate(engine.taxonomy)

    implied = engine.taxonomy.expand(operation)
    roles = await engine.get_roles_for_actor(actor, entity, profile=profile)

    actor_groups = await resolve_groups(getattr(actor, "groups", None))
    entity_groups = await resolve_groups(getattr(entity, "permission_group_ids", None))
    common = common_groups(actor_groups, entity_groups)
    actor_id = getattr(actor, "id", None)

    if profile.group_membership_mandatory and not common:
        logger.debug(
            "Membership required on %s '%s'; actor %s shares no group",
            profile.name,
            getattr(entity, "id", None),
            actor_id,
        )
    else:
        ladder = _Ladder(profile, roles, actor_groups, common, is_visitor=not actor_id)
        for op in implied:
            reason = ladder.grant_reason(op)
            if reason is not None:
                logger.debug(
                    "Allowed %s on %s '%s' for actor %s via %s (%s)",
                    operation,
                    profile.name,
                    getattr(entity, "id", None),
                    actor_id,
                    op,
                    reason,
                )
                return True

    permission_super = getattr(entity, "permission_super", None)
    if permission_super is not None:
        return await _delegate_to_ancestor(engine, actor, operation, entity, permission_super, context)

    logger.debug(
        "Denied %s on %s '%s' for actor %s",
        operation,
        profile.name,
        getattr(entity, "id", None),
        actor_id,
    )
    return False


async def _delegate_to_ancestor(
    engine: AuthorizationEngine,
    actor: Any,
    operation: str,
    entity: Any,
    permission_super: Any,
    context: Any,
) -> bool:
    if not callable(permission_super):
        raise ConfigurationError(
            f"permission_super of {entity_type_name(entity)} '{getattr(entity, 'id', None)}' is not callable"
        )

    chain = _ancestor_chain.get()
    current = _entity_key(entity)
    if current not in chain:
        chain = chain + (current,)

    ancestor = permission_super()
    if inspect.isawaitable(ancestor):
        ancestor = await ancestor
    if ancestor is None:
        return False

    key = _entity_key(ancestor)
    if key in chain:
        raise ConfigurationError(
            f"Ancestor cycle detected at {key[0]} '{key[1]}'",
            chain=[f"{t}:{i}" for t, i in chain + (key,)],
        )
    max_depth = engine.config.max_ancestor_depth
    if len(chain) > max_depth:
        raise ConfigurationError(
            f"Ancestor delegation exceeded {max_depth} levels at {key[0]} '{key[1]}'",
            max_depth=max_depth,
        )

    logger.debug("Delegating %s from %s '%s' to %s '%s'", operation, current[0], current[1], key[0], key[1])
    token = _ancestor_chain.set(chain)
    try:
        return await engine.is_allowed(actor, operation, ancestor, context)
    finally:
        _ancestor_chain.reset(token)


__all__ = ["standard_permission_checker"]
