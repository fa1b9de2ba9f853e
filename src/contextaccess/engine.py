"""Authorization engine.

Provides:
- ``AuthorizationEngine`` — taxonomy + profile cache + store orchestration,
  the public surface for checks, role definition and role assignment.

Usage::

    engine = AuthorizationEngine(MemoryPermissionStore())
    seller = await engine.add_role("Seller", ["ReadDeep", "Sell"], Workshop)
    await engine.assign_role(workshop, jeff, seller)

    if await engine.is_allowed(jeff, "ReadCommon", workshop):
        ...
    await engine.test(jeff, "Sell", workshop)  # raises AccessDeniedError on deny
"""

from __future__ import annotations

import copy
import inspect
import logging
import threading
import weakref
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional

from .config import AccessConfig
from .exceptions import AccessDeniedError, ConfigurationError
from .interfaces import PermissionStore
from .logging import get_decision_logger
from .models import actor_id_of, as_actor, entity_type_name
from .permissions.checker import standard_permission_checker
from .permissions.profile import PermissionProfile, Role
from .permissions.taxonomy import DEFAULT_OPERATIONS_TAXONOMY, OperationTaxonomy

logger = logging.getLogger(__name__)
audit_logger = get_decision_logger("contextaccess.audit")

TaxonomyTransform = Callable[[dict[str, Any]], Mapping[str, Any]]


def _hook(entity: Any, name: str) -> Any:
    """Look up an optional entity hook: instance attribute first, then the class.

    Class-level functions are returned unbound so they can be called with the
    documented arguments (no implicit ``self``).
    """
    instance_attrs = getattr(entity, "__dict__", None) or {}
    value = instance_attrs.get(name)
    if value is not None:
        return value
    return _class_hook(type(entity), name, entity)


def _class_hook(cls: type, name: str, entity: Any = None) -> Any:
    value = inspect.getattr_static(cls, name, None)
    if isinstance(value, (staticmethod, classmethod)):
        return getattr(cls, name)
    if entity is not None and (inspect.ismemberdescriptor(value) or isinstance(value, property)):
        return getattr(entity, name, None)
    return value


class AuthorizationEngine:
    """Decides whether actors may perform operations on managed entities.

    One engine owns one operation taxonomy and one per-type profile cache;
    nothing is shared between engines.

    Args:
        store: Persistence backend for role assignments and definitions.
        transform: Optional pure function receiving a copy of the default
            hierarchy and returning the effective one.
        config: Engine settings (defaults to ``AccessConfig()``).

    Raises:
        ConfigurationError: The (transformed) hierarchy is invalid.
    """

    def __init__(
        self,
        store: PermissionStore,
        transform: Optional[TaxonomyTransform] = None,
        *,
        config: Optional[AccessConfig] = None,
    ) -> None:
        self._store = store
        self._config = config or AccessConfig()
        hierarchy: Any = copy.deepcopy(DEFAULT_OPERATIONS_TAXONOMY)
        if transform is not None:
            hierarchy = transform(hierarchy)
            if hierarchy is None:
                raise ConfigurationError("Taxonomy transform must return the effective hierarchy, got None")
        self._taxonomy = OperationTaxonomy(hierarchy)
        # type name → profile, for class-level and provider-declared profiles
        self._profiles: dict[str, PermissionProfile] = {}
        # profile name → every live profile of that name seen by this engine
        self._named: dict[str, weakref.WeakSet[PermissionProfile]] = {}
        self._lock = threading.RLock()
        logger.debug("AuthorizationEngine ready (operations=%d, store=%s)", len(self._taxonomy), type(store).__name__)

    @classmethod
    def from_config(
        cls,
        config: Optional[AccessConfig] = None,
        transform: Optional[TaxonomyTransform] = None,
    ) -> AuthorizationEngine:
        """Build an engine with the store selected by ``config.store_backend``."""
        from .config import load_access_config_from_env
        from .stores import create_store

        config = config or load_access_config_from_env()
        return cls(create_store(config), transform, config=config)

    @property
    def taxonomy(self) -> OperationTaxonomy:
        return self._taxonomy

    @property
    def store(self) -> PermissionStore:
        return self._store

    @property
    def config(self) -> AccessConfig:
        return self._config

    # ── Profiles ─────────────────────────────────────────

    async def get_or_add_profile(self, entity_type: Any) -> PermissionProfile:
        """Return the cached profile of an entity type, creating it on first use.

        Args:
            entity_type: Type name, class, or a PermissionProfile (returned
                as is). A class may declare ``permissions_profile`` as a
                profile or as a zero-argument (sync or async) provider.

        Raises:
            ConfigurationError: Unsupported argument, or a provider that does
                not yield a PermissionProfile.
        """
        if isinstance(entity_type, PermissionProfile):
            return self._remember(entity_type)
        if isinstance(entity_type, str):
            return await self._type_profile(entity_type, None)
        if isinstance(entity_type, type):
            name = _class_hook(entity_type, "permission_type_name") or entity_type.__name__
            return await self._type_profile(str(name), entity_type)
        raise ConfigurationError(
            f"Entity type must be a name, a class or a PermissionProfile, got {type(entity_type).__name__}"
        )

    async def _type_profile(self, name: str, cls: type | None) -> PermissionProfile:
        with self._lock:
            cached = self._profiles.get(name)
        if cached is not None:
            return cached

        profile: PermissionProfile | None = None
        if cls is not None:
            declared = _class_hook(cls, "permissions_profile")
            if declared is not None:
                profile = await self._resolve_declared_profile(declared, name)
        if profile is None:
            profile = PermissionProfile(name)
            logger.debug("Created default permission profile for %s", name)

        with self._lock:
            return self._remember(self._profiles.setdefault(name, profile))

    def _remember(self, profile: PermissionProfile) -> PermissionProfile:
        with self._lock:
            self._named.setdefault(profile.name, weakref.WeakSet()).add(profile)
        return profile

    def _profiles_named(self, name: str) -> list[PermissionProfile]:
        with self._lock:
            return list(self._named.get(name, ()))

    @staticmethod
    async def _resolve_declared_profile(declared: Any, name: str) -> PermissionProfile:
        profile = declared
        if not isinstance(profile, PermissionProfile) and callable(profile):
            profile = profile()
            if inspect.isawaitable(profile):
                profile = await profile
        if not isinstance(profile, PermissionProfile):
            raise ConfigurationError(
                f"permissions_profile of {name} must be a PermissionProfile or a provider of one, "
                f"got {type(profile).__name__}",
                entity_type=name,
            )
        return profile

    async def find_profile(self, entity: Any) -> PermissionProfile:
        """Resolve the profile governing ``entity``.

        An instance-level ``permissions_profile`` instance is used as is. An
        instance-level provider is resolved once per type name and cached
        like a class-level one. Otherwise the type's cached profile applies.
        """
        type_name = entity_type_name(entity)
        instance_attrs = getattr(entity, "__dict__", None) or {}
        declared = instance_attrs.get("permissions_profile")
        if isinstance(declared, PermissionProfile):
            return self._remember(declared)
        if declared is not None:
            with self._lock:
                cached = self._profiles.get(type_name)
            if cached is not None:
                return cached
            profile = await self._resolve_declared_profile(declared, type_name)
            with self._lock:
                return self._remember(self._profiles.setdefault(type_name, profile))

        with self._lock:
            cached = self._profiles.get(type_name)
        if cached is not None:
            return cached
        return await self._type_profile(type_name, type(entity))

    async def _target_profile(self, target: Any) -> PermissionProfile:
        if isinstance(target, (str, type, PermissionProfile)):
            return await self.get_or_add_profile(target)
        return await self.find_profile(target)

    # ── Decisions ────────────────────────────────────────

    async def is_allowed(self, actor: Any, operation: str, entity: Any, context: Any = None) -> bool:
        """Check whether ``actor`` may perform ``operation`` on ``entity``.

        Args:
            actor: Actor object, raw actor id, or ``None`` for a visitor.
            operation: Operation name declared in the taxonomy.
            entity: Managed entity.
            context: Opaque value forwarded to custom checkers.

        Returns:
            True if allowed, False otherwise.

        Raises:
            ConfigurationError: Unknown operation, missing entity, invalid
                profile, or malformed custom checker.
        """
        self._taxonomy.require(operation)
        if entity is None:
            raise ConfigurationError(f"No entity given for operation {operation}", operation=operation)
        actor = as_actor(actor)

        checker = _hook(entity, "custom_permission_checker")
        if checker is not None:
            if not callable(checker):
                raise ConfigurationError(
                    f"custom_permission_checker of {entity_type_name(entity)} is not callable",
                    entity_type=entity_type_name(entity),
                )
            result = checker(self, actor, operation, entity, context)
            if inspect.isawaitable(result):
                result = await result
            return bool(result)

        return await standard_permission_checker(self, actor, operation, entity, context)

    async def test(self, actor: Any, operation: str, entity: Any, context: Any = None) -> None:
        """Like :meth:`is_allowed`, but raise instead of returning False.

        Raises:
            AccessDeniedError: The operation is not allowed.
            ConfigurationError: As for :meth:`is_allowed`.
        """
        if await self.is_allowed(actor, operation, entity, context):
            return
        error = AccessDeniedError(
            actor_id=actor_id_of(actor),
            operation=operation,
            entity_id=getattr(entity, "id", None),
            context=context,
        )
        audit_logger.warning(
            "Access denied: %s",
            error.message,
            actor_id=error.actor_id,
            operation=operation,
            entity_id=error.entity_id,
        )
        raise error

    # ── Roles ────────────────────────────────────────────

    def _checked_operations(self, name: str, operations: Iterable[str] | str) -> frozenset[str]:
        ops = frozenset({operations}) if isinstance(operations, str) else frozenset(operations)
        for op in ops:
            if not self._taxonomy.find(op):
                raise ConfigurationError(
                    f"Role '{name}' references unknown operation '{op}'",
                    role=name,
                    operation=op,
                )
        return ops

    async def add_role(self, name: str, operations: Iterable[str] | str, entity_type: Any) -> Role:
        """Define a role on one entity type, register it and persist it.

        A role registered under an existing name replaces the earlier one.

        Args:
            name: Role name.
            operations: Operations granted by the role.
            entity_type: Type name, class, PermissionProfile, or an entity
                whose profile should receive the role.

        Returns:
            The registered Role.
        """
        ops = self._checked_operations(name, operations)
        profile = await self._target_profile(entity_type)
        role = Role(name=name, operations=ops, entity_type=profile.name)
        profile.register_role(role)
        logger.info("Role %s registered on %s (%d operations)", name, profile.name, len(ops))
        await self._store.save_role(profile.name, role)
        return role

    async def add_roles(self, name: str, operations: Iterable[str] | str, *entity_types: Any) -> list[Role]:
        """Define the same role on several entity types; one Role per type."""
        if not entity_types:
            raise ConfigurationError(f"Role '{name}' needs at least one entity type", role=name)
        ops = self._checked_operations(name, operations)
        return [await self.add_role(name, ops, entity_type) for entity_type in entity_types]

    async def delete_role(self, name: str, entity_type_name: str) -> None:
        """Remove a role definition from the type's profiles and from the store.

        ``entity_type_name`` is the profile name the role was registered on
        (``Role.entity_type``). Every live profile of that name known to the
        engine drops the role, instance-level ones included.
        """
        profiles = self._profiles_named(entity_type_name)
        with self._lock:
            cached = self._profiles.get(entity_type_name)
        if cached is not None and cached not in profiles:
            profiles.append(cached)
        for profile in profiles:
            profile.unregister_role(name)
        logger.info("Role %s deleted from %s", name, entity_type_name)
        await self._store.delete_role(name, entity_type_name)

    async def assign_role(self, entity: Any, actor: Any, role: Role | str) -> None:
        """Assign a registered role to ``actor`` on ``entity``.

        Args:
            entity: Managed entity.
            actor: Actor object or raw actor id.
            role: A Role (or role name) registered on the entity's profile.

        Raises:
            ConfigurationError: The role is not registered for the entity type.
        """
        role_name = role.name if isinstance(role, Role) else role
        profile = await self.find_profile(entity)
        if profile.get_role(role_name) is None:
            raise ConfigurationError(
                f"Role '{role_name}' is not registered for {profile.name}; define it with add_role first",
                role=role_name,
                profile=profile.name,
            )
        actor = as_actor(actor)
        if not actor.id:
            raise ConfigurationError(f"Cannot assign role '{role_name}' to a visitor", role=role_name)
        await self._store.assign_role(entity, actor, role_name)
        audit_logger.info(
            "Role %s assigned",
            role_name,
            actor_id=actor.id,
            entity_id=getattr(entity, "id", None),
        )

    async def remove_role(self, entity: Any, actor: Any, role: Role | str) -> None:
        """Remove one assignment of ``role`` from ``actor`` on ``entity``."""
        role_name = role.name if isinstance(role, Role) else role
        actor = as_actor(actor)
        await self._store.remove_role(entity, actor, role_name)
        audit_logger.info(
            "Role %s removed",
            role_name,
            actor_id=actor.id,
            entity_id=getattr(entity, "id", None),
        )

    # ── Queries ──────────────────────────────────────────

    async def get_roles_for_actor(
        self,
        actor: Any,
        entity: Any,
        *,
        profile: Optional[PermissionProfile] = None,
    ) -> list[Role]:
        """Roles assigned to ``actor`` on ``entity``."""
        if profile is None:
            profile = await self.find_profile(entity)
        return await self._store.get_roles_for_user(as_actor(actor), entity, profile)

    async def get_role_owners(self, entity: Any) -> dict[str, list[str]]:
        """``actor_id → role names`` assigned on ``entity``."""
        return await self._store.get_role_owners(entity)

    async def get_actor_roles(self, actor_id: Any, skip: int = 0, limit: int = 100) -> dict[str, list[str]]:
        """``entity_id → role names`` held by an actor, paginated.

        Args:
            actor_id: Actor identifier (or actor object).
            skip: Number of entities with assignments to skip.
            limit: Maximum number of entities to return.
        """
        if skip < 0 or limit < 0:
            raise ValueError(f"skip and limit must be non-negative, got skip={skip}, limit={limit}")
        return await self._store.get_actor_roles(actor_id_of(actor_id), skip, limit)

    def __repr__(self) -> str:
        with self._lock:
            types = sorted(self._profiles)
        return f"AuthorizationEngine(store={type(self._store).__name__}, profiles={types!r})"


__all__ = ["AuthorizationEngine", "TaxonomyTransform"]
