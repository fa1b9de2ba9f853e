"""Redis-backed permission store.

Key layout (``{prefix}`` defaults to ``contextaccess``)::

    {prefix}:assign:{entity_id}:{actor_id}   LIST   role names, in assignment order
    {prefix}:owners:{entity_id}              SET    actor ids with assignments
    {prefix}:actor:{actor_id}                ZSET   entity ids (score 0, lexical order)
    {prefix}:role:{entity_type}:{role_name}  STRING RoleDefinition JSON

Every id and name is percent-encoded before it becomes a key component, so
``:`` inside an id cannot make two different (entity, actor) pairs share a
key. Set and sorted-set members hold the raw ids.

Redis errors propagate to the caller unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import redis.asyncio as aioredis

from ..exceptions import ConfigurationError
from ..interfaces import PermissionStore
from ..permissions.profile import PermissionProfile, Role, RoleDefinition
from .base import resolve_assigned_roles

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "contextaccess"

# Removes one assignment and, when it was the last one for the pair, the
# owner and actor index entries, in one atomic step.
#   KEYS: assign list, owners set, actor zset
#   ARGV: role name, actor id, entity id
REMOVE_ROLE_LUA = """
local removed = redis.call('LREM', KEYS[1], 1, ARGV[1])
if removed > 0 and redis.call('LLEN', KEYS[1]) == 0 then
    redis.call('SREM', KEYS[2], ARGV[2])
    redis.call('ZREM', KEYS[3], ARGV[3])
end
return removed
"""


def _part(value: Any) -> str:
    return quote(str(value), safe="")


class RedisPermissionStore(PermissionStore):
    """Permission store shared between processes through Redis.

    Args:
        client: An existing ``redis.asyncio.Redis`` client created with
            ``decode_responses=True``. Not closed by :meth:`aclose`.
        redis_url: Used to create a client when none is given.
        key_prefix: Prefix for every key this store writes.

    Example::

        store = RedisPermissionStore(redis_url="redis://localhost:6379/0")
        engine = AuthorizationEngine(store)
        ...
        await store.aclose()
    """

    def __init__(
        self,
        client: Optional[aioredis.Redis] = None,
        *,
        redis_url: Optional[str] = None,
        key_prefix: str = DEFAULT_PREFIX,
    ) -> None:
        if client is None:
            if not redis_url:
                raise ConfigurationError("RedisPermissionStore needs a client or a redis_url")
            client = aioredis.from_url(redis_url, decode_responses=True)
            self._owns_client = True
        else:
            self._owns_client = False
        self._redis = client
        self._prefix = key_prefix
        self._remove_script = client.register_script(REMOVE_ROLE_LUA)

    # ── Keys ─────────────────────────────────────────────

    def _assign_key(self, entity_id: str, actor_id: str) -> str:
        return f"{self._prefix}:assign:{_part(entity_id)}:{_part(actor_id)}"

    def _owners_key(self, entity_id: str) -> str:
        return f"{self._prefix}:owners:{_part(entity_id)}"

    def _actor_key(self, actor_id: str) -> str:
        return f"{self._prefix}:actor:{_part(actor_id)}"

    def _role_key(self, entity_type_name: str, role_name: str) -> str:
        return f"{self._prefix}:role:{_part(entity_type_name)}:{_part(role_name)}"

    # ── Assignments ──────────────────────────────────────

    async def assign_role(self, entity: Any, actor: Any, role_name: str) -> None:
        entity_id = str(entity.id)
        actor_id = str(actor.id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.rpush(self._assign_key(entity_id, actor_id), role_name)
            pipe.sadd(self._owners_key(entity_id), actor_id)
            pipe.zadd(self._actor_key(actor_id), {entity_id: 0})
            await pipe.execute()

    async def remove_role(self, entity: Any, actor: Any, role_name: str) -> None:
        entity_id = str(entity.id)
        actor_id = str(actor.id)
        removed = await self._remove_script(
            keys=[
                self._assign_key(entity_id, actor_id),
                self._owners_key(entity_id),
                self._actor_key(actor_id),
            ],
            args=[role_name, actor_id, entity_id],
        )
        if not removed:
            logger.debug("No assignment of %s to %s on %s to remove", role_name, actor_id, entity_id)

    async def get_roles_for_user(self, actor: Any, entity: Any, profile: PermissionProfile) -> list[Role]:
        if not getattr(actor, "id", None):
            return []
        entity_id = str(entity.id)
        actor_id = str(actor.id)
        role_names = await self._redis.lrange(self._assign_key(entity_id, actor_id), 0, -1)
        return resolve_assigned_roles(role_names, profile, actor_id=actor_id, entity_id=entity_id)

    async def get_role_owners(self, entity: Any) -> dict[str, list[str]]:
        entity_id = str(entity.id)
        actor_ids = sorted(await self._redis.smembers(self._owners_key(entity_id)))
        if not actor_ids:
            return {}
        async with self._redis.pipeline(transaction=False) as pipe:
            for actor_id in actor_ids:
                pipe.lrange(self._assign_key(entity_id, actor_id), 0, -1)
            results = await pipe.execute()
        return {actor_id: list(names) for actor_id, names in zip(actor_ids, results) if names}

    async def get_actor_roles(self, actor_id: Any, skip: int, limit: int) -> dict[str, list[str]]:
        if limit <= 0:
            return {}
        actor_id = str(actor_id)
        entity_ids = await self._redis.zrange(self._actor_key(actor_id), skip, skip + limit - 1)
        if not entity_ids:
            return {}
        async with self._redis.pipeline(transaction=False) as pipe:
            for entity_id in entity_ids:
                pipe.lrange(self._assign_key(entity_id, actor_id), 0, -1)
            results = await pipe.execute()
        return {entity_id: list(names) for entity_id, names in zip(entity_ids, results)}

    # ── Role definitions ─────────────────────────────────

    async def save_role(self, entity_type_name: str, role: Role) -> None:
        await self._redis.set(
            self._role_key(entity_type_name, role.name),
            role.to_definition().model_dump_json(),
        )

    async def delete_role(self, role_name: str, entity_type_name: str) -> None:
        await self._redis.delete(self._role_key(entity_type_name, role_name))

    async def get_saved_role(self, entity_type_name: str, role_name: str) -> Role | None:
        raw = await self._redis.get(self._role_key(entity_type_name, role_name))
        if raw is None:
            return None
        return Role.from_definition(RoleDefinition.model_validate_json(raw))

    async def aclose(self) -> None:
        """Close the client if this store created it."""
        if self._owns_client:
            await self._redis.aclose()


__all__ = ["RedisPermissionStore"]
