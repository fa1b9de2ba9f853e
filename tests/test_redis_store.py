"""Tests for RedisPermissionStore, backed by fakeredis."""

from __future__ import annotations

import fakeredis
import fakeredis.aioredis
import pytest
from contextaccess import (
    AccessConfig,
    AuthorizationEngine,
    ConfigurationError,
    MemoryPermissionStore,
    PermissionProfile,
    RedisPermissionStore,
    Role,
    SimpleActor,
    StoreBackend,
    VirtualEntity,
    create_store,
)


def entity(entity_id: str) -> VirtualEntity:
    return VirtualEntity(id=entity_id, permission_type_name="Doc")


@pytest.fixture
def redis_client():
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def store(redis_client) -> RedisPermissionStore:
    return RedisPermissionStore(redis_client, key_prefix="test")


@pytest.fixture
def profile() -> PermissionProfile:
    profile = PermissionProfile("Doc")
    profile.register_role(Role(name="Editor", operations=frozenset({"WriteCommon"}), entity_type="Doc"))
    profile.register_role(Role(name="Reader", operations=frozenset({"ReadCommon"}), entity_type="Doc"))
    return profile


class TestRedisAssignments:
    """Tests for assignment storage."""

    @pytest.mark.asyncio
    async def test_assign_and_read_back(self, store, profile) -> None:
        actor = SimpleActor(id="a1")
        await store.assign_role(entity("e1"), actor, "Reader")
        await store.assign_role(entity("e1"), actor, "Editor")

        roles = await store.get_roles_for_user(actor, entity("e1"), profile)
        assert [role.name for role in roles] == ["Reader", "Editor"]

    @pytest.mark.asyncio
    async def test_key_layout(self, store, redis_client) -> None:
        await store.assign_role(entity("e1"), SimpleActor(id="a1"), "Reader")

        assert await redis_client.lrange("test:assign:e1:a1", 0, -1) == ["Reader"]
        assert await redis_client.smembers("test:owners:e1") == {"a1"}
        assert await redis_client.zrange("test:actor:a1", 0, -1) == ["e1"]

    @pytest.mark.asyncio
    async def test_visitor_has_no_roles(self, store, profile) -> None:
        assert await store.get_roles_for_user(SimpleActor(), entity("e1"), profile) == []

    @pytest.mark.asyncio
    async def test_unknown_role_names_skipped(self, store, profile) -> None:
        actor = SimpleActor(id="a1")
        await store.assign_role(entity("e1"), actor, "Retired")
        roles = await store.get_roles_for_user(actor, entity("e1"), profile)
        assert roles == []

    @pytest.mark.asyncio
    async def test_remove_role_cleans_indexes(self, store, redis_client) -> None:
        actor = SimpleActor(id="a1")
        await store.assign_role(entity("e1"), actor, "Reader")
        await store.assign_role(entity("e1"), actor, "Editor")

        await store.remove_role(entity("e1"), actor, "Reader")
        assert await store.get_role_owners(entity("e1")) == {"a1": ["Editor"]}

        await store.remove_role(entity("e1"), actor, "Editor")
        assert await store.get_role_owners(entity("e1")) == {}
        assert await redis_client.exists("test:owners:e1") == 0
        assert await store.get_actor_roles("a1", 0, 10) == {}

    @pytest.mark.asyncio
    async def test_ids_with_separators_get_distinct_keys(self, store, redis_client, profile) -> None:
        await store.assign_role(entity("org:7"), SimpleActor(id="alice"), "Editor")

        assert await store.get_roles_for_user(SimpleActor(id="7:alice"), entity("org"), profile) == []
        assert await redis_client.lrange("test:assign:org%3A7:alice", 0, -1) == ["Editor"]
        assert await store.get_role_owners(entity("org:7")) == {"alice": ["Editor"]}
        assert await store.get_actor_roles("alice", 0, 10) == {"org:7": ["Editor"]}

    @pytest.mark.asyncio
    async def test_reassign_after_last_removal_restores_indexes(self, store) -> None:
        actor = SimpleActor(id="a1")
        await store.assign_role(entity("e1"), actor, "Reader")
        await store.remove_role(entity("e1"), actor, "Reader")
        await store.assign_role(entity("e1"), actor, "Editor")

        assert await store.get_role_owners(entity("e1")) == {"a1": ["Editor"]}
        assert await store.get_actor_roles("a1", 0, 10) == {"e1": ["Editor"]}

    @pytest.mark.asyncio
    async def test_remove_keeps_indexes_of_other_actors(self, store) -> None:
        await store.assign_role(entity("e1"), SimpleActor(id="a1"), "Reader")
        await store.assign_role(entity("e1"), SimpleActor(id="a2"), "Reader")

        await store.remove_role(entity("e1"), SimpleActor(id="a1"), "Reader")
        await store.remove_role(entity("e1"), SimpleActor(id="a2"), "Editor")

        assert await store.get_role_owners(entity("e1")) == {"a2": ["Reader"]}
        assert await store.get_actor_roles("a2", 0, 10) == {"e1": ["Reader"]}

    @pytest.mark.asyncio
    async def test_remove_missing_is_noop(self, store) -> None:
        await store.remove_role(entity("e1"), SimpleActor(id="a1"), "Reader")
        assert await store.get_role_owners(entity("e1")) == {}

    @pytest.mark.asyncio
    async def test_role_owners(self, store) -> None:
        await store.assign_role(entity("e1"), SimpleActor(id="b"), "Reader")
        await store.assign_role(entity("e1"), SimpleActor(id="a"), "Editor")
        assert await store.get_role_owners(entity("e1")) == {"a": ["Editor"], "b": ["Reader"]}

    @pytest.mark.asyncio
    async def test_actor_roles_paginated(self, store) -> None:
        a1, a2 = SimpleActor(id="a1"), SimpleActor(id="a2")
        await store.assign_role(entity("e1"), a1, "Reader")
        await store.assign_role(entity("e2"), a2, "Reader")
        await store.assign_role(entity("e3"), a1, "Editor")
        await store.assign_role(entity("e4"), a1, "Reader")

        assert await store.get_actor_roles("a1", 0, 10) == {
            "e1": ["Reader"],
            "e3": ["Editor"],
            "e4": ["Reader"],
        }
        assert await store.get_actor_roles("a1", 1, 1) == {"e3": ["Editor"]}
        assert await store.get_actor_roles("a1", 0, 0) == {}


class TestRedisRoleDefinitions:
    """Tests for role definition storage."""

    @pytest.mark.asyncio
    async def test_save_get_delete(self, store, redis_client) -> None:
        role = Role(name="Editor", operations=frozenset({"WriteCommon", "ReadDeep"}), entity_type="Doc")
        await store.save_role("Doc", role)

        assert await redis_client.exists("test:role:Doc:Editor") == 1
        assert await store.get_saved_role("Doc", "Editor") == role

        await store.delete_role("Editor", "Doc")
        assert await store.get_saved_role("Doc", "Editor") is None


class TestRedisWithEngine:
    """The engine works unchanged on top of the Redis store."""

    @pytest.mark.asyncio
    async def test_assign_and_check(self, store) -> None:
        engine = AuthorizationEngine(store)
        doc = VirtualEntity(id="d1", permission_type_name="Doc", permissions_profile=PermissionProfile("Doc"))
        editor = await engine.add_role("Editor", ["WriteCommon"], doc)
        jeff = SimpleActor(id="1")

        assert await engine.is_allowed(jeff, "ReadCommon", doc) is False
        await engine.assign_role(doc, jeff, editor)
        assert await engine.is_allowed(jeff, "ReadCommon", doc) is True
        assert await engine.get_actor_roles(jeff) == {"d1": ["Editor"]}

    @pytest.mark.asyncio
    async def test_colon_in_ids_does_not_leak_roles(self, store) -> None:
        engine = AuthorizationEngine(store)
        doc_profile = PermissionProfile("Doc")
        org7 = VirtualEntity(id="org:7", permission_type_name="Doc", permissions_profile=doc_profile)
        org = VirtualEntity(id="org", permission_type_name="Doc", permissions_profile=doc_profile)
        owner = await engine.add_role("Owner", ["Admin"], org7)
        await engine.assign_role(org7, SimpleActor(id="alice"), owner)

        assert await engine.is_allowed(SimpleActor(id="alice"), "Delete", org7) is True
        assert await engine.is_allowed(SimpleActor(id="7:alice"), "Delete", org) is False


class TestStoreConstruction:
    """Tests for store construction and backend selection."""

    def test_requires_client_or_url(self) -> None:
        with pytest.raises(ConfigurationError):
            RedisPermissionStore()

    @pytest.mark.asyncio
    async def test_aclose_keeps_external_client(self, store, redis_client) -> None:
        await store.aclose()
        assert await redis_client.ping() is True

    def test_create_store_memory_default(self) -> None:
        assert isinstance(create_store(), MemoryPermissionStore)

    def test_create_store_redis(self) -> None:
        config = AccessConfig(
            store_backend=StoreBackend.REDIS,
            redis_url="redis://localhost:6379/0",
            redis_key_prefix="acl",
        )
        store = create_store(config)
        assert isinstance(store, RedisPermissionStore)

    def test_create_store_redis_without_url(self) -> None:
        with pytest.raises(ConfigurationError, match="redis_url"):
            create_store(AccessConfig(store_backend=StoreBackend.REDIS))

    def test_engine_from_config(self) -> None:
        engine = AuthorizationEngine.from_config(AccessConfig())
        assert isinstance(engine.store, MemoryPermissionStore)
