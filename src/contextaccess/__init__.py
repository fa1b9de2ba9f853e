from .config import AccessConfig, LogLevel, StoreBackend, load_access_config_from_env
from .engine import AuthorizationEngine
from .exceptions import (
    AccessDeniedError,
    ConfigurationError,
    ContextAccessError,
    ProviderError,
    StorageError,
)
from .interfaces import Actor, ManagedEntity, PermissionStore
from .logging import (
    DecisionFormatter,
    DecisionLoggerAdapter,
    get_decision_logger,
    safe_preview,
    setup_logging,
)
from .models import VISITOR, SimpleActor, VirtualEntity
from .permissions import (
    DEFAULT_OPERATIONS_TAXONOMY,
    GROUP_ROLE_PREFIX,
    OperationTaxonomy,
    Operations,
    PermissionProfile,
    Role,
    RoleDefinition,
    Tier,
    group_role_name,
    resolve_groups,
    standard_permission_checker,
)
from .stores import MemoryPermissionStore, RedisPermissionStore, create_store

__all__ = [
    'AccessConfig',
    'LogLevel',
    'StoreBackend',
    'load_access_config_from_env',
    'AuthorizationEngine',
    'AccessDeniedError',
    'ConfigurationError',
    'ContextAccessError',
    'ProviderError',
    'StorageError',
    'Actor',
    'ManagedEntity',
    'PermissionStore',
    'DecisionFormatter',
    'DecisionLoggerAdapter',
    'get_decision_logger',
    'safe_preview',
    'setup_logging',
    'VISITOR',
    'SimpleActor',
    'VirtualEntity',
    'DEFAULT_OPERATIONS_TAXONOMY',
    'GROUP_ROLE_PREFIX',
    'OperationTaxonomy',
    'Operations',
    'PermissionProfile',
    'Role',
    'RoleDefinition',
    'Tier',
    'group_role_name',
    'resolve_groups',
    'standard_permission_checker',
    'MemoryPermissionStore',
    'RedisPermissionStore',
    'create_store',
]
