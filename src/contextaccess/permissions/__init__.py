"""Operation taxonomy, permission profiles and the standard decision.

Defines:
- Operations / Tier: default operation names and actor tiers
- DEFAULT_OPERATIONS_TAXONOMY / OperationTaxonomy: implication hierarchy
- PermissionProfile / Role: per-entity-type policy and named role bundles
- resolve_groups(): group specifier resolution
- standard_permission_checker(): the precedence ladder
"""

from .checker import standard_permission_checker
from .constants import GROUP_ROLE_PREFIX, Operations, Tier, group_role_name
from .groups import GroupSpecifier, common_groups, resolve_groups
from .profile import PermissionProfile, Role, RoleDefinition
from .taxonomy import DEFAULT_OPERATIONS_TAXONOMY, OperationTaxonomy

__all__ = [
    "DEFAULT_OPERATIONS_TAXONOMY",
    "GROUP_ROLE_PREFIX",
    "GroupSpecifier",
    "OperationTaxonomy",
    "Operations",
    "PermissionProfile",
    "Role",
    "RoleDefinition",
    "Tier",
    "common_groups",
    "group_role_name",
    "resolve_groups",
    "standard_permission_checker",
]
