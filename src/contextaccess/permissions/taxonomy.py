"""Operation taxonomy: the implication hierarchy over operation names.

Provides:
- ``DEFAULT_OPERATIONS_TAXONOMY`` — the nested default hierarchy.
- ``OperationTaxonomy`` — ancestor graph + closure built from a hierarchy.

A parent operation implies all of its children. To find out whether some
grant covers operation X, expand X to X plus all of its ancestors and look
for any of them among the granted operations.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from ..exceptions import ConfigurationError
from .constants import Operations as Op

# ── Default Hierarchy ───────────────────────────────────
# Nested mapping: parent → {child: {...}}. Leaves map to an empty dict.
# The same name may appear under several parents (ReadCommon does).

DEFAULT_OPERATIONS_TAXONOMY: dict[str, Any] = {
    Op.ADMIN: {
        Op.ADD_ADMIN: {
            Op.CHANGE_PERMISSIONS: {},
        },
        Op.DELETE_DATABASE: {
            Op.MANAGE_DATABASE: {
                Op.MANAGE_USERS: {
                    Op.SEND_MESSAGE: {},
                },
            },
        },
        Op.MANAGE: {
            Op.POWER_USER: {
                Op.EXECUTE: {
                    Op.GENERIC_ACTION: {},
                    Op.TRADE: {
                        Op.ACCEPT_PAYMENT: {
                            Op.SELL: {
                                Op.LOAN: {},
                                Op.RENT: {},
                            },
                        },
                        Op.BUY: {
                            Op.LEASE: {},
                            Op.PAY: {},
                            Op.ORDER: {},
                        },
                    },
                },
                Op.EJECT: {
                    Op.INVITE: {
                        Op.JOIN: {
                            Op.LEAVE: {},
                        },
                    },
                },
                Op.DISABLE: {
                    Op.BAN: {
                        Op.SUSPEND: {
                            Op.WARN: {},
                            Op.FLAG: {},
                        },
                    },
                },
                Op.DELETE: {
                    Op.EDIT_ANYTHING: {
                        Op.WRITE_ANYTHING: {
                            Op.WRITE_COMMON: {
                                Op.READ_COMMON: {},
                            },
                            Op.READ_ANYTHING: {
                                Op.READ_DEEP: {
                                    Op.READ_COMMON: {
                                        Op.READ_HEADLINE: {},
                                    },
                                },
                            },
                        },
                        Op.ADD_STUFF: {
                            Op.COMMENT: {},
                            Op.RATE: {
                                Op.DOWN_VOTE: {
                                    Op.UP_VOTE: {},
                                },
                            },
                            Op.DETACH_ITEM: {
                                Op.ATTACH_ITEM: {},
                            },
                        },
                    },
                },
            },
        },
    },
}


class OperationTaxonomy:
    """Ancestor graph and implication closure over a nested hierarchy.

    Built by a single depth-first walk: every name gets the names on its path
    from the root unioned into its ancestor set, so a name nested under two
    parents ends up with the ancestors of both paths.

    Args:
        hierarchy: Nested mapping of operation names. Children may be given as
            a mapping, as an iterable of leaf names, or as ``None``/``{}``.

    Raises:
        ConfigurationError: A name is nested below itself, or a node is
            neither a mapping nor an iterable of names.

    Example::

        taxonomy = OperationTaxonomy(DEFAULT_OPERATIONS_TAXONOMY)
        taxonomy.find("ReadCommon")   # True
        taxonomy.expand("ReadCommon") # frozenset({"ReadCommon", "ReadDeep", ..., "Admin"})
    """

    __slots__ = ("_ancestors", "_closure")

    def __init__(self, hierarchy: Mapping[str, Any]) -> None:
        if not isinstance(hierarchy, Mapping):
            raise ConfigurationError(
                f"Operation hierarchy must be a mapping, got {type(hierarchy).__name__}"
            )
        ancestors: dict[str, set[str]] = {}
        self._walk(hierarchy, (), ancestors)
        self._ancestors: dict[str, frozenset[str]] = {
            name: frozenset(parents) for name, parents in ancestors.items()
        }
        self._closure: dict[str, frozenset[str]] = {name: self._close(name) for name in self._ancestors}

    @classmethod
    def _walk(cls, node: Any, path: tuple[str, ...], ancestors: dict[str, set[str]]) -> None:
        for name, children in cls._children(node, path):
            if name in path:
                raise ConfigurationError(
                    f"Operation '{name}' is nested below itself: {' > '.join(path + (name,))}",
                    operation=name,
                )
            ancestors.setdefault(name, set()).update(path)
            if children:
                cls._walk(children, path + (name,), ancestors)

    @staticmethod
    def _children(node: Any, path: tuple[str, ...]) -> Iterator[tuple[str, Any]]:
        if isinstance(node, Mapping):
            for name, children in node.items():
                if not isinstance(name, str) or not name:
                    raise ConfigurationError(f"Operation names must be non-empty strings, got {name!r}")
                yield name, children
            return
        if isinstance(node, str):
            yield node, None
            return
        try:
            names = list(node)
        except TypeError:
            where = " > ".join(path) or "<root>"
            raise ConfigurationError(
                f"Invalid operation hierarchy node under {where}: {type(node).__name__}"
            ) from None
        for name in names:
            if not isinstance(name, str) or not name:
                raise ConfigurationError(f"Operation names must be non-empty strings, got {name!r}")
            yield name, None

    def _close(self, operation: str) -> frozenset[str]:
        expanded: set[str] = {operation}
        queue = [operation]

        while queue:
            op = queue.pop()
            for parent in self._ancestors.get(op, ()):
                if parent not in expanded:
                    expanded.add(parent)
                    queue.append(parent)

        return frozenset(expanded)

    # ── Queries ──────────────────────────────────────────

    def find(self, operation: str) -> bool:
        """Check whether ``operation`` is declared in the taxonomy."""
        return operation in self._ancestors

    def require(self, operation: str) -> None:
        """Raise ConfigurationError unless ``operation`` is declared."""
        if operation not in self._ancestors:
            raise ConfigurationError(
                f"Operation {operation} is not defined. Consider adding it to the operations taxonomy.",
                operation=operation,
            )

    def expand(self, operation: str) -> frozenset[str]:
        """Return ``operation`` together with every operation that implies it.

        Args:
            operation: A declared operation name.

        Returns:
            Frozenset containing the operation and all of its ancestors.

        Raises:
            ConfigurationError: The operation is not declared.

        Example::

            >>> sorted(taxonomy.expand("Order"))
            ['Admin', 'Buy', 'Execute', 'Manage', 'Order', 'PowerUser', 'Trade']
        """
        try:
            return self._closure[operation]
        except KeyError:
            self.require(operation)
            raise

    def ancestors(self, operation: str) -> frozenset[str]:
        """Ancestors collected from every path leading to ``operation``."""
        self.require(operation)
        return self._ancestors[operation]

    @property
    def operations(self) -> frozenset[str]:
        return frozenset(self._ancestors)

    def __contains__(self, operation: object) -> bool:
        return operation in self._ancestors

    def __iter__(self) -> Iterator[str]:
        return iter(self._ancestors)

    def __len__(self) -> int:
        return len(self._ancestors)

    def __repr__(self) -> str:
        return f"OperationTaxonomy(operations={len(self._ancestors)})"


__all__ = [
    "DEFAULT_OPERATIONS_TAXONOMY",
    "OperationTaxonomy",
]
