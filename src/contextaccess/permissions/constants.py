"""Operation names, actor tiers and reserved role names.

Provides:
- ``Operations`` — names declared by the default taxonomy.
- ``Tier`` — relationship of an actor to an entity (visitor/user/group member).
- ``GROUP_ROLE_PREFIX`` — prefix of per-group roles (``"MemberOf" + group_id``).
"""

from __future__ import annotations


class Operations:
    """Operation names of :data:`DEFAULT_OPERATIONS_TAXONOMY`.

    Granting an operation grants every operation nested below it, so
    ``Operations.ADMIN`` implies everything and ``Operations.READ_HEADLINE``
    implies nothing else.

    Hosts that extend the taxonomy through a transform simply use their own
    strings; these constants only cover the defaults.
    """

    # ── Administration ──────────────────────────────────
    ADMIN = "Admin"
    ADD_ADMIN = "AddAdmin"
    CHANGE_PERMISSIONS = "ChangePermissions"
    DELETE_DATABASE = "DeleteDatabase"
    MANAGE_DATABASE = "ManageDatabase"
    MANAGE_USERS = "ManageUsers"
    SEND_MESSAGE = "SendMessage"
    MANAGE = "Manage"
    POWER_USER = "PowerUser"

    # ── Execution & trade ───────────────────────────────
    EXECUTE = "Execute"
    GENERIC_ACTION = "GenericAction"
    TRADE = "Trade"
    ACCEPT_PAYMENT = "AcceptPayment"
    SELL = "Sell"
    LOAN = "Loan"
    RENT = "Rent"
    BUY = "Buy"
    LEASE = "Lease"
    PAY = "Pay"
    ORDER = "Order"

    # ── Membership ──────────────────────────────────────
    EJECT = "Eject"
    INVITE = "Invite"
    JOIN = "Join"
    LEAVE = "Leave"

    # ── Moderation ──────────────────────────────────────
    DISABLE = "Disable"
    BAN = "Ban"
    SUSPEND = "Suspend"
    WARN = "Warn"
    FLAG = "Flag"

    # ── Content ─────────────────────────────────────────
    DELETE = "Delete"
    EDIT_ANYTHING = "EditAnything"
    WRITE_ANYTHING = "WriteAnything"
    WRITE_COMMON = "WriteCommon"
    READ_ANYTHING = "ReadAnything"
    READ_DEEP = "ReadDeep"
    READ_COMMON = "ReadCommon"
    READ_HEADLINE = "ReadHeadline"
    ADD_STUFF = "AddStuff"
    COMMENT = "Comment"
    RATE = "Rate"
    DOWN_VOTE = "DownVote"
    UP_VOTE = "UpVote"
    DETACH_ITEM = "DetachItem"
    ATTACH_ITEM = "AttachItem"


class Tier:
    """Relationship tier of an actor relative to an entity.

    Not a gate on which checks run: role, group and tier-default checks are
    all attempted for every candidate operation. Each tier also names a role
    (``"Visitor"``, ``"User"``, ``"GroupMember"``) that, when assigned, is
    consulted together with the tier's defaults.
    """

    VISITOR = "Visitor"
    USER = "User"
    GROUP_MEMBER = "GroupMember"


GROUP_ROLE_PREFIX = "MemberOf"


def group_role_name(group_id: str) -> str:
    """Name of the profile role granted to members of ``group_id``.

    Example::

        group_role_name("editors")  # "MemberOfeditors"
    """
    return f"{GROUP_ROLE_PREFIX}{group_id}"


__all__ = [
    "GROUP_ROLE_PREFIX",
    "Operations",
    "Tier",
    "group_role_name",
]
