# quickdesk/services/ticket_permissions.py
"""Field-level update permissions for tickets"""
from enum import Enum
from typing import FrozenSet

from quickdesk.models import Ticket, TicketStatus, User, UserRole


class Relationship(str, Enum):
    """How the caller relates to a ticket."""
    OWNER = "owner"
    ASSIGNEE = "assignee"
    NONE = "none"


OWNER_FIELDS = frozenset({"title", "description", "priority", "tags"})
STAFF_FIELDS = OWNER_FIELDS | frozenset({"status", "due_date", "resolution", "assigned_to"})
NO_FIELDS: FrozenSet[str] = frozenset()


# Capability matrix: (role, relationship) -> fields the caller may change
UPDATE_CAPABILITIES = {
    (UserRole.USER, Relationship.OWNER): OWNER_FIELDS,
    (UserRole.USER, Relationship.ASSIGNEE): STAFF_FIELDS,
    (UserRole.USER, Relationship.NONE): NO_FIELDS,
    (UserRole.AGENT, Relationship.OWNER): STAFF_FIELDS,
    (UserRole.AGENT, Relationship.ASSIGNEE): STAFF_FIELDS,
    (UserRole.AGENT, Relationship.NONE): STAFF_FIELDS,
    (UserRole.ADMIN, Relationship.OWNER): STAFF_FIELDS,
    (UserRole.ADMIN, Relationship.ASSIGNEE): STAFF_FIELDS,
    (UserRole.ADMIN, Relationship.NONE): STAFF_FIELDS,
}


def relationship_to(user: User, ticket: Ticket) -> Relationship:
    """Assignee wins over owner when a user is both."""
    if ticket.assigned_to_id is not None and ticket.assigned_to_id == user.id:
        return Relationship.ASSIGNEE
    if ticket.created_by_id is not None and ticket.created_by_id == user.id:
        return Relationship.OWNER
    return Relationship.NONE


def updatable_fields(user: User, ticket: Ticket) -> FrozenSet[str]:
    return UPDATE_CAPABILITIES.get((UserRole(user.role), relationship_to(user, ticket)), NO_FIELDS)


def owner_edit_locked(user: User, ticket: Ticket) -> bool:
    """A plain requester may only edit their own ticket while it is still open."""
    return (
        user.role == UserRole.USER
        and relationship_to(user, ticket) == Relationship.OWNER
        and ticket.status != TicketStatus.OPEN
    )


def can_view(user: User, ticket: Ticket) -> bool:
    return user.is_staff or ticket.created_by_id == user.id


def can_comment(user: User, ticket: Ticket) -> bool:
    return user.is_staff or relationship_to(user, ticket) != Relationship.NONE


def can_close(user: User, ticket: Ticket) -> bool:
    return user.is_staff or relationship_to(user, ticket) == Relationship.ASSIGNEE


def can_reopen(user: User, ticket: Ticket) -> bool:
    return user.is_staff or ticket.created_by_id == user.id
