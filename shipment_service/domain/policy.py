"""
Authorization policy.

All access decisions for shipments and user management live here. The
functions are pure: they look only at the actor's role and id and at the
owner id of the resource.

Rules:
    * admins may do anything;
    * any other role may act on a shipment only when it owns it;
    * user management is admin-only, there is no ownership of user records.
"""

from enum import Enum
from typing import Optional, Protocol

from .errors import Forbidden
from .models import UserRole

class Action(str, Enum):
    READ = "read"
    UPDATE = "update"
    CHANGE_STATUS = "change_status"
    DELETE = "delete"
    ADD_ATTACHMENT = "add_attachment"
    REMOVE_ATTACHMENT = "remove_attachment"

class Actor(Protocol):
    id: int
    role: str

def is_admin(role: str) -> bool:
    return role == UserRole.ADMIN.value

def can_access(role: str, actor_id: int, resource_owner_id: int, action: Action) -> bool:
    """Every shipment action currently shares the owner-or-admin rule."""
    if is_admin(role):
        return True
    return actor_id == resource_owner_id

def ensure_can_access(actor: Actor, resource_owner_id: int, action: Action) -> None:
    if not can_access(actor.role, actor.id, resource_owner_id, action):
        raise Forbidden("You do not have access to this shipment")

def ensure_admin(actor: Actor) -> None:
    if not is_admin(actor.role):
        raise Forbidden("You do not have permission to perform this action")

def shipment_scope(actor: Actor, requested_owner_id: Optional[int] = None) -> Optional[int]:
    """
    Owner id that list and statistics queries must be filtered by.

    ``None`` means unscoped, which only an admin without an explicit
    owner filter gets. Non-admins are always pinned to themselves and the
    requested owner is ignored.
    """
    if is_admin(actor.role):
        return requested_owner_id
    return actor.id
