"""
Authorization policy.

``authorize(user, action, resource)`` is a pure decision over the caller's role
and identity and the target resource; it never touches the database. Routes and
services call ``enforce`` which raises ``AuthorizationError`` on deny.

Catalog browsing (``Action.browse``) is the public store view every role gets;
``Action.read`` on a store is the management view scoped to its owner.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from storerating.core.errors import AuthorizationError, ConflictError
from storerating.core.roles import Role


class Action(str, Enum):
    browse = "browse"
    read = "read"
    create = "create"
    update = "update"
    delete = "delete"


class ResourceKind(str, Enum):
    user = "user"
    store = "store"
    rating = "rating"
    store_ratings = "store_ratings"
    admin_area = "admin_area"


@dataclass(frozen=True)
class Resource:
    kind: ResourceKind
    id: Optional[int] = None
    # user: the user itself; store / store_ratings: the store owner; rating: the rater
    owner_id: Optional[int] = None


ADMIN_AREA = Resource(ResourceKind.admin_area)


def user_resource(user_id: Optional[int] = None) -> Resource:
    return Resource(ResourceKind.user, id=user_id, owner_id=user_id)


def store_resource(store=None) -> Resource:
    if store is None:
        return Resource(ResourceKind.store)
    return Resource(ResourceKind.store, id=store.id, owner_id=store.owner_id)


def rating_resource(user_id: int, store_id: int) -> Resource:
    return Resource(ResourceKind.rating, id=store_id, owner_id=user_id)


def store_ratings_resource(store) -> Resource:
    return Resource(ResourceKind.store_ratings, id=store.id, owner_id=store.owner_id)


def _owns(user, resource: Resource) -> bool:
    return resource.owner_id is not None and resource.owner_id == user.id


def _decide_admin(user, action: Action, resource: Resource) -> bool:
    if resource.kind == ResourceKind.rating:
        # Admins may look at any rating row but only write their own
        return action in (Action.browse, Action.read) or _owns(user, resource)
    return True


def _decide_store_owner(user, action: Action, resource: Resource) -> bool:
    kind = resource.kind
    if kind == ResourceKind.admin_area:
        return False
    if kind == ResourceKind.user:
        return action in (Action.read, Action.update) and _owns(user, resource)
    if kind == ResourceKind.store:
        if action == Action.browse:
            return True
        return action in (Action.read, Action.update) and _owns(user, resource)
    if kind == ResourceKind.store_ratings:
        return action == Action.read and _owns(user, resource)
    if kind == ResourceKind.rating:
        return _owns(user, resource)
    return False


def _decide_user(user, action: Action, resource: Resource) -> bool:
    kind = resource.kind
    if kind == ResourceKind.admin_area or kind == ResourceKind.store_ratings:
        return False
    if kind == ResourceKind.user:
        return action in (Action.read, Action.update) and _owns(user, resource)
    if kind == ResourceKind.store:
        return action == Action.browse
    if kind == ResourceKind.rating:
        return _owns(user, resource)
    return False


_DECIDERS: Dict[Role, Callable[..., bool]] = {
    Role.admin: _decide_admin,
    Role.store_owner: _decide_store_owner,
    Role.user: _decide_user,
}

# A new Role must get its own decision function before the app will import.
if set(_DECIDERS) != set(Role):
    raise RuntimeError("authorization policy does not cover every role")


def authorize(user, action: Action, resource: Resource) -> bool:
    try:
        role = Role(user.role)
    except ValueError:
        return False
    return _DECIDERS[role](user, action, resource)


def enforce(user, action: Action, resource: Resource, message: Optional[str] = None) -> None:
    if not authorize(user, action, resource):
        raise AuthorizationError(message or "Insufficient permissions")


def check_user_deletion(actor, target, admin_count: int, owned_store_count: int) -> None:
    """Invariants guarding user deletion; raises ConflictError when one would break."""
    if target.id == actor.id:
        raise ConflictError("Cannot delete your own account")
    if target.role == Role.admin.value and admin_count <= 1:
        raise ConflictError("Cannot delete the last admin user")
    if owned_store_count > 0:
        raise ConflictError("Cannot delete user who owns stores. Please delete or reassign their stores first.")


def check_role_change(target, new_role: Role, admin_count: int, owned_store_count: int) -> None:
    """Role demotions must not remove the last admin or orphan a store owner's stores."""
    if target.role == Role.admin.value and new_role != Role.admin and admin_count <= 1:
        raise ConflictError("Cannot change the role of the last admin user")
    if target.role == Role.store_owner.value and new_role != Role.store_owner and owned_store_count > 0:
        raise ConflictError("Cannot change the role of a user who owns stores")
