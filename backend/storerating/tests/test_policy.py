from types import SimpleNamespace

import pytest

from storerating.core import policy
from storerating.core.errors import AuthorizationError, ConflictError
from storerating.core.policy import (
    ADMIN_AREA,
    Action,
    authorize,
    check_role_change,
    check_user_deletion,
    enforce,
    rating_resource,
    store_ratings_resource,
    store_resource,
    user_resource,
)
from storerating.core.roles import Role


def _user(user_id, role):
    return SimpleNamespace(id=user_id, role=role.value)


ADMIN = _user(1, Role.admin)
OWNER = _user(2, Role.store_owner)
SHOPPER = _user(3, Role.user)
OWN_STORE = SimpleNamespace(id=10, owner_id=OWNER.id)
OTHER_STORE = SimpleNamespace(id=11, owner_id=99)


@pytest.mark.parametrize("user, action, resource, expected", [
    (ADMIN, Action.delete, user_resource(SHOPPER.id), True),
    (ADMIN, Action.create, store_resource(), True),
    (ADMIN, Action.read, store_ratings_resource(OTHER_STORE), True),
    (ADMIN, Action.read, ADMIN_AREA, True),
    (ADMIN, Action.update, rating_resource(SHOPPER.id, 10), False),
    (ADMIN, Action.read, rating_resource(SHOPPER.id, 10), True),
    (OWNER, Action.browse, store_resource(OTHER_STORE), True),
    (OWNER, Action.read, store_resource(OWN_STORE), True),
    (OWNER, Action.update, store_resource(OWN_STORE), True),
    (OWNER, Action.read, store_resource(OTHER_STORE), False),
    (OWNER, Action.update, store_resource(OTHER_STORE), False),
    (OWNER, Action.create, store_resource(), False),
    (OWNER, Action.delete, store_resource(OWN_STORE), False),
    (OWNER, Action.read, store_ratings_resource(OWN_STORE), True),
    (OWNER, Action.read, store_ratings_resource(OTHER_STORE), False),
    (OWNER, Action.create, user_resource(), False),
    (OWNER, Action.read, ADMIN_AREA, False),
    (SHOPPER, Action.browse, store_resource(OWN_STORE), True),
    (SHOPPER, Action.update, store_resource(OWN_STORE), False),
    (SHOPPER, Action.create, rating_resource(SHOPPER.id, 10), True),
    (SHOPPER, Action.delete, rating_resource(SHOPPER.id, 10), True),
    (SHOPPER, Action.update, rating_resource(OWNER.id, 10), False),
    (SHOPPER, Action.read, store_ratings_resource(OWN_STORE), False),
    (SHOPPER, Action.update, user_resource(SHOPPER.id), True),
    (SHOPPER, Action.read, user_resource(OWNER.id), False),
    (SHOPPER, Action.read, ADMIN_AREA, False),
])
def test_authorize_table(user, action, resource, expected):
    assert authorize(user, action, resource) is expected


def test_unknown_role_is_denied():
    stranger = SimpleNamespace(id=5, role="superuser")
    assert authorize(stranger, Action.browse, store_resource()) is False


def test_enforce_raises_authorization_error():
    with pytest.raises(AuthorizationError):
        enforce(SHOPPER, Action.read, ADMIN_AREA)
    enforce(ADMIN, Action.read, ADMIN_AREA)


def test_user_deletion_guards():
    other_admin = _user(4, Role.admin)
    with pytest.raises(ConflictError):
        check_user_deletion(ADMIN, ADMIN, admin_count=2, owned_store_count=0)
    with pytest.raises(ConflictError):
        check_user_deletion(ADMIN, other_admin, admin_count=1, owned_store_count=0)
    with pytest.raises(ConflictError):
        check_user_deletion(ADMIN, OWNER, admin_count=1, owned_store_count=1)
    check_user_deletion(ADMIN, other_admin, admin_count=2, owned_store_count=0)
    check_user_deletion(ADMIN, OWNER, admin_count=1, owned_store_count=0)


def test_role_change_guards():
    with pytest.raises(ConflictError):
        check_role_change(ADMIN, Role.user, admin_count=1, owned_store_count=0)
    with pytest.raises(ConflictError):
        check_role_change(OWNER, Role.user, admin_count=1, owned_store_count=2)
    check_role_change(ADMIN, Role.admin, admin_count=1, owned_store_count=0)
    check_role_change(OWNER, Role.admin, admin_count=1, owned_store_count=0)


def test_every_role_has_a_decision_function():
    assert set(policy._DECIDERS) == set(Role)
