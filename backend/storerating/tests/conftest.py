import os

# Must be set before storerating.core.config is imported anywhere
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_ADMIN"] = "false"

import pytest
from fastapi.testclient import TestClient

from storerating.core.config import Settings
from storerating.core.roles import Role
from storerating.core.security import hash_password
from storerating.main import create_app
from storerating.models.rating import Rating
from storerating.models.store import Store
from storerating.models.user import User
from storerating.tests.helpers import PASSWORD


@pytest.fixture
def app(tmp_path):
    app_settings = Settings(
        env="test",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        seed_admin=False,
        bcrypt_rounds=4,
        backend_cors_origins="",
    )
    return create_app(app_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session_factory(app, client):
    # client fixture runs the lifespan, which creates the tables
    return app.state.db.session


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _persist(session_factory, obj):
    with session_factory() as session:
        session.add(obj)
        session.commit()
        session.refresh(obj)
        session.expunge(obj)
    return obj


@pytest.fixture
def make_user(session_factory):
    counter = {"n": 0}

    def _make(role=Role.user, name=None, email=None, password=PASSWORD, address="221B Baker Street, London"):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"Test Account Person Number {n:03d}",
            email=email or f"{role.value}{n}@example.com",
            address=address,
            password_hash=hash_password(password),
            role=role.value,
        )
        return _persist(session_factory, user)

    return _make


@pytest.fixture
def make_store(session_factory):
    counter = {"n": 0}

    def _make(name=None, email=None, address="1 Market Street", owner=None):
        counter["n"] += 1
        n = counter["n"]
        store = Store(
            name=name or f"Store {n}",
            email=email or f"store{n}@example.com",
            address=address,
            owner_id=owner.id if owner else None,
        )
        return _persist(session_factory, store)

    return _make


@pytest.fixture
def make_rating(session_factory):
    def _make(user, store, value):
        return _persist(session_factory, Rating(user_id=user.id, store_id=store.id, rating=value))

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(Role.admin, name="Administrator Primary Account", email="admin@example.com")


@pytest.fixture
def shopper(make_user):
    return make_user(Role.user, name="Regular Shopper Account Name", email="shopper@example.com")


@pytest.fixture
def owner(make_user):
    return make_user(Role.store_owner, name="Store Owner Account Holder", email="owner@example.com")
