import threading

import pytest

from storerating.core.errors import NotFoundError, ValidationError
from storerating.core.roles import Role
from storerating.models.rating import Rating
from storerating.services import aggregation_service, rating_service
from storerating.tests.helpers import auth_headers


def _rating_rows(db, user_id, store_id):
    db.expire_all()
    return db.query(Rating).filter(Rating.user_id == user_id, Rating.store_id == store_id).all()


def test_resubmission_updates_in_place(client, db, shopper, make_store):
    store = make_store()
    headers = auth_headers(shopper)

    r = client.post(f"/api/ratings/{store.id}", headers=headers, json={"rating": 3})
    assert r.status_code == 200
    first_id = r.json()["rating"]["id"]

    r = client.post(f"/api/ratings/{store.id}", headers=headers, json={"rating": 5})
    assert r.status_code == 200
    assert r.json()["rating"]["id"] == first_id
    assert r.json()["rating"]["rating"] == 5

    rows = _rating_rows(db, shopper.id, store.id)
    assert len(rows) == 1 and rows[0].rating == 5

    detail = client.get(f"/api/stores/{store.id}", headers=headers).json()["store"]
    assert detail["total_ratings"] == 1
    assert detail["average_rating"] == 5.0
    assert detail["user_rating"] == 5


def test_same_value_twice_keeps_one_row(client, db, shopper, make_store):
    store = make_store()
    headers = auth_headers(shopper)
    for _ in range(2):
        assert client.post(f"/api/ratings/{store.id}", headers=headers, json={"rating": 4}).status_code == 200

    rows = _rating_rows(db, shopper.id, store.id)
    assert [row.rating for row in rows] == [4]


@pytest.mark.parametrize("value", [0, 6, -1, 10])
def test_out_of_range_rating_rejected(client, db, shopper, make_store, value):
    store = make_store()
    r = client.post(f"/api/ratings/{store.id}", headers=auth_headers(shopper), json={"rating": value})
    assert r.status_code == 400
    assert r.json()["details"][0]["field"] == "rating"
    assert _rating_rows(db, shopper.id, store.id) == []


@pytest.mark.parametrize("value", ["great", True, False, "4", 4.0, 3.5, None])
def test_non_integer_rating_rejected(client, db, shopper, make_store, value):
    store = make_store()
    r = client.post(f"/api/ratings/{store.id}", headers=auth_headers(shopper), json={"rating": value})
    assert r.status_code == 400
    assert r.json()["error"] == "Validation failed"
    assert _rating_rows(db, shopper.id, store.id) == []


def test_rating_unknown_store(client, shopper):
    r = client.post("/api/ratings/9999", headers=auth_headers(shopper), json={"rating": 3})
    assert r.status_code == 404
    assert r.json() == {"error": "Store not found"}


def test_own_rating_lookup_and_delete(client, db, shopper, make_store, make_rating):
    store = make_store()
    headers = auth_headers(shopper)
    assert client.get(f"/api/ratings/{store.id}", headers=headers).json() == {"rating": None}

    make_rating(shopper, store, 2)
    assert client.get(f"/api/ratings/{store.id}", headers=headers).json() == {"rating": 2}

    assert client.delete(f"/api/ratings/{store.id}", headers=headers).status_code == 200
    assert _rating_rows(db, shopper.id, store.id) == []

    r = client.delete(f"/api/ratings/{store.id}", headers=headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Rating not found"


def test_store_owner_cannot_read_ratings_of_foreign_store(client, owner, make_user, make_store):
    other_owner = make_user(Role.store_owner)
    make_store(owner=owner)
    foreign = make_store(owner=other_owner)

    r = client.get(f"/api/ratings/store/{foreign.id}", headers=auth_headers(owner))
    assert r.status_code == 403


def test_store_ratings_visible_to_owner_and_admin_only(client, owner, admin, shopper, make_user, make_store, make_rating):
    store = make_store(owner=owner)
    make_rating(shopper, store, 4)
    make_rating(make_user(), store, 1)

    r = client.get(f"/api/ratings/store/{store.id}", headers=auth_headers(owner))
    assert r.status_code == 200
    body = r.json()
    assert len(body["ratings"]) == 2
    assert body["summary"] == {"average_rating": 2.5, "total_ratings": 2}
    assert {entry["user_email"] for entry in body["ratings"]} >= {shopper.email}

    assert client.get(f"/api/ratings/store/{store.id}", headers=auth_headers(admin)).status_code == 200
    assert client.get(f"/api/ratings/store/{store.id}", headers=auth_headers(shopper)).status_code == 403
    assert client.get("/api/ratings/store/9999", headers=auth_headers(admin)).status_code == 404


def test_submit_rating_service_validation(db, shopper, make_store):
    store = make_store()
    with pytest.raises(ValidationError):
        rating_service.submit_rating(db, shopper.id, store.id, True)
    with pytest.raises(ValidationError):
        rating_service.submit_rating(db, shopper.id, store.id, 3.5)
    with pytest.raises(NotFoundError):
        rating_service.submit_rating(db, shopper.id, store.id + 100, 3)


def test_insert_or_update_fallback_updates_existing_row(db, shopper, make_store, make_rating):
    store = make_store()
    make_rating(shopper, store, 1)

    rating_service._insert_or_update(db, shopper.id, store.id, 4)
    db.commit()

    rows = _rating_rows(db, shopper.id, store.id)
    assert len(rows) == 1 and rows[0].rating == 4


def test_insert_or_update_retries_lost_insert_as_update(monkeypatch, db, shopper, make_store, make_rating):
    store = make_store()
    make_rating(shopper, store, 2)
    find_rating = rating_service._find_rating
    lookups = []

    def stale_first_lookup(session, user_id, store_id):
        # The first read misses the row another writer already committed
        lookups.append(store_id)
        if len(lookups) == 1:
            return None
        return find_rating(session, user_id, store_id)

    monkeypatch.setattr(rating_service, "_find_rating", stale_first_lookup)

    rating_service._insert_or_update(db, shopper.id, store.id, 5)
    db.commit()

    assert len(lookups) == 2
    rows = _rating_rows(db, shopper.id, store.id)
    assert len(rows) == 1 and rows[0].rating == 5


def test_concurrent_submissions_leave_single_row(session_factory, shopper, make_store):
    store = make_store()
    values = [1, 2, 3, 4, 5, 2, 4, 1]
    barrier = threading.Barrier(len(values))
    errors = []

    def submit(value):
        session = session_factory()
        try:
            barrier.wait()
            rating_service.submit_rating(session, shopper.id, store.id, value)
        except Exception as exc:  # surfaced through the assertion below
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=submit, args=(v,)) for v in values]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with session_factory() as session:
        rows = session.query(Rating).filter(Rating.store_id == store.id).all()
        assert len(rows) == 1
        assert rows[0].rating in values
        aggregate = aggregation_service.store_aggregate(session, store.id)
        assert aggregate.total_ratings == 1
        assert aggregate.average_rating == float(rows[0].rating)
