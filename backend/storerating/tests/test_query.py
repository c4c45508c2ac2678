from storerating.core.query import STORE_SORT_FIELDS, USER_SORT_FIELDS, ListParams, build_list_query
from storerating.core.roles import Role


def test_defaults_to_name_ascending():
    query = build_list_query(ListParams(), STORE_SORT_FIELDS)
    assert (query.sort_field, query.descending) == ("name", False)
    assert query.search is None


def test_allowed_field_and_direction_are_kept():
    query = build_list_query(ListParams(sort_by="total_ratings", sort_order="DESC"), STORE_SORT_FIELDS)
    assert (query.sort_field, query.descending) == ("total_ratings", True)


def test_unknown_field_or_direction_falls_back():
    for params in (
        ListParams(sort_by="password_hash", sort_order="desc"),
        ListParams(sort_by="role", sort_order="asc"),
        ListParams(sort_by="email", sort_order="random"),
    ):
        query = build_list_query(params, STORE_SORT_FIELDS)
        assert (query.sort_field, query.descending) == ("name", False)


def test_role_filter_is_typed():
    query = build_list_query(ListParams(role="store_owner", search="  shop  "), USER_SORT_FIELDS)
    assert query.role is Role.store_owner
    assert query.search == "shop"
    assert not query.match_nothing

    query = build_list_query(ListParams(role="wizard"), USER_SORT_FIELDS)
    assert query.role is None
    assert query.match_nothing
