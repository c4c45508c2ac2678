"""
Listing parameters for the user and store catalogs.

Sort keys are resolved against a static allow-list; anything else, including a
bad direction, silently falls back to ``name asc``. The result is a
``ListQuery`` descriptor which the services turn into SQLAlchemy clauses, so
no request string is ever interpolated into SQL.
"""
from dataclasses import dataclass
from typing import Any, FrozenSet, List, Mapping, Optional

from sqlalchemy import func, or_

from storerating.core.roles import Role


DEFAULT_SORT_FIELD = "name"
DEFAULT_SORT_ORDER = "asc"

USER_SORT_FIELDS: FrozenSet[str] = frozenset(
    {"name", "email", "address", "role", "created_at", "average_rating"}
)
STORE_SORT_FIELDS: FrozenSet[str] = frozenset(
    {"name", "email", "address", "created_at", "average_rating", "total_ratings"}
)


@dataclass(frozen=True)
class ListParams:
    search: Optional[str] = None
    role: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None


@dataclass(frozen=True)
class ListQuery:
    search: Optional[str]
    role: Optional[Role]
    sort_field: str
    descending: bool
    # Set when the role filter names no known role; the listing is empty
    match_nothing: bool = False


def build_list_query(params: ListParams, allowed_fields: FrozenSet[str]) -> ListQuery:
    search = (params.search or "").strip() or None

    role: Optional[Role] = None
    match_nothing = False
    if params.role:
        try:
            role = Role(params.role)
        except ValueError:
            match_nothing = True

    sort_field = params.sort_by if params.sort_by in allowed_fields else None
    order = (params.sort_order or DEFAULT_SORT_ORDER).lower()
    if sort_field is None or order not in ("asc", "desc"):
        sort_field, order = DEFAULT_SORT_FIELD, DEFAULT_SORT_ORDER

    return ListQuery(
        search=search,
        role=role,
        sort_field=sort_field,
        descending=order == "desc",
        match_nothing=match_nothing,
    )


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_clause(term: str, *columns: Any):
    """Case-insensitive substring match on ANY of the given columns."""
    pattern = _like_pattern(term)
    return or_(*[func.lower(column).like(pattern, escape="\\") for column in columns])


def order_clauses(list_query: ListQuery, columns: Mapping[str, Any], tiebreak: Any) -> List[Any]:
    column = columns[list_query.sort_field]
    primary = column.desc() if list_query.descending else column.asc()
    return [primary, tiebreak.asc()]
