"""Generic list query pipeline: filter, select, sort, paginate and populate."""

import logging
from collections.abc import Callable
from typing import Any

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection

from carrental.config import DEFAULT_PAGE_LIMIT
from carrental.utils.filter_builder import FilterBuilder, check_field_name
from carrental.utils.serializers import serialize_document

logger = logging.getLogger(__name__)

RESERVED_PARAMS = ("select", "sort", "page", "limit")
DEFAULT_SORT = [("createdAt", DESCENDING)]


def parse_positive_int(value: Any, default: int) -> int:
    """Parse a page/limit parameter, falling back to the default for junk or values below 1."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


def build_projection(select: str | None) -> dict[str, int] | None:
    """`select=name,tel` -> {'name': 1, 'tel': 1}"""
    if not select:
        return None
    fields = [check_field_name(f.strip()) for f in select.split(",") if f.strip()]
    return {field: 1 for field in fields} or None


def build_sort(sort: str | None) -> list[tuple[str, int]]:
    """`sort=name,-createdAt` -> [('name', 1), ('createdAt', -1)]"""
    if not sort:
        return list(DEFAULT_SORT)
    sort_fields = []
    for token in sort.split(","):
        token = token.strip()
        if not token:
            continue
        if token.startswith("-"):
            sort_fields.append((check_field_name(token[1:]), DESCENDING))
        else:
            sort_fields.append((check_field_name(token), ASCENDING))
    return sort_fields or list(DEFAULT_SORT)


def build_pagination(page: int, limit: int, total: int) -> dict[str, Any]:
    """Build next/prev links for a page of `limit` items out of `total`."""
    start_index = (page - 1) * limit
    end_index = page * limit
    pagination = {}
    if end_index < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start_index > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}
    return pagination


class QueryService:
    def __init__(self, default_limit: int = DEFAULT_PAGE_LIMIT):
        self.default_limit = default_limit

    def run_query(
        self,
        collection: Collection,
        params: dict[str, Any],
        field_types: dict[str, type] | None = None,
        base_filter: dict[str, Any] | None = None,
        populate: Callable[[list[dict[str, Any]]], list[dict[str, Any]]] | None = None,
    ) -> dict[str, Any]:
        """
        Run a bounded read against a collection.

        Args:
            collection: Collection to read from
            params: Flat mapping of query parameters
            field_types: Filterable fields and their value types
            base_filter: Conditions that always apply and cannot be overridden by params
            populate: Hook that attaches derived relations to the page of items

        Returns:
            Dict with items, total_count and pagination

        Raises:
            QueryError: if the parameters cannot be turned into a query
        """
        filter_params = {k: v for k, v in params.items() if k not in RESERVED_PARAMS}
        query_filter = FilterBuilder(field_types).add_all(filter_params).build()
        if base_filter:
            query_filter.update(base_filter)

        projection = build_projection(params.get("select"))
        sort = build_sort(params.get("sort"))
        page = parse_positive_int(params.get("page"), 1)
        limit = parse_positive_int(params.get("limit"), self.default_limit)
        skip = (page - 1) * limit

        # Counts the whole (access-scoped) collection, not the filtered result
        total_count = collection.count_documents(base_filter or {})

        cursor = collection.find(query_filter, projection).sort(sort).skip(skip).limit(limit)
        items = [serialize_document(doc) for doc in cursor]
        if populate and items:
            items = populate(items)

        logger.debug(f"Query on {collection.name}: filter={query_filter} page={page} limit={limit}")

        return {
            "items": items,
            "total_count": total_count,
            "pagination": build_pagination(page, limit, total_count),
        }


# Singleton instance
query_service = QueryService()
