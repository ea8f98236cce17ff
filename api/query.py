"""
Query-string helpers shared by the list endpoints.

Translates ``select``/``sort``/``page``/``limit``/``search`` and arbitrary
field filters (``rating[gte]=4``, ``genre=SciFi``) into MongoDB filter,
projection, sort and pagination arguments.
"""

import math
import re
from typing import Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId

from services.exceptions import NotFoundError, ValidationError

RESERVED_PARAMS = ("select", "sort", "page", "limit", "search")
COMPARISON_OPERATORS = ("gt", "gte", "lt", "lte", "in")

_BRACKET_KEY = re.compile(r"^(?P<field>[^\[\]]+)\[(?P<operator>[^\[\]]+)\]$")


def _cast_value(field: str, value: str, field_types: Dict[str, str]):
    field_type = field_types.get(field, "string")

    if field_type == "number":
        try:
            number = float(value)
        except ValueError:
            raise ValidationError(f"Invalid number for {field}: {value}")
        return int(number) if number.is_integer() else number

    if field_type == "bool":
        lowered = value.lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        raise ValidationError(f"Invalid boolean for {field}: {value}")

    if field_type == "objectid":
        try:
            return ObjectId(value)
        except (InvalidId, TypeError):
            raise NotFoundError("Resource not found")

    return value


def build_filter_query(
    params: Iterable[Tuple[str, str]],
    field_types: Optional[Dict[str, str]] = None,
    exclude: Iterable[str] = RESERVED_PARAMS
) -> Dict:
    """
    Build a MongoDB filter from query-string pairs.

    Args:
        params: (key, value) pairs, e.g. ``request.query_params.multi_items()``
        field_types: Field name -> "number" | "bool" | "objectid" | "string"
        exclude: Keys that control the listing rather than filter it

    Returns:
        MongoDB filter document
    """
    field_types = field_types or {}
    excluded = set(exclude)
    query: Dict = {}

    for key, value in params:
        if key in excluded:
            continue

        match = _BRACKET_KEY.match(key)
        if match:
            field, operator = match.group("field"), match.group("operator")
            if operator not in COMPARISON_OPERATORS:
                raise ValidationError(f"Unsupported filter operator: {operator}")
        else:
            field, operator = key, None

        if field.startswith("$"):
            raise ValidationError(f"Invalid filter field: {field}")

        if operator is None:
            casted = _cast_value(field, value, field_types)
            existing = query.get(field)
            if existing is None:
                query[field] = casted
            elif isinstance(existing, dict) and "$in" in existing:
                existing["$in"].append(casted)
            elif isinstance(existing, dict):
                existing["$eq"] = casted
            else:
                # Repeated plain keys behave like an "in" filter
                query[field] = {"$in": [existing, casted]}
            continue

        if operator == "in":
            casted = [_cast_value(field, item.strip(), field_types) for item in value.split(",") if item.strip()]
        else:
            casted = _cast_value(field, value, field_types)

        condition = query.get(field)
        if not isinstance(condition, dict):
            condition = {} if condition is None else {"$eq": condition}
            query[field] = condition
        condition[f"${operator}"] = casted

    return query


def build_search_query(term: Optional[str], fields: Iterable[str]) -> Optional[Dict]:
    """Case-insensitive substring match ORed across fields."""
    if not term:
        return None
    pattern = re.escape(term)
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}


def combine_queries(*queries: Optional[Dict]) -> Dict:
    """AND together non-empty filter documents."""
    parts = [q for q in queries if q]
    if not parts:
        return {}
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


def parse_projection(select: Optional[str]) -> Optional[Dict[str, int]]:
    """
    Turn ``select=title,author`` into a projection.

    A leading ``-`` excludes the field instead. Returns None when no
    projection is requested.
    """
    if not select:
        return None

    projection = {}
    for field in select.split(","):
        field = field.strip()
        if not field:
            continue
        if field.startswith("-"):
            projection[field[1:]] = 0
        else:
            projection[field] = 1

    values = set(projection.values())
    if len(values) > 1:
        raise ValidationError("Cannot mix field inclusion and exclusion in select")
    return projection or None


def parse_sort(sort: Optional[str], default: str = "-createdAt") -> List[Tuple[str, int]]:
    """Turn ``sort=rating,-title`` into pymongo sort pairs."""
    requested = sort or default
    pairs = []
    for field in requested.split(","):
        field = field.strip()
        if not field:
            continue
        if field.startswith("-"):
            pairs.append((field[1:], -1))
        else:
            pairs.append((field.lstrip("+"), 1))
    return pairs


def _parse_int(value, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed or default


def parse_pagination(page, limit, default_limit: int = 10, max_limit: int = 100) -> Tuple[int, int]:
    """Lenient page/limit parsing; bad values fall back to the defaults."""
    page = max(1, _parse_int(page, 1))
    limit = min(max(1, _parse_int(limit, default_limit)), max_limit)
    return page, limit


def build_pagination(total: int, page: int, limit: int, total_key: str = "total") -> Dict:
    """Pagination metadata returned next to list results."""
    start_index = (page - 1) * limit
    end_index = page * limit
    return {
        total_key: total,
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
        "limit": limit,
        "hasNextPage": end_index < total,
        "hasPrevPage": start_index > 0,
    }
