# routes/student_query.py
"""Search, sort and pagination rules for student records.

The MongoDB pipeline built here is what the server runs. ``search_students``
applies the same rules to a list held in memory; the in-memory store calls it
with ``age_match="exact"`` and the client mirror with ``age_match="substring"``.
"""
import math
import re
from datetime import datetime, timezone
from functools import cmp_to_key, lru_cache
from typing import Any, Iterable, List, Optional, Union

from pyuca import Collator

from models.student import TEXT_SEARCH_FIELDS, SearchStudentInput

# Server: a numeric term matches age exactly. Client: it matches the
# stringified age as a substring.
SERVER_AGE_MATCH = "exact"
CLIENT_AGE_MATCH = "substring"

MISSING_SORT_KEY = "_sortKeyMissing"

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def parse_search_number(term: Optional[str]) -> Optional[Union[int, float]]:
    if term is None:
        return None
    text = term.strip()
    if not _NUMBER_RE.match(text):
        return None
    value = float(text)
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


def build_search_filter(search_term: Optional[str]) -> dict:
    term = (search_term or "").strip()
    if not term:
        return {}
    pattern = {"$regex": re.escape(term), "$options": "i"}
    clauses: List[dict] = [{field: pattern} for field in TEXT_SEARCH_FIELDS]
    number = parse_search_number(term)
    if number is not None:
        clauses.append({"age": number})
    return {"$or": clauses}


def build_sort(sort_by: str, sort_order: Optional[str]) -> dict:
    return {sort_by: -1 if sort_order == "desc" else 1}


def build_student_pipeline(request: SearchStudentInput) -> List[dict]:
    """Aggregation pipeline for one page of the ``students`` query.

    Records without the sort key are flagged and sorted after all others in
    both directions, then ``id`` breaks ties so pages never overlap.
    """
    sort = {MISSING_SORT_KEY: 1}
    sort.update(build_sort(request.sortBy, request.sortOrder))
    sort["id"] = 1
    return [
        {"$match": build_search_filter(request.searchTerm)},
        {
            "$addFields": {
                MISSING_SORT_KEY: {
                    "$cond": [{"$eq": [{"$ifNull": [f"${request.sortBy}", None]}, None]}, 1, 0]
                }
            }
        },
        {"$sort": sort},
        {"$skip": request.offset},
        {"$limit": request.limit},
        {"$project": {"_id": 0, MISSING_SORT_KEY: 0}},
    ]


def field_value(record: Any, field: str) -> Any:
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _age_text(age: Any) -> str:
    if isinstance(age, float) and age.is_integer():
        age = int(age)
    return str(age)


def matches_search(record: Any, search_term: Optional[str], age_match: str = SERVER_AGE_MATCH) -> bool:
    term = (search_term or "").strip()
    if not term:
        return True
    needle = term.lower()
    for field in TEXT_SEARCH_FIELDS:
        value = field_value(record, field)
        if isinstance(value, str) and needle in value.lower():
            return True
    age = field_value(record, "age")
    if age is None or isinstance(age, bool):
        return False
    if age_match == CLIENT_AGE_MATCH:
        return needle in _age_text(age).lower()
    number = parse_search_number(term)
    return number is not None and _is_number(age) and age == number


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


@lru_cache(maxsize=None)
def _collator() -> Collator:
    return Collator()


def _text_key(value: str) -> tuple:
    # Unicode collation cut to its primary and secondary levels, the same
    # strength the server collation uses: accents count, case does not.
    key = _collator().sort_key(value.casefold())
    separators = [i for i, weight in enumerate(key) if weight == 0]
    return key[:separators[1]] if len(separators) > 1 else key


def _instant(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def compare_values(a: Any, b: Any) -> int:
    if isinstance(a, str) and isinstance(b, str):
        return _cmp(_text_key(a), _text_key(b))
    if _is_number(a) and _is_number(b):
        return _cmp(a, b)
    if isinstance(a, datetime) and isinstance(b, datetime):
        return _cmp(_instant(a), _instant(b))
    return _cmp(_text_key(str(a)), _text_key(str(b)))


def compare_students(a: Any, b: Any, sort_by: str, sort_order: Optional[str] = "asc") -> int:
    a_value = field_value(a, sort_by)
    b_value = field_value(b, sort_by)
    # Missing values trail in both directions, so this runs before inversion.
    if a_value is None or b_value is None:
        return _cmp(a_value is None, b_value is None)
    result = compare_values(a_value, b_value)
    return -result if sort_order == "desc" else result


def search_students(
    records: Iterable[Any],
    search_term: Optional[str] = None,
    sort_by: str = "name",
    sort_order: Optional[str] = "asc",
    age_match: str = SERVER_AGE_MATCH,
    limit: Optional[int] = None,
    offset: int = 0,
) -> list:
    matched = [record for record in records if matches_search(record, search_term, age_match)]

    def order(a, b):
        result = compare_students(a, b, sort_by, sort_order)
        if result == 0:
            result = _cmp(str(field_value(a, "id") or ""), str(field_value(b, "id") or ""))
        return result

    ordered = sorted(matched, key=cmp_to_key(order))
    if offset:
        ordered = ordered[offset:]
    if limit is not None:
        ordered = ordered[:limit]
    return ordered
