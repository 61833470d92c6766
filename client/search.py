# client/search.py
from typing import Callable, Iterable, List, Optional

import config
from models.student import SORT_FIELDS, TIMESTAMP_FIELDS, parse_timestamp
from routes.student_query import CLIENT_AGE_MATCH, search_students
from .debounce import Debouncer


SORT_OPTIONS = (
    {"value": "name", "label": "Name"},
    {"value": "email", "label": "Email"},
    {"value": "age", "label": "Age"},
    {"value": "address", "label": "Address"},
    {"value": "createdAt", "label": "Created"},
)


def to_client_record(student: dict) -> dict:
    # API timestamps arrive as ISO strings; the mirror sorts them by instant.
    record = dict(student)
    for field in TIMESTAMP_FIELDS:
        parsed = parse_timestamp(record.get(field))
        if parsed is not None:
            record[field] = parsed
    return record


class StudentSearch:
    """Search and sort state for the student list, with a local filter/sort mirror.

    The raw search term changes on every keystroke; ``debounced_search_term``
    follows it once typing pauses and is what ``on_search_change`` receives.
    """

    def __init__(
        self,
        students: Optional[Iterable[dict]] = None,
        on_search_change: Optional[Callable] = None,
        on_sort_change: Optional[Callable[[str, str], None]] = None,
        delay: float = config.SEARCH_DEBOUNCE_SECONDS,
    ):
        self.search_term = ""
        self.debounced_search_term = ""
        self.sort_by = "name"
        self.sort_order = "asc"
        self.on_search_change = on_search_change
        self.on_sort_change = on_sort_change
        self.students: List[dict] = []
        self._debouncer = Debouncer(self._apply_search_term, delay=delay, initial="")
        self.set_students(students or [])

    def set_students(self, students: Iterable[dict]):
        self.students = [to_client_record(student) for student in students]

    def handle_search_change(self, value: str):
        self.search_term = value
        self._debouncer.push(value)

    def _apply_search_term(self, value: str):
        self.debounced_search_term = value
        if self.on_search_change is not None:
            return self.on_search_change(value)

    def flush(self):
        self._debouncer.flush()

    @property
    def search_task(self):
        return self._debouncer.task

    def handle_sort_change(self, field: str):
        if field not in SORT_FIELDS:
            raise ValueError(f"Cannot sort by {field!r}")
        new_order = "desc" if self.sort_by == field and self.sort_order == "asc" else "asc"
        self.sort_by = field
        self.sort_order = new_order
        if self.on_sort_change is not None:
            self.on_sort_change(field, new_order)

    def toggle_sort_order(self):
        self.sort_order = "desc" if self.sort_order == "asc" else "asc"
        if self.on_sort_change is not None:
            self.on_sort_change(self.sort_by, self.sort_order)

    def set_search_term(self, value: str):
        """Set both terms at once, skipping the debounce."""
        self._debouncer.cancel()
        self.search_term = value
        self.debounced_search_term = value

    @property
    def filtered_students(self) -> List[dict]:
        return search_students(
            self.students,
            search_term=self.debounced_search_term,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            age_match=CLIENT_AGE_MATCH,
        )

    @property
    def search_stats(self) -> dict:
        return {
            "total": len(self.students),
            "filtered": len(self.filtered_students),
            "hasSearch": bool(self.debounced_search_term),
            "searchTerm": self.debounced_search_term,
        }
