# client/management.py
import logging
from typing import Optional

import config
from .api import StudentApiError, StudentsApi
from .form import StudentForm
from .search import StudentSearch

logger = logging.getLogger(__name__)


class StudentManagement:
    """Search, list, create, edit and delete students through the API.

    Search and sort changes refetch from the server; the server result is
    then re-filtered and re-sorted locally by ``StudentSearch``.
    """

    def __init__(self, api: StudentsApi, limit: int = 100, delay: float = config.SEARCH_DEBOUNCE_SECONDS):
        self.api = api
        self.limit = limit
        self.students = []
        self.error: Optional[StudentApiError] = None
        self.is_loading = False
        self._request_id = 0
        self.search = StudentSearch(on_search_change=self._on_search_change, delay=delay)
        self.form = StudentForm()
        self.show_form = False
        self.editing_student: Optional[dict] = None

    @property
    def is_editing(self) -> bool:
        return self.editing_student is not None

    @property
    def is_creating(self) -> bool:
        return self.show_form and self.editing_student is None

    @property
    def visible_students(self):
        return self.search.filtered_students

    async def refetch(self):
        # Only the most recently issued request may update the list.
        self._request_id += 1
        request_id = self._request_id
        self.is_loading = True
        try:
            students = await self.api.students(
                search_term=self.search.debounced_search_term or None,
                sort_by=self.search.sort_by,
                sort_order=self.search.sort_order,
                limit=self.limit,
                offset=0,
            )
        except StudentApiError as e:
            if request_id == self._request_id:
                logger.error(f"Error fetching students: {e.message}")
                self.error = e
                self.is_loading = False
            return self.students
        if request_id != self._request_id:
            logger.debug(f"Discarding superseded students response {request_id}")
            return self.students
        self.students = students
        self.search.set_students(students)
        self.error = None
        self.is_loading = False
        return self.students

    async def _on_search_change(self, term: str):
        await self.refetch()

    def handle_search_change(self, value: str):
        self.search.handle_search_change(value)

    async def handle_sort_change(self, field: str):
        self.search.handle_sort_change(field)
        await self.refetch()

    async def toggle_sort_order(self):
        self.search.toggle_sort_order()
        await self.refetch()

    def handle_create(self):
        self.editing_student = None
        self.form.reset()
        self.show_form = True

    def handle_edit(self, student: dict):
        self.editing_student = student
        self.form.load(student)
        self.show_form = True

    def handle_form_close(self):
        self.show_form = False
        self.editing_student = None
        self.form.reset()

    async def handle_submit(self) -> bool:
        if not self.form.validate():
            return False
        self.form.is_submitting = True
        try:
            if self.editing_student is not None:
                await self.api.update_student(self.editing_student["id"], self.form.to_input())
            else:
                await self.api.create_student(self.form.to_input())
        except StudentApiError as e:
            logger.error(f"Error submitting student form: {e.message}")
            self.form.errors["_global"] = e.message
            self.form.is_submitting = False
            return False
        self.handle_form_close()
        await self.refetch()
        return True

    async def handle_delete(self, student_id: str) -> bool:
        try:
            await self.api.delete_student(student_id)
        except StudentApiError as e:
            logger.error(f"Error deleting student {student_id}: {e.message}")
            self.error = e
            return False
        await self.refetch()
        return True

    async def reset(self):
        self.show_form = False
        self.editing_student = None
        self.form.reset()
        self.search.set_search_term("")
        await self.refetch()
