# client/form.py
import re
from typing import Any, Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_AGE = 1
MAX_AGE = 120


def empty_form() -> dict:
    return {"name": "", "email": "", "age": 0, "address": ""}


class StudentForm:
    """Create/edit form state with the checks the UI applies before submitting."""

    def __init__(self, editing_student: Optional[dict] = None):
        self.data = empty_form()
        self.errors = {}
        self.is_submitting = False
        if editing_student:
            self.load(editing_student)

    def load(self, student: dict):
        self.data = {
            "name": student.get("name") or "",
            "email": student.get("email") or "",
            "age": student.get("age") or 0,
            "address": student.get("address") or "",
        }
        self.errors = {}

    def handle_input_change(self, field: str, value: Any):
        if field not in self.data:
            raise KeyError(field)
        if field == "age":
            try:
                value = int(value)
            except (TypeError, ValueError):
                value = 0
        self.data[field] = value
        self.errors.pop(field, None)

    def validate(self) -> bool:
        errors = {}
        if not str(self.data["name"]).strip():
            errors["name"] = "Name is required"
        email = str(self.data["email"]).strip()
        if not email:
            errors["email"] = "Email is required"
        elif not EMAIL_RE.match(email):
            errors["email"] = "Email format is invalid"
        age = self.data["age"]
        if not isinstance(age, int) or not MIN_AGE <= age <= MAX_AGE:
            errors["age"] = f"Age must be between {MIN_AGE} and {MAX_AGE}"
        if not str(self.data["address"]).strip():
            errors["address"] = "Address is required"
        self.errors = errors
        return not errors

    def to_input(self) -> dict:
        return {
            "name": str(self.data["name"]).strip(),
            "email": str(self.data["email"]).strip(),
            "age": self.data["age"],
            "address": str(self.data["address"]).strip(),
        }

    def reset(self):
        self.data = empty_form()
        self.errors = {}
        self.is_submitting = False
