# routes/errors.py


class StudentServiceError(Exception):
    """Opaque failure reported to API callers; the cause is only logged."""

    def __init__(self, message: str = "Failed to fetch students"):
        super().__init__(message)
        self.message = message


class StudentNotFoundError(StudentServiceError):
    def __init__(self, student_id: str):
        super().__init__("Student not found")
        self.student_id = student_id


class InvalidStudentInput(StudentServiceError):
    def __init__(self, message: str = "Invalid student input", fields=None):
        super().__init__(message)
        self.fields = fields or {}


def describe_validation_error(error) -> dict:
    """Map a pydantic ValidationError to ``{field: message}``."""
    fields = {}
    for item in error.errors():
        loc = ".".join(str(part) for part in item.get("loc", ())) or "_global"
        fields.setdefault(loc, item.get("msg", "invalid value"))
    return fields
