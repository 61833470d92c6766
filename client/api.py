# client/api.py
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

STUDENT_FIELDS = "id name email age address createdAt updatedAt"

GET_STUDENTS = f"""
query GetStudents($input: SearchStudentInput) {{
  students(input: $input) {{ {STUDENT_FIELDS} }}
}}
"""

GET_STUDENT = f"""
query GetStudent($id: ID!) {{
  student(id: $id) {{ {STUDENT_FIELDS} }}
}}
"""

CREATE_STUDENT = f"""
mutation CreateStudent($input: NewStudentInput!) {{
  createStudent(input: $input) {{ {STUDENT_FIELDS} }}
}}
"""

UPDATE_STUDENT = f"""
mutation UpdateStudent($id: ID!, $input: NewStudentInput!) {{
  updateStudent(id: $id, input: $input) {{ {STUDENT_FIELDS} }}
}}
"""

DELETE_STUDENT = """
mutation DeleteStudent($id: ID!) {
  deleteStudent(id: $id)
}
"""


class StudentApiError(Exception):
    def __init__(self, message: str, code: Optional[str] = None, errors: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.errors = errors or []


class StudentsApi:
    """GraphQL client for the student records API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        endpoint: str = "/api/graphql",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.endpoint = endpoint
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    async def execute(self, query: str, variables: Optional[dict] = None) -> dict:
        try:
            response = await self.client.post(self.endpoint, json={"query": query, "variables": variables or {}})
        except httpx.HTTPError as e:
            logger.error(f"Request to {self.endpoint} failed: {e}")
            raise StudentApiError("Network error", code="NETWORK_ERROR") from e
        try:
            payload = response.json()
        except ValueError as e:
            raise StudentApiError(f"Unexpected response ({response.status_code})", code="BAD_RESPONSE") from e
        errors = payload.get("errors")
        if errors:
            first = errors[0]
            code = (first.get("extensions") or {}).get("code")
            logger.warning(f"GraphQL error: {first.get('message')} ({code})")
            raise StudentApiError(first.get("message", "Request failed"), code=code, errors=errors)
        if response.status_code >= 400:
            raise StudentApiError(f"Request failed ({response.status_code})", code="BAD_RESPONSE")
        return payload.get("data") or {}

    async def students(
        self,
        search_term: Optional[str] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
        limit: int = 100,
        offset: int = 0,
    ) -> list:
        variables = {
            "input": {
                "searchTerm": search_term or None,
                "sortBy": sort_by,
                "sortOrder": sort_order,
                "limit": limit,
                "offset": offset,
            }
        }
        data = await self.execute(GET_STUDENTS, variables)
        return data.get("students") or []

    async def student(self, student_id: str) -> Optional[dict]:
        data = await self.execute(GET_STUDENT, {"id": student_id})
        return data.get("student")

    async def create_student(self, student: dict) -> dict:
        data = await self.execute(CREATE_STUDENT, {"input": student})
        created = data.get("createStudent")
        if not created:
            raise StudentApiError("Failed to create student")
        return created

    async def update_student(self, student_id: str, student: dict) -> dict:
        data = await self.execute(UPDATE_STUDENT, {"id": student_id, "input": student})
        updated = data.get("updateStudent")
        if not updated:
            raise StudentApiError("Failed to update student")
        return updated

    async def delete_student(self, student_id: str) -> str:
        data = await self.execute(DELETE_STUDENT, {"id": student_id})
        return data.get("deleteStudent")
