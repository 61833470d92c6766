# routes/schema.py
import logging
from typing import Annotated, List, Optional

import strawberry
from fastapi import Request
from graphql import GraphQLError
from pydantic import ValidationError
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from models.student import SearchStudentInput, Student as StudentRecord, StudentInput
from .errors import (
    InvalidStudentInput,
    StudentNotFoundError,
    StudentServiceError,
    describe_validation_error,
)

logger = logging.getLogger(__name__)


@strawberry.type
class Student:
    id: strawberry.ID
    name: Optional[str]
    email: Optional[str]
    age: Optional[int]
    address: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_document(cls, doc: dict) -> "Student":
        record = StudentRecord.from_document(doc)
        return cls(
            id=strawberry.ID(record.id),
            name=record.name,
            email=record.email,
            age=record.age,
            address=record.address,
            created_at=record.createdAt,
            updated_at=record.updatedAt,
        )


@strawberry.input
class NewStudentInput:
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    address: Optional[str] = None


@strawberry.input(name="SearchStudentInput")
class SearchInput:
    search_term: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


def to_graphql_error(error: StudentServiceError) -> GraphQLError:
    if isinstance(error, StudentNotFoundError):
        return GraphQLError(error.message, extensions={"code": "NOT_FOUND", "id": error.student_id})
    if isinstance(error, InvalidStudentInput):
        logger.warning(f"{error.message}: {error.fields}")
        return GraphQLError(error.message, extensions={"code": "BAD_USER_INPUT", "fields": error.fields})
    return GraphQLError(error.message, extensions={"code": "INTERNAL_SERVER_ERROR"})


def parse_search_input(data: Optional[SearchInput]) -> SearchStudentInput:
    values = {}
    if data is not None:
        values = {
            "searchTerm": data.search_term,
            "sortBy": data.sort_by,
            "sortOrder": data.sort_order,
            "limit": data.limit,
            "offset": data.offset,
        }
    try:
        return SearchStudentInput(**{key: value for key, value in values.items() if value is not None})
    except ValidationError as e:
        raise InvalidStudentInput("Invalid search input", describe_validation_error(e)) from e


def parse_student_input(data: NewStudentInput) -> StudentInput:
    try:
        return StudentInput(name=data.name, email=data.email, age=data.age, address=data.address)
    except ValidationError as e:
        raise InvalidStudentInput("Invalid student input", describe_validation_error(e)) from e


def _store(info: Info):
    return info.context["students"]


@strawberry.type
class Query:
    @strawberry.field
    async def students(
        self,
        info: Info,
        search: Annotated[Optional[SearchInput], strawberry.argument(name="input")] = None,
    ) -> List[Student]:
        try:
            request = parse_search_input(search)
            docs = await _store(info).get_all_students(request)
        except StudentServiceError as e:
            raise to_graphql_error(e) from e
        return [Student.from_document(doc) for doc in docs]

    @strawberry.field
    async def student(self, info: Info, id: strawberry.ID) -> Optional[Student]:
        try:
            doc = await _store(info).get_student(str(id))
        except StudentServiceError as e:
            raise to_graphql_error(e) from e
        return Student.from_document(doc) if doc else None


@strawberry.type
class Mutation:
    @strawberry.mutation
    async def create_student(
        self, info: Info, data: Annotated[NewStudentInput, strawberry.argument(name="input")]
    ) -> Student:
        try:
            student = parse_student_input(data)
            doc = await _store(info).create_student(student)
        except StudentServiceError as e:
            raise to_graphql_error(e) from e
        return Student.from_document(doc)

    @strawberry.mutation
    async def update_student(
        self,
        info: Info,
        id: strawberry.ID,
        data: Annotated[NewStudentInput, strawberry.argument(name="input")],
    ) -> Student:
        try:
            student = parse_student_input(data)
            doc = await _store(info).update_student(str(id), student)
        except StudentServiceError as e:
            raise to_graphql_error(e) from e
        return Student.from_document(doc)

    @strawberry.mutation
    async def delete_student(self, info: Info, id: strawberry.ID) -> str:
        try:
            return await _store(info).delete_student(str(id))
        except StudentServiceError as e:
            raise to_graphql_error(e) from e


schema = strawberry.Schema(query=Query, mutation=Mutation)


async def get_context(request: Request) -> dict:
    return {"students": request.app.state.students}


def create_graphql_router() -> GraphQLRouter:
    return GraphQLRouter(schema, context_getter=get_context)
