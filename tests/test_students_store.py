"""
Tests for the student stores: in-memory and MongoDB (motor collection mocked).
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from models.student import SearchStudentInput, StudentInput
from routes.errors import StudentNotFoundError, StudentServiceError
from routes.student_query import build_student_pipeline
from routes.students import DELETED_MESSAGE, STUDENT_COLLATION, InMemoryStudents, MongoStudents


def make_input(**overrides):
    values = {"name": "Eka", "email": "eka@example.com", "age": 22, "address": "Medan"}
    values.update(overrides)
    return StudentInput(**values)


class TestInMemoryStudents:
    @pytest.mark.asyncio
    async def test_get_all_uses_server_semantics(self, store):
        result = await store.get_all_students(SearchStudentInput(searchTerm="25.0"))
        assert [r["name"] for r in result] == ["Budi"]

    @pytest.mark.asyncio
    async def test_get_all_paginates(self, store):
        result = await store.get_all_students(SearchStudentInput(limit=2, offset=1))
        assert [r["name"] for r in result] == ["Budi", "Cici"]

    @pytest.mark.asyncio
    async def test_returns_copies(self, store):
        result = await store.get_student("s1")
        result["name"] = "Changed"
        assert (await store.get_student("s1"))["name"] == "Ana"

    @pytest.mark.asyncio
    async def test_get_unknown_student(self, store):
        assert await store.get_student("nope") is None

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, store):
        created = await store.create_student(make_input())
        assert created["id"]
        assert created["createdAt"] == created["updatedAt"]
        assert len(store) == 5

    @pytest.mark.asyncio
    async def test_update_never_moves_updated_at_before_created_at(self, sample_students):
        # A clock behind the stored createdAt must not produce updatedAt < createdAt.
        skewed = lambda: datetime(2020, 1, 1, tzinfo=timezone.utc)  # noqa: E731
        store = InMemoryStudents(sample_students, clock=skewed)
        updated = await store.update_student("s1", make_input(name="Ana Maria"))
        assert updated["name"] == "Ana Maria"
        assert updated["updatedAt"] >= updated["createdAt"]

    @pytest.mark.asyncio
    async def test_update_sets_updated_at(self, sample_students):
        later = sample_students[0]["createdAt"] + timedelta(days=30)
        store = InMemoryStudents(sample_students, clock=lambda: later)
        updated = await store.update_student("s1", make_input())
        assert updated["updatedAt"] == later

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, store):
        with pytest.raises(StudentNotFoundError) as exc_info:
            await store.update_student("nope", make_input())
        assert exc_info.value.message == "Student not found"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        assert await store.delete_student("s2") == DELETED_MESSAGE
        assert await store.get_student("s2") is None
        with pytest.raises(StudentNotFoundError):
            await store.delete_student("s2")


@pytest.fixture
def collection():
    return MagicMock()


class TestMongoStudents:
    @pytest.mark.asyncio
    async def test_get_all_runs_pipeline(self, collection, sample_students):
        cursor = MagicMock()
        cursor.to_list = AsyncMock(return_value=sample_students[:1])
        collection.aggregate.return_value = cursor
        request = SearchStudentInput(searchTerm="ana", limit=5)

        result = await MongoStudents(collection).get_all_students(request)

        assert result == sample_students[:1]
        collection.aggregate.assert_called_once_with(build_student_pipeline(request), collation=STUDENT_COLLATION)
        cursor.to_list.assert_awaited_once_with(length=None)

    @pytest.mark.asyncio
    async def test_get_all_hides_storage_error(self, collection):
        collection.aggregate.side_effect = PyMongoError("connection reset by peer")
        with pytest.raises(StudentServiceError) as exc_info:
            await MongoStudents(collection).get_all_students(SearchStudentInput())
        assert str(exc_info.value) == "Failed to fetch students"

    @pytest.mark.asyncio
    async def test_get_student(self, collection, sample_students):
        collection.find_one = AsyncMock(return_value=sample_students[0])
        assert await MongoStudents(collection).get_student("s1") == sample_students[0]
        collection.find_one.assert_awaited_once_with({"id": "s1"}, {"_id": 0})

    @pytest.mark.asyncio
    async def test_create_strips_mongo_id(self, collection):
        async def insert_one(doc):
            doc["_id"] = "object-id"

        collection.insert_one = AsyncMock(side_effect=insert_one)
        created = await MongoStudents(collection).create_student(make_input())
        assert "_id" not in created
        assert created["name"] == "Eka"
        assert isinstance(created["createdAt"], datetime)
        assert created["createdAt"] == created["updatedAt"]

    @pytest.mark.asyncio
    async def test_create_failure(self, collection):
        collection.insert_one = AsyncMock(side_effect=PyMongoError("boom"))
        with pytest.raises(StudentServiceError, match="Failed to create student"):
            await MongoStudents(collection).create_student(make_input())

    @pytest.mark.asyncio
    async def test_update_uses_literal_values(self, collection, sample_students):
        collection.find_one_and_update = AsyncMock(return_value=sample_students[0])
        await MongoStudents(collection).update_student("s1", make_input(name="$where"))

        args, kwargs = collection.find_one_and_update.call_args
        assert args[0] == {"id": "s1"}
        fields = args[1][0]["$set"]
        assert fields["name"] == {"$literal": "$where"}
        assert "$max" in fields["updatedAt"]
        assert kwargs["return_document"] == ReturnDocument.AFTER
        assert kwargs["projection"] == {"_id": 0}

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, collection):
        collection.find_one_and_update = AsyncMock(return_value=None)
        with pytest.raises(StudentNotFoundError):
            await MongoStudents(collection).update_student("nope", make_input())

    @pytest.mark.asyncio
    async def test_update_failure(self, collection):
        collection.find_one_and_update = AsyncMock(side_effect=PyMongoError("boom"))
        with pytest.raises(StudentServiceError, match="Failed to update student"):
            await MongoStudents(collection).update_student("s1", make_input())

    @pytest.mark.asyncio
    async def test_delete(self, collection):
        collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
        assert await MongoStudents(collection).delete_student("s1") == DELETED_MESSAGE

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self, collection):
        collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
        with pytest.raises(StudentNotFoundError):
            await MongoStudents(collection).delete_student("nope")

    @pytest.mark.asyncio
    async def test_delete_failure(self, collection):
        collection.delete_one = AsyncMock(side_effect=PyMongoError("boom"))
        with pytest.raises(StudentServiceError, match="Failed to delete student"):
            await MongoStudents(collection).delete_student("s1")
