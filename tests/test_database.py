"""
Tests for the database lifecycle and its wiring into the app.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

import config
from database import STUDENT_COLLECTION, StudentDatabase
from main import create_app
from routes.students import MongoStudents


class TestStudentDatabase:
    @pytest.mark.asyncio
    async def test_connect_once(self):
        with patch("database.AsyncIOMotorClient") as client_cls:
            database = StudentDatabase("mongodb://example:27017", "records")
            await database.connect()
            await database.connect()
        client_cls.assert_called_once()
        assert client_cls.call_args.kwargs["tz_aware"] is True
        assert database.is_connected

    @pytest.mark.asyncio
    async def test_students_collection(self):
        with patch("database.AsyncIOMotorClient") as client_cls:
            database = StudentDatabase("mongodb://example:27017", "records")
            await database.connect()
        db = client_cls.return_value.__getitem__.return_value
        assert database.students is db.__getitem__.return_value
        db.__getitem__.assert_called_with(STUDENT_COLLECTION)

    def test_students_before_connect(self):
        with pytest.raises(RuntimeError):
            StudentDatabase("mongodb://example:27017", "records").students

    @pytest.mark.asyncio
    async def test_ping(self):
        database = StudentDatabase("mongodb://example:27017", "records")
        assert await database.ping() is False

        database.client = MagicMock()
        database.client.admin.command = AsyncMock(return_value={"ok": 1})
        assert await database.ping() is True

        database.client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("timeout"))
        assert await database.ping() is False

    @pytest.mark.asyncio
    async def test_init_indexes(self):
        database = StudentDatabase("mongodb://example:27017", "records")
        collection = MagicMock()
        collection.create_index = AsyncMock()
        database.db = {STUDENT_COLLECTION: collection}
        await database.init_indexes()
        collection.create_index.assert_any_await("id", unique=True)
        assert collection.create_index.await_count == 4

    @pytest.mark.asyncio
    async def test_close(self):
        database = StudentDatabase("mongodb://example:27017", "records")
        client = MagicMock()
        database.client = client
        await database.close()
        client.close.assert_called_once()
        assert not database.is_connected


class TestLifespan:
    def test_mongo_store_opens_and_closes_database(self, monkeypatch):
        monkeypatch.setattr(config, "STUDENT_STORE", "mongo")
        database = MagicMock()
        database.connect = AsyncMock()
        database.init_indexes = AsyncMock()
        database.close = AsyncMock()
        app = create_app(database=database)

        with TestClient(app):
            assert isinstance(app.state.students, MongoStudents)
            assert app.state.students.collection is database.students
            database.connect.assert_awaited_once()
            database.init_indexes.assert_awaited_once()
        database.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_database_closed_when_startup_fails(self, monkeypatch):
        monkeypatch.setattr(config, "STUDENT_STORE", "mongo")
        database = MagicMock()
        database.connect = AsyncMock()
        database.init_indexes = AsyncMock(side_effect=ServerSelectionTimeoutError("timeout"))
        database.close = AsyncMock()
        app = create_app(database=database)

        with pytest.raises(ServerSelectionTimeoutError):
            async with app.router.lifespan_context(app):
                pass
        database.close.assert_awaited_once()
        assert app.state.students is None

    def test_memory_store(self, monkeypatch):
        monkeypatch.setattr(config, "STUDENT_STORE", "memory")
        app = create_app()
        with TestClient(app) as client:
            assert app.state.students.backend == "memory"
            response = client.get("/api/health/")
        assert response.json()["store"] == "memory"
