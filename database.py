# database.py
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

STUDENT_COLLECTION = "students"


class StudentDatabase:
    """Owns the motor client for the student records database.

    Created once at application startup, checked with ``ping()`` and closed on
    shutdown. Nothing else in the application opens its own client.
    """

    def __init__(self, uri: str, db_name: str, max_pool_size: int = 10):
        self.uri = uri
        self.db_name = db_name
        self.max_pool_size = max_pool_size
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self.client is not None

    async def connect(self) -> AsyncIOMotorDatabase:
        if self.client is not None:
            logger.info("Database already connected")
            return self.db
        logger.info(f"Connecting to MongoDB database: {self.db_name}")
        self.client = AsyncIOMotorClient(
            self.uri,
            tz_aware=True,
            maxPoolSize=self.max_pool_size,
            serverSelectionTimeoutMS=5000,
            socketTimeoutMS=45000,
            maxIdleTimeMS=10000,
            retryWrites=True,
            retryReads=True,
        )
        self.db = self.client[self.db_name]
        return self.db

    async def init_indexes(self):
        students = self.students
        await students.create_index("id", unique=True)
        await students.create_index([("name", ASCENDING)])
        await students.create_index([("email", ASCENDING)])
        await students.create_index([("createdAt", DESCENDING)])
        logger.info("Student indexes ensured")

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    async def close(self):
        if self.client is None:
            logger.info("Database is not connected")
            return
        self.client.close()
        self.client = None
        self.db = None
        logger.info("Database disconnected")

    @property
    def students(self) -> AsyncIOMotorCollection:
        if self.db is None:
            raise RuntimeError("Database not connected; call connect() first")
        return self.db[STUDENT_COLLECTION]
