# routes/students.py
import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.collation import Collation
from pymongo.errors import PyMongoError

from models.student import SearchStudentInput, StudentInput, parse_timestamp, utcnow
from .errors import StudentNotFoundError, StudentServiceError
from .student_query import SERVER_AGE_MATCH, build_student_pipeline, search_students

logger = logging.getLogger(__name__)

DELETED_MESSAGE = "Student deleted successfully"

# Case-insensitive ordering for text sort keys.
STUDENT_COLLATION = Collation(locale="en", strength=2)


class MongoStudents:
    """Student records stored in a MongoDB collection."""

    backend = "mongo"

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def get_all_students(self, request: SearchStudentInput) -> List[dict]:
        pipeline = build_student_pipeline(request)
        logger.info(
            f"Fetching students: searchTerm={request.searchTerm!r}, sortBy={request.sortBy}, "
            f"sortOrder={request.sortOrder}, limit={request.limit}, offset={request.offset}"
        )
        try:
            cursor = self.collection.aggregate(pipeline, collation=STUDENT_COLLATION)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Error fetching students: {e}", exc_info=True)
            raise StudentServiceError("Failed to fetch students") from e

    async def get_student(self, student_id: str) -> Optional[dict]:
        try:
            return await self.collection.find_one({"id": student_id}, {"_id": 0})
        except PyMongoError as e:
            logger.error(f"Error fetching student {student_id}: {e}", exc_info=True)
            raise StudentServiceError("Failed to fetch student") from e

    async def create_student(self, data: StudentInput) -> dict:
        now = utcnow()
        student_dict = data.model_dump()
        student_dict["id"] = str(uuid.uuid4())
        student_dict["createdAt"] = now
        student_dict["updatedAt"] = now
        try:
            await self.collection.insert_one(student_dict)
        except PyMongoError as e:
            logger.error(f"Error creating student: {e}", exc_info=True)
            raise StudentServiceError("Failed to create student") from e
        student_dict.pop("_id", None)
        logger.info(f"Created student {student_dict['id']} at {now.isoformat()}")
        return student_dict

    async def update_student(self, student_id: str, data: StudentInput) -> dict:
        now = utcnow()
        # Pipeline update: user values go through $literal so a leading "$" is
        # never read as a field path, and updatedAt never drops below createdAt.
        fields = {key: {"$literal": value} for key, value in data.model_dump().items()}
        fields["updatedAt"] = {"$max": [{"$ifNull": ["$createdAt", now]}, now]}
        try:
            updated = await self.collection.find_one_and_update(
                {"id": student_id},
                [{"$set": fields}],
                projection={"_id": 0},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Error updating student {student_id}: {e}", exc_info=True)
            raise StudentServiceError("Failed to update student") from e
        if updated is None:
            logger.warning(f"Update skipped, student not found: {student_id}")
            raise StudentNotFoundError(student_id)
        logger.info(f"Updated student {student_id}")
        return updated

    async def delete_student(self, student_id: str) -> str:
        try:
            result = await self.collection.delete_one({"id": student_id})
        except PyMongoError as e:
            logger.error(f"Error deleting student {student_id}: {e}", exc_info=True)
            raise StudentServiceError("Failed to delete student") from e
        if result.deleted_count == 0:
            logger.warning(f"Delete skipped, student not found: {student_id}")
            raise StudentNotFoundError(student_id)
        logger.info(f"Deleted student {student_id}")
        return DELETED_MESSAGE


class InMemoryStudents:
    """Same interface as MongoStudents, kept in a dict. For local runs and tests."""

    backend = "memory"

    def __init__(self, records: Optional[Iterable[dict]] = None, clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self._records: Dict[str, dict] = {}
        for record in records or []:
            record = dict(record)
            record.setdefault("id", str(uuid.uuid4()))
            self._records[str(record["id"])] = record

    def __len__(self):
        return len(self._records)

    async def get_all_students(self, request: SearchStudentInput) -> List[dict]:
        page = search_students(
            self._records.values(),
            search_term=request.searchTerm,
            sort_by=request.sortBy,
            sort_order=request.sortOrder,
            age_match=SERVER_AGE_MATCH,
            limit=request.limit,
            offset=request.offset,
        )
        return [dict(record) for record in page]

    async def get_student(self, student_id: str) -> Optional[dict]:
        record = self._records.get(student_id)
        return dict(record) if record is not None else None

    async def create_student(self, data: StudentInput) -> dict:
        now = self.clock()
        record = data.model_dump()
        record["id"] = str(uuid.uuid4())
        record["createdAt"] = now
        record["updatedAt"] = now
        self._records[record["id"]] = record
        logger.info(f"Created student {record['id']} at {now.isoformat()}")
        return dict(record)

    async def update_student(self, student_id: str, data: StudentInput) -> dict:
        record = self._records.get(student_id)
        if record is None:
            logger.warning(f"Update skipped, student not found: {student_id}")
            raise StudentNotFoundError(student_id)
        now = self.clock()
        created = parse_timestamp(record.get("createdAt"))
        record.update(data.model_dump())
        record["updatedAt"] = max(now, created) if created is not None else now
        logger.info(f"Updated student {student_id}")
        return dict(record)

    async def delete_student(self, student_id: str) -> str:
        if self._records.pop(student_id, None) is None:
            logger.warning(f"Delete skipped, student not found: {student_id}")
            raise StudentNotFoundError(student_id)
        logger.info(f"Deleted student {student_id}")
        return DELETED_MESSAGE
