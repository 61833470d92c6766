# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from database import StudentDatabase
from routes import health
from routes.schema import create_graphql_router
from routes.students import InMemoryStudents, MongoStudents

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(students=None, database: StudentDatabase = None) -> FastAPI:
    """Build the app. Passing ``students`` skips the database entirely."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.students is not None:
            yield
            return
        if config.STUDENT_STORE == "memory":
            logger.info("Using in-memory student store")
            app.state.students = InMemoryStudents()
            yield
            return
        db = database or StudentDatabase(config.MONGODB_URI, config.MONGODB_DB)
        try:
            await db.connect()
            await db.init_indexes()
            app.state.database = db
            app.state.students = MongoStudents(db.students)
            yield
        finally:
            await db.close()

    app = FastAPI(title="Student Records API", lifespan=lifespan)
    app.state.students = students
    app.state.database = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_graphql_router(), prefix="/api/graphql")
    app.include_router(health.router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
