# routes/health.py
from fastapi import APIRouter, Request

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/")
async def health(request: Request):
    students = request.app.state.students
    database = getattr(request.app.state, "database", None)
    if database is None:
        return {"status": "ok", "store": students.backend, "database": False}
    reachable = await database.ping()
    return {
        "status": "ok" if reachable else "degraded",
        "store": students.backend,
        "database": reachable,
    }
