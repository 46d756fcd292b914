import logging
import os
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

from attendance_tracker.api.v1.attendance import router
from attendance_tracker.api.v1.auth import auth_routes
from attendance_tracker.api.v1.students import str_router
from attendance_tracker.config import settings
from attendance_tracker.core.exceptions import AttendanceError
from attendance_tracker.database import database
from attendance_tracker.dependencies import get_db, get_session_user


def configure_logging():
    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding='utf-8'))

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


# Configure logging with UTF-8 encoding
configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    connected = await database.connect()
    if not connected:
        raise RuntimeError(f"Could not connect to database {settings.DATABASE_URL}")
    await database.create_tables()
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    try:
        await database.disconnect()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Classroom Attendance API",
    description="Student roster, spreadsheet import and daily attendance",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)

# Include routers
app.include_router(auth_routes)
app.include_router(str_router)
app.include_router(router)


@app.get("/", include_in_schema=False)
async def root(request: Request, db: AsyncSession = Depends(get_db)):
    user = await get_session_user(request, db)
    if user is None:
        return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)
    return FileResponse(os.path.join(settings.STATIC_DIR, "index.html"))


@app.get("/health")
async def health_check():
    db_status = await database.check_connection()
    return {
        "status": "healthy" if db_status else "degraded",
        "database": "connected" if db_status else "disconnected"
    }


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_errors(exc)}
    )


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


@app.exception_handler(AttendanceError)
async def attendance_exception_handler(request: Request, exc: AttendanceError):
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Error handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc) if str(exc) else "Internal server error"}
    )


if __name__ == "__main__":
    uvicorn.run("attendance_tracker.main:app", host=settings.HOST, port=settings.PORT, reload=settings.RELOAD)
