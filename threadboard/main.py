# threadboard/main.py
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging

from threadboard.core.config import settings
from threadboard.core.exceptions import (
    DatabaseConnectionError,
    NotFoundError,
    ThreadStoreError,
    ValidationError,
)
from threadboard.db.mongodb import MongoDBConnection, create_thread_indexes
from threadboard.db.redis import RedisPathRevalidator
from threadboard.threads.routers.threads_routes import router as threads_router
from threadboard.threads.services.thread_store import ThreadStore

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL,
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store handles at startup and release them at shutdown"""
    logger.info("Starting up application services...")
    connection = MongoDBConnection()
    revalidator = RedisPathRevalidator()
    try:
        db = await connection.connect()
        await create_thread_indexes(db)
        app.state.thread_store = ThreadStore(connection, revalidator)
        logger.info("All services started successfully")
        yield
    finally:
        logger.info("Shutting down application...")
        connection.close()
        await revalidator.close()
        logger.info("Application shutdown completed")


STATUS_BY_ERROR = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (DatabaseConnectionError, 503),
]


async def thread_store_error_handler(request: Request, exc: ThreadStoreError):
    """Translate store error kinds into HTTP responses"""
    status_code = 500
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error(f"{exc}\nRequest path: {request.url.path}")
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "type": exc.kind
        }
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Threads feed API",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.DEBUG
    )

    app.add_exception_handler(ThreadStoreError, thread_store_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(threads_router, prefix=settings.API_V1_STR)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "threadboard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
