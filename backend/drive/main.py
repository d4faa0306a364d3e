"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from drive.config import settings
from drive.database import engine, get_db
from drive.models import Base
from drive.services.errors import DriveError
from drive.services.object_store import object_store

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(levelname)s - [%(name)s] - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and the shared bucket on startup."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await object_store.ensure_bucket(settings.COMMON_BUCKET)
    logger.info("Startup complete")

    yield

    await engine.dispose()


app = FastAPI(
    title="GhostDrive Storage API",
    version="1.0.0",
    description="Per-user virtual filesystem over S3-compatible object storage.",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DriveError)
async def drive_error_handler(request: Request, exc: DriveError):
    """Render engine errors with the status each error kind carries."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/api/health")
async def health_check():
    """Verify API and database connectivity."""
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
    except Exception as e:
        return {"status": "error", "database": str(e)}


# Register routers
from drive.routes.users import router as users_router
from drive.routes.folders import router as folders_router
from drive.routes.files import router as files_router
from drive.routes.uploads import router as uploads_router
app.include_router(users_router)
app.include_router(folders_router)
app.include_router(files_router)
app.include_router(uploads_router)
