"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from drive.config import settings
from drive.database import engine, get_db
from drive.error_handlers import setup_error_handlers
from drive.models import Base
from drive.services.blob_storage import create_blob_storage
from drive.services.identity import IdentityClient

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, open collaborator clients once for the whole process."""
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.identity = IdentityClient(
        settings.SUPABASE_URL, settings.SUPABASE_KEY, timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    app.state.blob_storage = create_blob_storage(settings)
    await app.state.identity.open()
    await app.state.blob_storage.open()
    logger.info("Drive API started (storage=%s)", settings.FILE_STORAGE_TYPE)

    yield

    # Cleanup
    await app.state.blob_storage.close()
    await app.state.identity.close()
    await engine.dispose()
    logger.info("Drive API stopped")


app = FastAPI(
    title="Drive API",
    version="1.0.0",
    description="Folder and file tree backend over a hosted identity, database and storage provider.",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

setup_error_handlers(app)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


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
from drive.routes.auth import router as auth_router
from drive.routes.files import router as files_router
app.include_router(auth_router)
app.include_router(files_router)


def run() -> None:
    """Console entry point: serve the app with uvicorn on API_PORT."""
    import uvicorn
    uvicorn.run("drive.main:app", host="0.0.0.0", port=settings.API_PORT)
