"""Stream Studio API - FastAPI application."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from studio.api.v1.api import api_router
from studio.core.config import settings
from studio.core.logging import setup_logging
from studio.db.session import engine

setup_logging()
logger = logging.getLogger("studio.main")


async def _database_error() -> str | None:
    """None when the database answers, otherwise the error text."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        return str(e)
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    error = await _database_error()
    if error:
        print("[Backend] WARNING: Database connection failed:", error)
    else:
        print("[Backend] Database: OK")
    print(f"[Backend] Buckets: {settings.VIDEO_BUCKET}, {settings.THUMBNAIL_BUCKET} under {uploads_dir}")
    print("[Backend] API: /api/v1 | Docs: /docs | Health: /health | Ready (DB): /ready")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix="/api")

# Serve bucket files: /uploads/{bucket}/{path}
uploads_dir = Path(settings.UPLOAD_DIR).resolve()
for bucket in (settings.VIDEO_BUCKET, settings.THUMBNAIL_BUCKET):
    (uploads_dir / bucket).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("[Backend] Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "api": "/api/v1",
    }


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ready")
async def ready():
    """Health check including DB."""
    error = await _database_error()
    if error:
        return JSONResponse(status_code=503, content={"status": "error", "database": error})
    return {"status": "ok", "database": "connected"}
