import logging
from pathlib import Path

import asyncpg
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from circle.api import auth, notifications, posts, uploads, users
from circle.config_secrets import CORS_ORIGINS, MEDIA_BACKEND, MEDIA_ROOT, MEDIA_URL_PREFIX
from circle.core.cache import close_cache, init_cache
from circle.core.db import close_db, init_db

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Circle API",
    description="Users, follows, posts with comments and likes, and notifications",
    version="0.1.0",
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(notifications.router)
app.include_router(uploads.router)

# Locally stored images are served by the app itself
app.mount(MEDIA_URL_PREFIX, StaticFiles(directory=MEDIA_ROOT, check_dir=False), name="uploads")


@app.exception_handler(asyncpg.PostgresError)
async def database_error_handler(request: Request, exc: asyncpg.PostgresError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred"},
    )


@app.on_event("startup")
async def startup_event():
    """Initialize connections on startup"""
    if MEDIA_BACKEND == "local":
        Path(MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
    await init_db()
    await init_cache()


@app.on_event("shutdown")
async def shutdown_event():
    """Close connections on shutdown"""
    await close_db()
    await close_cache()


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
