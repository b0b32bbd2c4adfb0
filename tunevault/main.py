import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .api.endpoints import songs, stream, playlists, health
from .core.config import PROJECT_NAME, settings, ensure_directories
from .core.cleanup import cleanup_manager
from .core.errors import TuneVaultError
from .core.logging import setup_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title=PROJECT_NAME,
    description="Personal media library: upload, enrich, catalog and stream audio",
    version=settings.VERSION
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
    expose_headers=["Content-Range", "Content-Length", "Accept-Ranges"],
)

# Include routers
app.include_router(songs.router, tags=["songs"])
app.include_router(stream.router, tags=["stream"])
app.include_router(playlists.router, prefix="/playlist", tags=["playlists"])
app.include_router(health.router, prefix="/health", tags=["health"])

@app.exception_handler(TuneVaultError)
async def tunevault_error_handler(request: Request, exc: TuneVaultError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code},
    )

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    setup_logging(settings)
    try:
        ensure_directories(settings)
        logger.info(f"Catalog at {settings.SONGS_FILE} and {settings.PLAYLISTS_FILE}")

        # Start staging cleanup task
        app.state.cleanup_task = asyncio.create_task(cleanup_manager.start_cleanup_task())
        logger.info("Staging cleanup task started")

    except Exception as e:
        logger.error(f"Error during startup: {e}")
        raise

@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    task = getattr(app.state, "cleanup_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    logger.info("Staging cleanup task stopped")

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {PROJECT_NAME}",
        "version": settings.VERSION,
        "docs_url": "/docs",
        "redoc_url": "/redoc"
    }
