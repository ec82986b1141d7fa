"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from momento.config import settings
from momento.api.routes import router
from momento.services.storage import sweep_temp_dir
from momento.utils.ffmpeg import resolve_ffmpeg_path

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Momento...")

    # Refuses to start without a usable ffmpeg (ConfigurationError)
    app.state.ffmpeg_path = resolve_ffmpeg_path(settings.ffmpeg_path)
    logger.info(f"Using ffmpeg at {app.state.ffmpeg_path}")

    if not settings.elevenlabs_api_key:
        logger.warning("Transcription credential not set; processing requests will be rejected")

    sweep_temp_dir()

    yield

    # Shutdown
    logger.info("Shutting down Momento...")
    sweep_temp_dir()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Cuts laughter highlight clips out of uploaded videos",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": "1.0.0",
        "api": "/api",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "momento.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
