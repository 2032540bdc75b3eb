"""
Genius Machine Backend
FastAPI application serving the layered multi-archetype insight engine
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

from genius_machine import __version__
from genius_machine.config import EnvSettings, get_config
from genius_machine.api.models import HealthResponse

# Configure logging
settings = EnvSettings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

# Import API routers
from genius_machine.api import archetypes_router, learning_router, runs_router
from genius_machine.engine.runner import InsightEngine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Genius Machine backend...")
    if getattr(app.state, "engine", None) is None:
        app.state.engine = InsightEngine(get_config(settings.config_path))
    yield
    logger.info("Shutting down Genius Machine backend...")
    await app.state.engine.aclose()


app = FastAPI(
    title="Genius Machine API",
    description="Layered multi-archetype insight generation",
    version=__version__,
    lifespan=lifespan
)

# CORS configuration for the web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Dev server
        "http://localhost:5173",  # Vite dev server
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Genius Machine API",
        "version": __version__,
        "status": "running"
    }


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    engine = getattr(app.state, "engine", None)
    return HealthResponse(
        status="healthy",
        services={
            "api": "running",
            "engine": "ready" if engine is not None else "starting",
            "provider": engine.provider.name if engine is not None else "pending",
        },
        version=__version__,
    )


# Include API routers
app.include_router(runs_router)
app.include_router(archetypes_router)
app.include_router(learning_router)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
