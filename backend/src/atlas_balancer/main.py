"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from atlas_balancer.config import settings
from atlas_balancer.api.routes.balancing import router as balancing_router
from atlas_balancer.repositories.tournament_repository import DuckDBTournamentRepository


# Database path - relative paths resolve from the repo root
def get_database_path() -> Path:
    """Get the database path from settings."""
    db_path = Path(settings.database_path)
    if db_path.is_absolute():
        return db_path
    repo_root = Path(__file__).parent.parent.parent.parent
    return repo_root / db_path


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup: Initialize repository
    if not hasattr(app.state, "repository"):
        app.state.repository = DuckDBTournamentRepository(get_database_path())
    yield


app = FastAPI(
    title="ATLAS Balancer",
    description="Explainable team balancing for community tournaments",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "atlas-balancer"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "ATLAS Balancer API",
        "version": "0.1.0",
        "docs": "/docs",
    }


# Register routers
app.include_router(balancing_router)
