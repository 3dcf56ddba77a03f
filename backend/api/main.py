"""
Kanban API — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Kanban API starting up", version=settings.app_version, env=settings.app_env)
    yield
    logger.info("Kanban API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Electronic kanban replenishment between customer and supplier accounts",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Import and register routers
from api.v1.routers import (
    accounts,
    dashboards,
    kanban_chains,
    kanbans,
    products,
    status_chains,
    statuses,
)

app.include_router(accounts.router)
app.include_router(products.router)
app.include_router(statuses.router)
app.include_router(status_chains.router)
app.include_router(kanban_chains.router)
app.include_router(kanbans.router)
app.include_router(dashboards.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": settings.app_version}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.host, port=settings.port)
