from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.routes import router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Development Feasibility Engine",
    description=(
        "Buildable envelope and developer bilan for a land parcel: "
        "revenue, cost, margin and land value (declared, residual or "
        "market comparables with residual fallback)."
    ),
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
async def root():
    return {
        "name": "Development Feasibility Engine",
        "version": "1.0.0",
        "endpoints": {
            "api_docs": "/docs",
            "health": "/health",
            "feasibility": "POST /api/v1/feasibility",
            "envelope": "POST /api/v1/envelope",
            "default_profile": "GET /api/v1/financing-profiles/default",
            "engine_defaults": "GET /api/v1/engine-defaults",
        },
    }


@app.get("/health")
async def health():
    """Health check with dependency status."""
    status = {"status": "healthy", "version": "1.0.0"}

    from app.services.cache import get_redis
    r = await get_redis()
    status["redis"] = "connected" if r else "not configured"

    return status
