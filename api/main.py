"""
Social Sentiment Graph API - FastAPI Application.

Provides REST endpoints for finance entity seeding, ticker and index
sentiment aggregation, post ingestion and the keyword co-occurrence graph.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import entities, sentiment, graph, posts
from api.schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Social Sentiment Graph API",
    description="REST API for finance entity resolution, sentiment aggregation and keyword graphs",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(entities.router, prefix="/api/entities", tags=["entities"])
app.include_router(sentiment.router, prefix="/api/sentiment", tags=["sentiment"])
app.include_router(graph.router, prefix="/api/graph", tags=["graph"])
app.include_router(posts.router, prefix="/api/posts", tags=["posts"])


@app.exception_handler(ValueError)
def value_error_handler(request: Request, exc: ValueError):
    """Invalid parameters (granularity, window length, thresholds) are client errors."""
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    error = ErrorResponse(error="Invalid request", detail=str(exc))
    return JSONResponse(status_code=400, content=error.model_dump())


@app.get("/api/health", response_model=HealthResponse, tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns the service status and API version.
    """
    return HealthResponse(status="healthy", version="1.0.0")


@app.get("/", tags=["root"])
def root():
    """Root endpoint with API info."""
    return {
        "name": "Social Sentiment Graph API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }
