"""FastAPI application setup for AskDocs."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from askdocs.api.dependencies import get_app_settings, get_database, get_vector_store, reset_state
from askdocs.api.errors import install_error_handlers
from askdocs.api.routes_admin import router as admin_router
from askdocs.api.routes_documents import router as documents_router
from askdocs.api.routes_query import router as query_router
from askdocs.core.logging import configure_logging
from askdocs.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

configure_logging()

app = FastAPI(
    title="AskDocs",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:5173", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

app.include_router(documents_router, prefix="/documents", tags=["documents"])
app.include_router(query_router, prefix="", tags=["query"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - start)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.on_event("startup")
async def startup() -> None:
    """Open the database and register the similarity function."""
    get_app_settings()
    get_database()
    get_vector_store()


@app.on_event("shutdown")
async def shutdown() -> None:
    reset_state()
