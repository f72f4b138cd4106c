"""
AI Staff - Main Application Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aistaff.config import settings
from aistaff.db import init_db
from aistaff.api import (
    auth_router,
    business_router,
    agent_router,
    chat_router,
    content_router,
)
from aistaff.errors import AIStaffError, APIError
from aistaff.structured_logging import (
    generate_request_id, request_id_var, setup_logging,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown"""
    setup_logging(settings.log_level, json_output=settings.log_json)
    logger.info(f"{settings.app_name} starting up...")
    await init_db()
    logger.info("Database initialized")
    if not settings.llm_api_key:
        logger.warning("No completion provider key configured; chat and content calls will fail with 503")

    yield

    logger.info(f"{settings.app_name} shutting down")


app = FastAPI(
    title=settings.app_name,
    description="Brand-aware AI staff agents: chat, content generation and task suggestions",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Tag every request (and its log lines) with a correlation id."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.exception_handler(AIStaffError)
async def domain_error_handler(request: Request, exc: AIStaffError):
    request_id = request.headers.get(REQUEST_ID_HEADER) or request_id_var.get()
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    body = APIError(
        error_code=exc.error_code.value,
        message=exc.message,
        request_id=request_id or None,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# Include routers
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(business_router, prefix=settings.api_prefix)
# Chat and content routes live under /agent/{id}/... alongside agent CRUD
app.include_router(chat_router, prefix=settings.api_prefix)
app.include_router(content_router, prefix=settings.api_prefix)
app.include_router(agent_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "status": "healthy",
        "version": "1.0.0",
    }


@app.get("/health")
async def health():
    """Health check with a database probe."""
    db_status = "connected"
    try:
        from aistaff.db.database import async_session_maker
        async with async_session_maker() as db:
            from sqlalchemy import text
            await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"error: {e}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "provider_configured": bool(settings.llm_api_key),
        "model": settings.llm_model,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("aistaff.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
