# fitsocial/main.py
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from typing import Set, List
import logging

from fitsocial.core.config import settings
from fitsocial.core.errors import SocialError
from fitsocial.db.mongodb import create_mongodb_indexes
from fitsocial.router import api_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL,
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting up application services...")

    # Uniqueness constraints live in these indexes
    logger.info("Initializing MongoDB indexes...")
    await create_mongodb_indexes()

    logger.info("All services started successfully")
    yield
    logger.info("Application shutdown completed")

async def social_error_handler(request: Request, exc: SocialError):
    """Map social layer errors to their status codes"""
    logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "type": type(exc).__name__
        }
    )

async def internal_error_handler(request: Request, exc: Exception):
    """Global exception handler for internal server errors"""
    error_msg = f"Internal Server Error: {str(exc)}"
    logger.error(f"{error_msg}\nRequest path: {request.url.path}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__
        }
    )

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Follow graph, community feed and reactions for FitSocial",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.DEBUG
)

# Add error handlers
app.add_exception_handler(SocialError, social_error_handler)
app.add_exception_handler(Exception, internal_error_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,  # Cache preflight requests for 1 hour
)

# Mount all routes under /api/v1
app.include_router(api_router, prefix=settings.API_V1_STR)

def log_routes():
    """Log all registered routes"""
    logger.info("Registered routes:")
    for route in app.routes:
        if isinstance(route, APIRoute):
            path: str = route.path
            methods: Set[str] = route.methods
            tags: List[str] = list(getattr(route, "tags", []))
            logger.debug(f"{sorted(methods)} {path} {tags}")

log_routes()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "fitsocial.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
