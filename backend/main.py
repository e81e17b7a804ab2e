"""
Document Chat - question answering over a fixed PDF
FastAPI Backend with DeepSeek completions
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from starlette.middleware.base import BaseHTTPMiddleware

from routers import chat
from logging_config import setup_logging
from config import APP_VERSION, runtime_config

setup_logging()
logger = logging.getLogger(__name__)

# Directories
BASE_DIR = Path(__file__).parent
STATIC_DIR = BASE_DIR / "static"
CHAT_PAGE = STATIC_DIR / "chat.html"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    # Startup
    logger.info(
        f"Document chat starting: env={runtime_config.app_env} "
        f"strategy={runtime_config.context_strategy} cache={runtime_config.cache_backend}"
    )

    # Context cache (Redis or in-memory fallback)
    try:
        from services.redis_client import get_redis

        redis = await get_redis()
        logger.info(f"Context cache ready: {'redis' if redis.available else 'in-memory'}")
    except Exception as e:
        logger.warning(f"Context cache init failed, contexts will be rebuilt per request: {e}")

    # Interaction log (PostgreSQL)
    try:
        from services.database import get_database

        db = await get_database()
        logger.info(f"Interaction log: {'postgresql' if db.available else 'off'}")
    except Exception as e:
        logger.warning(f"Interaction log init failed: {e}")

    if not runtime_config.completion_api_key:
        logger.warning("DEEPSEEK_API_KEY not set; questions will return API errors")

    yield

    # Shutdown
    try:
        from services.completion_client import close_completion_client
        await close_completion_client()
    except Exception as e:
        logger.debug(f"Completion client close error: {e}")

    try:
        from services.redis_client import close_redis
        await close_redis()
        logger.info("Redis connection closed")
    except Exception as e:
        logger.debug(f"Redis close error: {e}")

    try:
        from services.database import close_database
        await close_database()
        logger.info("PostgreSQL pool closed")
    except Exception as e:
        logger.debug(f"PostgreSQL close error: {e}")

    logger.info("Document chat signing off")


app = FastAPI(
    title="Document Chat",
    description="Preguntas y respuestas sobre la guía estudiantil",
    version=APP_VERSION,
    lifespan=lifespan,
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# CORS - local development front ends
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Chat endpoints are mounted at the root, matching the chat page
app.include_router(chat.router, tags=["chat"])


@app.get("/")
async def index():
    """Serve the chat page."""
    return FileResponse(CHAT_PAGE, media_type="text/html")


@app.get("/health")
async def health():
    """Liveness probe with the context cache mode."""
    try:
        from services.redis_client import get_redis

        redis = await get_redis()
        cache_health = await redis.health_check()
        cache_mode = cache_health.get("mode", "unknown")
    except Exception as e:
        logger.warning(f"Health check could not reach the context cache: {e}")
        cache_mode = "down"
    return {"status": "ok", "cache": cache_mode}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
