"""
FastAPI application entry point for the Paystack webhook service.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from api.routes import paystack as paystack_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.external.cache import (
    init_redis_client,
    shutdown_redis_client,
)


configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Redis only backs webhook de-duplication; the service runs without it
    redis_ready = False
    if settings.redis.url:
        try:
            await init_redis_client()
            redis_ready = True
            logger.info("redis_cache_initialized", namespace=settings.redis.namespace)
        except (RedisError, OSError) as exc:
            logger.error("redis_cache_init_failed", error=str(exc))
    else:
        logger.info("redis_cache_disabled", message="REDIS__URL not set, webhook de-duplication is off")

    yield

    if redis_ready:
        await shutdown_redis_client()
        logger.info("redis_cache_shutdown")
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Paystack payment provider: gateway adapter and webhook receiver",
)

# middleware runs bottom-up: RequestID first so the logger sees request_id
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(paystack_routes.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
            "redoc": "/redoc"
        },
        message="Paystack payment service"
    )


@app.get("/health", tags=["Health"])
async def health_check():
    return success_response(data={"status": "healthy"}, message="ok")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
