"""
bizintel - business intelligence backend for the Clay-powered RFP and
competitor views. Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from bizintel.config import get_settings
from bizintel.api.errors import register_exception_handlers
from bizintel.api.router import api_router
from bizintel.storage.factory import get_backend
from bizintel.utils.logging import (
    bind_request_context,
    configure_logging,
    init_error_reporting,
)

logger = logging.getLogger("bizintel")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects a correlation ID into every request context and response header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = bind_request_context(request.headers.get("X-Correlation-ID"), request.url.path)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    logger.info(
        "bizintel starting up (env=%s, storage=%s)",
        settings.app_env, settings.storage_backend,
    )

    init_error_reporting(settings.sentry_dsn, settings.app_env)

    backend = get_backend()
    if backend.name == "database":
        from bizintel.database import init_models
        await init_models()
        logger.info("Database tables ready")

    if settings.webhook_signing_key:
        logger.info("Webhook signature validation enabled")
    else:
        logger.warning(
            "WEBHOOK_SIGNING_KEY not set - Clay callbacks are accepted unsigned."
        )

    yield

    logger.info("bizintel shutting down")
    await backend.close()
    if settings.redis_required:
        from bizintel.utils.dedup import close_redis
        await close_redis()
    if backend.name == "database":
        from bizintel.database import dispose_engine
        await dispose_engine()


def _cors_origins(settings) -> list[str]:
    origins = ["http://localhost:3000", settings.app_base_url]
    origins.extend(o.strip() for o in settings.allowed_origins.split(",") if o.strip())
    return list(dict.fromkeys(origins))


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    configure_logging(settings.log_level)

    application = FastAPI(
        title="bizintel",
        description="Clay-powered lead search and competitor enrichment",
        version="1.0.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "Content-Type", "X-Correlation-ID", "X-Webhook-Signature",
            "Accept", "Origin", "X-Requested-With",
        ],
    )

    # Correlation ID middleware (must be added AFTER CORS so it runs on every request)
    application.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(application)
    application.include_router(api_router)

    return application


app = create_app()
