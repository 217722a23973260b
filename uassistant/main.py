import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import chat, health
from .config import Settings, settings as default_settings
from .core.chat import ChatService
from .core.execution import TransactionBuilder
from .core.planning import IntentPlanner
from .logging_config import setup_logging
from .middleware import APIKeyMiddleware, RateLimitMiddleware, RequestLoggingMiddleware
from .providers.llm import LLMProvider, get_llm_provider
from .services.offerings import ConfigError, LazyOfferingRegistry

logger = logging.getLogger(__name__)

API_TITLE = "Urano UAssistant API"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Turns chat messages into reviewable Urano transaction plans"


def _build_provider(settings: Settings) -> Optional[LLMProvider]:
    try:
        return get_llm_provider(settings)
    except ValueError as exc:
        logger.warning("Completion provider disabled: %s", exc)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await app.state.registry.get()
    except ConfigError as exc:
        # Requests keep answering 500 CONFIG_ERROR until the configuration is fixed
        logger.error("uShare offerings configuration is invalid: %s", exc)
    yield
    provider: Optional[LLMProvider] = app.state.provider
    if provider is not None:
        await provider.close()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "BAD_REQUEST", "issues": jsonable_encoder(exc.errors())},
    )


async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    logger.error("Configuration error while serving %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"error": "CONFIG_ERROR", "message": str(exc)},
    )


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[LLMProvider] = None,
) -> FastAPI:
    """Application factory.

    Services are created eagerly and stored on ``app.state`` so they are
    available with or without the lifespan running (e.g. under TestClient).
    """
    settings = settings or default_settings
    if provider is None:
        provider = _build_provider(settings)

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    registry = LazyOfferingRegistry(settings)
    planner = IntentPlanner(provider, settings)
    builder = TransactionBuilder(settings)

    app.state.settings = settings
    app.state.provider = provider
    app.state.registry = registry
    app.state.chat_service = ChatService(planner, builder, settings)

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ConfigError, config_error_handler)

    # Last added runs first: CORS wraps everything so 401/429 carry CORS headers
    app.add_middleware(
        APIKeyMiddleware,
        api_key=settings.uassistant_api_key,
        production=settings.is_production,
    )
    app.add_middleware(
        RateLimitMiddleware,
        limit=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
        trust_forwarded=settings.rate_limit_trust_forwarded,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "x-api-key", "x-request-id"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(chat.router, tags=["Chat"])

    @app.get("/")
    async def root() -> Any:
        """Root endpoint with basic info"""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "description": API_DESCRIPTION,
            "docs": "/docs",
            "health": "/health",
        }

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "uassistant.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=not default_settings.is_production,
        log_level=default_settings.log_level.lower(),
    )
