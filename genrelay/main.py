# genrelay/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from genrelay.core import config
from genrelay.core.errors import CODE_INVALID_PARAMS, CODE_SERVER_ERROR, GenerationError
from genrelay.core.logs import configure_logging
from genrelay.api.routers.health import router as health_router
from genrelay.api.routers.generate import router as generate_router
from genrelay.api.routers.providers import router as providers_router
from genrelay.providers.factory import default_dialects
from genrelay.services.directory import InMemoryProviderDirectory, ProviderDirectory
from genrelay.services.generation import GenerationService, GenerationSettings

logger = logging.getLogger(__name__)


def _envelope(code: int, message: str) -> JSONResponse:
    # errors travel in-band; the transport status stays 200
    return JSONResponse(status_code=200, content={"code": code, "message": message, "data": None})


def create_app(
    *,
    directory: Optional[ProviderDirectory] = None,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[GenerationSettings] = None,
) -> FastAPI:
    configure_logging(config.LOG_LEVEL)

    settings = settings or GenerationSettings(
        default_temperature=config.DEFAULT_TEMPERATURE,
        default_max_tokens=config.DEFAULT_MAX_TOKENS,
        timeout_seconds=config.UPSTREAM_TIMEOUT_SECONDS,
        connect_timeout_seconds=config.UPSTREAM_CONNECT_TIMEOUT_SECONDS,
    )
    if directory is None:
        directory = InMemoryProviderDirectory.from_file(config.PROVIDERS_FILE)
    if client is None:
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout_seconds, connect=settings.connect_timeout_seconds)
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await client.aclose()

    app = FastAPI(title="genrelay", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # shared, read-only objects; routers reach them through Depends() in api/deps.py
    app.state.directory = directory
    app.state.auth_header = config.AUTH_HEADER
    app.state.generation_service = GenerationService(
        directory=directory,
        client=client,
        dialects=default_dialects(),
        settings=settings,
    )

    @app.exception_handler(GenerationError)
    async def generation_error_handler(request: Request, exc: GenerationError):
        logger.info("request failed code=%d message=%s", exc.code, exc.message)
        return _envelope(exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("invalid request body: %s", exc.errors())
        return _envelope(CODE_INVALID_PARAMS, "invalid parameters")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s", request.url.path)
        return _envelope(CODE_SERVER_ERROR, "internal server error")

    # Routers
    app.include_router(health_router)
    app.include_router(providers_router)
    app.include_router(generate_router)

    return app


app = create_app()
