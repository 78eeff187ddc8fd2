import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from app.api.dependencies.redis import create_redis_client
from app.api.routes import (
    document_signatures,
    esignatures,
    health,
    signature_proofs,
    signature_providers,
    signature_requests,
    signature_verifications,
)
from app.core.config import get_settings
from app.core.errors import SignatureWorkflowError
from app.core.logging import configure_logging, get_logger
from app.db.session import async_session_factory, init_models
from app.integrations.esignature import build_provider_registry
from app.services.expiration_sweeper import ExpirationSweeper


settings = get_settings()
configure_logging(settings.log_level, settings.environment)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # pragma: no cover - side effect
    logger.info("application.startup", environment=settings.environment)
    await init_models()
    app.state.provider_registry = build_provider_registry(settings)

    redis_client = None
    sweeper_task: asyncio.Task | None = None
    sweeper: ExpirationSweeper | None = None
    if settings.expiration_sweep_enabled:
        redis_client = create_redis_client()
        sweeper = ExpirationSweeper(
            async_session_factory,
            interval_seconds=settings.expiration_sweep_interval_seconds,
            redis_client=redis_client,
            lock_ttl_seconds=settings.expiration_sweep_lock_ttl_seconds,
        )
        sweeper_task = asyncio.create_task(sweeper.run())

    try:
        yield
    finally:
        if sweeper is not None and sweeper_task is not None:
            sweeper.stop()
            sweeper_task.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper_task
        await app.state.provider_registry.close()
        if redis_client is not None:
            await redis_client.aclose()
        logger.info("application.shutdown")


async def signature_workflow_error_handler(request: Request, exc: SignatureWorkflowError) -> JSONResponse:
    logger.info(
        "request.rejected",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("request.integrity_error", path=request.url.path, error=str(exc.orig))
    return JSONResponse(
        status_code=409,
        content={
            "code": "integrity_error",
            "message": "The change conflicts with an existing record",
            "details": {},
        },
    )


def create_application() -> FastAPI:
    application = FastAPI(title=settings.app_name, lifespan=lifespan)
    application.include_router(health.router)
    application.include_router(document_signatures.router)
    application.include_router(signature_requests.router)
    application.include_router(signature_providers.router)
    application.include_router(signature_proofs.router)
    application.include_router(signature_verifications.router)
    application.include_router(esignatures.router)

    application.add_exception_handler(SignatureWorkflowError, signature_workflow_error_handler)
    application.add_exception_handler(IntegrityError, integrity_error_handler)

    if settings.allowed_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.allowed_origins],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    return application


app = create_application()
