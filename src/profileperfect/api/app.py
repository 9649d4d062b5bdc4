"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from profileperfect.api.admin import router as admin_router
from profileperfect.api.routes import router as api_router
from profileperfect.app_logging import configure_logging
from profileperfect.containers import AppContainer
from profileperfect.domain.errors import (
    InsufficientCreditsError,
    InvalidRequestError,
    NotFoundError,
    PersistenceError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        await state_container.orchestrator.start()
        yield
        await state_container.orchestrator.stop()
        await state_container.close_resources()

    app = FastAPI(title="ProfilePerfect AI", lifespan=lifespan)
    app.state.container = container

    app.include_router(api_router)
    app.include_router(admin_router)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return _error(status.HTTP_400_BAD_REQUEST, "; ".join(messages))

    @app.exception_handler(InvalidRequestError)
    async def handle_invalid_request(
        request: Request, exc: InvalidRequestError
    ) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(InsufficientCreditsError)
    async def handle_insufficient_credits(
        request: Request, exc: InsufficientCreditsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            content={
                "success": False,
                "error": str(exc),
                "required": exc.required,
                "available": exc.available,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(PersistenceError)
    async def handle_persistence(
        request: Request, exc: PersistenceError
    ) -> JSONResponse:
        logger.error("Persistence failure on %s: %s", request.url.path, exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )
