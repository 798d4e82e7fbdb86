from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from doclyze.api.routes import router
from doclyze.config.settings import Settings
from doclyze.container import Services, build_services
from doclyze.database.connection import close_pool, init_pool
from doclyze.domain.exceptions import (
    AccessDeniedError,
    DocumentNotFoundError,
    DomainError,
    ProjectNotFoundError,
    UnauthenticatedError,
)
from doclyze.logging.logger import Log
from doclyze.storage.exceptions import StorageError

_DOMAIN_STATUS: dict[type[DomainError], int] = {
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    AccessDeniedError: status.HTTP_403_FORBIDDEN,
    ProjectNotFoundError: status.HTTP_404_NOT_FOUND,
    DocumentNotFoundError: status.HTTP_404_NOT_FOUND,
}
_DOMAIN_DETAIL: dict[int, str] = {
    status.HTTP_401_UNAUTHORIZED: "Unauthorized",
    status.HTTP_403_FORBIDDEN: "Forbidden",
    status.HTTP_404_NOT_FOUND: "Not found",
}


def create_app(services: Services | None = None) -> FastAPI:
    """Build the HTTP application.

    With ``services`` given (tests), no database pool is opened.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if services is not None:
            app.state.services = services
            yield
            return
        settings = Settings()
        Log.configure(settings.log_level)
        init_pool(settings)
        built = build_services(settings)
        app.state.services = built
        Log.info(f"Doclyze API started (env={settings.app_env})")
        try:
            yield
        finally:
            built.shutdown()
            close_pool()
            Log.info("Doclyze API stopped")

    app = FastAPI(title="Doclyze API", version="0.1.0", lifespan=lifespan)
    app.include_router(router)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        code = _DOMAIN_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
        Log.info(f"{request.method} {request.url.path} -> {code}: {exc}")
        return JSONResponse(status_code=code, content={"detail": _DOMAIN_DETAIL.get(code, "Bad request")})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        Log.error(f"{request.method} {request.url.path} storage failure: {exc}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "Object storage is unavailable"},
        )

    return app


def main() -> None:
    """Entry point: serve the HTTP API with uvicorn."""
    settings = Settings()
    Log.configure(settings.log_level)
    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
