from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from spacematch.api.dependencies import ServiceContainer, build_container
from spacematch.api.main import api_router

from .config import Settings, settings
from .exceptions import ExternalServiceError, NotFoundError, SpaceMatchError, ValidationError
from .version import __version__

ERROR_STATUS: dict[type[SpaceMatchError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ExternalServiceError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events (startup/shutdown).
    """
    yield
    try:
        await app.state.container.close()
        logger.info("Service container closed")
    except Exception as exc:
        logger.warning(f"Failed to close service container: {exc}")


async def handle_spacematch_error(request: Request, exc: SpaceMatchError) -> JSONResponse:
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def create_app(app_settings: Settings | None = None, container: ServiceContainer | None = None) -> FastAPI:
    app_settings = app_settings or settings
    app = FastAPI(
        title=app_settings.APP_NAME,
        description="Matching, ranking and trust scoring for rental-space listings",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if app_settings.APP_ENV != "development" else "/docs",
        redoc_url=None if app_settings.APP_ENV != "development" else "/redoc",
    )
    app.state.container = container or build_container(app_settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SpaceMatchError, handle_spacematch_error)
    app.include_router(api_router)
    return app


app = create_app()
