import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from maskpaint import models  # noqa: F401  registers tables on Base.metadata
from maskpaint.api.routes.blobs import router as blobs_router
from maskpaint.api.routes.editor import router as editor_router
from maskpaint.api.routes.generations import router as generations_router
from maskpaint.api.routes.health import router as health_router
from maskpaint.api.routes.preferences import router as preferences_router
from maskpaint.api.routes.sessions import router as sessions_router
from maskpaint.config import settings
from maskpaint.db import Base, engine
from maskpaint.errors import GeometryError, ResolutionError, ServiceError, ValidationError


logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    def on_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(GeometryError)
    def on_geometry_error(request: Request, exc: GeometryError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ServiceError)
    def on_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        logger.warning("upstream service failed: %s (status=%s)", exc, exc.status_code)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(ResolutionError)
    def on_resolution_error(request: Request, exc: ResolutionError) -> JSONResponse:
        logger.error("mask resolution invariant violated on %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Mask resolution failed"})


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title=settings.app_name)

    @app.on_event("startup")
    def on_startup() -> None:
        Base.metadata.create_all(bind=engine)

    _register_error_handlers(app)

    app.include_router(health_router, prefix="/api/v1")
    app.include_router(sessions_router, prefix="/api/v1")
    app.include_router(generations_router, prefix="/api/v1")
    app.include_router(preferences_router, prefix="/api/v1")
    app.include_router(blobs_router, prefix="/api/v1")
    app.include_router(editor_router, prefix="/api/v1")
    return app


app = create_app()
