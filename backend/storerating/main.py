import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storerating.core.config import Settings, settings
from storerating.core.database import Database
from storerating.core.errors import AppError, InternalError
from storerating.core.log import configure_logging
from storerating.routes.admin import router as admin_router
from storerating.routes.auth import router as auth_router
from storerating.routes.health import router as health_router
from storerating.routes.ratings import router as ratings_router
from storerating.routes.stores import router as stores_router
from storerating.routes.users import router as users_router
from storerating.services.seed import ensure_default_admin


logger = logging.getLogger(__name__)


def _validation_details(exc: RequestValidationError):
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": error.get("msg", "Invalid value")})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": _validation_details(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=InternalError().to_dict())


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings
    configure_logging(app_settings)
    database = Database(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.init_db()
        if app_settings.seed_admin:
            with database.session() as db:
                ensure_default_admin(db, app_settings)
        yield
        database.dispose()

    app = FastAPI(title="Store Rating API", version="0.1.0", lifespan=lifespan)
    app.state.db = database
    app.state.settings = app_settings

    origins = app_settings.cors_origins
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def request_timeout(request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=app_settings.request_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error("Request timed out %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content=InternalError().to_dict())

    register_exception_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/users", tags=["users"])
    app.include_router(stores_router, prefix="/api/stores", tags=["stores"])
    app.include_router(ratings_router, prefix="/api/ratings", tags=["ratings"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])

    return app


app = create_app()


def run() -> None:
    uvicorn.run("storerating.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
