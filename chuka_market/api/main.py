import logging
from contextlib import asynccontextmanager
from pathlib import Path

import firebase_admin
import socketio
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from chuka_market.api.middleware import authenticate_request, init_firebase
from chuka_market.api.routes import api_router
from chuka_market.core.config import Settings, StorageBackend, get_settings
from chuka_market.core.log import configure_logging
from chuka_market.db.database import create_engine, create_session_factory, init_db
from chuka_market.realtime.relay import BroadcastRelay
from chuka_market.services.product.exceptions import (
    ImageStorageError,
    ProductNotFound,
    ProductValidationError,
)
from chuka_market.services.storage.image_storage import (
    LocalImageStorage,
    create_storage,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    engine = create_engine(settings)
    await init_db(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    if settings.uses_firebase:
        app.state.firebase_app = init_firebase(settings)
    if app.state.storage is None:
        app.state.storage = create_storage(settings, app.state.firebase_app)

    logger.info("%s started on port %s", settings.app_name, settings.port)
    yield

    # Cleanup
    await app.state.relay.close()
    await engine.dispose()
    if app.state.firebase_app is not None:
        firebase_admin.delete_app(app.state.firebase_app)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProductValidationError)
    async def validation_error_handler(request: Request, exc: ProductValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request: " + ", ".join(fields)},
        )

    @app.exception_handler(ProductNotFound)
    async def not_found_handler(request: Request, exc: ProductNotFound):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"error": "Product not found"}
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            "Database error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": INTERNAL_ERROR},
        )

    @app.exception_handler(ImageStorageError)
    async def storage_error_handler(request: Request, exc: ImageStorageError):
        logger.error(
            "Storage error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": INTERNAL_ERROR},
        )

    @app.exception_handler(OSError)
    async def connection_error_handler(request: Request, exc: OSError):
        # asyncpg raises plain OSErrors (e.g. connection refused) that
        # SQLAlchemy does not wrap
        logger.error(
            "Unexpected I/O error on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": INTERNAL_ERROR},
        )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.firebase_app = None
    app.state.storage = None
    app.state.relay = BroadcastRelay.create(
        cors_origins=settings.cors_origins,
        queue_size=settings.relay_queue_size,
        policy=settings.slow_consumer_policy,
    )

    if settings.storage_backend == StorageBackend.LOCAL:
        # local uploads are served by the app itself
        app.state.storage = LocalImageStorage(
            settings.upload_dir, settings.upload_url_path
        )
        app.mount(
            settings.upload_url_path,
            StaticFiles(directory=Path(settings.upload_dir)),
            name="uploads",
        )

    app.middleware("http")(authenticate_request)
    # outermost, so 401s from the auth gate still carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(api_router)
    return app


def create_asgi_app(settings: Settings | None = None) -> socketio.ASGIApp:
    """Wraps the API so the chat socket and HTTP routes share one port."""
    app = create_app(settings)
    return socketio.ASGIApp(app.state.relay.sio, other_asgi_app=app)
