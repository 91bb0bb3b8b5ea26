# main.py - application wiring and server entry point
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging

import uvicorn

from api_routes import api_router
from realtime import ConnectionRegistry, realtime_router
from utils.config import AppConfig, get_config
from utils.database_manager import DatabaseManager
from utils.error_handler import CampusConnectError, ErrorSeverity, create_error_response, setup_logging
from utils.helpers import create_directory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: AppConfig = app.state.config
    logger.info(f"🚀 {config.get_app_name()} starting")

    # no reconnection loop: an unreachable store stops startup
    try:
        if app.state.db_manager is None:
            app.state.db_manager = DatabaseManager(
                config.get_database_path(),
                timeout=config.get_database_timeout()
            )
        app.state.db_manager.ensure_available()
    except CampusConnectError as e:
        e.severity = ErrorSeverity.CRITICAL
        create_error_response(e, {'phase': 'startup'})
        raise

    yield

    logger.info(f"👋 {config.get_app_name()} stopped ({len(app.state.registry)} realtime connections open)")


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(CampusConnectError)
    async def handle_app_error(request: Request, exc: CampusConnectError):
        response = create_error_response(exc, {'path': request.url.path, 'method': request.method})
        return JSONResponse(response['body'], status_code=response['status_code'])

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        logger.info(f"Rejected request body on {request.url.path}: {exc.errors()}")
        return JSONResponse({"message": "Invalid request body"}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        response = create_error_response(exc, {'path': request.url.path, 'method': request.method})
        return JSONResponse(response['body'], status_code=500)


def create_app(config: Optional[AppConfig] = None, db_manager: Optional[DatabaseManager] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: settings, the process-wide config when omitted
        db_manager: persistence gateway, built from DATABASE_URL at startup
            when omitted
    """
    config = config or get_config()

    app = FastAPI(
        title=config.get_app_name(),
        version=config.get_app_version(),
        lifespan=lifespan,
        debug=config.debug
    )
    app.state.config = config
    app.state.db_manager = db_manager
    app.state.registry = ConnectionRegistry()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(api_router)
    app.include_router(realtime_router)

    upload_dir = config.get_upload_dir()
    create_directory(upload_dir)
    app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")

    @app.get("/health")
    async def health_check(request: Request):
        """Service status"""
        return {
            "status": "healthy",
            "database": request.app.state.db_manager.health_check(),
            "realtime_connections": len(request.app.state.registry),
            "timestamp": datetime.now().isoformat()
        }

    return app


def run():
    config = get_config()
    setup_logging(config.get_log_level(), config.get_log_file())

    for key, value in config.get_status_summary().items():
        logger.info(f"🔧 {key}: {value}")

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=config.get_host(),
        port=config.get_port(),
        reload=config.get_reload()
    )


if __name__ == "__main__":
    run()
