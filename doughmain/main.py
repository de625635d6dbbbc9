# doughmain/main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from doughmain.api.endpoints import admin, console, plaid
from doughmain.api.responses import (
    bad_request,
    callable_error_response,
    validation_message,
)
from doughmain.api.router import api_router
from doughmain.core.config import Settings, get_settings
from doughmain.core.database import build_engine, build_session_factory, init_models
from doughmain.core.documents import DocumentStore
from doughmain.core.errors import CallableError, ConfigurationError
from doughmain.core.identity import IdentityProvider
from doughmain.core.plaid_client import PlaidAggregator, build_aggregator
from doughmain.core.sync import SyncScheduler, run_scheduled_sync

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    await init_models(app.state.engine)

    if app.state.aggregator is None:
        try:
            app.state.aggregator = build_aggregator(settings)
        except ConfigurationError as error:
            # retried (and reported) by the first request that needs it
            logger.error(f"Plaid client not initialized: {error}")

    scheduler = None
    if settings.sync_enabled:

        async def nightly_sync():
            if app.state.aggregator is None:
                app.state.aggregator = build_aggregator(settings)
            await run_scheduled_sync(
                app.state.store,
                app.state.aggregator,
                lookback_days=settings.sync_lookback_days,
            )

        scheduler = SyncScheduler(settings.sync_schedule, nightly_sync)
        scheduler.start()
    app.state.scheduler = scheduler

    yield

    if scheduler is not None:
        await scheduler.stop()
    await app.state.engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    aggregator: Optional[PlaidAggregator] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="DoughMain", lifespan=lifespan)

    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)
    app.state.settings = settings
    app.state.engine = engine
    app.state.store = DocumentStore(session_factory)
    app.state.identity = IdentityProvider(session_factory, settings)
    app.state.aggregator = aggregator
    app.state.scheduler = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CallableError)
    async def handle_callable_error(request: Request, error: CallableError):
        return callable_error_response(error)

    callable_paths = {route.path for route in console.router.routes}
    http_style_paths = {
        route.path for router in (plaid.router, admin.router) for route in router.routes
    }

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, error: RequestValidationError):
        message = validation_message(error)
        if request.url.path in callable_paths:
            return callable_error_response(CallableError("invalid-argument", message))
        if request.url.path in http_style_paths:
            return bad_request(message)
        return await request_validation_exception_handler(request, error)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(api_router)
    return app


app = create_app()
