"""Health probes for the store and cache, bound to the runtime lifespan."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .db.monitoring import get_pool_snapshot
from .errors import CacheError
from .logging_config import configure_logging
from .runtime import Runtime

logger = logging.getLogger(__name__)

RuntimeFactory = Callable[[], Runtime]


def get_runtime(request: Request) -> Runtime:
    runtime: Optional[Runtime] = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="runtime not started")
    return runtime


def create_app(runtime_factory: Optional[RuntimeFactory] = None) -> FastAPI:
    factory = runtime_factory or Runtime.start

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        app.state.runtime = factory()
        try:
            yield
        finally:
            app.state.runtime.stop()
            app.state.runtime = None

    app = FastAPI(title="Resume Store", version="0.1.0", lifespan=lifespan)

    @app.get("/healthz")
    def health(runtime: Runtime = Depends(get_runtime)) -> Dict[str, str]:
        settings: Settings = runtime.settings
        return {"status": "ok", "log_level": settings.log_level}

    @app.get("/healthz/database")
    def database_health(runtime: Runtime = Depends(get_runtime)) -> Dict[str, Any]:
        try:
            runtime.database.ping()
        except SQLAlchemyError as exc:
            logger.error("Database health check failed: %s", exc)
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {
            "status": "ok",
            "dialect": runtime.database.dialect,
            "pool": get_pool_snapshot(runtime.database.engine),
        }

    @app.get("/healthz/cache")
    def cache_health(runtime: Runtime = Depends(get_runtime)) -> Dict[str, Any]:
        if runtime.cache is None:
            return {"status": "disabled"}
        try:
            runtime.cache.ping()
        except CacheError as exc:
            logger.error("Cache health check failed: %s", exc)
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {"status": "ok"}

    return app


app = create_app()
