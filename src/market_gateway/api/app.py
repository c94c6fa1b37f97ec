"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from market_gateway.api.deps import AppState, access_log_middleware, get_app_state
from market_gateway.api.routes import router
from market_gateway.api.schemas import HealthResponse
from market_gateway.core.config import GatewayConfig, load_config
from market_gateway.core.exceptions import ConfigError, GatewayError, InvalidInput
from market_gateway.core.logging import configure_logging
from market_gateway.ledger.store import JsonBalanceLedger
from market_gateway.prices.cache import SpotPriceCache
from market_gateway.prices.provider import ChartSource
from market_gateway.prices.yahoo import YahooChartClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config: GatewayConfig = app.state.config
    source: ChartSource | None = app.state._pending_source
    owned_client = None
    if source is None:
        owned_client = YahooChartClient(config.upstream)
        source = owned_client

    app.state.app_state = AppState(
        config=config,
        source=source,
        price_cache=SpotPriceCache(
            source,
            freshness_ms=config.cache.freshness_ms,
            single_flight=config.cache.single_flight,
        ),
        ledger=JsonBalanceLedger(config.ledger.path),
    )
    logger.info(
        "Gateway started (upstream=%s, freshness=%dms, ledger=%s)",
        config.upstream.base_url,
        config.cache.freshness_ms,
        config.ledger.path,
    )

    yield

    if owned_client is not None:
        await owned_client.close()


def create_app(
    config: GatewayConfig | None = None,
    source: ChartSource | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``source`` replaces the Yahoo client, mainly for tests. The caller keeps
    ownership of an injected source and must close it.
    """
    import market_gateway

    if config is None:
        config = load_config()
        configure_logging(config.logging.level)

    app = FastAPI(
        title="Market Gateway API",
        description="Caching gateway for Yahoo Finance chart data",
        version=market_gateway.__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state._pending_source = source

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(access_log_middleware)

    app.include_router(router, prefix="/data")

    @app.get("/")
    async def root():
        return {"message": "Market gateway is running"}

    @app.get("/health", response_model=HealthResponse)
    async def health(state: AppState = Depends(get_app_state)):
        return HealthResponse(
            status="ok",
            version=market_gateway.__version__,
            cached_symbols=len(state.price_cache),
        )

    # Exception handlers
    @app.exception_handler(GatewayError)
    async def gateway_exception_handler(request: Request, exc: GatewayError):
        status_map = {
            InvalidInput: 400,
            ConfigError: 400,
        }
        status = status_map.get(type(exc), 500)
        if status >= 500:
            logger.error("%s on %s: %s %s", type(exc).__name__, request.url.path, exc, exc.context)
        return JSONResponse(status_code=status, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "detail": jsonable_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Reduce pydantic error dicts to JSON-safe location/message pairs."""
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]
