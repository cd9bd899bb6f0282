import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from config import CORS_ORIGINS, LOG_LEVEL, PORT, REGISTRY_MODE
from database import init_db
from exceptions import MarketError
from logging_config import LogContext, configure_logging, get_logger
from routers import (
    auth_router,
    cart_router,
    catalog_router,
    health_router,
    holdings_router,
    orders_router,
    retirements_router,
)
from services.registry import AdapterClient, RegistryPort, build_adapter, build_registry

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(level=LOG_LEVEL)
    init_db()
    logger.info("app_started", extra={"registry_mode": REGISTRY_MODE})
    yield


def create_app(
    registry: Optional[RegistryPort] = None,
    adapter: Optional[AdapterClient] = None,
) -> FastAPI:
    # Registry variant is chosen once, here
    app = FastAPI(title="Carbon Market Core", lifespan=lifespan)
    app.state.registry = registry if registry is not None else build_registry()
    app.state.adapter = adapter if adapter is not None else build_adapter()

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MarketError)
    async def market_error_handler(request: Request, exc: MarketError):
        if exc.http_status >= 500:
            logger.error("request_failed", extra={"error_code": exc.code, "path": request.url.path})
        return JSONResponse(status_code=exc.http_status, content=jsonable_encoder(exc.to_dict()))

    # 404 Fallback Middleware
    @app.middleware("http")
    async def not_found_middleware(request: Request, call_next):
        try:
            response = await call_next(request)
            # Only unmatched routes; handled NotFoundError keeps its body
            if response.status_code == 404 and "endpoint" not in request.scope:
                return JSONResponse(status_code=404, content={"error": "Route not found"})
            return response
        except Exception:
            logger.exception("unhandled_error", extra={"path": request.url.path})
            return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR"})

    # Correlation id per request, echoed back
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        correlation_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        with LogContext.bind(correlation_id=correlation_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        return response

    app.include_router(auth_router)
    app.include_router(catalog_router)
    app.include_router(holdings_router)
    app.include_router(cart_router)
    app.include_router(orders_router)
    app.include_router(retirements_router)
    app.include_router(health_router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=PORT, reload=True)
