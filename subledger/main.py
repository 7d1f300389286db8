"""
FastAPI application factory
"""
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from subledger.config import get_settings
from subledger.infrastructure.db.session import check_db_connection
from subledger.api.v1 import assets, subscriptions, transactions, billing, statistics
from subledger.application.assets import AssetValidationError, AssetInUseError
from subledger.application.ledger import (
    NotFoundError, InsufficientFundsError, ConcurrentModificationError, StoreUnavailableError,
)
from subledger.application.statistics import StatisticsValidationError
from subledger.application.subscriptions import SubscriptionValidationError
from subledger.application.transactions import TransactionValidationError
from subledger.domain.billing_cycle import InvalidCycleError

logging.basicConfig(level=get_settings().LOG_LEVEL)
logger = logging.getLogger(__name__)


# Domain error -> HTTP status
ERROR_STATUS = {
    NotFoundError: 404,
    InsufficientFundsError: 409,
    ConcurrentModificationError: 409,
    AssetInUseError: 409,
    StoreUnavailableError: 503,
    InvalidCycleError: 422,
    AssetValidationError: 400,
    SubscriptionValidationError: 400,
    TransactionValidationError: 400,
    StatisticsValidationError: 400,
}


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Catches everything the exception handlers did not, logs the traceback"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


def _register_error_handlers(app: FastAPI) -> None:
    def handler(status_code: int):
        async def _handle(request: Request, exc: Exception) -> JSONResponse:
            if status_code >= 500:
                logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})
        return _handle

    for exc_class, status_code in ERROR_STATUS.items():
        app.add_exception_handler(exc_class, handler(status_code))


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.SCHEDULER_ENABLED:
        from subledger.application.scheduler import start_scheduler, shutdown_scheduler
        start_scheduler()
        try:
            yield
        finally:
            shutdown_scheduler()
    else:
        yield


def create_app() -> FastAPI:
    """
    Application factory - создаёт и настраивает FastAPI приложение

    Returns:
        Настроенный FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="SubLedger",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(ErrorLoggingMiddleware)

    # Session cookie carries user_id (login lives outside this service)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    _register_error_handlers(app)

    app.include_router(assets.router)
    app.include_router(subscriptions.router)
    app.include_router(transactions.router)
    app.include_router(billing.router)
    app.include_router(statistics.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (проверяет доступность БД)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "subledger.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
