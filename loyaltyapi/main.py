import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from loyaltyapi import containers
from loyaltyapi.config import get_settings
from loyaltyapi.core.exception_handlers import (
    handle_base_api_exception,
    handle_http_exception,
    handle_unexpected_error,
    handle_validation_error,
)
from loyaltyapi.core.exceptions import BaseAPIException
from loyaltyapi.core.logging_middleware import LoggingMiddleware
from loyaltyapi.logging_config import setup_logging
from loyaltyapi.routers import (
    balance_router,
    health_router,
    order_router,
    withdrawal_router,
)

load_dotenv("loyaltyapi/.env")

logger = logging.getLogger(__name__)


async def stop_worker(task: asyncio.Task, stop_event: asyncio.Event, timeout: float) -> None:
    """진행 중인 tick이 끝날 때까지 최대 timeout초 대기 후 취소"""
    stop_event.set()
    try:
        await asyncio.wait_for(task, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Reconciliation worker did not stop within {timeout}s, cancelled")
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.error(f"Reconciliation worker exited with error: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: containers.Container = app.container  # type: ignore[attr-defined]
    settings = container.config()

    stop_event = asyncio.Event()
    task = None
    if settings.RECONCILE_WORKER_ENABLED:
        worker = container.reconciliation_worker()
        task = asyncio.create_task(worker.run(stop_event))
    else:
        logger.info("Reconciliation worker disabled")

    try:
        yield
    finally:
        if task is not None:
            await stop_worker(task, stop_event, settings.RECONCILE_SHUTDOWN_TIMEOUT_SECONDS)
        await container.accrual_client().aclose()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)
    app.container = containers.Container()  # type: ignore[attr-defined]

    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(health_router.router)
    app.include_router(order_router.router)
    app.include_router(balance_router.router)
    app.include_router(withdrawal_router.router)

    return app


app = create_app()
