from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bakery.api.routes_orders import router as orders_router
from bakery.api.routes_quotes import router as quotes_router
from bakery.api.routes_reports import router as reports_router
from bakery.api.routes_settings import router as settings_router
from bakery.core.config import get_settings
from bakery.core.logging import configure_logging
from bakery.domain.errors import (
    BakeryError,
    DownstreamError,
    InvalidTransitionError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from bakery.notifications.scheduler import shutdown_notification_scheduler
from bakery.persistence.pg import init_db, session_scope
from bakery.persistence.store import SqlOrderStore

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)

ERROR_STATUS: dict[type[BakeryError], int] = {
    ValidationError: 422,
    InvalidTransitionError: 409,
    NotFoundError: 404,
    PartialFailureError: 500,
    DownstreamError: 502,
}


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    with session_scope() as session:
        config = SqlOrderStore(session).get_config()
    logger.info(
        "pricing ready: base_price=%s tiers=%s",
        config.base_price,
        [(tier.min_quantity, str(tier.discount_fraction)) for tier in config.discount_tiers],
    )


@app.on_event("shutdown")
def on_shutdown() -> None:
    shutdown_notification_scheduler()


@app.exception_handler(BakeryError)
async def bakery_error_handler(_: Request, exc: BakeryError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    if status_code >= 500:
        logger.error("%s: %s", exc.code, exc)
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "error": exc.code,
        },
    )


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(quotes_router)
app.include_router(orders_router)
app.include_router(settings_router)
app.include_router(reports_router)
