import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockflow.config import Settings, get_settings
from stockflow.core.logging import setup_logging
from stockflow.core.responses import failure
from stockflow.core.errors import StockFlowError
from stockflow.database import Base, engine
from stockflow.models import import_all_models
from stockflow.routers import (
    admin_router,
    auth_router,
    categories_router,
    health_router,
    movements_router,
    products_router,
    purchases_router,
    settings_router,
    tax_router,
    unit_types_router,
)

setup_logging()
settings: Settings = get_settings()
logger = logging.getLogger(__name__)

import_all_models()
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME)

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(products_router)
app.include_router(categories_router)
app.include_router(unit_types_router)
app.include_router(purchases_router)
app.include_router(movements_router)
app.include_router(tax_router)
app.include_router(settings_router)
app.include_router(admin_router)


@app.exception_handler(StockFlowError)
async def handle_stockflow_error(_request: Request, exc: StockFlowError):
    return failure(exc.status_code, exc.error, exc.message)


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(_request: Request, exc: StarletteHTTPException):
    return failure(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def handle_request_validation(_request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append("{}: {}".format(location, error.get("msg")) if location else error.get("msg"))
    return failure(400, "Invalid request", "; ".join(messages))


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        extra={"method": request.method, "path": request.url.path},
    )
    return failure(500, "Internal server error", str(exc))


@app.get("/")
def root():
    return {"success": True, "app": settings.APP_NAME}


__all__ = ["app", "root"]
