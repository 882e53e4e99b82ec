import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from dotenv import load_dotenv

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from template_catalog.core.config import settings, validate_config
from template_catalog.core.logging import configure_logging
from template_catalog.core.middleware.request_id import RequestIdMiddleware
from template_catalog.core.validation import validate_env
from template_catalog.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from template_catalog.api import health, templates

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("template_catalog")
    logger.info("Starting template catalog...")
    try:
        yield
    finally:
        logging.getLogger("template_catalog").info("Stopping template catalog...")


app = FastAPI(title="Course Template Catalog", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(health.root_router, tags=["health"])
app.include_router(templates.router, tags=["templates"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("template_catalog.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
