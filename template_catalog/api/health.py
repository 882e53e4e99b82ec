"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from template_catalog.core.database import check_connection, get_engine

logger = logging.getLogger("template_catalog")

root_router = APIRouter(tags=["health"])

# Tables a listing request reads from.
REQUIRED_TABLES = (
    "course_templates",
    "course_categories",
    "courses",
    "course_format_options",
    "tags",
    "tag_instances",
    "template_files",
)


@root_router.get("/healthz")
def healthz():
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Ready once the database answers and the catalog tables exist."""
    if not check_connection():
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    inspector = inspect(get_engine())
    missing = [name for name in REQUIRED_TABLES if not inspector.has_table(name)]
    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning("readyz.missing_tables", extra={"missing": missing})
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})
    return {"status": "ok"}
