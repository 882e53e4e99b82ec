"""
Engine, sessions and table definitions for the template catalog.

The catalog owns `course_templates` and its file and tag records. The
remaining tables mirror the host platform records that restriction rules are
checked against (categories, courses, cohorts, roles).
"""
import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import false, func, true

from template_catalog.core.config import settings


logger = logging.getLogger("template_catalog")

metadata = MetaData()

# Listing requests are short reads; a modest pool covers a web worker.
POOL_OPTIONS = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_database_url() -> Optional[str]:
    """TEST_DATABASE_URL wins over DATABASE_URL when it is set."""
    return os.getenv("TEST_DATABASE_URL") or settings.DATABASE_URL


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # A single shared connection keeps an in-memory database alive
        # across sessions and threads.
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"poolclass": QueuePool, **POOL_OPTIONS}


def init_engine(database_url: Optional[str] = None) -> Engine:
    """(Re)create the engine and session factory for the given URL."""
    global _engine, _SessionLocal

    url = database_url or get_database_url()
    if not url:
        raise RuntimeError("DATABASE_URL is not configured; set it in the environment or .env")

    _engine = create_engine(url, **_engine_options(url))
    _SessionLocal = sessionmaker(bind=_engine, autoflush=False)
    logger.info("database.engine_ready", extra={"dialect": _engine.dialect.name})
    return _engine


def dispose_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Session scope that commits on success and rolls back on error."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for ``Depends(get_db)``; listings never write."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def create_all_tables() -> None:
    metadata.create_all(bind=get_engine())


def check_connection() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(select(1))
        return True
    except Exception as exc:
        logger.warning("database.unreachable", extra={"error_message": str(exc)})
        return False


# Course templates offered for import
course_templates = Table(
    'course_templates',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('title', Text, nullable=False),
    Column('description', Text, nullable=True),
    Column('descriptionformat', Integer, nullable=False, server_default='1'),
    Column('visible', Boolean, nullable=False, server_default=true()),
    Column('status', Boolean, nullable=False, server_default=true()),
    # Non-null when the template applies a course format instead of a backup
    Column('courseformat', String(100), nullable=True),
    # JSON-encoded id lists, parsed once per row by the restriction evaluator
    Column('categoryids', Text, nullable=True),
    Column('includesubcategories', Boolean, nullable=False, server_default=false()),
    Column('restrictcohort', Boolean, nullable=False, server_default=false()),
    Column('cohortids', Text, nullable=True),
    Column('restrictcategory', Boolean, nullable=False, server_default=false()),
    Column('restrictrole', Boolean, nullable=False, server_default=false()),
    Column('roleids', Text, nullable=True),
    Column('restrictuser', Boolean, nullable=False, server_default=false()),
    Column('userids', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    # Index for the base listing filter
    Index('idx_course_templates_visible_status', 'visible', 'status'),
)

# Course category tree; path is the materialized ancestry ("/1/4/9")
course_categories = Table(
    'course_categories',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('name', Text, nullable=False),
    Column('parent', Integer, nullable=False, server_default='0'),
    Column('path', String(255), nullable=False),
    Index('idx_course_categories_path', 'path'),
)

courses = Table(
    'courses',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('category', Integer, ForeignKey('course_categories.id'), nullable=False),
    Column('fullname', Text, nullable=False),
)

# Per-course format options (templatesview, teacherinstructions, ...)
course_format_options = Table(
    'course_format_options',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('courseid', Integer, ForeignKey('courses.id'), nullable=False),
    Column('name', String(100), nullable=False),
    Column('value', Text, nullable=True),
    UniqueConstraint('courseid', 'name', name='uq_course_format_options_course_name'),
)

cohort_members = Table(
    'cohort_members',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('cohortid', Integer, nullable=False),
    Column('userid', Integer, nullable=False, index=True),
    UniqueConstraint('cohortid', 'userid', name='uq_cohort_members_cohort_user'),
)

# Role assignments scoped to a course
role_assignments = Table(
    'role_assignments',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('roleid', Integer, nullable=False),
    Column('userid', Integer, nullable=False),
    Column('courseid', Integer, nullable=False),
    Index('idx_role_assignments_user_course', 'userid', 'courseid'),
)

role_capabilities = Table(
    'role_capabilities',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('roleid', Integer, nullable=False),
    Column('capability', String(255), nullable=False),
    UniqueConstraint('roleid', 'capability', name='uq_role_capabilities_role_capability'),
)

tags = Table(
    'tags',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('name', String(255), nullable=False, unique=True),
    Column('rawname', String(255), nullable=False),
)

tag_instances = Table(
    'tag_instances',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('tagid', Integer, ForeignKey('tags.id'), nullable=False),
    Column('itemid', Integer, nullable=False),
    Column('itemtype', String(100), nullable=False),
    Column('ordering', Integer, nullable=False, server_default='0'),
    # Composite index for the tag lookup and search sub-query
    Index('idx_tag_instances_item', 'itemtype', 'itemid'),
)

# Files attached to templates (backups in course_backups, images in backimages)
template_files = Table(
    'template_files',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('templateid', Integer, ForeignKey('course_templates.id'), nullable=False),
    Column('filearea', String(50), nullable=False),
    Column('filename', String(255), nullable=False),
    Column('mimetype', String(100), nullable=True),
    Column('sortorder', Integer, nullable=False, server_default='0'),
    Index('idx_template_files_template_area', 'templateid', 'filearea'),
)
