# template_catalog/conftest.py
import json
import os

import pytest
from sqlalchemy import insert

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")

from template_catalog.core.config import settings
from template_catalog.core.database import (
    init_engine,
    dispose_engine,
    create_all_tables,
    get_db_session,
    course_templates,
    course_categories,
    courses,
    course_format_options,
    cohort_members,
    role_assignments,
    role_capabilities,
    tags,
    tag_instances,
    template_files,
)
from template_catalog.features.templates.query import TAG_ITEMTYPE


class CatalogSeeder:
    """Inserts host platform records and templates into the test database."""

    def __init__(self, session):
        self.session = session
        self._tag_ids = {}

    def category(self, category_id: int, parent: int = 0, name: str = None) -> int:
        parent_path = ""
        if parent:
            parent_path = self.session.execute(
                course_categories.select().where(course_categories.c.id == parent)
            ).mappings().one()["path"]
        self.session.execute(
            insert(course_categories).values(
                id=category_id,
                name=name or f"Category {category_id}",
                parent=parent,
                path=f"{parent_path}/{category_id}",
            )
        )
        return category_id

    def course(self, course_id: int, category: int, **options) -> int:
        self.session.execute(
            insert(courses).values(id=course_id, category=category, fullname=f"Course {course_id}")
        )
        for name, value in options.items():
            self.session.execute(
                insert(course_format_options).values(courseid=course_id, name=name, value=value)
            )
        return course_id

    def template(self, template_id: int, title: str = None, **fields) -> int:
        values = {
            "id": template_id,
            "title": title or f"Template {template_id}",
            "description": f"<p>Description {template_id}</p>",
            "descriptionformat": 1,
            "visible": True,
            "status": True,
        }
        for key in ("categoryids", "cohortids", "roleids", "userids"):
            if key in fields and isinstance(fields[key], (list, tuple)):
                fields[key] = json.dumps(list(fields[key]))
        values.update(fields)
        self.session.execute(insert(course_templates).values(**values))
        return template_id

    def tag(self, template_id: int, name: str, ordering: int = 0) -> None:
        tag_id = self._tag_ids.get(name.lower())
        if tag_id is None:
            tag_id = self.session.execute(
                insert(tags).values(name=name.lower(), rawname=name)
            ).inserted_primary_key[0]
            self._tag_ids[name.lower()] = tag_id
        self.session.execute(
            insert(tag_instances).values(
                tagid=tag_id, itemid=template_id, itemtype=TAG_ITEMTYPE, ordering=ordering
            )
        )

    def file(self, template_id: int, area: str, filename: str, sortorder: int = 0) -> None:
        self.session.execute(
            insert(template_files).values(
                templateid=template_id, filearea=area, filename=filename, sortorder=sortorder
            )
        )

    def cohort_member(self, cohort_id: int, user_id: int) -> None:
        self.session.execute(insert(cohort_members).values(cohortid=cohort_id, userid=user_id))

    def role(self, role_id: int, user_id: int, course_id: int) -> None:
        self.session.execute(
            insert(role_assignments).values(roleid=role_id, userid=user_id, courseid=course_id)
        )

    def capability(self, role_id: int, capability: str = None) -> None:
        self.session.execute(
            insert(role_capabilities).values(
                roleid=role_id, capability=capability or settings.MANAGE_TEMPLATES_CAPABILITY
            )
        )


@pytest.fixture(scope="function")
def db_session():
    """
    Fresh in-memory SQLite database per test.

    Yields a session bound to the shared engine; the API under test uses
    the same engine through get_db().
    """
    init_engine("sqlite://")
    create_all_tables()
    with get_db_session() as session:
        yield session
    dispose_engine()


@pytest.fixture
def seed(db_session):
    return CatalogSeeder(db_session)


@pytest.fixture
def pro_enabled(monkeypatch):
    monkeypatch.setattr(settings, "PRO_ENABLED", True)
    monkeypatch.setattr(settings, "TEMPLATE_ORDER", "")
    return settings


@pytest.fixture
def free_tier(monkeypatch):
    monkeypatch.setattr(settings, "PRO_ENABLED", False)
    monkeypatch.setattr(settings, "FREE_TEMPLATE_LIMIT", 4)
    return settings
