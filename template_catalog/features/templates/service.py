"""
template_catalog/features/templates/service.py

Template listing service.

Handles:
- Resolving the viewing user's context (cohorts, roles, course category)
- Querying candidate templates for the tier, ordering and search
- Applying restriction rules (pro tier) and the importable-template cap
- Exporting the listing for the presentation layer, optionally grouped
"""

import logging
import posixpath
from typing import List, Optional, Sequence, TypeVar
from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.orm import Session

from template_catalog.core.config import Settings, settings
from template_catalog.core.database import course_format_options, courses
from template_catalog.core.errors import NotFoundError, ValidationError
from template_catalog.core.logging import log_event
from template_catalog.features.templates.assembler import TemplateAssembler
from template_catalog.features.templates.authorization import TemplateAuthorization
from template_catalog.features.templates.directory import (
    Directory,
    SqlCategoryTree,
    get_directory,
)
from template_catalog.features.templates.files import TemplateFileStore
from template_catalog.features.templates.query import build_template_query
from template_catalog.features.templates.rendering import TextRenderer
from template_catalog.features.templates.restrictions import (
    CategoryTree,
    is_eligible,
    template_from_row,
)
from template_catalog.features.templates.tags import TemplateTagStore
from template_catalog.features.templates.tier import TierPolicy, resolve_ordering, resolve_tier_policy
from template_catalog.models.template import (
    DisplayTemplate,
    SearchRequest,
    TemplateGroup,
    TemplateListing,
    TextFormat,
    UserContext,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

LIST_VIEW_CLASS = "kickstart-list-view"
TILE_VIEW_CLASS = "kickstart-tile-view"


def get_groups(templates: Sequence[T], per_group: int = 2) -> List[List[T]]:
    """Split templates into consecutive groups for card/column layouts.

    The last group holds the remainder when the count is not a multiple of
    per_group.
    """
    if per_group < 1:
        raise ValidationError("per_group must be at least 1")
    return [list(templates[i:i + per_group]) for i in range(0, len(templates), per_group)]


class TemplateListingService:
    def __init__(
        self,
        session: Session,
        *,
        policy: Optional[TierPolicy] = None,
        ordering: Optional[Sequence[int]] = None,
        directory: Optional[Directory] = None,
        categories: Optional[CategoryTree] = None,
        authorization: Optional[TemplateAuthorization] = None,
        renderer: Optional[TextRenderer] = None,
        settings_obj: Optional[Settings] = None,
    ):
        cfg = settings_obj or settings
        self.session = session
        self.settings = cfg
        self.policy = policy or resolve_tier_policy(cfg)
        self.ordering = list(ordering) if ordering is not None else resolve_ordering(self.policy, cfg)
        self.directory = directory or get_directory(session, cfg)
        self.categories = categories or SqlCategoryTree(session)
        self.authorization = authorization or TemplateAuthorization(session, cfg)
        self.renderer = renderer or TextRenderer(cfg)
        self.assembler = TemplateAssembler(
            self.renderer,
            TemplateTagStore(session),
            TemplateFileStore(session, cfg),
            self.policy,
            cfg,
        )

    def _course(self, course_id: int):
        row = self.session.execute(select(courses).where(courses.c.id == course_id)).mappings().first()
        if row is None:
            raise NotFoundError(f"Course {course_id} not found")
        return row

    def _course_option(self, course_id: int, name: str) -> Optional[str]:
        return self.session.execute(
            select(course_format_options.c.value)
            .where(course_format_options.c.courseid == course_id)
            .where(course_format_options.c.name == name)
        ).scalar()

    def user_context(self, user_id: int, course_id: int) -> UserContext:
        course = self._course(course_id)
        return UserContext(
            user_id=user_id,
            cohort_ids=self.directory.cohorts_of(user_id),
            role_ids=self.directory.roles_of(user_id, course_id),
            category_id=course["category"],
        )

    def get_templates(
        self,
        user_id: int,
        course_id: int,
        request: Optional[SearchRequest] = None,
    ) -> List[DisplayTemplate]:
        """Templates the user may import into the course, in listing order."""
        user = self.user_context(user_id, course_id)
        search = request.search_text() if request else None

        query = build_template_query(self.policy, search, self.ordering)
        rows = self.session.execute(query.statement()).mappings().all()

        can_manage = False
        if self.policy.restrictions_enabled:
            can_manage = self.authorization.can_manage_templates(user_id, course_id)

        templates: List[DisplayTemplate] = []
        importable = 0
        skipped = 0
        for row in rows:
            template = template_from_row(row)
            if self.policy.restrictions_enabled and not is_eligible(
                template, user, can_manage, self.categories
            ):
                skipped += 1
                continue
            if template.is_importable:
                importable += 1
            if self.policy.exceeds(importable):
                break
            templates.append(self.assembler.enrich(template, course_id))

        log_event(
            "info",
            "templates.listed",
            request_id=None,
            user_id=user_id,
            course_id=course_id,
            event_type="template_listing",
            extra={
                "candidates": len(rows),
                "listed": len(templates),
                "restricted": skipped,
                "has_pro": self.policy.has_pro,
                "search": bool(search),
            },
        )
        return templates

    def _placeholder(self) -> DisplayTemplate:
        return DisplayTemplate(
            title="Get Kickstart Pro",
            link=self.settings.GET_PRO_URL,
            isplaceholder=True,
        )

    def _page_url(self, page: str, **params: str) -> str:
        base = self.settings.BASE_URL.rstrip("/") + posixpath.dirname(self.settings.CONFIRM_PATH)
        url = f"{base}/{page}"
        if params:
            url += "?" + urlencode(params)
        return url

    def export_for_template(
        self,
        user_id: int,
        course_id: int,
        request: Optional[SearchRequest] = None,
        *,
        grouped: bool = False,
        per_group: int = 2,
    ) -> TemplateListing:
        """Listing data for the presentation layer."""
        templates = self.get_templates(user_id, course_id, request)
        notemplates = not templates
        if not self.policy.has_pro and self.authorization.is_site_admin(user_id):
            templates.append(self._placeholder())

        view = self._course_option(course_id, "templatesview")
        instructions = self._course_option(course_id, "teacherinstructions")
        listing = TemplateListing(
            templates=templates,
            has_pro=self.policy.has_pro,
            notemplates=notemplates,
            templateclass=LIST_VIEW_CLASS if view == "list" else TILE_VIEW_CLASS,
            teacherinstructions=self.renderer.render(instructions, TextFormat.HTML),
            canmanage=self.authorization.can_manage_templates(user_id),
            createtemplateurl=self._page_url("template.php", action="create"),
            managetemplateurl=self._page_url("templates.php"),
        )
        if grouped:
            listing.groups = [
                TemplateGroup(templates=group) for group in get_groups(templates, per_group)
            ]
        return listing
