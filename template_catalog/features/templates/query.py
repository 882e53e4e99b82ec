"""
template_catalog/features/templates/query.py

Builds the store query for a template listing.

The builder only composes SQLAlchemy clauses; it never executes them.
Every user-supplied value travels as a bound parameter.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from sqlalchemy import and_, case, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from template_catalog.core.database import course_templates, tag_instances, tags
from template_catalog.features.templates.tier import TierPolicy

TAG_ITEMTYPE = "course_templates"
LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class TemplateQuery:
    where: ColumnElement
    order_by: Tuple[ColumnElement, ...]

    @property
    def params(self) -> Dict[str, Any]:
        """Bound parameter values of the filter, keyed by parameter name."""
        return dict(self.where.compile().params)

    def statement(self):
        return select(course_templates).where(self.where).order_by(*self.order_by)


def _like_pattern(value: str) -> str:
    escaped = (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def search_condition(search: str) -> ColumnElement:
    """Case-insensitive substring match on title, description or a tag name."""
    pattern = _like_pattern(search)
    tag_match = (
        select(tag_instances.c.id)
        .select_from(tag_instances.join(tags, tag_instances.c.tagid == tags.c.id))
        .where(
            tag_instances.c.itemid == course_templates.c.id,
            tag_instances.c.itemtype == TAG_ITEMTYPE,
            tags.c.name.ilike(pattern, escape=LIKE_ESCAPE),
        )
        .exists()
    )
    return or_(
        course_templates.c.title.ilike(pattern, escape=LIKE_ESCAPE),
        course_templates.c.description.ilike(pattern, escape=LIKE_ESCAPE),
        tag_match,
    )


def ordering_rank(ordering: Sequence[int]) -> ColumnElement:
    """Rank each template id by its position in the ordering list."""
    return case(
        {template_id: position for position, template_id in enumerate(ordering)},
        value=course_templates.c.id,
    )


def build_template_query(
    policy: TierPolicy,
    search: Optional[str] = None,
    ordering: Sequence[int] = (),
) -> TemplateQuery:
    conditions = [
        course_templates.c.visible == true(),
        course_templates.c.status == true(),
    ]
    order_by: Tuple[ColumnElement, ...] = (course_templates.c.id,)

    if policy.ordering_enabled and ordering:
        conditions.append(course_templates.c.id.in_(list(ordering)))
        order_by = (ordering_rank(ordering), course_templates.c.id)

    if search:
        conditions.append(search_condition(search))

    return TemplateQuery(where=and_(*conditions), order_by=order_by)
