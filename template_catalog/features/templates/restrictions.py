"""
template_catalog/features/templates/restrictions.py

Template access rules.

Handles:
- Parsing JSON-encoded restriction id lists into typed sets (fail open)
- Building Template models from store rows
- Deciding whether a user may see a template
"""

import json
import logging
from typing import Any, FrozenSet, Iterable, Mapping, Optional, Protocol

from template_catalog.models.template import RestrictionRule, Template, UserContext


logger = logging.getLogger(__name__)


class CategoryTree(Protocol):
    """Read access to the course category hierarchy."""

    def exists(self, category_id: int) -> bool:
        ...

    def descendants_of(self, category_id: int) -> FrozenSet[int]:
        ...


def parse_id_set(raw: Any, *, field: str = "", template_id: Optional[int] = None) -> FrozenSet[int]:
    """Decode a JSON id list into a frozenset of ints.

    Anything that is not a JSON list of integers (or numeric strings) yields
    an empty set; bad members are dropped individually.
    """
    if raw is None or raw == "":
        return frozenset()
    value = raw
    if isinstance(raw, (str, bytes)):
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning(
                "restrictions.invalid_json",
                extra={"template_id": template_id, "field": field},
            )
            return frozenset()
    if not isinstance(value, (list, tuple, set, frozenset)):
        logger.warning(
            "restrictions.not_a_list",
            extra={"template_id": template_id, "field": field},
        )
        return frozenset()

    ids = set()
    for item in value:
        if isinstance(item, bool):
            continue
        try:
            ids.add(int(item))
        except (TypeError, ValueError):
            continue
    return frozenset(ids)


def rule_from_row(row: Mapping[str, Any]) -> RestrictionRule:
    template_id = row.get("id")
    return RestrictionRule(
        restrict_cohort=bool(row.get("restrictcohort")),
        cohort_ids=parse_id_set(row.get("cohortids"), field="cohortids", template_id=template_id),
        restrict_category=bool(row.get("restrictcategory")),
        category_ids=parse_id_set(row.get("categoryids"), field="categoryids", template_id=template_id),
        include_subcategories=bool(row.get("includesubcategories")),
        restrict_role=bool(row.get("restrictrole")),
        role_ids=parse_id_set(row.get("roleids"), field="roleids", template_id=template_id),
        restrict_user=bool(row.get("restrictuser")),
        user_ids=parse_id_set(row.get("userids"), field="userids", template_id=template_id),
    )


def template_from_row(row: Mapping[str, Any]) -> Template:
    """Build a Template from a `course_templates` row mapping."""
    descriptionformat = row.get("descriptionformat")
    return Template(
        id=row["id"],
        title=row.get("title") or "",
        description=row.get("description"),
        descriptionformat=1 if descriptionformat is None else int(descriptionformat),
        visible=bool(row.get("visible")),
        status=bool(row.get("status")),
        courseformat=row.get("courseformat"),
        restriction=rule_from_row(row),
    )


def expand_categories(rule: RestrictionRule, tree: Optional[CategoryTree]) -> FrozenSet[int]:
    """Resolve the categories a template is offered in.

    Unknown category ids are skipped. Descendants are added when the rule
    includes subcategories.
    """
    if tree is None:
        return rule.category_ids
    expanded = set()
    for category_id in rule.category_ids:
        if not tree.exists(category_id):
            continue
        expanded.add(category_id)
        if rule.include_subcategories:
            expanded.update(tree.descendants_of(category_id))
    return frozenset(expanded)


def _intersects(target: Iterable[int], values: Iterable[int]) -> bool:
    return not frozenset(target).isdisjoint(values)


def is_eligible(
    template: Template,
    user: UserContext,
    can_manage: bool,
    categories: Optional[CategoryTree] = None,
) -> bool:
    """Return True when the template's restrictions admit the user.

    Template managers bypass every restriction.
    """
    if can_manage:
        return True

    rule = template.restriction
    if rule.cohort_active and not _intersects(rule.cohort_ids, user.cohort_ids):
        return False
    if rule.category_active and user.category_id not in expand_categories(rule, categories):
        return False
    if rule.user_active and user.user_id not in rule.user_ids:
        return False
    if rule.role_active and not _intersects(rule.role_ids, user.role_ids):
        return False
    return True
