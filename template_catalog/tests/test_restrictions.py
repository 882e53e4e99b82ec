"""
Tests for template restriction rules.
"""
import logging

from template_catalog.features.templates.directory import StaticCategoryTree
from template_catalog.features.templates.restrictions import (
    expand_categories,
    is_eligible,
    parse_id_set,
    rule_from_row,
    template_from_row,
)
from template_catalog.models.template import RestrictionRule, Template, UserContext


def make_template(**rule) -> Template:
    return Template(id=1, title="T", restriction=RestrictionRule(**rule))


USER = UserContext(user_id=7, cohort_ids=frozenset({10, 11}), role_ids=frozenset({5}), category_id=3)

# 1 -> 2 -> 3, and 4 at top level
TREE = StaticCategoryTree({1: 0, 2: 1, 3: 2, 4: 0})


class TestParseIdSet:
    def test_parses_json_list(self):
        assert parse_id_set("[1, 2, 3]") == frozenset({1, 2, 3})

    def test_numeric_strings_are_accepted(self):
        assert parse_id_set('["4", "5"]') == frozenset({4, 5})

    def test_empty_and_null_are_empty(self):
        assert parse_id_set(None) == frozenset()
        assert parse_id_set("") == frozenset()
        assert parse_id_set("null") == frozenset()

    def test_malformed_json_fails_open(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_id_set("[1, 2", field="cohortids", template_id=9) == frozenset()
        assert any(r.getMessage() == "restrictions.invalid_json" for r in caplog.records)

    def test_non_list_json_is_empty(self):
        assert parse_id_set('{"a": 1}') == frozenset()
        assert parse_id_set("42") == frozenset()

    def test_bad_members_dropped(self):
        assert parse_id_set('[1, "x", null, true, 2]') == frozenset({1, 2})


class TestRuleFromRow:
    def test_builds_typed_rule(self):
        rule = rule_from_row({
            "id": 3,
            "restrictcohort": 1,
            "cohortids": "[10]",
            "restrictcategory": 0,
            "categoryids": "[2, 4]",
            "includesubcategories": 1,
            "restrictrole": 1,
            "roleids": "[5, 6]",
            "restrictuser": 0,
            "userids": None,
        })
        assert rule.cohort_active
        assert rule.cohort_ids == frozenset({10})
        assert not rule.category_active
        assert rule.category_ids == frozenset({2, 4})
        assert rule.include_subcategories is True
        assert rule.role_ids == frozenset({5, 6})
        assert not rule.user_active

    def test_template_from_row_defaults(self):
        template = template_from_row({"id": 1, "title": "A", "visible": 1, "status": 1})
        assert template.descriptionformat == 1
        assert template.is_importable
        assert template.restriction == RestrictionRule()

    def test_format_template_not_importable(self):
        template = template_from_row({"id": 1, "title": "A", "courseformat": "topics"})
        assert not template.is_importable


class TestIsEligible:
    def test_no_restrictions_includes(self):
        assert is_eligible(make_template(), USER, can_manage=False)

    def test_manager_bypasses_everything(self):
        template = make_template(
            restrict_cohort=True, cohort_ids=frozenset({99}),
            restrict_role=True, role_ids=frozenset({99}),
            restrict_user=True, user_ids=frozenset({99}),
            restrict_category=True, category_ids=frozenset({4}),
        )
        assert is_eligible(template, USER, can_manage=True, categories=TREE)
        assert not is_eligible(template, USER, can_manage=False, categories=TREE)

    def test_cohort_without_intersection_excluded(self):
        template = make_template(restrict_cohort=True, cohort_ids=frozenset({1, 2}))
        assert not is_eligible(template, USER, can_manage=False)

    def test_cohort_single_overlap_included(self):
        template = make_template(restrict_cohort=True, cohort_ids=frozenset({2, 11}))
        assert is_eligible(template, USER, can_manage=False)

    def test_inactive_cohort_predicate_passes(self):
        template = make_template(restrict_cohort=False, cohort_ids=frozenset({1}))
        assert is_eligible(template, USER, can_manage=False)

    def test_active_flag_with_empty_targets_fails_open(self):
        template = make_template(restrict_cohort=True, restrict_role=True, restrict_user=True, restrict_category=True)
        assert is_eligible(template, USER, can_manage=False, categories=TREE)

    def test_role_predicate(self):
        assert is_eligible(make_template(restrict_role=True, role_ids=frozenset({5})), USER, False)
        assert not is_eligible(make_template(restrict_role=True, role_ids=frozenset({3})), USER, False)

    def test_user_predicate(self):
        assert is_eligible(make_template(restrict_user=True, user_ids=frozenset({7, 8})), USER, False)
        assert not is_eligible(make_template(restrict_user=True, user_ids=frozenset({8})), USER, False)

    def test_category_exact_match(self):
        template = make_template(restrict_category=True, category_ids=frozenset({3}))
        assert is_eligible(template, USER, False, categories=TREE)

    def test_category_parent_without_subcategories_excluded(self):
        template = make_template(restrict_category=True, category_ids=frozenset({1}))
        assert not is_eligible(template, USER, False, categories=TREE)

    def test_category_parent_with_subcategories_included(self):
        template = make_template(
            restrict_category=True, category_ids=frozenset({1}), include_subcategories=True
        )
        assert is_eligible(template, USER, False, categories=TREE)

    def test_unknown_category_is_skipped(self):
        rule = RestrictionRule(restrict_category=True, category_ids=frozenset({3, 404}))
        assert expand_categories(rule, TREE) == frozenset({3})

    def test_only_unknown_categories_excludes(self):
        template = make_template(restrict_category=True, category_ids=frozenset({404}))
        assert not is_eligible(template, USER, False, categories=TREE)

    def test_any_failing_predicate_excludes(self):
        template = make_template(
            restrict_cohort=True, cohort_ids=frozenset({10}),
            restrict_role=True, role_ids=frozenset({42}),
        )
        assert not is_eligible(template, USER, can_manage=False)
