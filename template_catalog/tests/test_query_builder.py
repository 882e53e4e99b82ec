"""
Tests for the template query builder.

Clauses are compiled to check parameter binding and executed against the
SQLite test database to check filtering and ordering.
"""

from template_catalog.features.templates.query import build_template_query
from template_catalog.features.templates.tier import TierPolicy


FREE = TierPolicy.free(4)
PRO = TierPolicy.pro()


def run(session, query):
    return [row.id for row in session.execute(query.statement())]


def test_base_filter_requires_visible_and_published(seed, db_session):
    seed.template(1)
    seed.template(2, visible=False)
    seed.template(3, status=False)
    seed.template(4, visible=False, status=False)
    seed.template(5)

    assert run(db_session, build_template_query(FREE)) == [1, 5]
    assert run(db_session, build_template_query(PRO)) == [1, 5]


def test_search_binds_parameters():
    hostile = "x'; DROP TABLE course_templates; --"
    query = build_template_query(FREE, search=hostile)
    sql = str(query.where.compile())
    assert "DROP TABLE" not in sql
    assert any(isinstance(v, str) and "DROP TABLE" in v for v in query.params.values())


def test_search_matches_title_description_and_tag(seed, db_session):
    seed.template(1, title="Introductory Biology", description="Cells")
    seed.template(2, title="Chemistry", description="An INTRO to molecules")
    seed.template(3, title="Physics", description="Forces")
    seed.tag(3, "Intro")
    seed.template(4, title="History", description="Empires")
    seed.tag(4, "ancient")

    assert run(db_session, build_template_query(FREE, search="intro")) == [1, 2, 3]


def test_search_wildcards_are_literal(seed, db_session):
    seed.template(1, title="100% online")
    seed.template(2, title="1000 online")
    seed.template(3, title="snake_case basics")
    seed.template(4, title="snakeXcase basics")

    assert run(db_session, build_template_query(FREE, search="0%")) == [1]
    assert run(db_session, build_template_query(FREE, search="e_c")) == [3]


def test_tag_match_ignores_other_item_types(seed, db_session):
    from sqlalchemy import insert
    from template_catalog.core.database import tag_instances

    seed.template(1, title="Plain")
    seed.tag(1, "unrelated")
    tag_id = seed._tag_ids["unrelated"]
    db_session.execute(insert(tag_instances).values(tagid=tag_id, itemid=1, itemtype="course", ordering=0))
    seed.template(2, title="Other")
    db_session.execute(
        insert(tag_instances).values(tagid=seed._tag_ids["unrelated"], itemid=2, itemtype="course", ordering=0)
    )

    assert run(db_session, build_template_query(FREE, search="unrelated")) == [1]


def test_pro_ordering_ranks_and_filters(seed, db_session):
    for template_id in (1, 3, 5, 7):
        seed.template(template_id)

    query = build_template_query(PRO, ordering=[5, 1, 3])
    assert run(db_session, query) == [5, 1, 3]


def test_free_tier_ignores_ordering(seed, db_session):
    for template_id in (1, 3, 5):
        seed.template(template_id)

    assert run(db_session, build_template_query(FREE, ordering=[5, 1, 3])) == [1, 3, 5]


def test_pro_without_ordering_lists_by_id(seed, db_session):
    for template_id in (3, 1, 2):
        seed.template(template_id)

    assert run(db_session, build_template_query(PRO, ordering=[])) == [1, 2, 3]


def test_ordering_combined_with_search(seed, db_session):
    seed.template(1, title="Intro A")
    seed.template(2, title="Advanced")
    seed.template(3, title="Intro B")

    query = build_template_query(PRO, search="intro", ordering=[3, 2, 1])
    assert run(db_session, query) == [3, 1]
