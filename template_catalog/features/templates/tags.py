from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from template_catalog.core.database import tag_instances, tags
from template_catalog.features.templates.query import TAG_ITEMTYPE


class TemplateTagStore:
    def __init__(self, session: Session):
        self.session = session

    def tags_of(self, template_id: int) -> List[str]:
        """Display names of the tags on a template, in tag ordering."""
        rows = self.session.execute(
            select(tags.c.rawname)
            .select_from(tag_instances.join(tags, tag_instances.c.tagid == tags.c.id))
            .where(tag_instances.c.itemid == template_id)
            .where(tag_instances.c.itemtype == TAG_ITEMTYPE)
            .order_by(tag_instances.c.ordering, tag_instances.c.id)
        ).scalars()
        return list(rows)
