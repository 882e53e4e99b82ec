"""Template management permission checks."""
from typing import FrozenSet, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from template_catalog.core.config import Settings, settings, parse_id_list
from template_catalog.core.database import role_assignments, role_capabilities

# role_assignments.courseid for grants made at site level
SITE_LEVEL = 0


class TemplateAuthorization:
    """Answers whether a user may manage templates.

    Site administrators always can. Other users need a role carrying the
    manage capability, assigned at site level or, for a course check, in
    that course.
    """

    def __init__(self, session: Session, settings_obj: Optional[Settings] = None):
        self.session = session
        cfg = settings_obj or settings
        self.capability = cfg.MANAGE_TEMPLATES_CAPABILITY
        self._site_admins: FrozenSet[int] = frozenset(parse_id_list(cfg.SITE_ADMIN_IDS))

    def is_site_admin(self, user_id: int) -> bool:
        return user_id in self._site_admins

    def can_manage_templates(self, user_id: int, course_id: Optional[int] = None) -> bool:
        """Check the capability in a course, or at site level when course_id is None.

        A course grant never implies site level; a site grant applies to
        every course.
        """
        if self.is_site_admin(user_id):
            return True
        scopes = [SITE_LEVEL] if course_id is None else [SITE_LEVEL, course_id]
        stmt = (
            select(role_capabilities.c.id)
            .select_from(
                role_assignments.join(
                    role_capabilities, role_assignments.c.roleid == role_capabilities.c.roleid
                )
            )
            .where(role_assignments.c.userid == user_id)
            .where(role_assignments.c.courseid.in_(scopes))
            .where(role_capabilities.c.capability == self.capability)
        )
        return self.session.execute(stmt.limit(1)).first() is not None
