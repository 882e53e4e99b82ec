"""File storage reads for template attachments."""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from template_catalog.core.config import Settings, settings
from template_catalog.core.database import template_files

BACKUP_AREA = "course_backups"
BACKGROUND_IMAGE_AREA = "backimages"


class TemplateFileStore:
    def __init__(self, session: Session, settings_obj: Optional[Settings] = None):
        self.session = session
        cfg = settings_obj or settings
        self.base_url = cfg.BASE_URL.rstrip("/")
        self.context_id = cfg.SYSTEM_CONTEXT_ID
        self.component = cfg.PLUGIN_COMPONENT

    def files_for(self, template_id: int, area: str = BACKUP_AREA) -> List[str]:
        """File names attached to a template in one file area, in sort order."""
        rows = self.session.execute(
            select(template_files.c.filename)
            .where(template_files.c.templateid == template_id)
            .where(template_files.c.filearea == area)
            .order_by(template_files.c.sortorder, template_files.c.id)
        ).scalars()
        return list(rows)

    def file_url(self, template_id: int, area: str, filename: str) -> str:
        return f"{self.base_url}/pluginfile.php/{self.context_id}/{self.component}/{area}/{template_id}/{filename}"

    def background_images_for(self, template_id: int) -> List[str]:
        return [
            self.file_url(template_id, BACKGROUND_IMAGE_AREA, name)
            for name in self.files_for(template_id, BACKGROUND_IMAGE_AREA)
        ]
