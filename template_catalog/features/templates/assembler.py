"""
template_catalog/features/templates/assembler.py

Turns stored templates into display records.

Handles:
- Description file URL rewriting and rendering
- Display title normalization
- Hashtag line and import link
- Pro-only gating flags (background images, pending backup)
"""

from typing import Optional
from urllib.parse import urlencode

from template_catalog.core.config import Settings, settings
from template_catalog.features.templates.files import BACKUP_AREA, TemplateFileStore
from template_catalog.features.templates.rendering import TextRenderer
from template_catalog.features.templates.tags import TemplateTagStore
from template_catalog.features.templates.tier import TierPolicy
from template_catalog.models.template import DisplayTemplate, Template


class TemplateAssembler:
    def __init__(
        self,
        renderer: TextRenderer,
        tags: TemplateTagStore,
        files: TemplateFileStore,
        policy: TierPolicy,
        settings_obj: Optional[Settings] = None,
    ):
        cfg = settings_obj or settings
        self.renderer = renderer
        self.tags = tags
        self.files = files
        self.policy = policy
        self.confirm_url = cfg.BASE_URL.rstrip("/") + cfg.CONFIRM_PATH

    def hashtags(self, template_id: int) -> str:
        return " ".join(f"#{name}" for name in self.tags.tags_of(template_id))

    def link(self, template_id: int, course_id: int) -> str:
        query = urlencode({"template_id": template_id, "course_id": course_id})
        return f"{self.confirm_url}?{query}"

    def enrich(self, template: Template, course_id: int) -> DisplayTemplate:
        description = self.renderer.rewrite_pluginfile_urls(template.description, template.id)
        display = DisplayTemplate(
            id=template.id,
            title=self.renderer.format_string(template.title),
            rawtitle=template.title,
            description_formatted=self.renderer.render(description, template.descriptionformat),
            hashtags=self.hashtags(template.id),
            link=self.link(template.id, course_id),
            courseformat=template.courseformat,
        )
        if not self.policy.has_pro:
            return display

        backimages = self.files.background_images_for(template.id)
        # An importable template without a backup is still waiting on the
        # asynchronous backup task
        waiting = template.is_importable and not self.files.files_for(template.id, BACKUP_AREA)
        return display.model_copy(
            update={
                "backimages": backimages,
                "isbackimages": len(backimages),
                "showimageindicators": len(backimages) > 1,
                "waitingadhoctask": waiting,
            }
        )
