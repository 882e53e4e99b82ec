"""FastAPI routes for the course template widget."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from template_catalog.core.auth import get_current_user_id
from template_catalog.core.database import get_db
from template_catalog.features.templates.service import TemplateListingService
from template_catalog.models.template import SearchRequest, TemplateListing

router = APIRouter(prefix="/v1/courses", tags=["templates"])
logger = logging.getLogger(__name__)


def get_listing_service(db: Session = Depends(get_db)) -> TemplateListingService:
    return TemplateListingService(db)


@router.get("/{course_id}/templates", response_model=TemplateListing)
def list_course_templates(
    course_id: int,
    action: Optional[str] = Query(None, description="Widget action, e.g. searchtemplate"),
    value: Optional[str] = Query(None, description="Search text for searchtemplate"),
    grouped: bool = Query(False, description="Add templates grouped for card layouts"),
    pergroup: int = Query(2, ge=1, le=12),
    user_id: int = Depends(get_current_user_id),
    service: TemplateListingService = Depends(get_listing_service),
):
    """List the templates a user can import into a course.

    Query:
        ?action=searchtemplate&value=intro&grouped=true

    Response:
    {
        "templates": [{"id": 5, "title": "...", "hashtags": "#intro", "link": "...", ...}],
        "has_pro": true,
        "notemplates": false,
        "templateclass": "kickstart-tile-view",
        "groups": [{"templates": [...]}, ...]
    }
    """
    request = SearchRequest(action=action, value=value) if action else None
    logger.debug(f"[templates/list] user_id={user_id}, course_id={course_id}, action={action}")
    return service.export_for_template(
        user_id,
        course_id,
        request,
        grouped=grouped,
        per_group=pergroup,
    )
