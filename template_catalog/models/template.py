"""
template_catalog/models/template.py

Course template models.

Templates are reusable course packages (a backup to restore or a course
format to apply) offered for import on a course page. Records coming out of
the store are parsed once into these immutable models; restriction id lists
arrive as JSON text and are carried here as frozensets.
"""

from enum import IntEnum
from typing import FrozenSet, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class TextFormat(IntEnum):
    """Stored description formats."""
    AUTO = 0
    HTML = 1
    PLAIN = 2
    MARKDOWN = 4


class RestrictionRule(BaseModel):
    """
    Access restrictions attached to a template.

    Four independent predicates (cohort, category, role, user). A predicate
    is active only when its flag is set and its target set is non-empty.
    """
    model_config = ConfigDict(frozen=True)

    restrict_cohort: bool = False
    cohort_ids: FrozenSet[int] = frozenset()
    restrict_category: bool = False
    category_ids: FrozenSet[int] = frozenset()
    include_subcategories: bool = False
    restrict_role: bool = False
    role_ids: FrozenSet[int] = frozenset()
    restrict_user: bool = False
    user_ids: FrozenSet[int] = frozenset()

    @property
    def cohort_active(self) -> bool:
        return self.restrict_cohort and bool(self.cohort_ids)

    @property
    def category_active(self) -> bool:
        return self.restrict_category and bool(self.category_ids)

    @property
    def role_active(self) -> bool:
        return self.restrict_role and bool(self.role_ids)

    @property
    def user_active(self) -> bool:
        return self.restrict_user and bool(self.user_ids)


class Template(BaseModel):
    """A course template as stored."""
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: Optional[str] = None
    descriptionformat: int = TextFormat.HTML
    visible: bool = True
    status: bool = True
    courseformat: Optional[str] = None
    restriction: RestrictionRule = Field(default_factory=RestrictionRule)

    @property
    def is_importable(self) -> bool:
        """Backup templates count toward the tier limit; format templates do not."""
        return not self.courseformat


class UserContext(BaseModel):
    """Identity attributes of the viewing user, resolved per request."""
    model_config = ConfigDict(frozen=True)

    user_id: int
    cohort_ids: FrozenSet[int] = frozenset()
    role_ids: FrozenSet[int] = frozenset()
    category_id: Optional[int] = None


class SearchRequest(BaseModel):
    """An `{action, value}` request coming from the widget."""
    action: Optional[str] = None
    value: Optional[str] = None

    def search_text(self) -> Optional[str]:
        """Search text for a `searchtemplate` action, or None.

        Surrounding whitespace is stripped before matching, so "  intro " finds
        the same templates as "intro" and a blank value lists everything.
        """
        if self.action != "searchtemplate":
            return None
        text = (self.value or "").strip()
        return text or None


class DisplayTemplate(BaseModel):
    """A template enriched for display."""
    id: Optional[int] = None
    title: str
    rawtitle: Optional[str] = None
    description_formatted: str = ""
    hashtags: str = ""
    link: str
    courseformat: Optional[str] = None
    backimages: List[str] = []
    isbackimages: int = 0
    showimageindicators: bool = False
    waitingadhoctask: bool = False
    isplaceholder: bool = False


class TemplateGroup(BaseModel):
    templates: List[DisplayTemplate]


class TemplateListing(BaseModel):
    """Data handed to the presentation layer."""
    templates: List[DisplayTemplate]
    has_pro: bool
    notemplates: bool
    templateclass: str
    teacherinstructions: str = ""
    canmanage: bool = False
    createtemplateurl: str
    managetemplateurl: str
    groups: Optional[List[TemplateGroup]] = None
