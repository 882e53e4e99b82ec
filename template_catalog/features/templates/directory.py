"""
User directory and category tree collaborators.

Defines the interface the listing reads identity attributes through, with a
SQL-backed implementation over the host platform tables and a static one for
embedding and tests. The implementation is chosen once per request by
get_directory().
"""
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Protocol, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from template_catalog.core.config import Settings, settings
from template_catalog.core.database import cohort_members, course_categories, role_assignments


class Directory(Protocol):
    """
    Protocol for user directories.

    Implementations must answer:
    - which cohorts a user belongs to
    - which roles a user holds in a course
    """

    def cohorts_of(self, user_id: int) -> FrozenSet[int]:
        ...

    def roles_of(self, user_id: int, course_id: int) -> FrozenSet[int]:
        ...


class SqlDirectory:
    def __init__(self, session: Session):
        self.session = session

    def cohorts_of(self, user_id: int) -> FrozenSet[int]:
        rows = self.session.execute(
            select(cohort_members.c.cohortid).where(cohort_members.c.userid == user_id)
        ).scalars()
        return frozenset(rows)

    def roles_of(self, user_id: int, course_id: int) -> FrozenSet[int]:
        rows = self.session.execute(
            select(role_assignments.c.roleid)
            .where(role_assignments.c.userid == user_id)
            .where(role_assignments.c.courseid == course_id)
        ).scalars()
        return frozenset(rows)


class StaticDirectory:
    """In-memory directory keyed by user id (and course id for roles)."""

    def __init__(
        self,
        cohorts: Optional[Mapping[int, Iterable[int]]] = None,
        roles: Optional[Mapping[Tuple[int, int], Iterable[int]]] = None,
    ):
        self._cohorts: Dict[int, FrozenSet[int]] = {
            user_id: frozenset(ids) for user_id, ids in (cohorts or {}).items()
        }
        self._roles: Dict[Tuple[int, int], FrozenSet[int]] = {
            key: frozenset(ids) for key, ids in (roles or {}).items()
        }

    def cohorts_of(self, user_id: int) -> FrozenSet[int]:
        return self._cohorts.get(user_id, frozenset())

    def roles_of(self, user_id: int, course_id: int) -> FrozenSet[int]:
        return self._roles.get((user_id, course_id), frozenset())


def get_directory(session: Session, settings_obj: Optional[Settings] = None) -> Directory:
    """
    Get the configured directory implementation.

    DIRECTORY_BACKEND=sql reads the cohort and role tables; static returns
    an empty directory (no cohorts, no roles) for installations without them.
    """
    cfg = settings_obj or settings
    backend = (cfg.DIRECTORY_BACKEND or "sql").lower()
    if backend == "static":
        return StaticDirectory()
    return SqlDirectory(session)


class SqlCategoryTree:
    """Category hierarchy backed by `course_categories` materialized paths."""

    def __init__(self, session: Session):
        self.session = session
        self._paths: Dict[int, Optional[str]] = {}

    def _path(self, category_id: int) -> Optional[str]:
        if category_id not in self._paths:
            self._paths[category_id] = self.session.execute(
                select(course_categories.c.path).where(course_categories.c.id == category_id)
            ).scalar()
        return self._paths[category_id]

    def exists(self, category_id: int) -> bool:
        return self._path(category_id) is not None

    def descendants_of(self, category_id: int) -> FrozenSet[int]:
        path = self._path(category_id)
        if path is None:
            return frozenset()
        rows = self.session.execute(
            select(course_categories.c.id).where(course_categories.c.path.like(f"{path}/%"))
        ).scalars()
        return frozenset(rows)


class StaticCategoryTree:
    """Category hierarchy from a child -> parent mapping (0 = top level)."""

    def __init__(self, parents: Mapping[int, int]):
        self._parents = dict(parents)

    def exists(self, category_id: int) -> bool:
        return category_id in self._parents

    def descendants_of(self, category_id: int) -> FrozenSet[int]:
        found = set()
        frontier = [category_id]
        while frontier:
            current = frontier.pop()
            for child, parent in self._parents.items():
                if parent == current and child not in found:
                    found.add(child)
                    frontier.append(child)
        return frozenset(found)
