"""Per-viewer answer visibility.

can_view() is a pure decision over the answer's access settings and the
viewer's identity; it never touches the database. The read path calls it once
per answer and drops answers the viewer may not see (no partial redaction).

Decision order, first match wins:
1. anonymous viewer      -> only public answers
2. the answer's author   -> always
3. admin role            -> always
4. by visibility type    -> public / roles / departments / specific_users / team

Unknown visibility types fail closed. Team visibility requires the viewer's
team memberships to have been resolved by the caller (Viewer.team_ids); when
they were not, team answers are hidden.
"""

import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, TypeVar

from askdesk.models.answer import VisibilityType
from askdesk.models.user import UserRole


@dataclass(frozen=True)
class Viewer:
    id: uuid.UUID
    role: Optional[str] = None
    department: Optional[str] = None
    # None means membership was not looked up, which is not the same as "no teams"
    team_ids: Optional[frozenset[uuid.UUID]] = None


class AnswerAccess(Protocol):
    author_id: uuid.UUID
    visibility_type: str
    visible_to_roles: list[str]
    visible_to_departments: list[str]
    team_id: Optional[uuid.UUID]

    @property
    def visible_to_users(self) -> set[uuid.UUID]: ...


A = TypeVar("A", bound=AnswerAccess)


def parse_visibility(raw: object) -> Optional[VisibilityType]:
    """Return the VisibilityType for a stored tag, or None if unrecognized."""
    try:
        return VisibilityType(raw)
    except ValueError:
        return None


def _public(answer: AnswerAccess, viewer: Viewer) -> bool:
    return True


def _roles(answer: AnswerAccess, viewer: Viewer) -> bool:
    return viewer.role is not None and viewer.role in answer.visible_to_roles


def _departments(answer: AnswerAccess, viewer: Viewer) -> bool:
    return viewer.department is not None and viewer.department in answer.visible_to_departments


def _specific_users(answer: AnswerAccess, viewer: Viewer) -> bool:
    return viewer.id in answer.visible_to_users


def _team(answer: AnswerAccess, viewer: Viewer) -> bool:
    if viewer.team_ids is None or answer.team_id is None:
        return False
    return answer.team_id in viewer.team_ids


VISIBILITY_RULES: dict[VisibilityType, Callable[[AnswerAccess, Viewer], bool]] = {
    VisibilityType.public: _public,
    VisibilityType.roles: _roles,
    VisibilityType.departments: _departments,
    VisibilityType.specific_users: _specific_users,
    VisibilityType.team: _team,
}


def can_view(answer: AnswerAccess, viewer: Optional[Viewer]) -> bool:
    """Return True if `viewer` (None for anonymous) may see `answer`."""
    visibility = parse_visibility(answer.visibility_type)

    if viewer is None:
        return visibility is VisibilityType.public

    if viewer.id == answer.author_id:
        return True

    if viewer.role == UserRole.admin.value:
        return True

    if visibility is None:
        return False
    return VISIBILITY_RULES[visibility](answer, viewer)


def filter_visible(answers: Iterable[A], viewer: Optional[Viewer]) -> list[A]:
    """Keep only the answers `viewer` may see, preserving order."""
    return [answer for answer in answers if can_view(answer, viewer)]
