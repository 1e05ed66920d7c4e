"""Team endpoints. Team membership scopes team questions and "team" answer visibility.

POST /api/v1/teams                 -- create a team (creator becomes owner and member)
POST /api/v1/teams/{id}/members    -- owner adds a member (idempotent)
"""

import uuid

from fastapi import APIRouter
from sqlalchemy import select

from askdesk.dependencies import CurrentUser, DbSession
from askdesk.exceptions import Forbidden, NotFound
from askdesk.models.team import Team, TeamMember
from askdesk.models.user import User
from askdesk.schemas.team import TeamCreate, TeamMemberAdd, TeamResponse

router = APIRouter(prefix="/api/v1", tags=["teams"])


@router.post("/teams", response_model=TeamResponse, status_code=201)
async def create_team(
    body: TeamCreate,
    user: CurrentUser,
    db: DbSession,
) -> TeamResponse:
    team = Team(name=body.name, owner_id=user.id)
    db.add(team)
    await db.flush()
    db.add(TeamMember(team_id=team.id, user_id=user.id))
    await db.commit()
    return TeamResponse.model_validate(team)


@router.post("/teams/{team_id}/members", status_code=201)
async def add_team_member(
    team_id: uuid.UUID,
    body: TeamMemberAdd,
    user: CurrentUser,
    db: DbSession,
) -> dict:
    result = await db.execute(select(Team).where(Team.id == team_id))
    team = result.scalar_one_or_none()
    if team is None:
        raise NotFound("Team not found")
    if team.owner_id != user.id:
        raise Forbidden("Only the team owner can add members")

    result = await db.execute(select(User.id).where(User.id == body.user_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("User not found")

    result = await db.execute(
        select(TeamMember).where(
            TeamMember.team_id == team_id, TeamMember.user_id == body.user_id
        )
    )
    if result.scalar_one_or_none() is None:
        db.add(TeamMember(team_id=team_id, user_id=body.user_id))
        await db.commit()

    return {"team_id": str(team_id), "user_id": str(body.user_id), "member": True}
