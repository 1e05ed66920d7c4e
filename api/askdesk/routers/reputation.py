"""User reputation endpoint.

GET /api/v1/users/{user_id}/reputation -- reputation total and level
"""

import uuid

from fastapi import APIRouter
from sqlalchemy import select

from askdesk.dependencies import DbSession
from askdesk.exceptions import NotFound
from askdesk.models.user import User
from askdesk.schemas.reputation import ReputationResponse
from askdesk.services.reputation import reputation_level

router = APIRouter(prefix="/api/v1", tags=["reputation"])


@router.get("/users/{user_id}/reputation", response_model=ReputationResponse)
async def get_user_reputation(
    user_id: uuid.UUID,
    db: DbSession,
) -> ReputationResponse:
    """Get a user's reputation total and display level. Readable anonymously."""
    result = await db.execute(select(User.reputation).where(User.id == user_id))
    reputation = result.scalar_one_or_none()
    if reputation is None:
        raise NotFound("User not found")

    return ReputationResponse(
        user_id=user_id,
        reputation=reputation,
        level=reputation_level(reputation),
    )
