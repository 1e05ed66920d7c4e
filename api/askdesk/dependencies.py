import hashlib
from typing import Annotated, Optional

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from askdesk.config import settings
from askdesk.database import get_db
from askdesk.exceptions import Unauthenticated
from askdesk.models.team import TeamMember
from askdesk.models.user import User
from askdesk.services.visibility import Viewer

DbSession = Annotated[AsyncSession, Depends(get_db)]

# auto_error=False: a missing key is reported through our own Unauthenticated error
api_key_header = APIKeyHeader(name=settings.api_key_header_name, auto_error=False)


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


async def _user_for_key(db: AsyncSession, raw_key: str) -> User:
    result = await db.execute(select(User).where(User.api_key_hash == hash_api_key(raw_key)))
    user = result.scalar_one_or_none()
    if user is None:
        raise Unauthenticated("Invalid API key")
    return user


async def get_current_user(
    raw_key: Optional[str] = Security(api_key_header),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Authenticate a request via the API key header.

    Computes SHA-256 hash of the raw key and looks it up in users.api_key_hash.
    Missing and invalid keys both yield 401 without distinction.
    """
    if not raw_key:
        raise Unauthenticated("API key required")
    return await _user_for_key(db, raw_key)


async def get_optional_user(
    raw_key: Optional[str] = Security(api_key_header),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous requests resolve to None.

    A key that is present but wrong is still rejected.
    """
    if not raw_key:
        return None
    return await _user_for_key(db, raw_key)


async def load_team_ids(db: AsyncSession, user: User) -> frozenset:
    result = await db.execute(select(TeamMember.team_id).where(TeamMember.user_id == user.id))
    return frozenset(result.scalars().all())


async def get_viewer(
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> Optional[Viewer]:
    """Resolve the requesting identity for visibility checks (None = anonymous)."""
    if user is None:
        return None
    return Viewer(
        id=user.id,
        role=user.role,
        department=user.department,
        team_ids=await load_team_ids(db, user),
    )


# Annotated type aliases for clean endpoint signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentViewer = Annotated[Optional[Viewer], Depends(get_viewer)]
