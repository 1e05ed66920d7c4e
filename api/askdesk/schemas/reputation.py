"""Pydantic schemas for reputation read endpoints."""

import uuid

from pydantic import BaseModel


class ReputationResponse(BaseModel):
    user_id: uuid.UUID
    reputation: int
    level: str
