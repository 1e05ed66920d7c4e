"""Pydantic schemas for questions."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class QuestionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=500)
    body: str = Field(min_length=1)
    team_id: Optional[uuid.UUID] = Field(None, alias="teamId")


class QuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    author_id: uuid.UUID
    title: str
    body: str
    team_id: Optional[uuid.UUID] = None
    score: int = 0
    created_at: datetime
    updated_at: datetime
