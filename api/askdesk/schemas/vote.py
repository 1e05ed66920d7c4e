"""Pydantic schemas for casting votes on questions and answers."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class VoteCreate(BaseModel):
    """Request schema for POST /api/v1/vote.

    Target ids and value are deliberately loose here: VoteTarget.from_raw and
    the vote ledger validate them and report InvalidTarget / InvalidValue
    (400) instead of a 422. An empty id string counts as absent.
    """

    model_config = ConfigDict(populate_by_name=True)

    question_id: Any = Field(None, alias="questionId")
    answer_id: Any = Field(None, alias="answerId")
    value: Any = None


class VoteResponse(BaseModel):
    """A stored vote row."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    question_id: Optional[uuid.UUID] = None
    answer_id: Optional[uuid.UUID] = None
    value: int
    created_at: datetime
    updated_at: datetime


class VoteResult(BaseModel):
    """Outcome of a vote call.

    vote is the surviving row; it is None when the vote was withdrawn
    (removed=True) or when nothing changed (action="noop"). score is the
    target's net vote score after the call.
    """

    action: str
    vote: Optional[VoteResponse] = None
    removed: bool = False
    delta: int = 0
    score: int = 0
    message: Optional[str] = None


class MyVoteResponse(BaseModel):
    value: int
