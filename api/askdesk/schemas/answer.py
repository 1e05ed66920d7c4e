"""Pydantic schemas for answers and accepting them."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from askdesk.models.answer import VisibilityType
from askdesk.models.user import Department, UserRole


class AnswerCreate(BaseModel):
    """Request schema for posting an answer with its access settings."""

    model_config = ConfigDict(populate_by_name=True)

    body: str = Field(min_length=1, alias="content")
    visibility_type: VisibilityType = Field(VisibilityType.public, alias="visibilityType")
    visible_to_roles: list[UserRole] = Field(default_factory=list, alias="visibleToRoles")
    visible_to_departments: list[Department] = Field(
        default_factory=list, alias="visibleToDepartments"
    )
    visible_to_users: list[uuid.UUID] = Field(default_factory=list, alias="visibleToUsers")

    @model_validator(mode="after")
    def audience_matches_type(self) -> "AnswerCreate":
        """Restricted visibility types need a non-empty audience."""
        required = {
            VisibilityType.roles: self.visible_to_roles,
            VisibilityType.departments: self.visible_to_departments,
            VisibilityType.specific_users: self.visible_to_users,
        }
        if self.visibility_type in required and not required[self.visibility_type]:
            raise ValueError(
                f"visibility_type '{self.visibility_type.value}' requires a non-empty audience"
            )
        return self


class AnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    question_id: uuid.UUID
    author_id: uuid.UUID
    body: str
    visibility_type: str
    visible_to_roles: list[str] = Field(default_factory=list)
    visible_to_departments: list[str] = Field(default_factory=list)
    visible_to_users: list[uuid.UUID] = Field(default_factory=list)
    is_accepted: bool
    # Net vote score; filled in by the read paths
    score: int = 0
    created_at: datetime
    updated_at: datetime


class AcceptRequest(BaseModel):
    """Request schema for POST /api/v1/accept.

    Ids stay loose so a missing or malformed id is reported as NotFound
    rather than a 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    question_id: Any = Field(None, alias="questionId")
    answer_id: Any = Field(None, alias="answerId")


class AcceptResponse(BaseModel):
    answer: AnswerResponse
    bonus_awarded: bool
