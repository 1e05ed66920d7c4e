import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .question import Question

# Partial unique index: at most one accepted answer per question
ONE_ACCEPTED_INDEX = "uq_answers_one_accepted_per_question"


class VisibilityType(str, enum.Enum):
    public = "public"
    roles = "roles"
    departments = "departments"
    specific_users = "specific_users"
    team = "team"


class AnswerVisibleUser(Base):
    """Explicit allow-list row for specific_users visibility."""

    __tablename__ = "answer_visible_users"

    answer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("answers.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )


class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (
        Index(
            ONE_ACCEPTED_INDEX,
            "question_id",
            unique=True,
            postgresql_where=text("is_accepted"),
            sqlite_where=text("is_accepted"),
        ),
    )

    # Point-table key (see services.reputation.POINT_TABLE)
    target_type = "answer"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("questions.id", name="fk_answers_question_id_questions"), nullable=False, index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", name="fk_answers_author_id_users"), nullable=False, index=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)

    # Access control, evaluated per viewer by services.visibility.can_view
    visibility_type: Mapped[str] = mapped_column(
        String(20), default=VisibilityType.public.value, nullable=False
    )
    visible_to_roles: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    visible_to_departments: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Copied from the question at creation; scope for team visibility
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    is_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Acceptance bonuses awarded so far; feeds reputation reconciliation
    accept_bonus_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    question: Mapped["Question"] = relationship(
        "Question", back_populates="answers", lazy="raise"
    )
    visible_user_links: Mapped[list["AnswerVisibleUser"]] = relationship(
        "AnswerVisibleUser", lazy="selectin", cascade="all, delete-orphan"
    )

    @property
    def visible_to_users(self) -> set[uuid.UUID]:
        return {link.user_id for link in self.visible_user_links}
