import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    SmallInteger,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User

# Module-level constants so conflict handling never hardcodes the names
VOTE_QUESTION_UNIQUE = "uq_votes_user_id_question_id"
VOTE_ANSWER_UNIQUE = "uq_votes_user_id_answer_id"


class Vote(Base):
    """One directional vote by a user on exactly one question or answer.

    A row exists only while the vote is +1 or -1; withdrawing a vote deletes
    the row, so "no vote" is never stored as zero.
    """

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name=VOTE_QUESTION_UNIQUE),
        UniqueConstraint("user_id", "answer_id", name=VOTE_ANSWER_UNIQUE),
        CheckConstraint(
            "(question_id IS NULL) <> (answer_id IS NULL)",
            name="ck_votes_exactly_one_target",
        ),
        CheckConstraint("value IN (-1, 1)", name="ck_votes_value"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    question_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=True, index=True
    )
    answer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("answers.id", ondelete="CASCADE"), nullable=True, index=True
    )
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    voter: Mapped["User"] = relationship("User", back_populates="votes", lazy="raise")
