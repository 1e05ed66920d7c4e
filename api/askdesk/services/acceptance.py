"""Accepted-answer coordination.

A question has at most one accepted answer. Accepting an answer resets any
other accepted answer of the same question, then flips the target answer to
accepted. The +15 acceptance bonus is paid only on a genuine false -> true
transition, so repeating the call is a no-op.

Design notes:
- The question row is locked with SELECT ... FOR UPDATE before the reset, so
  two accepts racing on the same question run one after the other. The
  partial unique index uq_answers_one_accepted_per_question backs the
  invariant at the schema level.
- The flip is a conditional UPDATE (WHERE is_accepted = false); its rowcount
  tells us whether this call performed the transition, without a separate
  read that could race.
- Resetting a previously accepted answer never retracts its bonus.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from askdesk.exceptions import Forbidden, NotFound, Unauthenticated
from askdesk.models.answer import Answer
from askdesk.models.question import Question
from askdesk.services.reputation import ANSWER_ACCEPTED_POINTS, apply_delta

log = structlog.get_logger(__name__)


async def load_answer(db: AsyncSession, answer_id: uuid.UUID) -> Answer:
    """(Re)load an answer with its allow-list, overwriting any stale identity-map copy."""
    result = await db.execute(
        select(Answer)
        .where(Answer.id == answer_id)
        .options(selectinload(Answer.visible_user_links))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@dataclass
class AcceptOutcome:
    answer: Answer
    bonus_awarded: bool
    unaccepted_count: int


async def accept_answer(
    db: AsyncSession,
    requester_id: Optional[uuid.UUID],
    question_id: uuid.UUID,
    answer_id: uuid.UUID,
) -> AcceptOutcome:
    """Mark answer_id as the accepted answer of question_id.

    Args:
        db: The async SQLAlchemy session (caller commits).
        requester_id: Authenticated user; must be the question's author.
        question_id: Question whose accepted answer changes.
        answer_id: Answer to accept; must belong to question_id.

    Returns:
        AcceptOutcome with the refreshed answer and whether the bonus was paid.

    Raises:
        Unauthenticated: no requester.
        NotFound: question or answer missing (or answer under another question).
        Forbidden: requester is not the question's author.
    """
    if requester_id is None:
        raise Unauthenticated("Authentication required")

    result = await db.execute(
        select(Question.author_id).where(Question.id == question_id).with_for_update()
    )
    question_author_id = result.scalar_one_or_none()
    if question_author_id is None:
        raise NotFound("Question not found")

    if question_author_id != requester_id:
        raise Forbidden("Only the question author can accept answers")

    result = await db.execute(
        select(Answer).where(Answer.id == answer_id, Answer.question_id == question_id)
    )
    answer = result.scalar_one_or_none()
    if answer is None:
        raise NotFound("Answer not found")

    reset = await db.execute(
        update(Answer)
        .where(
            Answer.question_id == question_id,
            Answer.id != answer_id,
            Answer.is_accepted.is_(True),
        )
        .values(is_accepted=False)
        .execution_options(synchronize_session=False)
    )

    promoted = await db.execute(
        update(Answer)
        .where(Answer.id == answer_id, Answer.is_accepted.is_(False))
        .values(is_accepted=True, accept_bonus_count=Answer.accept_bonus_count + 1)
        .execution_options(synchronize_session=False)
    )
    bonus_awarded = promoted.rowcount == 1
    if bonus_awarded:
        await apply_delta(db, answer.author_id, ANSWER_ACCEPTED_POINTS)

    answer = await load_answer(db, answer_id)

    log.info(
        "answer_accepted",
        question_id=str(question_id),
        answer_id=str(answer_id),
        bonus_awarded=bonus_awarded,
        unaccepted_count=reset.rowcount,
    )
    return AcceptOutcome(
        answer=answer,
        bonus_awarded=bonus_awarded,
        unaccepted_count=reset.rowcount,
    )
