"""Vote ledger: one vote per (user, target) and its reputation side effect.

cast_vote() reads the caller's existing vote, plans a transition with
plan_transition(), persists it, and forwards the signed point delta to the
target author via reputation.apply_delta(). Both writes happen in the
caller's transaction; the router commits once, so the vote row and the
reputation increment land together or not at all.

Concurrency notes:
- Creates run inside a SAVEPOINT. A duplicate-key error on the
  (user_id, question_id) / (user_id, answer_id) unique constraints means a
  concurrent request inserted first; the savepoint is rolled back, the vote is
  re-read and the transition is re-planned.
- Updates and deletes are conditional on the value that was read
  (WHERE id = :id AND value = :old). Zero affected rows is handled the same
  way as a duplicate-key error.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from askdesk.config import settings
from askdesk.exceptions import InternalError, InvalidTarget, InvalidValue, NotFound, Unauthenticated
from askdesk.models.answer import Answer
from askdesk.models.question import Question
from askdesk.models.vote import VOTE_ANSWER_UNIQUE, VOTE_QUESTION_UNIQUE, Vote
from askdesk.services.reputation import apply_delta, vote_delta

log = structlog.get_logger(__name__)

VALID_VOTE_VALUES = (-1, 0, 1)


def _coerce_id(raw: object) -> Optional[uuid.UUID]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise InvalidTarget(f"Malformed target id: {raw!r}") from None


class VoteAction(str, enum.Enum):
    created = "created"
    updated = "updated"
    deleted = "deleted"
    noop = "noop"


@dataclass(frozen=True)
class VoteTarget:
    """Exactly one of question_id / answer_id identifies the voted content."""

    question_id: Optional[uuid.UUID] = None
    answer_id: Optional[uuid.UUID] = None

    @classmethod
    def from_raw(cls, question_id: object = None, answer_id: object = None) -> "VoteTarget":
        """Build a target from untrusted request ids.

        Empty strings count as absent; anything else must parse as a UUID.
        """
        return cls(question_id=_coerce_id(question_id), answer_id=_coerce_id(answer_id))

    def validate(self) -> None:
        if (self.question_id is None) == (self.answer_id is None):
            raise InvalidTarget("Provide exactly one of questionId or answerId")

    @property
    def target_type(self) -> str:
        return Question.target_type if self.question_id is not None else Answer.target_type

    @property
    def target_id(self) -> uuid.UUID:
        return self.question_id if self.question_id is not None else self.answer_id


@dataclass(frozen=True)
class Transition:
    action: VoteAction
    old_value: int
    new_value: int


def plan_transition(existing: Optional[int], value: int) -> Transition:
    """Decide what happens to a stored vote when the user submits `value`.

    existing is None when the user has not voted. Submitting the same
    direction again, or 0, withdraws the vote; a different direction flips it.
    """
    if existing is None:
        if value == 0:
            return Transition(VoteAction.noop, 0, 0)
        return Transition(VoteAction.created, 0, value)
    if value == existing or value == 0:
        return Transition(VoteAction.deleted, existing, 0)
    return Transition(VoteAction.updated, existing, value)


@dataclass
class VoteOutcome:
    action: VoteAction
    vote: Optional[Vote]
    old_value: int
    new_value: int
    delta: int
    author_id: uuid.UUID
    target_type: str

    @property
    def removed(self) -> bool:
        return self.action == VoteAction.deleted


class _VoteConflict(Exception):
    """The stored vote changed between our read and our write."""


def _validate_value(value: object) -> int:
    # bool is an int subclass; True must not count as an upvote
    if isinstance(value, bool) or not isinstance(value, int) or value not in VALID_VOTE_VALUES:
        raise InvalidValue("value must be one of -1, 0, 1")
    return value


def _is_duplicate_vote(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return (
        VOTE_QUESTION_UNIQUE in message
        or VOTE_ANSWER_UNIQUE in message
        # SQLite reports the columns instead of the constraint name
        or "UNIQUE constraint failed: votes." in message
    )


def _target_filter(target: VoteTarget):
    if target.question_id is not None:
        return Vote.question_id == target.question_id
    return Vote.answer_id == target.answer_id


async def _load_author_id(db: AsyncSession, target: VoteTarget) -> uuid.UUID:
    content = Question if target.question_id is not None else Answer
    result = await db.execute(select(content.author_id).where(content.id == target.target_id))
    author_id = result.scalar_one_or_none()
    if author_id is None:
        raise NotFound(f"{target.target_type.capitalize()} not found")
    return author_id


async def _find_vote(db: AsyncSession, voter_id: uuid.UUID, target: VoteTarget) -> Optional[Vote]:
    result = await db.execute(
        select(Vote)
        .where(Vote.user_id == voter_id, _target_filter(target))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _apply_transition(
    db: AsyncSession,
    voter_id: uuid.UUID,
    target: VoteTarget,
    existing: Optional[Vote],
    transition: Transition,
) -> Optional[Vote]:
    """Persist one transition; returns the surviving vote row, if any."""
    if transition.action == VoteAction.noop:
        return None

    if transition.action == VoteAction.created:
        vote = Vote(
            user_id=voter_id,
            question_id=target.question_id,
            answer_id=target.answer_id,
            value=transition.new_value,
        )
        try:
            async with db.begin_nested():
                db.add(vote)
                await db.flush()
        except IntegrityError as exc:
            if _is_duplicate_vote(exc):
                raise _VoteConflict() from exc
            raise
        return vote

    if transition.action == VoteAction.updated:
        result = await db.execute(
            update(Vote)
            .where(Vote.id == existing.id, Vote.value == transition.old_value)
            .values(value=transition.new_value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise _VoteConflict()
        await db.refresh(existing)
        return existing

    result = await db.execute(
        delete(Vote)
        .where(Vote.id == existing.id, Vote.value == transition.old_value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise _VoteConflict()
    db.expunge(existing)
    return None


async def cast_vote(
    db: AsyncSession,
    voter_id: Optional[uuid.UUID],
    target: VoteTarget,
    value: object,
) -> VoteOutcome:
    """Cast, flip or withdraw a vote and apply the author's reputation delta.

    Validation happens before any read or write, in this order: voter,
    target shape, value, target existence.

    Args:
        db: The async SQLAlchemy session (caller commits).
        voter_id: Authenticated user casting the vote.
        target: The question or answer being voted on.
        value: -1, 0 or 1.

    Returns:
        VoteOutcome describing the transition and the applied delta.

    Raises:
        Unauthenticated, InvalidTarget, InvalidValue, NotFound: validation.
        InternalError: the vote kept changing underneath us after all retries.
    """
    if voter_id is None:
        raise Unauthenticated("Authentication required")
    target.validate()
    value = _validate_value(value)
    author_id = await _load_author_id(db, target)

    attempts = settings.vote_conflict_retries + 1
    for attempt in range(attempts):
        existing = await _find_vote(db, voter_id, target)
        transition = plan_transition(existing.value if existing else None, value)
        try:
            vote = await _apply_transition(db, voter_id, target, existing, transition)
        except _VoteConflict:
            log.warning(
                "vote_conflict_retry",
                voter_id=str(voter_id),
                target_type=target.target_type,
                target_id=str(target.target_id),
                attempt=attempt + 1,
            )
            continue
        break
    else:
        raise InternalError("Vote changed concurrently; please retry")

    delta = vote_delta(transition.old_value, transition.new_value, target.target_type)
    await apply_delta(db, author_id, delta)

    log.info(
        "vote_cast",
        voter_id=str(voter_id),
        target_type=target.target_type,
        target_id=str(target.target_id),
        action=transition.action.value,
        old_value=transition.old_value,
        new_value=transition.new_value,
        delta=delta,
    )
    return VoteOutcome(
        action=transition.action,
        vote=vote,
        old_value=transition.old_value,
        new_value=transition.new_value,
        delta=delta,
        author_id=author_id,
        target_type=target.target_type,
    )


async def get_user_vote(db: AsyncSession, voter_id: uuid.UUID, target: VoteTarget) -> int:
    """Return the caller's current vote on the target: -1, 1, or 0 for none."""
    target.validate()
    vote = await _find_vote(db, voter_id, target)
    return vote.value if vote is not None else 0


async def question_score(db: AsyncSession, question_id: uuid.UUID) -> int:
    """Net vote score of a question (sum of stored vote values)."""
    result = await db.execute(
        select(func.coalesce(func.sum(Vote.value), 0)).where(Vote.question_id == question_id)
    )
    return int(result.scalar_one())


async def answer_scores(db: AsyncSession, answer_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, int]:
    """Net vote score per answer in one grouped query; answers without votes score 0."""
    scores = {answer_id: 0 for answer_id in answer_ids}
    if not scores:
        return scores
    result = await db.execute(
        select(Vote.answer_id, func.sum(Vote.value))
        .where(Vote.answer_id.in_(list(scores)))
        .group_by(Vote.answer_id)
    )
    for answer_id, total in result.all():
        scores[answer_id] = int(total)
    return scores
