"""Reputation point table, atomic reputation increments, and drift reconciliation.

Every change to users.reputation goes through apply_delta(), which issues a
single column-expression UPDATE (reputation = reputation + delta). There is
no Python-side read-modify-write, so concurrent voters on the same author
never lose each other's updates.

Reputation is fully derivable from stored state:

    sum(points_for(vote.value, target_type) for every vote on the user's content)
  + ANSWER_ACCEPTED_POINTS * sum(answer.accept_bonus_count for the user's answers)

reconcile_reputation() recomputes that figure and corrects any user whose
stored counter has drifted from it (the recovery sweep run by
worker.reconciliation_worker).
"""

import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from askdesk.exceptions import NotFound
from askdesk.models.answer import Answer
from askdesk.models.question import Question
from askdesk.models.user import User
from askdesk.models.vote import Vote

log = structlog.get_logger(__name__)

QUESTION = "question"
ANSWER = "answer"

# (target_type, sign of vote) -> points awarded to the content author
POINT_TABLE: dict[tuple[str, int], int] = {
    (QUESTION, 1): 5,
    (QUESTION, -1): -2,
    (ANSWER, 1): 10,
    (ANSWER, -1): -2,
}

ANSWER_ACCEPTED_POINTS = 15

# Upper bounds (exclusive) for each reputation level, lowest first
REPUTATION_LEVELS: list[tuple[int, str]] = [
    (10, "Newcomer"),
    (50, "Beginner"),
    (200, "Regular"),
    (500, "Established"),
    (1000, "Trusted"),
    (2000, "Expert"),
]
TOP_REPUTATION_LEVEL = "Master"


def points_for(value: int, target_type: str) -> int:
    """Return the points a single vote of `value` is worth to the author.

    A value of 0 (no vote) is worth nothing. Otherwise the sign of the value
    selects the upvote or downvote row for the target type.

    Raises:
        KeyError: if target_type is not a known point-table key.
    """
    if value == 0:
        return 0
    sign = 1 if value > 0 else -1
    return POINT_TABLE[(target_type, sign)]


def vote_delta(old_value: int, new_value: int, target_type: str) -> int:
    """Signed reputation change for a vote moving from old_value to new_value."""
    return points_for(new_value, target_type) - points_for(old_value, target_type)


def reputation_level(reputation: int) -> str:
    """Map a reputation total to its display level (Newcomer … Master)."""
    for upper_bound, level in REPUTATION_LEVELS:
        if reputation < upper_bound:
            return level
    return TOP_REPUTATION_LEVEL


async def apply_delta(db: AsyncSession, author_id: uuid.UUID, delta: int) -> bool:
    """Atomically add `delta` to a user's reputation.

    A zero delta is skipped without touching the database.

    Args:
        db: The async SQLAlchemy session (caller manages commit/rollback).
        author_id: UUID of the user whose reputation changes.
        delta: Signed number of points.

    Returns:
        True if an UPDATE was issued, False for the zero-delta no-op.

    Raises:
        NotFound: if no user row matched author_id.
    """
    if delta == 0:
        return False

    result = await db.execute(
        update(User)
        .where(User.id == author_id)
        .values(reputation=User.reputation + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("Author not found")

    log.info("reputation_delta_applied", author_id=str(author_id), delta=delta)
    return True


async def _expected_reputations(
    db: AsyncSession, user_ids: list[uuid.UUID]
) -> dict[uuid.UUID, int]:
    """Recompute reputation from votes and acceptance bonuses for user_ids."""
    expected: dict[uuid.UUID, int] = {user_id: 0 for user_id in user_ids}
    if not user_ids:
        return expected

    for content, target_type, vote_column in (
        (Question, QUESTION, Vote.question_id),
        (Answer, ANSWER, Vote.answer_id),
    ):
        result = await db.execute(
            select(content.author_id, Vote.value, func.count())
            .join(content, vote_column == content.id)
            .where(content.author_id.in_(user_ids))
            .group_by(content.author_id, Vote.value)
        )
        for author_id, value, count in result.all():
            expected[author_id] += points_for(value, target_type) * count

    bonus_result = await db.execute(
        select(Answer.author_id, func.sum(Answer.accept_bonus_count))
        .where(Answer.author_id.in_(user_ids))
        .group_by(Answer.author_id)
    )
    for author_id, bonus_count in bonus_result.all():
        expected[author_id] += ANSWER_ACCEPTED_POINTS * int(bonus_count or 0)

    return expected


async def expected_reputation(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Reputation the user should have according to the vote ledger."""
    expected = await _expected_reputations(db, [user_id])
    return expected[user_id]


@dataclass(frozen=True)
class ReputationDrift:
    user_id: uuid.UUID
    stored: int
    expected: int

    @property
    def correction(self) -> int:
        return self.expected - self.stored


async def reconcile_reputation(
    db: AsyncSession,
    user_ids: Optional[Iterable[uuid.UUID]] = None,
) -> list[ReputationDrift]:
    """Correct users whose stored reputation differs from the ledger.

    The user rows are locked (SELECT ... FOR UPDATE) before the expected
    totals are computed. Vote and acceptance transactions increment the same
    rows, so none of them can commit between the two reads.

    Args:
        db: Async SQLAlchemy session (caller manages commit).
        user_ids: Users to check; all users when None.

    Returns:
        One ReputationDrift per corrected user (empty when consistent).
    """
    stmt = select(User.id, User.reputation).order_by(User.id).with_for_update()
    if user_ids is not None:
        stmt = stmt.where(User.id.in_(list(user_ids)))
    stored = {row.id: row.reputation for row in (await db.execute(stmt)).all()}

    expected = await _expected_reputations(db, list(stored))

    drifts: list[ReputationDrift] = []
    for user_id, stored_value in stored.items():
        if stored_value == expected[user_id]:
            continue
        drift = ReputationDrift(user_id=user_id, stored=stored_value, expected=expected[user_id])
        await apply_delta(db, user_id, drift.correction)
        log.warning(
            "reputation_drift_corrected",
            user_id=str(user_id),
            stored=drift.stored,
            expected=drift.expected,
            correction=drift.correction,
        )
        drifts.append(drift)

    return drifts
