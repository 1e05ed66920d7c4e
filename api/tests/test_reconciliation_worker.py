"""Tests for the batched reputation reconciliation sweep."""

import pytest
from sqlalchemy import update

from askdesk.models import User, Vote
from askdesk.worker.reconciliation_worker import run_reconciliation_cycle
from conftest import make_answer, make_question, make_user, reputation_of


@pytest.mark.asyncio
async def test_cycle_corrects_drift_across_batches(db, session_factory):
    author = await make_user(db)
    voters = [await make_user(db) for _ in range(3)]
    question = await make_question(db, author)
    answer = await make_answer(db, question, author)
    db.add_all(
        [
            Vote(user_id=voters[0].id, question_id=question.id, value=1),
            Vote(user_id=voters[1].id, answer_id=answer.id, value=1),
            Vote(user_id=voters[2].id, answer_id=answer.id, value=-1),
        ]
    )
    await db.flush()
    # Lost the answer upvote's increment; a voter picked up stray points
    await db.execute(update(User).where(User.id == author.id).values(reputation=3))
    await db.execute(update(User).where(User.id == voters[0].id).values(reputation=4))
    await db.commit()

    stats = await run_reconciliation_cycle(session_factory=session_factory, batch_size=2)

    assert stats == {
        "users_checked": 4,
        "users_corrected": 2,
        "points_corrected": 14,
        "failed_batches": 0,
    }
    assert await reputation_of(db, author) == 13
    assert await reputation_of(db, voters[0]) == 0


@pytest.mark.asyncio
async def test_cycle_on_consistent_data_changes_nothing(db, session_factory):
    author = await make_user(db, reputation=5)
    voter = await make_user(db)
    question = await make_question(db, author)
    db.add(Vote(user_id=voter.id, question_id=question.id, value=1))
    await db.commit()

    stats = await run_reconciliation_cycle(session_factory=session_factory)

    assert stats["users_checked"] == 2
    assert stats["users_corrected"] == 0
    assert await reputation_of(db, author) == 5


@pytest.mark.asyncio
async def test_cycle_with_no_users(session_factory):
    stats = await run_reconciliation_cycle(session_factory=session_factory)
    assert stats["users_checked"] == 0
