"""Tests for the vote ledger: transitions, reputation side effects and validation."""

import uuid

import pytest
from sqlalchemy import delete, func, select

from askdesk.exceptions import InvalidTarget, InvalidValue, NotFound, Unauthenticated
from askdesk.models import User, Vote
from askdesk.services import ledger
from askdesk.services.ledger import (
    Transition,
    VoteAction,
    VoteTarget,
    answer_scores,
    cast_vote,
    get_user_vote,
    plan_transition,
    question_score,
)
from askdesk.services.reputation import expected_reputation
from conftest import make_answer, make_question, make_user, reputation_of


async def _vote_rows(db, voter_id) -> int:
    result = await db.execute(select(func.count()).select_from(Vote).where(Vote.user_id == voter_id))
    return result.scalar_one()


class TestPlanTransition:
    @pytest.mark.parametrize(
        "existing, value, expected",
        [
            (None, 1, Transition(VoteAction.created, 0, 1)),
            (None, -1, Transition(VoteAction.created, 0, -1)),
            (None, 0, Transition(VoteAction.noop, 0, 0)),
            (1, 1, Transition(VoteAction.deleted, 1, 0)),
            (-1, -1, Transition(VoteAction.deleted, -1, 0)),
            (1, 0, Transition(VoteAction.deleted, 1, 0)),
            (-1, 0, Transition(VoteAction.deleted, -1, 0)),
            (1, -1, Transition(VoteAction.updated, 1, -1)),
            (-1, 1, Transition(VoteAction.updated, -1, 1)),
        ],
    )
    def test_transition_table(self, existing, value, expected):
        assert plan_transition(existing, value) == expected


class TestVoteTarget:
    def test_both_ids_rejected(self):
        with pytest.raises(InvalidTarget):
            VoteTarget(question_id=uuid.uuid4(), answer_id=uuid.uuid4()).validate()

    def test_neither_id_rejected(self):
        with pytest.raises(InvalidTarget):
            VoteTarget().validate()

    def test_target_type(self):
        assert VoteTarget(question_id=uuid.uuid4()).target_type == "question"
        assert VoteTarget(answer_id=uuid.uuid4()).target_type == "answer"

    def test_from_raw_treats_empty_string_as_absent(self):
        answer_id = uuid.uuid4()
        target = VoteTarget.from_raw("", str(answer_id))
        assert target == VoteTarget(answer_id=answer_id)
        target.validate()

    @pytest.mark.parametrize("raw", ["not-a-uuid", 7, "1234-5678"])
    def test_from_raw_rejects_unparseable_ids(self, raw):
        with pytest.raises(InvalidTarget):
            VoteTarget.from_raw(raw, None)

    def test_from_raw_empty_everywhere_fails_validation(self):
        with pytest.raises(InvalidTarget):
            VoteTarget.from_raw("", "").validate()


class TestCastVote:
    @pytest.mark.asyncio
    async def test_question_upvote_then_toggle_off(self, db):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)
        target = VoteTarget(question_id=question.id)

        outcome = await cast_vote(db, voter.id, target, 1)
        assert outcome.action == VoteAction.created
        assert outcome.delta == 5
        assert outcome.vote.value == 1
        assert await reputation_of(db, author) == 5

        outcome = await cast_vote(db, voter.id, target, 1)
        assert outcome.action == VoteAction.deleted
        assert outcome.removed
        assert outcome.vote is None
        assert await reputation_of(db, author) == 0
        assert await _vote_rows(db, voter.id) == 0

    @pytest.mark.asyncio
    async def test_answer_upvote_then_flip_to_downvote(self, db):
        asker = await make_user(db)
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, asker)
        answer = await make_answer(db, question, author)
        target = VoteTarget(answer_id=answer.id)

        await cast_vote(db, voter.id, target, 1)
        assert await reputation_of(db, author) == 10

        outcome = await cast_vote(db, voter.id, target, -1)
        assert outcome.action == VoteAction.updated
        assert outcome.delta == -12
        assert outcome.vote.value == -1
        assert await reputation_of(db, author) == -2
        assert await _vote_rows(db, voter.id) == 1

    @pytest.mark.asyncio
    async def test_zero_without_vote_is_noop(self, db):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)

        outcome = await cast_vote(db, voter.id, VoteTarget(question_id=question.id), 0)

        assert outcome.action == VoteAction.noop
        assert outcome.delta == 0
        assert await reputation_of(db, author) == 0
        assert await _vote_rows(db, voter.id) == 0

    @pytest.mark.asyncio
    async def test_zero_withdraws_existing_downvote(self, db):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)
        target = VoteTarget(question_id=question.id)

        await cast_vote(db, voter.id, target, -1)
        assert await reputation_of(db, author) == -2

        outcome = await cast_vote(db, voter.id, target, 0)
        assert outcome.removed
        assert await reputation_of(db, author) == 0

    @pytest.mark.asyncio
    async def test_stored_reputation_matches_ledger_after_any_sequence(self, db):
        author = await make_user(db)
        voters = [await make_user(db) for _ in range(3)]
        question = await make_question(db, author)
        answer = await make_answer(db, question, author)

        sequence = [
            (0, VoteTarget(question_id=question.id), 1),
            (1, VoteTarget(answer_id=answer.id), 1),
            (2, VoteTarget(answer_id=answer.id), -1),
            (0, VoteTarget(question_id=question.id), -1),
            (1, VoteTarget(answer_id=answer.id), 0),
            (2, VoteTarget(question_id=question.id), 1),
            (2, VoteTarget(answer_id=answer.id), -1),
            (0, VoteTarget(answer_id=answer.id), 1),
        ]
        for index, target, value in sequence:
            await cast_vote(db, voters[index].id, target, value)
            assert await reputation_of(db, author) == await expected_reputation(db, author.id)

    @pytest.mark.asyncio
    async def test_one_row_per_user_and_target(self, db):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)
        target = VoteTarget(question_id=question.id)

        for value in (1, -1, 1, -1, -1, 1):
            await cast_vote(db, voter.id, target, value)
            assert await _vote_rows(db, voter.id) <= 1

    @pytest.mark.asyncio
    async def test_self_vote_counts(self, db):
        author = await make_user(db)
        question = await make_question(db, author)

        await cast_vote(db, author.id, VoteTarget(question_id=question.id), 1)

        assert await reputation_of(db, author) == 5


class TestCastVoteValidation:
    @pytest.mark.asyncio
    async def test_anonymous_voter_rejected(self, db):
        author = await make_user(db)
        question = await make_question(db, author)
        with pytest.raises(Unauthenticated):
            await cast_vote(db, None, VoteTarget(question_id=question.id), 1)

    @pytest.mark.asyncio
    async def test_both_targets_rejected_before_lookup(self, db):
        voter = await make_user(db)
        with pytest.raises(InvalidTarget):
            await cast_vote(
                db, voter.id, VoteTarget(question_id=uuid.uuid4(), answer_id=uuid.uuid4()), 1
            )

    @pytest.mark.parametrize("value", [2, -2, 5, True, "1", 1.0, None])
    @pytest.mark.asyncio
    async def test_invalid_value_rejected(self, db, value):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)
        with pytest.raises(InvalidValue):
            await cast_vote(db, voter.id, VoteTarget(question_id=question.id), value)
        assert await reputation_of(db, author) == 0

    @pytest.mark.asyncio
    async def test_invalid_value_checked_before_existence(self, db):
        voter = await make_user(db)
        with pytest.raises(InvalidValue):
            await cast_vote(db, voter.id, VoteTarget(question_id=uuid.uuid4()), 3)

    @pytest.mark.asyncio
    async def test_missing_question(self, db):
        voter = await make_user(db)
        with pytest.raises(NotFound, match="Question not found"):
            await cast_vote(db, voter.id, VoteTarget(question_id=uuid.uuid4()), 1)

    @pytest.mark.asyncio
    async def test_missing_answer(self, db):
        voter = await make_user(db)
        with pytest.raises(NotFound, match="Answer not found"):
            await cast_vote(db, voter.id, VoteTarget(answer_id=uuid.uuid4()), 1)


class TestConflictHandling:
    @pytest.mark.asyncio
    async def test_vanished_vote_raises_conflict(self, db):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)
        target = VoteTarget(question_id=question.id)
        await cast_vote(db, voter.id, target, 1)

        existing = await ledger._find_vote(db, voter.id, target)
        await db.execute(
            delete(Vote).where(Vote.id == existing.id).execution_options(synchronize_session=False)
        )

        with pytest.raises(ledger._VoteConflict):
            await ledger._apply_transition(
                db, voter.id, target, existing, Transition(VoteAction.updated, 1, -1)
            )

    @pytest.mark.asyncio
    async def test_duplicate_insert_raises_conflict_and_keeps_transaction(self, db):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)
        target = VoteTarget(question_id=question.id)
        await cast_vote(db, voter.id, target, 1)

        with pytest.raises(ledger._VoteConflict):
            await ledger._apply_transition(
                db, voter.id, target, None, Transition(VoteAction.created, 0, -1)
            )

        # Only the savepoint was rolled back
        assert await _vote_rows(db, voter.id) == 1
        assert await reputation_of(db, author) == 5

    @pytest.mark.asyncio
    async def test_cast_vote_replans_after_conflict(self, db, monkeypatch):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)
        target = VoteTarget(question_id=question.id)

        real_find = ledger._find_vote
        calls = []

        async def stale_then_real(db_, voter_id, target_):
            calls.append(1)
            if len(calls) == 1:
                # Another request inserts the same vote between our read and write
                db_.add(Vote(user_id=voter_id, question_id=target_.question_id, value=1))
                await db_.flush()
                await ledger.apply_delta(db_, author.id, 5)
                return None
            return await real_find(db_, voter_id, target_)

        monkeypatch.setattr(ledger, "_find_vote", stale_then_real)

        outcome = await cast_vote(db, voter.id, target, 1)

        assert len(calls) == 2
        assert outcome.action == VoteAction.deleted
        assert await reputation_of(db, author) == 0
        assert await _vote_rows(db, voter.id) == 0


class TestGetUserVote:
    @pytest.mark.asyncio
    async def test_reports_current_vote(self, db):
        author = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, author)
        target = VoteTarget(question_id=question.id)

        assert await get_user_vote(db, voter.id, target) == 0
        await cast_vote(db, voter.id, target, -1)
        assert await get_user_vote(db, voter.id, target) == -1
        await cast_vote(db, voter.id, target, -1)
        assert await get_user_vote(db, voter.id, target) == 0

    @pytest.mark.asyncio
    async def test_invalid_target(self, db):
        voter = await make_user(db)
        with pytest.raises(InvalidTarget):
            await get_user_vote(db, voter.id, VoteTarget())


@pytest.mark.asyncio
async def test_votes_do_not_touch_voter_reputation(db):
    author = await make_user(db)
    voter = await make_user(db, reputation=12)
    question = await make_question(db, author)

    await cast_vote(db, voter.id, VoteTarget(question_id=question.id), -1)

    result = await db.execute(select(User.reputation).where(User.id == voter.id))
    assert result.scalar_one() == 12


class TestScores:
    @pytest.mark.asyncio
    async def test_question_score_moves_with_create_flip_and_toggle(self, db):
        author = await make_user(db)
        voter = await make_user(db)
        other = await make_user(db)
        question = await make_question(db, author)
        target = VoteTarget(question_id=question.id)

        assert await question_score(db, question.id) == 0
        await cast_vote(db, voter.id, target, 1)
        await cast_vote(db, other.id, target, 1)
        assert await question_score(db, question.id) == 2
        await cast_vote(db, voter.id, target, -1)
        assert await question_score(db, question.id) == 0
        await cast_vote(db, other.id, target, 1)
        assert await question_score(db, question.id) == -1

    @pytest.mark.asyncio
    async def test_answer_scores_grouped(self, db):
        asker = await make_user(db)
        voter = await make_user(db)
        question = await make_question(db, asker)
        voted = await make_answer(db, question, asker)
        quiet = await make_answer(db, question, asker)

        await cast_vote(db, voter.id, VoteTarget(answer_id=voted.id), -1)

        assert await answer_scores(db, [voted.id, quiet.id]) == {voted.id: -1, quiet.id: 0}
        assert await answer_scores(db, []) == {}
