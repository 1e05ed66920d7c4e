"""Vote endpoints for questions and answers.

POST /api/v1/vote       -- cast, flip or withdraw a vote
GET  /api/v1/vote/mine  -- the caller's current vote on one target
"""

from typing import Optional

from fastapi import APIRouter, Query

from askdesk.dependencies import CurrentUser, DbSession
from askdesk.metrics import reputation_delta_points, votes_cast
from askdesk.schemas.vote import MyVoteResponse, VoteCreate, VoteResponse, VoteResult
from askdesk.services.ledger import (
    VoteAction,
    VoteTarget,
    answer_scores,
    cast_vote,
    get_user_vote,
    question_score,
)

router = APIRouter(prefix="/api/v1", tags=["votes"])


async def _target_score(db, target: VoteTarget) -> int:
    if target.question_id is not None:
        return await question_score(db, target.question_id)
    scores = await answer_scores(db, [target.answer_id])
    return scores[target.answer_id]


@router.post("/vote", response_model=VoteResult)
async def post_vote(
    body: VoteCreate,
    user: CurrentUser,
    db: DbSession,
) -> VoteResult:
    """Cast an upvote (1), downvote (-1) or withdrawal (0) on a question or answer.

    Re-sending the direction you already voted withdraws the vote. The
    author's reputation changes in the same transaction as the vote row.
    The response carries the target's net score after the call.
    """
    target = VoteTarget.from_raw(body.question_id, body.answer_id)
    outcome = await cast_vote(db, user.id, target, body.value)
    await db.commit()

    votes_cast.labels(target_type=outcome.target_type, action=outcome.action.value).inc()
    if outcome.delta:
        direction = "gain" if outcome.delta > 0 else "loss"
        reputation_delta_points.labels(direction=direction).inc(abs(outcome.delta))

    score = await _target_score(db, target)
    if outcome.action == VoteAction.noop:
        return VoteResult(action=outcome.action.value, score=score, message="No action needed")
    if outcome.removed:
        return VoteResult(
            action=outcome.action.value,
            removed=True,
            delta=outcome.delta,
            score=score,
            message="Vote removed",
        )

    await db.refresh(outcome.vote)
    return VoteResult(
        action=outcome.action.value,
        vote=VoteResponse.model_validate(outcome.vote),
        delta=outcome.delta,
        score=score,
    )


@router.get("/vote/mine", response_model=MyVoteResponse)
async def get_my_vote(
    user: CurrentUser,
    db: DbSession,
    question_id: Optional[str] = Query(None, alias="questionId"),
    answer_id: Optional[str] = Query(None, alias="answerId"),
) -> MyVoteResponse:
    """Return the caller's vote on a target: 1, -1, or 0 when they have not voted."""
    target = VoteTarget.from_raw(question_id, answer_id)
    return MyVoteResponse(value=await get_user_vote(db, user.id, target))
