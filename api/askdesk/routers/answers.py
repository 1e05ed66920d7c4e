"""Answer endpoints: posting, the per-viewer read path, and acceptance.

POST /api/v1/questions/{id}/answers                    -- post an answer
GET  /api/v1/questions/{id}/answers                    -- answers the viewer may see
POST /api/v1/questions/{id}/answers/{answer_id}/accept -- accept an answer
POST /api/v1/accept                                    -- same, ids in the body
"""

import uuid

import structlog
from fastapi import APIRouter, HTTPException
from sqlalchemy import select

from askdesk.dependencies import CurrentUser, CurrentViewer, DbSession
from askdesk.exceptions import NotFound
from askdesk.metrics import answers_accepted, answers_hidden
from askdesk.models.answer import Answer, AnswerVisibleUser, VisibilityType
from askdesk.models.user import User
from askdesk.routers.questions import get_question_or_404
from askdesk.schemas.answer import AcceptRequest, AcceptResponse, AnswerCreate, AnswerResponse
from askdesk.services.acceptance import accept_answer, load_answer
from askdesk.services.ledger import answer_scores
from askdesk.services.visibility import filter_visible

log = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["answers"])


def _answer_response(answer: Answer, score: int = 0) -> AnswerResponse:
    return AnswerResponse.model_validate(answer).model_copy(update={"score": score})


def _parse_id(raw: object, detail: str) -> uuid.UUID:
    # An id that cannot exist is reported the same way as one that does not
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise NotFound(detail) from None


@router.post("/questions/{question_id}/answers", response_model=AnswerResponse, status_code=201)
async def create_answer(
    question_id: uuid.UUID,
    body: AnswerCreate,
    user: CurrentUser,
    db: DbSession,
) -> AnswerResponse:
    """Post an answer with its visibility settings.

    The answer inherits the question's team, which scopes "team" visibility;
    "team" is rejected on questions outside a team. Every user on a
    specific_users allow-list must exist.
    """
    question = await get_question_or_404(db, question_id)

    if body.visibility_type == VisibilityType.team and question.team_id is None:
        raise HTTPException(
            status_code=422,
            detail="visibility_type 'team' requires a team question",
        )

    allowed_users = list(dict.fromkeys(body.visible_to_users))
    if allowed_users:
        result = await db.execute(select(User.id).where(User.id.in_(allowed_users)))
        missing = set(allowed_users) - set(result.scalars().all())
        if missing:
            raise NotFound("User not found")

    answer = Answer(
        question_id=question.id,
        author_id=user.id,
        body=body.body,
        visibility_type=body.visibility_type.value,
        visible_to_roles=[role.value for role in body.visible_to_roles],
        visible_to_departments=[dept.value for dept in body.visible_to_departments],
        team_id=question.team_id,
        visible_user_links=[AnswerVisibleUser(user_id=user_id) for user_id in allowed_users],
    )
    db.add(answer)
    await db.commit()
    answer = await load_answer(db, answer.id)
    return _answer_response(answer)


@router.get("/questions/{question_id}/answers", response_model=list[AnswerResponse])
async def list_answers(
    question_id: uuid.UUID,
    viewer: CurrentViewer,
    db: DbSession,
) -> list[AnswerResponse]:
    """List a question's answers with their scores, omitting those the viewer may not see.

    Anonymous callers (no API key) see public answers only. The accepted
    answer is listed first, then newest first.
    """
    await get_question_or_404(db, question_id)

    result = await db.execute(
        select(Answer)
        .where(Answer.question_id == question_id)
        .order_by(Answer.is_accepted.desc(), Answer.created_at.desc(), Answer.id)
    )
    answers = result.scalars().all()
    visible = filter_visible(answers, viewer)

    hidden = len(answers) - len(visible)
    if hidden:
        answers_hidden.inc(hidden)
        log.info("answers_filtered", question_id=str(question_id), hidden=hidden)

    scores = await answer_scores(db, [answer.id for answer in visible])
    return [_answer_response(answer, scores[answer.id]) for answer in visible]


async def _accept(db, user, question_id: object, answer_id: object) -> AcceptResponse:
    question_id = _parse_id(question_id, "Question not found")
    answer_id = _parse_id(answer_id, "Answer not found")

    outcome = await accept_answer(db, user.id, question_id, answer_id)
    await db.commit()

    answers_accepted.labels(
        outcome="accepted" if outcome.bonus_awarded else "already_accepted"
    ).inc()
    scores = await answer_scores(db, [answer_id])
    return AcceptResponse(
        answer=_answer_response(outcome.answer, scores[answer_id]),
        bonus_awarded=outcome.bonus_awarded,
    )


@router.post(
    "/questions/{question_id}/answers/{answer_id}/accept",
    response_model=AcceptResponse,
)
async def accept_answer_route(
    question_id: str,
    answer_id: str,
    user: CurrentUser,
    db: DbSession,
) -> AcceptResponse:
    """Accept an answer. Only the question's author may do this; repeating it is a no-op."""
    return await _accept(db, user, question_id, answer_id)


@router.post("/accept", response_model=AcceptResponse)
async def accept_answer_body(
    body: AcceptRequest,
    user: CurrentUser,
    db: DbSession,
) -> AcceptResponse:
    return await _accept(db, user, body.question_id, body.answer_id)
