"""Question endpoints.

POST /api/v1/questions       -- ask a question (optionally inside a team)
GET  /api/v1/questions/{id}  -- retrieve a question
"""

import uuid

from fastapi import APIRouter
from sqlalchemy import select

from askdesk.dependencies import CurrentUser, DbSession
from askdesk.exceptions import Forbidden, NotFound
from askdesk.models.question import Question
from askdesk.models.team import TeamMember
from askdesk.schemas.question import QuestionCreate, QuestionResponse
from askdesk.services.ledger import question_score

router = APIRouter(prefix="/api/v1", tags=["questions"])


async def get_question_or_404(db, question_id: uuid.UUID) -> Question:
    result = await db.execute(select(Question).where(Question.id == question_id))
    question = result.scalar_one_or_none()
    if question is None:
        raise NotFound("Question not found")
    return question


@router.post("/questions", response_model=QuestionResponse, status_code=201)
async def create_question(
    body: QuestionCreate,
    user: CurrentUser,
    db: DbSession,
) -> QuestionResponse:
    """Create a question. Team questions may only be asked by team members."""
    if body.team_id is not None:
        result = await db.execute(
            select(TeamMember).where(
                TeamMember.team_id == body.team_id, TeamMember.user_id == user.id
            )
        )
        if result.scalar_one_or_none() is None:
            raise Forbidden("Only team members can ask team questions")

    question = Question(
        author_id=user.id,
        title=body.title,
        body=body.body,
        team_id=body.team_id,
    )
    db.add(question)
    await db.commit()
    await db.refresh(question)
    return QuestionResponse.model_validate(question)


@router.get("/questions/{question_id}", response_model=QuestionResponse)
async def get_question(
    question_id: uuid.UUID,
    db: DbSession,
) -> QuestionResponse:
    """Retrieve a question with its net vote score. Readable anonymously."""
    question = await get_question_or_404(db, question_id)
    response = QuestionResponse.model_validate(question)
    response.score = await question_score(db, question_id)
    return response
