"""AskDesk Pydantic schemas package.

Re-exports all request and response schemas for convenient importing:

    from askdesk.schemas import VoteCreate, AnswerResponse, ...
"""

from askdesk.schemas.answer import AcceptRequest, AcceptResponse, AnswerCreate, AnswerResponse
from askdesk.schemas.auth import APIKeyCreate, APIKeyResponse
from askdesk.schemas.common import ErrorResponse
from askdesk.schemas.question import QuestionCreate, QuestionResponse
from askdesk.schemas.reputation import ReputationResponse
from askdesk.schemas.team import TeamCreate, TeamMemberAdd, TeamResponse
from askdesk.schemas.vote import MyVoteResponse, VoteCreate, VoteResponse, VoteResult

__all__ = [
    # Vote
    "VoteCreate",
    "VoteResponse",
    "VoteResult",
    "MyVoteResponse",
    # Question / answer
    "QuestionCreate",
    "QuestionResponse",
    "AnswerCreate",
    "AnswerResponse",
    "AcceptRequest",
    "AcceptResponse",
    # Team
    "TeamCreate",
    "TeamResponse",
    "TeamMemberAdd",
    # Reputation
    "ReputationResponse",
    # Auth
    "APIKeyCreate",
    "APIKeyResponse",
    # Common
    "ErrorResponse",
]
