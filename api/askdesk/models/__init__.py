from .base import Base
from .user import Department, User, UserRole
from .team import Team, TeamMember
from .question import Question
from .answer import ONE_ACCEPTED_INDEX, Answer, AnswerVisibleUser, VisibilityType
from .vote import VOTE_ANSWER_UNIQUE, VOTE_QUESTION_UNIQUE, Vote

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Department",
    "Team",
    "TeamMember",
    "Question",
    "Answer",
    "AnswerVisibleUser",
    "VisibilityType",
    "ONE_ACCEPTED_INDEX",
    "Vote",
    "VOTE_QUESTION_UNIQUE",
    "VOTE_ANSWER_UNIQUE",
]
