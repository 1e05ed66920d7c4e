"""Initial schema: users, teams, questions, answers, votes

Revision ID: 5e1f0a9c3b27
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates users, teams, team_members, questions, answers,
answer_visible_users and votes.

Written by hand because autogenerate does not emit the partial unique index
that allows at most one accepted answer per question.
"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5e1f0a9c3b27"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    # --- users table ---
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("api_key_hash", sa.String(255), nullable=True, unique=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("reputation", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("role", sa.String(30), nullable=True),
        sa.Column("department", sa.String(50), nullable=True),
        *_timestamps(),
    )

    # --- teams ---
    op.create_table(
        "teams",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "owner_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", name="fk_teams_owner_id_users"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_table(
        "team_members",
        sa.Column(
            "team_id",
            sa.Uuid(),
            sa.ForeignKey("teams.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])

    # --- questions ---
    op.create_table(
        "questions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "author_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", name="fk_questions_author_id_users"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column(
            "team_id",
            sa.Uuid(),
            sa.ForeignKey("teams.id", name="fk_questions_team_id_teams"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_questions_author_id", "questions", ["author_id"])

    # --- answers ---
    op.create_table(
        "answers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "question_id",
            sa.Uuid(),
            sa.ForeignKey("questions.id", name="fk_answers_question_id_questions"),
            nullable=False,
        ),
        sa.Column(
            "author_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", name="fk_answers_author_id_users"),
            nullable=False,
        ),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("visibility_type", sa.String(20), nullable=False, server_default="public"),
        sa.Column("visible_to_roles", sa.JSON(), nullable=False),
        sa.Column("visible_to_departments", sa.JSON(), nullable=False),
        sa.Column("team_id", sa.Uuid(), nullable=True),
        sa.Column("is_accepted", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("accept_bonus_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_answers_question_id", "answers", ["question_id"])
    op.create_index("ix_answers_author_id", "answers", ["author_id"])
    op.create_index(
        "uq_answers_one_accepted_per_question",
        "answers",
        ["question_id"],
        unique=True,
        postgresql_where=sa.text("is_accepted"),
    )

    op.create_table(
        "answer_visible_users",
        sa.Column(
            "answer_id",
            sa.Uuid(),
            sa.ForeignKey("answers.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    # --- votes ---
    op.create_table(
        "votes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "question_id",
            sa.Uuid(),
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "answer_id",
            sa.Uuid(),
            sa.ForeignKey("answers.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("value", sa.SmallInteger(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "question_id", name="uq_votes_user_id_question_id"),
        sa.UniqueConstraint("user_id", "answer_id", name="uq_votes_user_id_answer_id"),
        sa.CheckConstraint(
            "(question_id IS NULL) <> (answer_id IS NULL)",
            name="ck_votes_exactly_one_target",
        ),
        sa.CheckConstraint("value IN (-1, 1)", name="ck_votes_value"),
    )
    op.create_index("ix_votes_question_id", "votes", ["question_id"])
    op.create_index("ix_votes_answer_id", "votes", ["answer_id"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_index("ix_votes_answer_id", table_name="votes")
    op.drop_index("ix_votes_question_id", table_name="votes")
    op.drop_table("votes")
    op.drop_table("answer_visible_users")
    op.drop_index("uq_answers_one_accepted_per_question", table_name="answers")
    op.drop_index("ix_answers_author_id", table_name="answers")
    op.drop_index("ix_answers_question_id", table_name="answers")
    op.drop_table("answers")
    op.drop_index("ix_questions_author_id", table_name="questions")
    op.drop_table("questions")
    op.drop_index("ix_team_members_user_id", table_name="team_members")
    op.drop_table("team_members")
    op.drop_table("teams")
    op.drop_table("users")
