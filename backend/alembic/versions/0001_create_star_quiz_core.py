"""create star quiz core

Revision ID: 0001
Revises: 
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("star_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("visible_on_leaderboard", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("star_balance >= 0", name="ck_users_star_balance_non_negative"),
    )
    op.create_index("ix_users_name", "users", ["name"], unique=False)

    op.create_table(
        "themes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.String(length=5000), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_themes_title", "themes", ["title"], unique=False)
    op.create_index("ix_themes_position", "themes", ["position"], unique=False)

    op.create_table(
        "quizzes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("theme_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("themes.id"), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("description", sa.String(length=5000), nullable=True),
        sa.Column("passing_score", sa.Integer(), nullable=False, server_default="70"),
        sa.Column("time_limit_minutes", sa.Integer(), nullable=True),
        sa.Column("difficulty", sa.Enum("EASY", "MEDIUM", "HARD", name="difficulty"), nullable=False),
        sa.Column("required_stars", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_free", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("passing_score BETWEEN 0 AND 100", name="ck_quizzes_passing_score_range"),
        sa.CheckConstraint("required_stars >= 0", name="ck_quizzes_required_stars_non_negative"),
    )
    op.create_index("ix_quizzes_theme_id", "quizzes", ["theme_id"], unique=False)
    op.create_index("ix_quizzes_difficulty", "quizzes", ["difficulty"], unique=False)
    op.create_index("ix_quizzes_is_active", "quizzes", ["is_active"], unique=False)

    op.create_table(
        "questions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("quiz_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("type", sa.Enum("SINGLE_CHOICE", "MULTI_CHOICE", name="questiontype"), nullable=False),
        sa.Column("content", sa.String(), nullable=False, server_default=""),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_questions_quiz_id", "questions", ["quiz_id"], unique=False)

    op.create_table(
        "options",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("question_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("questions.id"), nullable=False),
        sa.Column("content", sa.String(), nullable=False, server_default=""),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("explanation", sa.String(), nullable=True),
    )
    op.create_index("ix_options_question_id", "options", ["question_id"], unique=False)

    op.create_table(
        "quiz_attempts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("quiz_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("stars_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("score BETWEEN 0 AND 100", name="ck_quiz_attempts_score_range"),
        sa.CheckConstraint("stars_earned >= 0", name="ck_quiz_attempts_stars_non_negative"),
    )
    op.create_index("ix_quiz_attempts_quiz_id", "quiz_attempts", ["quiz_id"], unique=False)
    op.create_index("ix_quiz_attempts_user_id", "quiz_attempts", ["user_id"], unique=False)
    op.create_index("ix_quiz_attempts_completed_at", "quiz_attempts", ["completed_at"], unique=False)

    op.create_table(
        "extra_attempt_purchases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("quiz_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("stars_cost", sa.Integer(), nullable=False),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_extra_attempt_purchases_quiz_id", "extra_attempt_purchases", ["quiz_id"], unique=False)
    op.create_index("ix_extra_attempt_purchases_user_id", "extra_attempt_purchases", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_extra_attempt_purchases_user_id", table_name="extra_attempt_purchases")
    op.drop_index("ix_extra_attempt_purchases_quiz_id", table_name="extra_attempt_purchases")
    op.drop_table("extra_attempt_purchases")

    op.drop_index("ix_quiz_attempts_completed_at", table_name="quiz_attempts")
    op.drop_index("ix_quiz_attempts_user_id", table_name="quiz_attempts")
    op.drop_index("ix_quiz_attempts_quiz_id", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")

    op.drop_index("ix_options_question_id", table_name="options")
    op.drop_table("options")

    op.drop_index("ix_questions_quiz_id", table_name="questions")
    op.drop_table("questions")
    op.execute("DROP TYPE IF EXISTS questiontype")

    op.drop_index("ix_quizzes_is_active", table_name="quizzes")
    op.drop_index("ix_quizzes_difficulty", table_name="quizzes")
    op.drop_index("ix_quizzes_theme_id", table_name="quizzes")
    op.drop_table("quizzes")
    op.execute("DROP TYPE IF EXISTS difficulty")

    op.drop_index("ix_themes_position", table_name="themes")
    op.drop_index("ix_themes_title", table_name="themes")
    op.drop_table("themes")

    op.drop_index("ix_users_name", table_name="users")
    op.drop_table("users")
