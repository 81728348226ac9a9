"""baseline quiz schema

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
import uuid
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '0001_baseline'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, index=True)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _fk(name, target, ondelete, nullable=False):
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
        index=True,
    )


def upgrade() -> None:
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='student', index=True),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'courses',
        _id(),
        _fk('instructor_id', 'users.id', 'SET NULL', nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        'lessons',
        _id(),
        _fk('course_id', 'courses.id', 'CASCADE'),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )

    op.create_table(
        'enrollments',
        _id(),
        _fk('user_id', 'users.id', 'CASCADE'),
        _fk('course_id', 'courses.id', 'CASCADE'),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'course_id', name='uq_enrollments_user_course'),
    )

    op.create_table(
        'lesson_completions',
        _id(),
        _fk('user_id', 'users.id', 'CASCADE'),
        _fk('lesson_id', 'lessons.id', 'CASCADE'),
        sa.Column('completed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'lesson_id', name='uq_lesson_completions_user_lesson'),
    )

    op.create_table(
        'badges',
        _id(),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon_url', sa.String(500), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'user_badges',
        _id(),
        _fk('user_id', 'users.id', 'CASCADE'),
        _fk('badge_id', 'badges.id', 'CASCADE'),
        sa.Column('awarded_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'badge_id', name='uq_user_badges_user_badge'),
    )

    op.create_table(
        'quizzes',
        _id(),
        _fk('lesson_id', 'lessons.id', 'CASCADE'),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('time_limit', sa.Integer(), nullable=True),
        sa.Column('passing_score', sa.Float(), nullable=False, server_default='60'),
        sa.Column('max_attempts', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint('passing_score >= 0 AND passing_score <= 100', name='ck_quizzes_passing_score'),
        sa.CheckConstraint('max_attempts IS NULL OR max_attempts >= 1', name='ck_quizzes_max_attempts'),
    )

    op.create_table(
        'quiz_questions',
        _id(),
        _fk('quiz_id', 'quizzes.id', 'CASCADE'),
        sa.Column('question_type', sa.String(30), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('points >= 1', name='ck_quiz_questions_points'),
    )

    op.create_table(
        'quiz_options',
        _id(),
        _fk('question_id', 'quiz_questions.id', 'CASCADE'),
        sa.Column('option_text', sa.Text(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'quiz_attempts',
        _id(),
        _fk('user_id', 'users.id', 'CASCADE'),
        _fk('quiz_id', 'quizzes.id', 'RESTRICT'),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('client_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('time_taken_seconds', sa.Integer(), nullable=True),
        sa.Column('raw_answers', JSONType, nullable=True),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('total_score', sa.Integer(), nullable=True),
        sa.Column('gradable_score', sa.Integer(), nullable=True),
        sa.Column('percentage', sa.Float(), nullable=True),
        sa.Column('passed', sa.Boolean(), nullable=True),
        sa.Column('correct_answers', sa.Integer(), nullable=True),
        sa.Column('incorrect_answers', sa.Integer(), nullable=True),
        sa.Column('total_questions', sa.Integer(), nullable=True),
        sa.Column('pending_review', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('flagged_for_review', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('warnings', JSONType, nullable=True),
        sa.UniqueConstraint('user_id', 'quiz_id', 'attempt_number', name='uq_quiz_attempts_user_quiz_number'),
    )

    op.create_table(
        'quiz_responses',
        _id(),
        _fk('attempt_id', 'quiz_attempts.id', 'CASCADE'),
        _fk('question_id', 'quiz_questions.id', 'CASCADE'),
        sa.Column('selected_option_ids', JSONType, nullable=True),
        sa.Column('answer_text', sa.Text(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('manually_graded', sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.bulk_insert(
        sa.table(
            'badges',
            sa.column('id', postgresql.UUID(as_uuid=True)),
            sa.column('name', sa.String),
            sa.column('description', sa.Text),
        ),
        [{
            'id': uuid.UUID('6f1c3b1e-8c55-4d39-9a57-2f0d0c9d7a11'),
            'name': 'Quiz Master',
            'description': 'Scored 90% or higher on a quiz',
        }],
    )


def downgrade() -> None:
    op.drop_table('quiz_responses')
    op.drop_table('quiz_attempts')
    op.drop_table('quiz_options')
    op.drop_table('quiz_questions')
    op.drop_table('quizzes')
    op.drop_table('user_badges')
    op.drop_table('badges')
    op.drop_table('lesson_completions')
    op.drop_table('enrollments')
    op.drop_table('lessons')
    op.drop_table('courses')
    op.drop_table('users')
