"""create users, quizzes, results and notifications

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = 'e1f2a3b4c5d6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns():
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('email', sa.String(255), unique=True, nullable=True, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='student', index=True),
        sa.Column('profile_image', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('semester', sa.String(20), nullable=True, index=True),
        sa.Column('year', sa.String(20), nullable=True, index=True),
    )

    op.create_table(
        'notification_preferences',
        *_base_columns(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True, index=True),
        sa.Column('email_notifications', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('in_app_notifications', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('sms_notifications', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    )

    op.create_table(
        'quizzes',
        *_base_columns(),
        sa.Column('teacher_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('subject', sa.String(200), nullable=False),
        sa.Column('grade_level', sa.JSON(), nullable=False),
        sa.Column('semester', sa.String(20), nullable=True),
        sa.Column('academic_year', sa.Integer(), nullable=True),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_scheduled', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('schedule_date', sa.Date(), nullable=True, index=True),
        sa.Column('start_time', sa.String(5), nullable=True),
        sa.Column('end_time', sa.String(5), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('draft', 'scheduled', 'active', 'closed', name='quiz_status'),
            nullable=False,
            server_default='draft',
            index=True,
        ),
        sa.Column('expiry_date', sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_edited', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.text('false'), index=True),
    )

    op.create_table(
        'quiz_questions',
        *_base_columns(),
        sa.Column('quiz_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('question_type', sa.String(10), nullable=False, server_default='mcq'),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('short_answer', sa.Text(), nullable=False, server_default=''),
        sa.Column('hints', sa.JSON(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'quiz_results',
        *_base_columns(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('quiz_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('time_taken', sa.Integer(), nullable=True),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('abandoned', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    )

    op.create_table(
        'notifications',
        *_base_columns(),
        sa.Column('recipient_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('recipient_role', sa.String(20), nullable=False, server_default='student'),
        sa.Column('type', sa.String(50), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('quiz_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('instructor', sa.String(100), nullable=True),
        sa.Column('due_label', sa.String(100), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('score', sa.String(20), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('data', sa.JSON(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('quiz_results')
    op.drop_table('quiz_questions')
    op.drop_table('quizzes')
    sa.Enum(name='quiz_status').drop(op.get_bind(), checkfirst=True)
    op.drop_table('notification_preferences')
    op.drop_table('users')
