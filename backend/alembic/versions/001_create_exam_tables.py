"""Create exam paper, snapshot, attempt and answer tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE TYPE exam_source_kind AS ENUM ('quiz', 'topic', 'subject', 'platform', 'roadmap')")
    op.execute("CREATE TYPE exam_attempt_status AS ENUM ('in_progress', 'submitted', 'expired')")

    op.create_table(
        'exam_papers',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('source_kind', postgresql.ENUM('quiz', 'topic', 'subject', 'platform', 'roadmap', name='exam_source_kind', create_type=False), nullable=False, server_default='quiz'),
        sa.Column('source_id', sa.String(255), nullable=False),
        sa.Column('question_count', sa.Integer, nullable=False),
        sa.Column('time_limit_minutes', sa.Integer, nullable=False),
        sa.Column('difficulty', sa.String(50), nullable=True),
        sa.Column('shuffle_questions', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('marking_json', sa.JSON, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_exam_papers_user_updated', 'exam_papers', ['user_id', 'updated_at'])

    op.create_table(
        'exam_question_snapshots',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('paper_id', sa.Integer, nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('question_index', sa.Integer, nullable=False),
        sa.Column('question_json', sa.JSON, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('paper_id', 'user_id', 'question_index', name='uq_exam_snapshot_question'),
    )
    op.create_index('ix_exam_snapshots_paper_user', 'exam_question_snapshots', ['paper_id', 'user_id'])

    op.create_table(
        'exam_attempts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('paper_id', sa.Integer, sa.ForeignKey('exam_papers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('snapshot_paper_id', sa.Integer, nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', postgresql.ENUM('in_progress', 'submitted', 'expired', name='exam_attempt_status', create_type=False), nullable=False, server_default='in_progress'),
        sa.Column('time_limit_minutes', sa.Integer, nullable=False),
        sa.Column('marking_json', sa.JSON, nullable=False),
        sa.Column('total_questions', sa.Integer, nullable=False),
        sa.Column('correct_count', sa.Integer, nullable=True),
        sa.Column('wrong_count', sa.Integer, nullable=True),
        sa.Column('unattempted_count', sa.Integer, nullable=True),
        sa.Column('percent', sa.Integer, nullable=True),
        sa.Column('score', sa.Float, nullable=True),
        sa.Column('max_score', sa.Float, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_exam_attempts_user_started', 'exam_attempts', ['user_id', 'started_at'])
    op.create_index('ix_exam_attempts_status', 'exam_attempts', ['status'])

    op.create_table(
        'exam_answers',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('attempt_id', sa.Integer, sa.ForeignKey('exam_attempts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('question_index', sa.Integer, nullable=False),
        sa.Column('selected_option', sa.String(1000), nullable=True),
        sa.Column('is_flagged', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_correct', sa.Boolean, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('attempt_id', 'question_index', name='uq_exam_answer_question'),
    )
    op.create_index('ix_exam_answers_attempt_user', 'exam_answers', ['attempt_id', 'user_id'])


def downgrade() -> None:
    op.drop_index('ix_exam_answers_attempt_user', table_name='exam_answers')
    op.drop_table('exam_answers')
    op.drop_index('ix_exam_attempts_status', table_name='exam_attempts')
    op.drop_index('ix_exam_attempts_user_started', table_name='exam_attempts')
    op.drop_table('exam_attempts')
    op.drop_index('ix_exam_snapshots_paper_user', table_name='exam_question_snapshots')
    op.drop_table('exam_question_snapshots')
    op.drop_index('ix_exam_papers_user_updated', table_name='exam_papers')
    op.drop_table('exam_papers')
    op.execute("DROP TYPE exam_attempt_status")
    op.execute("DROP TYPE exam_source_kind")
