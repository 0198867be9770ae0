"""trainer core schema: assessment, programs, calendar, weekly review inputs

Revision ID: trainer_core_001
Revises:
Create Date: 2026-02-16 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'trainer_core_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def upgrade() -> None:
    # Assessment
    op.create_table(
        'trainer_assessment_sessions',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('status', sa.Text(), server_default='in_progress', nullable=False),
        sa.Column('current_step_id', sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("status IN ('in_progress', 'completed')", name='ck_assessment_session_status'),
    )
    op.create_index('ix_assessment_sessions_user_status', 'trainer_assessment_sessions', ['user_id', 'status'])

    op.create_table(
        'trainer_assessment_events',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('session_id', _uuid(), nullable=False),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('data', postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['trainer_assessment_sessions.id'], ),
        sa.UniqueConstraint('session_id', 'sequence_number', name='uq_assessment_event_sequence'),
        sa.CheckConstraint(
            "event_type IN ('step_result', 'skip', 'baseline_generated')",
            name='ck_assessment_event_type',
        ),
    )

    op.create_table(
        'trainer_assessment_step_results',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('session_id', _uuid(), nullable=False),
        sa.Column('step_id', sa.Text(), nullable=False),
        sa.Column('result_json', postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['session_id'], ['trainer_assessment_sessions.id'], ),
    )
    op.create_index(
        'ix_assessment_step_results_session', 'trainer_assessment_step_results', ['session_id', 'created_at']
    )

    op.create_table(
        'trainer_assessment_baselines',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('session_id', _uuid(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('baseline_json', postgresql.JSONB(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['session_id'], ['trainer_assessment_sessions.id'], ),
        sa.UniqueConstraint('session_id', 'version', name='uq_assessment_baseline_version'),
    )

    # Programs
    op.create_table(
        'trainer_programs',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('status', sa.Text(), server_default='draft', nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('program_json', postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('program_markdown', sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active_from', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'approved', 'active', 'archived')",
            name='ck_trainer_program_status',
        ),
    )
    op.create_index('ix_trainer_programs_user_id', 'trainer_programs', ['user_id'])

    op.create_table(
        'trainer_program_events',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('program_id', _uuid(), nullable=False),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('data', postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['program_id'], ['trainer_programs.id'], ),
        sa.CheckConstraint(
            "event_type IN ('draft', 'edit', 'review', 'approve', 'activate', 'weekly_review')",
            name='ck_trainer_program_event_type',
        ),
    )
    op.create_index('ix_trainer_program_events_program', 'trainer_program_events', ['program_id', 'created_at'])

    op.create_table(
        'trainer_active_program',
        sa.Column('user_id', _uuid(), primary_key=True),
        sa.Column('program_id', _uuid(), nullable=False),
        sa.Column('program_version', sa.Integer(), nullable=False),
        _updated_at(),
        sa.ForeignKeyConstraint(['program_id'], ['trainer_programs.id'], ),
    )

    # Calendar
    op.create_table(
        'trainer_calendar_events',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('event_type', sa.Text(), server_default='workout', nullable=False),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), server_default='scheduled', nullable=False),
        sa.Column('source', sa.Text(), server_default='user_created', nullable=False),
        sa.Column('user_modified', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('linked_program_id', _uuid(), nullable=True),
        sa.Column('linked_program_version', sa.Integer(), nullable=True),
        sa.Column('linked_planned_session_id', _uuid(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(['linked_program_id'], ['trainer_programs.id'], ),
        sa.CheckConstraint(
            "event_type IN ('workout', 'rest', 'checkin', 'assessment', 'note')",
            name='ck_calendar_event_type',
        ),
        sa.CheckConstraint(
            "status IN ('scheduled', 'completed', 'skipped', 'canceled')",
            name='ck_calendar_event_status',
        ),
    )
    op.create_index('ix_calendar_events_user_start', 'trainer_calendar_events', ['user_id', 'start_at'])

    op.create_table(
        'trainer_planned_sessions',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('calendar_event_id', _uuid(), nullable=False),
        sa.Column('intent_json', postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(['calendar_event_id'], ['trainer_calendar_events.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('calendar_event_id', name='uq_planned_session_calendar_event'),
    )

    # Weekly review inputs and outputs
    op.create_table(
        'workout_sessions',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('status', sa.Text(), server_default='in_progress', nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('summary_json', postgresql.JSONB(), nullable=True),
    )
    op.create_index('ix_workout_sessions_user_started', 'workout_sessions', ['user_id', 'started_at'])

    op.create_table(
        'trainer_weights_profiles',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('profile_json', postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        _created_at(),
        sa.UniqueConstraint('user_id', 'version', name='uq_weights_profile_version'),
    )

    op.create_table(
        'trainer_weekly_reports',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('report_json', postgresql.JSONB(), nullable=False),
        _created_at(),
    )
    op.create_index('ix_weekly_reports_user_week', 'trainer_weekly_reports', ['user_id', 'week_start'])


def downgrade() -> None:
    op.drop_index('ix_weekly_reports_user_week', table_name='trainer_weekly_reports')
    op.drop_table('trainer_weekly_reports')
    op.drop_table('trainer_weights_profiles')
    op.drop_index('ix_workout_sessions_user_started', table_name='workout_sessions')
    op.drop_table('workout_sessions')
    op.drop_table('trainer_planned_sessions')
    op.drop_index('ix_calendar_events_user_start', table_name='trainer_calendar_events')
    op.drop_table('trainer_calendar_events')
    op.drop_table('trainer_active_program')
    op.drop_index('ix_trainer_program_events_program', table_name='trainer_program_events')
    op.drop_table('trainer_program_events')
    op.drop_index('ix_trainer_programs_user_id', table_name='trainer_programs')
    op.drop_table('trainer_programs')
    op.drop_table('trainer_assessment_baselines')
    op.drop_index('ix_assessment_step_results_session', table_name='trainer_assessment_step_results')
    op.drop_table('trainer_assessment_step_results')
    op.drop_table('trainer_assessment_events')
    op.drop_index('ix_assessment_sessions_user_status', table_name='trainer_assessment_sessions')
    op.drop_table('trainer_assessment_sessions')
