"""create auth tables

Revision ID: 001_create_auth_tables
Revises:
Create Date: 2026-10-19 12:00:00.000000

Profiles, OTP challenges, OTP send events and auth sessions.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_auth_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    id_type = sa.String(36)

    op.create_table(
        'profiles',
        sa.Column('id', id_type, nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('phone_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_phone', 'profiles', ['phone'], unique=True)

    op.create_table(
        'otp_challenges',
        sa.Column('id', id_type, nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('otp_hash', sa.String(64), nullable=False),
        sa.Column('context', sa.String(20), nullable=False, server_default='login'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('consumed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('consumed_reason', sa.String(20), nullable=True),
        sa.Column('verify_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('resend_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ip', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('profile_id', id_type, nullable=True),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_otp_challenges_phone', 'otp_challenges', ['phone'])
    op.create_index('ix_otp_challenges_profile_id', 'otp_challenges', ['profile_id'])
    op.create_index('ix_otp_challenges_phone_consumed_created', 'otp_challenges', ['phone', 'consumed', 'created_at'])

    op.create_table(
        'otp_send_events',
        sa.Column('id', id_type, nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('ip', sa.String(64), nullable=False),
        sa.Column('challenge_id', id_type, nullable=False),
        sa.Column('kind', sa.String(10), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['challenge_id'], ['otp_challenges.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_otp_send_events_phone_created', 'otp_send_events', ['phone', 'created_at'])
    op.create_index('ix_otp_send_events_ip_created', 'otp_send_events', ['ip', 'created_at'])

    op.create_table(
        'auth_sessions',
        sa.Column('id', id_type, nullable=False),
        sa.Column('profile_id', id_type, nullable=False),
        sa.Column('ip', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_auth_sessions_profile_created', 'auth_sessions', ['profile_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_auth_sessions_profile_created', table_name='auth_sessions')
    op.drop_table('auth_sessions')
    op.drop_index('ix_otp_send_events_ip_created', table_name='otp_send_events')
    op.drop_index('ix_otp_send_events_phone_created', table_name='otp_send_events')
    op.drop_table('otp_send_events')
    op.drop_index('ix_otp_challenges_phone_consumed_created', table_name='otp_challenges')
    op.drop_index('ix_otp_challenges_profile_id', table_name='otp_challenges')
    op.drop_index('ix_otp_challenges_phone', table_name='otp_challenges')
    op.drop_table('otp_challenges')
    op.drop_index('ix_profiles_phone', table_name='profiles')
    op.drop_table('profiles')
