"""create artisan upgrade requests and profiles

Revision ID: 0002_create_artisan_tables
Revises: 0001_create_users_and_follows
Create Date: 2026-10-12

- artisan_upgrade_requests: partial unique index keeps one PENDING request per user
- artisan_profiles: one per user, created on approval
- artisan_profile_specialties: one row per specialty for overlap / containment filters
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '0002_create_artisan_tables'
down_revision: Union[str, None] = '0001_create_users_and_follows'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'artisan_upgrade_requests',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('shop_name', sa.String(100), nullable=False),
        sa.Column('shop_description', sa.Text(), nullable=True),
        sa.Column('specialties', sa.JSON(), nullable=False),
        sa.Column('experience', sa.Integer(), nullable=True),
        sa.Column('website', sa.String(512), nullable=True),
        sa.Column('social_media', sa.JSON(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('certificates', sa.JSON(), nullable=False),
        sa.Column('identity_proof', sa.String(512), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.String(36), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_artisan_upgrade_requests_status_created',
        'artisan_upgrade_requests',
        ['status', 'created_at'],
        unique=False,
    )
    op.create_index('ix_artisan_upgrade_requests_user_id', 'artisan_upgrade_requests', ['user_id'], unique=False)
    op.create_index(
        'uq_artisan_upgrade_requests_pending_user',
        'artisan_upgrade_requests',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        'artisan_profiles',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('shop_name', sa.String(100), nullable=False),
        sa.Column('shop_description', sa.Text(), nullable=True),
        sa.Column('shop_logo_url', sa.String(512), nullable=True),
        sa.Column('shop_banner_url', sa.String(512), nullable=True),
        sa.Column('experience', sa.Integer(), nullable=True),
        sa.Column('website', sa.String(512), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('contact_phone', sa.String(32), nullable=True),
        sa.Column('social_media', sa.JSON(), nullable=False),
        sa.Column('template_id', sa.String(100), nullable=True),
        sa.Column('template_data', sa.JSON(), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('review_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_sales', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index('ix_artisan_profiles_is_verified', 'artisan_profiles', ['is_verified'], unique=False)
    op.create_index('ix_artisan_profiles_rating', 'artisan_profiles', ['rating'], unique=False)
    op.create_index('ix_artisan_profiles_created_at', 'artisan_profiles', ['created_at'], unique=False)

    op.create_table(
        'artisan_profile_specialties',
        sa.Column('profile_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['profile_id'], ['artisan_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('profile_id', 'name'),
    )
    op.create_index('ix_artisan_profile_specialties_name', 'artisan_profile_specialties', ['name'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_artisan_profile_specialties_name', table_name='artisan_profile_specialties')
    op.drop_table('artisan_profile_specialties')
    op.drop_index('ix_artisan_profiles_created_at', table_name='artisan_profiles')
    op.drop_index('ix_artisan_profiles_rating', table_name='artisan_profiles')
    op.drop_index('ix_artisan_profiles_is_verified', table_name='artisan_profiles')
    op.drop_table('artisan_profiles')
    op.drop_index('uq_artisan_upgrade_requests_pending_user', table_name='artisan_upgrade_requests')
    op.drop_index('ix_artisan_upgrade_requests_user_id', table_name='artisan_upgrade_requests')
    op.drop_index('ix_artisan_upgrade_requests_status_created', table_name='artisan_upgrade_requests')
    op.drop_table('artisan_upgrade_requests')
