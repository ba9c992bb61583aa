"""Create video library catalog and usage tables

Revision ID: 20261017_0000_001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '20261017_0000_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create video_assets, label tables and video_usage_records."""
    op.create_table(
        'video_assets',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('storage_key', sa.String(512), nullable=False),
        sa.Column('url', sa.String(1024), nullable=False),
        sa.Column('size_bytes', sa.BigInteger(), nullable=False),
        sa.Column('duration_s', sa.Float(), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('original_file_name', sa.String(255), nullable=False),
        sa.Column('mime_type', sa.String(127), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.String(1000), nullable=True),
        sa.Column('uploaded_by', sa.String(64), nullable=True),
        sa.Column('upload_date', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('resolution', sa.String(32), nullable=True),
        sa.Column('format', sa.String(32), nullable=True),
        sa.Column('bitrate', sa.Integer(), nullable=True),
        sa.Column('frame_rate', sa.Float(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('storage_key', name='uq_video_assets_storage_key'),
        sa.CheckConstraint('usage_count >= 0', name='ck_video_assets_usage_count_non_negative'),
    )
    op.create_index('ix_video_assets_size_bytes', 'video_assets', ['size_bytes'])
    op.create_index('ix_video_assets_duration_s', 'video_assets', ['duration_s'])
    op.create_index('ix_video_assets_uploaded_by', 'video_assets', ['uploaded_by'])
    op.create_index('ix_video_assets_upload_date', 'video_assets', [sa.text('upload_date DESC')])
    op.create_index('ix_video_assets_usage_count', 'video_assets', [sa.text('usage_count DESC')])

    for table, length in (('video_asset_categories', 50), ('video_asset_tags', 30)):
        op.create_table(
            table,
            sa.Column('asset_id', postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column('name', sa.String(length), primary_key=True),
            sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
            sa.ForeignKeyConstraint(['asset_id'], ['video_assets.id'], ondelete='CASCADE'),
        )
        op.create_index(f'ix_{table}_name', table, ['name'])

    usage_kind = postgresql.ENUM('course', 'preview', name='usage_kind', create_type=False)
    usage_kind.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'video_usage_records',
        sa.Column('record_id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('asset_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('kind', usage_kind, nullable=False),
        sa.Column('course_id', sa.String(64), nullable=True),
        sa.Column('course_title', sa.String(200), nullable=True),
        sa.Column('module_id', sa.String(64), nullable=True),
        sa.Column('chapter_id', sa.String(64), nullable=True),
        sa.Column('lesson_id', sa.String(64), nullable=True),
        sa.Column('referrer', sa.String(255), nullable=True),
        sa.Column('used_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['asset_id'], ['video_assets.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            "(kind = 'course' AND course_id IS NOT NULL AND course_title IS NOT NULL)"
            " OR (kind = 'preview' AND course_id IS NULL)",
            name='ck_video_usage_records_kind_fields',
        ),
        sa.CheckConstraint(
            "course_id IS NULL OR course_id <> 'preview'",
            name='ck_video_usage_records_no_preview_course',
        ),
    )
    op.create_index('ix_video_usage_records_asset_id', 'video_usage_records', ['asset_id'])
    op.create_index('ix_video_usage_records_kind', 'video_usage_records', ['kind'])
    op.create_index('ix_video_usage_records_course_id', 'video_usage_records', ['course_id'])


def downgrade() -> None:
    """Drop video library tables."""
    op.drop_table('video_usage_records')
    op.execute('DROP TYPE IF EXISTS usage_kind')
    op.drop_table('video_asset_tags')
    op.drop_table('video_asset_categories')
    op.drop_table('video_assets')
