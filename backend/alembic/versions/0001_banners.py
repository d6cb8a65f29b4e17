"""banners table

Revision ID: 0001_banners
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_banners'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'banners',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('external_id', sa.String(length=64), nullable=False, unique=True),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('detail', sa.Text(), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=False),
        sa.Column('image_storage_ref', sa.String(length=255), nullable=True),
        sa.Column('image_alt_text', sa.String(length=255), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('text_position_x', sa.Float(), nullable=False, server_default='20'),
        sa.Column('text_position_y', sa.Float(), nullable=False, server_default='20'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('banner_type', sa.String(length=32), nullable=False, server_default='reward'),
        sa.Column('show_on_mobile', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('show_on_desktop', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('reward_type', sa.String(length=32), nullable=False, server_default='welcome'),
        sa.Column('discount_percentage', sa.Float(), nullable=True),
        sa.Column('discount_amount', sa.Float(), nullable=True),
        sa.Column('min_order_value', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_discount_amount', sa.Float(), nullable=True),
        sa.Column('validity_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('is_stackable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('conversions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_viewed', sa.DateTime(), nullable=True),
        sa.Column('meta_title', sa.String(length=60), nullable=True),
        sa.Column('meta_description', sa.String(length=160), nullable=True),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('approval_status', sa.String(length=32), nullable=False, server_default='draft'),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('created_by', sa.String(length=64), nullable=False),
        sa.Column('updated_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index('ix_banners_id', 'banners', ['id'])
    op.create_index('uq_banners_slug', 'banners', ['slug'], unique=True)
    op.create_index('ix_banners_type_active', 'banners', ['banner_type', 'is_active'])
    op.create_index('ix_banners_window', 'banners', ['start_date', 'end_date'])
    op.create_index('ix_banners_approval_status', 'banners', ['approval_status'])
    op.create_index('ix_banners_created_at', 'banners', ['created_at'])
    # priority is unique among active banners only
    op.create_index(
        'uq_banners_active_priority',
        'banners',
        ['priority'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active'),
    )


def downgrade():
    op.drop_index('uq_banners_active_priority', table_name='banners')
    op.drop_index('ix_banners_created_at', table_name='banners')
    op.drop_index('ix_banners_approval_status', table_name='banners')
    op.drop_index('ix_banners_window', table_name='banners')
    op.drop_index('ix_banners_type_active', table_name='banners')
    op.drop_index('uq_banners_slug', table_name='banners')
    op.drop_index('ix_banners_id', table_name='banners')
    op.drop_table('banners')
