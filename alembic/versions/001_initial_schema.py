"""Initial schema - subjects, sellers, tracked items, offer state and sale log

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'subjects',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('webhook_url', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_subjects_is_active', 'subjects', ['is_active'])

    op.create_table(
        'seller_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.String(), nullable=False),
        sa.Column('seller_id', sa.String(), nullable=False),
        sa.Column('label', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subject_id', 'seller_id', name='uq_seller_profiles_subject_seller'),
    )
    op.create_index('ix_seller_profiles_subject_id', 'seller_profiles', ['subject_id'])

    op.create_table(
        'tracked_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.String(), nullable=False),
        sa.Column('item_id', sa.String(), nullable=False),
        sa.Column('seller_id', sa.String(), nullable=True),
        sa.Column('label', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subject_id', 'item_id', name='uq_tracked_items_subject_item'),
    )
    op.create_index('ix_tracked_items_subject_id', 'tracked_items', ['subject_id'])
    op.create_index('ix_tracked_items_seller_id', 'tracked_items', ['seller_id'])

    op.create_table(
        'offer_states',
        sa.Column('subject_id', sa.String(), nullable=False),
        sa.Column('item_id', sa.String(), nullable=False),
        sa.Column('holder_id', sa.String(), nullable=True),
        sa.Column('holder_name', sa.String(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('stock_level', sa.Integer(), nullable=True),
        sa.Column('availability', sa.String(), nullable=True),
        sa.Column('observed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('subject_id', 'item_id'),
    )

    op.create_table(
        'sale_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.String(), nullable=False),
        sa.Column('item_id', sa.String(), nullable=False),
        sa.Column('holder_id', sa.String(), nullable=False),
        sa.Column('stock_before', sa.Integer(), nullable=False),
        sa.Column('stock_after', sa.Integer(), nullable=False),
        sa.Column('units_estimated', sa.Integer(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('units_estimated > 0', name='ck_sale_events_units_positive'),
        sa.CheckConstraint('units_estimated = stock_before - stock_after', name='ck_sale_events_units_delta'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sale_events_subject_id', 'sale_events', ['subject_id'])
    op.create_index('ix_sale_events_item_id', 'sale_events', ['item_id'])
    op.create_index('ix_sale_events_occurred_at', 'sale_events', ['occurred_at'])


def downgrade() -> None:
    op.drop_index('ix_sale_events_occurred_at', table_name='sale_events')
    op.drop_index('ix_sale_events_item_id', table_name='sale_events')
    op.drop_index('ix_sale_events_subject_id', table_name='sale_events')
    op.drop_table('sale_events')
    op.drop_table('offer_states')
    op.drop_index('ix_tracked_items_seller_id', table_name='tracked_items')
    op.drop_index('ix_tracked_items_subject_id', table_name='tracked_items')
    op.drop_table('tracked_items')
    op.drop_index('ix_seller_profiles_subject_id', table_name='seller_profiles')
    op.drop_table('seller_profiles')
    op.drop_index('ix_subjects_is_active', table_name='subjects')
    op.drop_table('subjects')
