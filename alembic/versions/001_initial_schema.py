"""Initial schema - creates all tables for the WMS sync engine

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    productsyncstatus_enum = postgresql.ENUM(
        'unsynced', 'synced', 'error',
        name='productsyncstatus'
    )
    productsyncstatus_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=False), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('barcode', sa.String(), nullable=True),
        sa.Column('external_article_ref', sa.String(), nullable=True),
        sa.Column('external_numeric_id', sa.String(), nullable=True),
        sa.Column('sync_status', postgresql.ENUM(name='productsyncstatus', create_type=False), nullable=False, server_default='unsynced'),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_products_external_article_ref', 'products', ['external_article_ref'])
    op.create_index('ix_products_sync_status', 'products', ['sync_status'])

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
    )

    op.create_table(
        'inventory',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_nonneg'),
    )
    op.create_index('ix_inventory_product_id', 'inventory', ['product_id'])
    op.create_index('ix_inventory_location_id', 'inventory', ['location_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('external_order_id', sa.String(), nullable=False, unique=True),
        sa.Column('order_number', sa.String(), nullable=True),
        sa.Column('customer_name', sa.String(), nullable=True),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('last_seen_remote_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_external_order_id', 'orders', ['external_order_id'])
    op.create_index('ix_orders_order_number', 'orders', ['order_number'])
    op.create_index('ix_orders_last_seen_remote_at', 'orders', ['last_seen_remote_at'])

    op.create_table(
        'order_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('article_ref', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('quantity_ordered', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_picked', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_picked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('picked_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_order_lines_order_id', 'order_lines', ['order_id'])
    op.create_index('ix_order_lines_article_ref', 'order_lines', ['article_ref'])

    op.create_table(
        'delivery_notes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('delivery_note_number', sa.String(), nullable=True),
        sa.Column('cargo_marking', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_delivery_notes_delivery_note_number', 'delivery_notes', ['delivery_note_number'])
    op.create_index('ix_delivery_notes_status', 'delivery_notes', ['status'])

    op.create_table(
        'delivery_note_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('delivery_note_id', sa.Integer(), sa.ForeignKey('delivery_notes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('article_number', sa.String(), nullable=False),
        sa.Column('order_number', sa.String(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('quantity_expected', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_checked', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_checked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('checked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='SET NULL'), nullable=True),
        sa.Column('external_order_id', sa.String(), nullable=True),
    )
    op.create_index('ix_delivery_note_items_delivery_note_id', 'delivery_note_items', ['delivery_note_id'])

    op.create_table(
        'sync_ledger',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sync_type', sa.String(), nullable=False),
        sa.Column('direction', sa.String(), nullable=False),
        sa.Column('related_article_ref', sa.String(), nullable=True),
        sa.Column('related_product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('request_payload', sa.JSON(), nullable=True),
        sa.Column('response_payload', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    for column in ('id', 'sync_type', 'related_article_ref', 'related_product_id', 'status', 'created_at'):
        op.create_index(f'ix_sync_ledger_{column}', 'sync_ledger', [column])

    op.create_table(
        'sync_failures',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        sa.Column('product_name', sa.String(), nullable=False, server_default=''),
        sa.Column('article_ref', sa.String(), nullable=True),
        sa.Column('quantity_changed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('order_number', sa.String(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by', sa.String(), nullable=True),
    )
    for column in ('id', 'product_id', 'created_at', 'resolved_at'):
        op.create_index(f'ix_sync_failures_{column}', 'sync_failures', [column])

    op.create_table(
        'sync_checkpoints',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sync_type', sa.String(), nullable=False, unique=True),
        sa.Column('last_successful_sync', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_synced', sa.Integer(), server_default='0'),
        sa.Column('total_errors', sa.Integer(), server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_sync_checkpoints_id', 'sync_checkpoints', ['id'])


def downgrade() -> None:
    op.drop_table('sync_checkpoints')
    op.drop_table('sync_failures')
    op.drop_table('sync_ledger')
    op.drop_table('delivery_note_items')
    op.drop_table('delivery_notes')
    op.drop_table('order_lines')
    op.drop_table('orders')
    op.drop_table('inventory')
    op.drop_table('locations')
    op.drop_table('products')
    postgresql.ENUM(name='productsyncstatus').drop(op.get_bind(), checkfirst=True)
