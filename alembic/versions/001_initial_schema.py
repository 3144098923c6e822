"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2025-01-20 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create storage_entries table
    op.create_table(
        'storage_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('namespace', sa.String(), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('namespace', 'key', name='uq_storage_entries_namespace_key')
    )
    op.create_index(op.f('ix_storage_entries_id'), 'storage_entries', ['id'], unique=False)
    op.create_index(op.f('ix_storage_entries_namespace'), 'storage_entries', ['namespace'], unique=False)

    # Create payment_methods table
    op.create_table(
        'payment_methods',
        sa.Column('uuid_id', sa.String(), nullable=False),
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('account_number', sa.String(), nullable=False),
        sa.Column('account_name', sa.String(), nullable=False),
        sa.Column('qr_code_url', sa.Text(), nullable=True),
        sa.Column('icon_url', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('uuid_id')
    )
    op.create_index(op.f('ix_payment_methods_id'), 'payment_methods', ['id'], unique=False)

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('order_items', sa.JSON(), nullable=False),
        sa.Column('customer_info', sa.JSON(), nullable=False),
        sa.Column('payment_method_id', sa.String(), nullable=False),
        sa.Column('receipt_url', sa.Text(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    op.drop_table('orders')
    op.drop_table('payment_methods')
    op.drop_table('storage_entries')
