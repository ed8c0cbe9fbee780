"""payment orders and callback audit log

Revision ID: 001_payment_orders
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_payment_orders'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create payment_orders and callback_events."""
    op.create_table('payment_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=128), nullable=False),
        sa.Column('trade_id', sa.String(length=128), nullable=True),
        sa.Column('amount', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('actual_amount', sa.String(length=64), nullable=True),
        sa.Column('trade_type', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=True),
        sa.Column('status', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('payment_url', sa.String(length=512), nullable=True),
        sa.Column('token', sa.String(length=256), nullable=True),
        sa.Column('expiration_time', sa.BigInteger(), nullable=True),
        sa.Column('block_transaction_id', sa.String(length=256), nullable=False, server_default=''),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_payment_orders_order_id'), 'payment_orders', ['order_id'], unique=True)
    op.create_index(op.f('ix_payment_orders_trade_id'), 'payment_orders', ['trade_id'], unique=False)
    op.create_index(op.f('ix_payment_orders_status'), 'payment_orders', ['status'], unique=False)

    op.create_table('callback_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(length=32), nullable=False),
        sa.Column('order_id', sa.String(length=128), nullable=True),
        sa.Column('trade_id', sa.String(length=128), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('received_at', sa.BigInteger(), nullable=False),
        sa.Column('processed_at', sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_callback_events_order_id', 'callback_events', ['order_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_callback_events_order_id', table_name='callback_events')
    op.drop_table('callback_events')
    op.drop_index(op.f('ix_payment_orders_status'), table_name='payment_orders')
    op.drop_index(op.f('ix_payment_orders_trade_id'), table_name='payment_orders')
    op.drop_index(op.f('ix_payment_orders_order_id'), table_name='payment_orders')
    op.drop_table('payment_orders')
