"""Create reward_settings table.

Revision ID: 20261019_reward_settings
Revises:
Create Date: 2026-10-19

One row per shop_domain holding the affiliate, customer and next-order
reward rules.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_reward_settings'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create reward_settings table."""

    # Check if table already exists (AUTO_CREATE_TABLES may have created it)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    if 'reward_settings' in inspector.get_table_names():
        print("reward_settings table already exists, skipping...")
        return

    op.create_table(
        'reward_settings',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('shop_domain', sa.String(255), nullable=False,
                  comment='Store identifier e.g. shop1.myshopify.com'),
        sa.Column('affiliate_reward_type', sa.String(20), nullable=False, server_default='percentage'),
        sa.Column('affiliate_reward_value', sa.Float, nullable=True),
        sa.Column('customer_reward_type', sa.String(20), nullable=False, server_default='percentage'),
        sa.Column('customer_reward_value', sa.Float, nullable=True),
        sa.Column('next_order_discount_type', sa.String(20), nullable=False, server_default='percentage'),
        sa.Column('next_order_discount_value', sa.Float, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    )

    # Upsert conflict target
    op.create_index('ix_reward_settings_shop_domain', 'reward_settings', ['shop_domain'], unique=True)

    print("Created reward_settings table")


def downgrade() -> None:
    """Drop reward_settings table."""
    op.drop_index('ix_reward_settings_shop_domain', table_name='reward_settings')
    op.drop_table('reward_settings')
