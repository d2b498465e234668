"""delivery slots, holds, reservations and settings

Revision ID: 3f2a9c1d7b4e
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7b4e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column(
            'is_active',
            sa.Boolean(),
            server_default=sa.text('true'),
            nullable=False,
        ),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'deliverysettings',
        *_base_columns(),
        sa.Column('key', sa.String(length=50), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )
    op.create_table(
        'deliveryslot',
        *_base_columns(),
        sa.Column('delivery_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('active', 'disabled', name='slot_status'),
            server_default='active',
            nullable=False,
        ),
        sa.CheckConstraint(
            'start_time < end_time',
            name='ck_delivery_slot_interval',
        ),
        sa.CheckConstraint(
            'capacity IS NULL OR capacity >= 0',
            name='ck_delivery_slot_capacity',
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'delivery_date',
            'start_time',
            'end_time',
            name='uq_delivery_slot_window',
        ),
    )
    op.create_index(
        op.f('ix_deliveryslot_delivery_date'),
        'deliveryslot',
        ['delivery_date'],
        unique=False,
    )
    op.create_table(
        'slothold',
        *_base_columns(),
        sa.Column('slot_id', sa.UUID(), nullable=False),
        sa.Column('slot_value', sa.String(length=32), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['slot_id'],
            ['deliveryslot.id'],
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token'),
    )
    op.create_index(
        op.f('ix_slothold_slot_id'),
        'slothold',
        ['slot_id'],
        unique=False,
    )
    op.create_index(
        'ix_slot_holds_value_expiry',
        'slothold',
        ['slot_value', 'expires_at'],
        unique=False,
    )
    op.create_table(
        'reservation',
        *_base_columns(),
        sa.Column('order_id', sa.String(length=64), nullable=True),
        sa.Column('delivery_date', sa.Date(), nullable=False),
        sa.Column('slot_start', sa.Time(), nullable=False),
        sa.Column('slot_end', sa.Time(), nullable=False),
        sa.Column('zip_code', sa.String(length=10), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=True),
        sa.Column(
            'status',
            sa.Enum(
                'reserved',
                'confirmed',
                'cancelled',
                name='reservation_status',
            ),
            server_default='reserved',
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_reservation_order_id'),
        'reservation',
        ['order_id'],
        unique=False,
    )
    op.create_index(
        'ix_reservations_slot_status',
        'reservation',
        ['delivery_date', 'slot_start', 'slot_end', 'status'],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_reservations_slot_status', table_name='reservation')
    op.drop_index(op.f('ix_reservation_order_id'), table_name='reservation')
    op.drop_table('reservation')
    op.drop_index('ix_slot_holds_value_expiry', table_name='slothold')
    op.drop_index(op.f('ix_slothold_slot_id'), table_name='slothold')
    op.drop_table('slothold')
    op.drop_index(
        op.f('ix_deliveryslot_delivery_date'),
        table_name='deliveryslot',
    )
    op.drop_table('deliveryslot')
    op.drop_table('deliverysettings')
    sa.Enum(name='reservation_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='slot_status').drop(op.get_bind(), checkfirst=True)
