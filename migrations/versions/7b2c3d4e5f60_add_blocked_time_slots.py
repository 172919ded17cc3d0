"""add blocked time slots

Revision ID: 7b2c3d4e5f60
Revises: 4e1a2b3c5d6f
Create Date: 2026-02-09 14:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7b2c3d4e5f60'
down_revision = '4e1a2b3c5d6f'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'blocked_time_slots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('facility_id', sa.Integer(), nullable=False),
        sa.Column('court_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_minute', sa.Integer(), nullable=False),
        sa.Column('end_minute', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=200), nullable=False),
        sa.Column('blocked_by', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('removed_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('start_minute < end_minute', name='ck_blocked_slot_order'),
        sa.ForeignKeyConstraint(['blocked_by'], ['users.id']),
        sa.ForeignKeyConstraint(['court_id'], ['courts.id']),
        sa.ForeignKeyConstraint(['facility_id'], ['facilities.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('blocked_time_slots', schema=None) as batch_op:
        batch_op.create_index(
            'ix_blocked_slots_facility_court_date', ['facility_id', 'court_id', 'date'], unique=False
        )


def downgrade():
    with op.batch_alter_table('blocked_time_slots', schema=None) as batch_op:
        batch_op.drop_index('ix_blocked_slots_facility_court_date')
    op.drop_table('blocked_time_slots')
