"""Create chore instance and watermark tables

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'chore_instances',
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('expected_completion_time', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('overdue_time', sa.Integer(), nullable=False),
        sa.Column('expiration_time', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "status IN ('assigned', 'completed', 'missed')",
            name='check_instance_status'
        ),
        sa.CheckConstraint('overdue_time > expected_completion_time', name='check_overdue_after_expected'),
        sa.PrimaryKeyConstraint('title', 'expected_completion_time')
    )
    with op.batch_alter_table('chore_instances', schema=None) as batch_op:
        batch_op.create_index('idx_chore_instances_status_expiration', ['status', 'expiration_time'])
        batch_op.create_index('idx_chore_instances_expected', ['expected_completion_time'])

    op.create_table(
        'watermark',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('last_update_timestamp', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade():
    op.drop_table('watermark')

    with op.batch_alter_table('chore_instances', schema=None) as batch_op:
        batch_op.drop_index('idx_chore_instances_expected')
        batch_op.drop_index('idx_chore_instances_status_expiration')

    op.drop_table('chore_instances')
