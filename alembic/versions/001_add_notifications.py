"""add notifications and notification_logs tables

Revision ID: 001_add_notifications
Revises:
Create Date: 2025-11-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_add_notifications'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('recipient_email', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('provider_name', sa.String(), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('bill_id', sa.String(), nullable=True),
        sa.Column('send_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('channels', postgresql.JSONB(), nullable=False, server_default=sa.text("'[\"email\"]'::jsonb")),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_notifications_recipient_email', 'notifications', ['recipient_email'])
    op.create_index('ix_notifications_send_at', 'notifications', ['send_at'])
    op.create_index('ix_notifications_status_send_at', 'notifications', ['status', 'send_at'])
    op.create_index('ix_notifications_recipient_send_at', 'notifications', ['recipient_email', 'send_at'])

    op.create_table(
        'notification_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('notification_id', sa.String(36), nullable=False),
        sa.Column('channel', sa.String(), nullable=False),
        sa.Column('outcome', sa.String(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('detail', sa.Text(), nullable=True),
    )
    op.create_index('ix_notification_logs_notification_id', 'notification_logs', ['notification_id'])
    op.create_index('ix_notification_logs_notification_time', 'notification_logs', ['notification_id', 'occurred_at'])


def downgrade() -> None:
    op.drop_index('ix_notification_logs_notification_time', table_name='notification_logs')
    op.drop_index('ix_notification_logs_notification_id', table_name='notification_logs')
    op.drop_table('notification_logs')
    op.drop_index('ix_notifications_recipient_send_at', table_name='notifications')
    op.drop_index('ix_notifications_status_send_at', table_name='notifications')
    op.drop_index('ix_notifications_send_at', table_name='notifications')
    op.drop_index('ix_notifications_recipient_email', table_name='notifications')
    op.drop_table('notifications')
