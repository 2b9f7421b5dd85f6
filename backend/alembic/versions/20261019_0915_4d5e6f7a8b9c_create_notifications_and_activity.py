"""create_notifications_and_activity

Revision ID: 4d5e6f7a8b9c
Revises: 3c4d5e6f7a8b
Create Date: 2026-10-19 09:15:00

"""
from typing import Sequence, Union

from alembic import op

revision: str = '4d5e6f7a8b9c'
down_revision: Union[str, None] = '3c4d5e6f7a8b'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE TYPE notification_type AS ENUM ('assignment', 'mention', 'update', 'completion')")
    op.execute("""
        CREATE TABLE notifications (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            workspace_id UUID NOT NULL,
            task_id UUID,
            type notification_type NOT NULL,
            message TEXT NOT NULL,
            is_read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_notifications_user_id ON notifications(user_id)")
    op.execute("CREATE INDEX ix_notifications_workspace_id ON notifications(workspace_id)")
    op.execute("CREATE INDEX ix_notifications_task_id ON notifications(task_id)")
    op.execute("CREATE INDEX ix_notifications_user_unread ON notifications(user_id) WHERE is_read = false")

    # Append-only; task and workspace ids are plain so entries outlive deletions
    op.execute("""
        CREATE TABLE activity_log (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            workspace_id UUID NOT NULL,
            task_id UUID NOT NULL,
            actor_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            action VARCHAR(100) NOT NULL,
            details TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_activity_log_workspace_id ON activity_log(workspace_id)")
    op.execute("CREATE INDEX ix_activity_log_task_id ON activity_log(task_id)")
    op.execute("CREATE INDEX ix_activity_log_actor_id ON activity_log(actor_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS activity_log")
    op.execute("DROP TABLE IF EXISTS notifications")
    op.execute("DROP TYPE IF EXISTS notification_type")
