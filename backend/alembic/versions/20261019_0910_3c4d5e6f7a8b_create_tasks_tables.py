"""create_tasks_tables

Revision ID: 3c4d5e6f7a8b
Revises: 2b3c4d5e6f7a
Create Date: 2026-10-19 09:10:00

"""
from typing import Sequence, Union

from alembic import op

revision: str = '3c4d5e6f7a8b'
down_revision: Union[str, None] = '2b3c4d5e6f7a'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE TYPE task_priority AS ENUM ('low', 'medium', 'high')")
    op.execute("CREATE TYPE task_status AS ENUM ('todo', 'in-progress', 'done')")
    # workspace_id has no foreign key: tasks are kept when their workspace is deleted
    op.execute("""
        CREATE TABLE tasks (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            workspace_id UUID NOT NULL,
            title VARCHAR(500) NOT NULL,
            description TEXT,
            due_date DATE,
            priority task_priority NOT NULL DEFAULT 'medium',
            status task_status NOT NULL DEFAULT 'todo',
            subtasks JSONB NOT NULL DEFAULT '[]'::jsonb,
            tags JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_by UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_tasks_workspace_id ON tasks(workspace_id)")
    op.execute("CREATE INDEX ix_tasks_created_at ON tasks(created_at)")

    op.execute("""
        CREATE TABLE task_assignees (
            task_id UUID NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            PRIMARY KEY (task_id, user_id)
        )
    """)
    op.execute("CREATE INDEX ix_task_assignees_user_id ON task_assignees(user_id)")

    op.execute("""
        CREATE TABLE task_comments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            task_id UUID NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            author_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_task_comments_task_id ON task_comments(task_id)")
    op.execute("CREATE INDEX ix_task_comments_author_id ON task_comments(author_id)")

    op.execute("""
        CREATE TABLE task_attachments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            task_id UUID NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            filename VARCHAR(255) NOT NULL,
            original_name VARCHAR(255) NOT NULL,
            mime_type VARCHAR(255) NOT NULL,
            size BIGINT NOT NULL,
            path VARCHAR(1024) NOT NULL,
            uploaded_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_task_attachments_task_id ON task_attachments(task_id)")
    op.execute("CREATE INDEX ix_task_attachments_filename ON task_attachments(filename)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS task_attachments")
    op.execute("DROP TABLE IF EXISTS task_comments")
    op.execute("DROP TABLE IF EXISTS task_assignees")
    op.execute("DROP TABLE IF EXISTS tasks")
    op.execute("DROP TYPE IF EXISTS task_status")
    op.execute("DROP TYPE IF EXISTS task_priority")
