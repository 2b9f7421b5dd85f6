"""create_workspaces_tables

Revision ID: 2b3c4d5e6f7a
Revises: 1a2b3c4d5e6f
Create Date: 2026-10-19 09:05:00

"""
from typing import Sequence, Union

from alembic import op

revision: str = '2b3c4d5e6f7a'
down_revision: Union[str, None] = '1a2b3c4d5e6f'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE workspaces (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(100) NOT NULL,
            description TEXT,
            owner_id UUID NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            invite_code VARCHAR(64),
            is_public BOOLEAN NOT NULL DEFAULT false,
            allow_invites BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    # NULLs are not compared by the unique index, so codes may be absent before generation
    op.execute("CREATE UNIQUE INDEX ix_workspaces_invite_code ON workspaces(invite_code)")
    op.execute("CREATE INDEX ix_workspaces_owner_id ON workspaces(owner_id)")

    op.execute("CREATE TYPE workspace_role AS ENUM ('viewer', 'member', 'admin')")
    op.execute("""
        CREATE TABLE workspace_members (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            workspace_id UUID NOT NULL REFERENCES workspaces(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            role workspace_role NOT NULL DEFAULT 'member',
            joined_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_workspace_members_workspace_user UNIQUE (workspace_id, user_id)
        )
    """)
    op.execute("CREATE INDEX ix_workspace_members_workspace_id ON workspace_members(workspace_id)")
    op.execute("CREATE INDEX ix_workspace_members_user_id ON workspace_members(user_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS workspace_members")
    op.execute("DROP TYPE IF EXISTS workspace_role")
    op.execute("DROP TABLE IF EXISTS workspaces")
