"""Add subtask version and task_edit_history table

Revision ID: 8d3f5a1c6e92
Revises: 4e9a2c7d1b30
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8d3f5a1c6e92"
down_revision: Union[str, Sequence[str], None] = "4e9a2c7d1b30"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column("subtasks", sa.Column("version", sa.Integer(), nullable=False, server_default="1"))

    op.create_table(
        "task_edit_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("editor_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_task_edit_history_task_id"), "task_edit_history", ["task_id"], unique=False)
    op.create_index(op.f("ix_task_edit_history_created_at"), "task_edit_history", ["created_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_task_edit_history_created_at"), table_name="task_edit_history")
    op.drop_index(op.f("ix_task_edit_history_task_id"), table_name="task_edit_history")
    op.drop_table("task_edit_history")

    op.drop_column("subtasks", "version")
