"""Index request lookups.

Revision ID: 0002
Revises: 0001
Create Date: 2024-05-01
"""

from __future__ import annotations

from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

STATEMENTS: tuple[str, ...] = ("create index req_request_ident on req(request_ident);",)


def upgrade() -> None:
    for statement in STATEMENTS:
        op.execute(statement)


def downgrade() -> None:
    op.drop_index("req_request_ident", table_name="req")
