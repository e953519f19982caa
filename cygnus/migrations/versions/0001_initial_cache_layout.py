"""Initial cache layout.

Revision ID: 0001
Revises:
Create Date: 2024-05-01
"""

from __future__ import annotations

from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

# Raw DDL, hashed into the cache fingerprint in revision order.
STATEMENTS: tuple[str, ...] = (
    """create table singularity(
        singularity_id integer primary key autoincrement,
        url text
    );""",
    """create table req(
        req_id integer primary key autoincrement,
        singularity_id references singularity on delete cascade,
        request_ident text,
        instances integer,
        type text,
        state text,
        captured_at text
    );""",
    """create table task(
        task_id integer primary key autoincrement,
        req_id references req on delete cascade,
        deploy_ident text,
        status text
    );""",
    """create table env(
        env_id integer primary key autoincrement,
        task_id references task on delete cascade,
        name text,
        value text
    );""",
    """create table docker_image(
        docker_image_id integer primary key autoincrement,
        task_id references task on delete cascade,
        image_name text
    );""",
)


def upgrade() -> None:
    for statement in STATEMENTS:
        op.execute(statement)


def downgrade() -> None:
    for table in ("docker_image", "env", "task", "req", "singularity"):
        op.drop_table(table)
