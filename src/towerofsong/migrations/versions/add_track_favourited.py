"""add favourited flag to tracks

Revision ID: add_track_favourited
Revises: create_tracks_table
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "add_track_favourited"
down_revision: Union[str, None] = "create_tracks_table"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    if "tracks" not in inspector.get_table_names():
        return
    columns = {col["name"] for col in inspector.get_columns("tracks")}
    if "favourited" not in columns:
        op.add_column(
            "tracks",
            sa.Column(
                "favourited",
                sa.Boolean(),
                nullable=False,
                server_default=sa.text("0"),
            ),
        )


def downgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    if "tracks" not in inspector.get_table_names():
        return
    columns = {col["name"] for col in inspector.get_columns("tracks")}
    if "favourited" in columns:
        with op.batch_alter_table("tracks") as batch_op:
            batch_op.drop_column("favourited")
