"""import rows from the legacy music table

Catalogs written by the earlier server kept tracks in a ``music`` table with
nullable text columns and, depending on its age, no ``favourited`` column.
Rows are copied into ``tracks`` keeping their ids (so favourites and stream
links survive), then ``music`` is dropped. A path already in ``tracks`` wins.

Revision ID: import_legacy_music_table
Revises: add_track_favourited
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "import_legacy_music_table"
down_revision: Union[str, None] = "add_track_favourited"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    if "music" not in inspector.get_table_names():
        return

    columns = {col["name"] for col in inspector.get_columns("music")}
    favourited = "COALESCE(favourited, 0) != 0" if "favourited" in columns else "0"
    # Title falls back to the base name, as for an untagged file.
    op.execute(
        sa.text(
            "INSERT OR IGNORE INTO tracks (id, path, title, artist, album, favourited) "
            "SELECT id, path, "
            "COALESCE(NULLIF(TRIM(title), ''), "
            "REPLACE(path, RTRIM(path, REPLACE(path, '/', '')), '')), "
            "COALESCE(NULLIF(TRIM(artist), ''), 'Unknown'), "
            "COALESCE(NULLIF(TRIM(album), ''), 'Unknown'), "
            f"{favourited} "
            "FROM music WHERE path IS NOT NULL AND path != '' ORDER BY id"
        )
    )
    op.drop_table("music")


def downgrade() -> None:
    # Data import; the legacy table is not recreated.
    pass
