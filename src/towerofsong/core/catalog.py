"""Persistent track catalog.

``CatalogStore`` is the only component that talks to the ``tracks`` table.
Every operation opens its own short-lived session and commits before
returning, so a single row is never visible half-written and API readers can
run alongside a sync pass (SQLite WAL mode keeps readers off the writer's
lock).

Ordering uses SQLite's default BINARY collation: artist then title, compared
case-sensitively by code point.

Typical usage example:
    catalog = CatalogStore(create_session_factory(engine))
    await catalog.upsert_if_absent("/music/a.mp3", "Song A", "X", "Unknown")
    tracks = await catalog.search("beatles")
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import delete, func, not_, or_, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from towerofsong.core.exceptions import TrackNotFoundError
from towerofsong.core.models import Track


@dataclass(frozen=True)
class TrackRecord:
    """Detached, immutable view of one catalog row."""

    id: int
    path: str
    title: str
    artist: str
    album: str
    favourited: bool = False

    @classmethod
    def from_model(cls, track: Track) -> "TrackRecord":
        return cls(
            id=track.id,
            path=track.path,
            title=track.title,
            artist=track.artist,
            album=track.album,
            favourited=bool(track.favourited),
        )


class CatalogStore:
    """Queryable storage of ``TrackRecord`` rows with search and mutation.

    Attributes:
        session_factory: Factory producing one ``AsyncSession`` per operation.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def _ordered(stmt):
        return stmt.order_by(Track.artist.asc(), Track.title.asc(), Track.id.asc())

    async def upsert_if_absent(
        self, path: str, title: str, artist: str, album: str
    ) -> bool:
        """Insert a record for ``path`` unless one already exists.

        An existing record is left untouched (its metadata is not refreshed
        and its favourite flag is kept).

        Returns:
            True if a new row was inserted, False if ``path`` was present.
        """
        stmt = (
            sqlite_insert(Track)
            .values(path=path, title=title, artist=artist, album=album)
            .on_conflict_do_nothing(index_elements=[Track.path])
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        inserted = result.rowcount == 1
        if inserted:
            logger.debug(f"Catalogued {path}")
        return inserted

    async def list_all(self, favourites_only: bool = False) -> List[TrackRecord]:
        """Return all records ordered by (artist, title).

        Args:
            favourites_only: Restrict the result to favourited records.
        """
        stmt = select(Track)
        if favourites_only:
            stmt = stmt.where(Track.favourited.is_(True))
        async with self.session_factory() as session:
            result = await session.execute(self._ordered(stmt))
            return [TrackRecord.from_model(t) for t in result.scalars().all()]

    async def search(self, query: str) -> List[TrackRecord]:
        """Case-insensitive substring search over path, title, artist and album.

        The query is wrapped as ``%query%`` for a SQL LIKE match, so ``%``
        and ``_`` inside it act as wildcards. An empty query matches every
        record.
        """
        pattern = f"%{query or ''}%"
        stmt = select(Track).where(
            or_(
                Track.title.ilike(pattern),
                Track.artist.ilike(pattern),
                Track.album.ilike(pattern),
                Track.path.ilike(pattern),
            )
        )
        async with self.session_factory() as session:
            result = await session.execute(self._ordered(stmt))
            return [TrackRecord.from_model(t) for t in result.scalars().all()]

    async def get_by_id(self, track_id: int) -> Optional[TrackRecord]:
        async with self.session_factory() as session:
            track = await session.get(Track, track_id)
            return TrackRecord.from_model(track) if track else None

    async def get_file_path_from_id(self, track_id: int) -> Optional[str]:
        """Resolve a track id to the file path used by the stream endpoint."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Track.path).where(Track.id == track_id)
            )
            return result.scalar_one_or_none()

    async def toggle_favourite(self, track_id: int) -> TrackRecord:
        """Flip the favourite flag of a record.

        Returns:
            The record with its new favourite state.

        Raises:
            TrackNotFoundError: If no record has ``track_id``.
        """
        stmt = (
            update(Track)
            .where(Track.id == track_id)
            .values(favourited=not_(Track.favourited))
            .execution_options(synchronize_session=False)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                raise TrackNotFoundError(track_id)
            track = await session.get(Track, track_id)
            record = TrackRecord.from_model(track)
            await session.commit()
        logger.info(f"Track {track_id} favourited={record.favourited}")
        return record

    async def delete_by_path(self, path: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(Track).where(Track.path == path))
            await session.commit()
        return result.rowcount > 0

    async def delete_by_id(self, track_id: int) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(Track).where(Track.id == track_id))
            await session.commit()
        return result.rowcount > 0

    async def count(self) -> int:
        async with self.session_factory() as session:
            result = await session.execute(select(func.count(Track.id)))
            return result.scalar() or 0

    async def list_paths(self) -> List[Tuple[int, str]]:
        """All (id, path) pairs, used by the prune step of a sync pass."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Track.id, Track.path).order_by(Track.id)
            )
            return [(row.id, row.path) for row in result.all()]
