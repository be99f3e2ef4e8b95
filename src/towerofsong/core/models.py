"""SQLAlchemy models for the track catalog."""

from sqlalchemy import Boolean, Integer, String, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Track(Base):
    """One audio file known to the catalog.

    ``path`` is the natural key used for deduplication across sync passes.
    ``id`` comes from an AUTOINCREMENT column so ids of deleted rows are never
    handed out again.
    """

    __tablename__ = "tracks"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    path: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    artist: Mapped[str] = mapped_column(String, nullable=False)
    album: Mapped[str] = mapped_column(String, nullable=False)
    favourited: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("0")
    )

    def __repr__(self) -> str:
        return f"Track(id={self.id!r}, path={self.path!r})"
