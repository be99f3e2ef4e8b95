import mimetypes
import os

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from loguru import logger

from towerofsong.api.deps import get_catalog, require_auth
from towerofsong.api.schemas import LibraryStats, TrackOut
from towerofsong.core.catalog import CatalogStore
from towerofsong.core.exceptions import TrackNotFoundError

router = APIRouter(dependencies=[Depends(require_auth)])

# mimetypes does not know FLAC on every platform
AUDIO_MEDIA_TYPES = {
    ".mp3": "audio/mpeg",
    ".flac": "audio/flac",
    ".wav": "audio/wav",
}


def _media_type(path: str) -> str:
    suffix = os.path.splitext(path)[1].lower()
    return (
        AUDIO_MEDIA_TYPES.get(suffix)
        or mimetypes.guess_type(path)[0]
        or "application/octet-stream"
    )


@router.get("/stats", response_model=LibraryStats)
async def get_stats(catalog: CatalogStore = Depends(get_catalog)):
    """Total number of catalogued files."""
    return LibraryStats(total_files=await catalog.count())


@router.get("/tracks", response_model=list[TrackOut])
async def list_tracks(
    favourites: bool = False,
    catalog: CatalogStore = Depends(get_catalog),
):
    """List tracks ordered by artist, then title."""
    return await catalog.list_all(favourites_only=favourites)


@router.get("/favourites", response_model=list[TrackOut])
async def list_favourites(catalog: CatalogStore = Depends(get_catalog)):
    return await catalog.list_all(favourites_only=True)


@router.get("/search", response_model=list[TrackOut])
async def search_tracks(
    q: str = "",
    catalog: CatalogStore = Depends(get_catalog),
):
    """Case-insensitive substring search across path, title, artist and album."""
    return await catalog.search(q)


@router.get("/tracks/{track_id}", response_model=TrackOut)
async def get_track(track_id: int, catalog: CatalogStore = Depends(get_catalog)):
    track = await catalog.get_by_id(track_id)
    if not track:
        raise HTTPException(status_code=404, detail="Track not found")
    return track


@router.post("/tracks/{track_id}/favourite", response_model=TrackOut)
async def toggle_favourite(
    track_id: int, catalog: CatalogStore = Depends(get_catalog)
):
    """Flip the favourite flag; calling twice restores the original state."""
    try:
        return await catalog.toggle_favourite(track_id)
    except TrackNotFoundError:
        raise HTTPException(status_code=404, detail="Track not found")


@router.get("/tracks/{track_id}/stream")
async def stream_track(track_id: int, catalog: CatalogStore = Depends(get_catalog)):
    """Stream the audio file bytes (supports HTTP range requests)."""
    path = await catalog.get_file_path_from_id(track_id)
    if not path:
        raise HTTPException(status_code=404, detail="File not found")
    if not os.path.isfile(path):
        # Removed since the last sync pass; the next prune drops the record.
        logger.warning(f"Catalogued file missing on disk: {path}")
        raise HTTPException(status_code=404, detail="File not found")

    logger.info(f"Streaming file: {path}")
    return FileResponse(path, media_type=_media_type(path))
