"""Best-effort tag extraction for audio files.

``MetadataExtractor.extract`` never raises: unreadable files, missing tag
frames and unsupported containers all degrade to defaults, field by field.
"""

import os
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import mutagen
from loguru import logger

UNKNOWN = "Unknown"

# Easy-mode key first, then the raw ID3 frame for containers (e.g. WAV)
# that mutagen does not map onto easy keys.
TAG_KEYS = {
    "title": ("title", "TIT2"),
    "artist": ("artist", "TPE1"),
    "album": ("album", "TALB"),
}


@dataclass(frozen=True)
class TrackMetadata:
    title: str
    artist: str
    album: str

    @classmethod
    def defaults(cls, path: str) -> "TrackMetadata":
        return cls(title=os.path.basename(path), artist=UNKNOWN, album=UNKNOWN)


class MetadataExtractor:
    """Reads title/artist/album from embedded tags using Mutagen."""

    def extract(self, path: str) -> TrackMetadata:
        """Extract metadata for ``path``, falling back to defaults.

        ``title`` falls back to the file's base name, ``artist`` and
        ``album`` to ``"Unknown"``. Values are whitespace-trimmed and an
        empty value falls back like a missing one.
        """
        defaults = TrackMetadata.defaults(path)
        audio = self._open(path)
        if audio is None:
            return defaults

        return TrackMetadata(
            title=self._read_tag(audio, TAG_KEYS["title"]) or defaults.title,
            artist=self._read_tag(audio, TAG_KEYS["artist"]) or defaults.artist,
            album=self._read_tag(audio, TAG_KEYS["album"]) or defaults.album,
        )

    def _open(self, path: str) -> Optional[Any]:
        """Blocking tag parse; run in a worker thread by the scanner."""
        try:
            audio = mutagen.File(path, easy=True)
        except Exception as e:
            logger.warning(f"Error reading tags from {path}: {e}")
            return None

        if audio is None:
            logger.warning(f"Unsupported or unrecognised audio container: {path}")
            return None
        if not audio.tags:
            logger.debug(f"No tags in {path}")
            return None
        return audio

    @staticmethod
    def _read_tag(audio: Any, keys: Iterable[str]) -> str:
        for key in keys:
            try:
                value = audio.get(key)
            except (KeyError, ValueError, TypeError) as e:
                logger.debug(f"Unreadable tag {key}: {e}")
                continue
            if not value:
                continue
            if isinstance(value, (list, tuple)):
                value = value[0]
            elif hasattr(value, "text"):  # raw ID3 frame
                value = value.text[0] if value.text else ""
            text = str(value).strip()
            if text:
                return text
        return ""


def extract(path: str) -> TrackMetadata:
    """Module-level shortcut for ``MetadataExtractor().extract``."""
    return MetadataExtractor().extract(path)
