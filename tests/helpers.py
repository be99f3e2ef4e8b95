"""Helpers for building audio fixtures on disk."""

from pathlib import Path
from typing import Dict, Optional

from mutagen.easyid3 import EasyID3

from towerofsong.worker.metadata import TrackMetadata

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, no padding: 417-byte frames.
MP3_FRAME = b"\xff\xfb\x90\x64" + b"\x00" * 413


def write_mp3(path: Path, **tags: str) -> Path:
    """Write a minimal playable MP3, with ID3 tags if any are given."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(MP3_FRAME * 20)
    if tags:
        id3 = EasyID3()
        for key, value in tags.items():
            id3[key] = value
        id3.save(str(path))
    return path


def write_junk(path: Path, data: bytes = b"not really audio") -> Path:
    """Write a file with an audio suffix but no parseable content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


class StubExtractor:
    """Extractor returning canned metadata, recording which paths it read."""

    def __init__(self, tags: Optional[Dict[str, TrackMetadata]] = None):
        self.tags = tags or {}
        self.calls = []

    def extract(self, path: str) -> TrackMetadata:
        self.calls.append(path)
        return self.tags.get(path) or TrackMetadata.defaults(path)

TEST_USERNAME = "admin"
TEST_PASSWORD = "secret"
