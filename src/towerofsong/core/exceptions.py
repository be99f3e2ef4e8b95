"""Exception types raised by the catalog and startup code."""


class TowerOfSongError(Exception):
    """Base class for all application errors."""


class ConfigLoadError(TowerOfSongError):
    """The library configuration file is missing, unreadable, or invalid."""


class StoreInitError(TowerOfSongError):
    """The catalog database could not be opened or migrated."""


class TrackNotFoundError(TowerOfSongError):
    """No catalog record exists for the requested track id."""

    def __init__(self, track_id: int):
        super().__init__(f"Track {track_id} not found")
        self.track_id = track_id
