from typing import Optional

from pydantic import BaseModel, ConfigDict


class Credentials(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    token: str


class TrackOut(BaseModel):
    """A catalog record as returned to API clients."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    path: str
    title: str
    artist: str
    album: str
    favourited: bool


class LibraryStats(BaseModel):
    total_files: int


class ScanStatsOut(BaseModel):
    processed: int
    created: int
    skipped: int
    errors: int
    walk_errors: int
    pruned: int
    prune_errors: int


class ScanStatus(BaseModel):
    running: bool
    last_pass_id: Optional[str] = None
    interval_seconds: float
    last_started_at: Optional[str] = None
    last_finished_at: Optional[str] = None
    last_stats: Optional[ScanStatsOut] = None


class ScanTriggerResponse(BaseModel):
    status: str  # 'started' or 'busy'
