"""Statistics tracking for library sync passes."""

from dataclasses import asdict, dataclass


@dataclass
class ScanStats:
    """Counters collected during one synchronization pass.

    Attributes:
        processed: Audio files found by the walk (attempted).
        created: New catalog records inserted.
        skipped: Files already in the catalog (metadata not re-read).
        errors: Files whose catalog write failed.
        walk_errors: Directories that could not be listed (subtree skipped).
        pruned: Records deleted because their file no longer exists.
        prune_errors: Records whose stat or delete failed during the prune.

    Example:
        >>> stats = ScanStats()
        >>> stats.processed += 1
        >>> stats.created += 1
        >>> stats.to_dict()["created"]
        1
    """

    processed: int = 0
    created: int = 0
    skipped: int = 0
    errors: int = 0
    walk_errors: int = 0
    pruned: int = 0
    prune_errors: int = 0

    def to_dict(self) -> dict:
        """Convert stats to a dictionary for API responses."""
        return asdict(self)

    def __str__(self) -> str:
        return (
            f"ScanStats(processed={self.processed}, created={self.created}, "
            f"skipped={self.skipped}, errors={self.errors}, "
            f"walk_errors={self.walk_errors}, pruned={self.pruned})"
        )
