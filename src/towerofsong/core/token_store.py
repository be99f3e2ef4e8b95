"""In-memory store of issued API tokens."""

import secrets
import threading
from typing import Optional, Set


class TokenStore:
    """Thread-safe set of valid session tokens.

    Tokens do not expire; they live until the process exits. Guarded by its
    own lock, unrelated to the scan lock.
    """

    def __init__(self) -> None:
        self._tokens: Set[str] = set()
        self._lock = threading.Lock()

    def issue(self) -> str:
        """Create, remember and return a new token."""
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens.add(token)
        return token

    def is_valid(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            return token in self._tokens

    def revoke(self, token: str) -> bool:
        with self._lock:
            if token in self._tokens:
                self._tokens.discard(token)
                return True
        return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
