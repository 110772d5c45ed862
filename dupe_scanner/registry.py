"""
Shared digest -> first path mapping used by scan workers
"""

import threading
from typing import Dict, Optional


class FingerprintRegistry:
    """
    Maps a content digest to the first path seen with it.

    Lookups read the dict directly; only a miss takes the insert lock,
    and the lookup is repeated under it so that two workers carrying the
    same digest cannot both insert. Entries are never replaced or removed.
    """

    def __init__(self) -> None:
        self._seen: Dict[bytes, str] = {}
        self._insert_lock = threading.Lock()

    def check_or_insert(self, digest: bytes, path: str) -> Optional[str]:
        """
        Record path for digest unless another path already holds it

        Args:
            digest: Content digest of the file
            path: Path of the file that produced the digest

        Returns:
            None if path is now the stored value, otherwise the stored path
        """
        existing = self._seen.get(digest)
        if existing is not None:
            return existing

        with self._insert_lock:
            existing = self._seen.get(digest)
            if existing is not None:
                return existing
            self._seen[digest] = path
            return None

    def get(self, digest: bytes) -> Optional[str]:
        return self._seen.get(digest)

    def snapshot(self) -> Dict[bytes, str]:
        """Return a copy of all entries"""
        with self._insert_lock:
            return dict(self._seen)

    def __contains__(self, digest: bytes) -> bool:
        return digest in self._seen

    def __len__(self) -> int:
        return len(self._seen)
