"""
Live connection registry.

Maps each device identity to its single authenticated session. All
reads and writes go through one asyncio lock so that "replace on new
authentication" and "remove on close" cannot interleave.
"""

import asyncio
import logging
from typing import Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")


class ConnectionRegistry(Generic[S]):
    """
    device_id -> live session.

    Invariant: at most one entry per identity. Registering an identity
    that is already present replaces the entry (last writer wins) and
    hands the superseded session back to the caller.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, S] = {}
        self._lock = asyncio.Lock()

    async def register(self, device_id: str, session: S) -> Optional[S]:
        """
        Bind device_id to session.

        Returns:
            The session previously registered for device_id, if any
        """
        async with self._lock:
            previous = self._sessions.get(device_id)
            self._sessions[device_id] = session

        if previous is not None and previous is not session:
            logger.info(f"Session for {device_id} replaced by a newer connection")
            return previous
        return None

    async def unregister(self, device_id: str, session: S) -> bool:
        """
        Remove device_id only if it still maps to this exact session.

        A close racing a newer registration for the same identity
        leaves the newer entry in place.
        """
        async with self._lock:
            if self._sessions.get(device_id) is not session:
                return False
            del self._sessions[device_id]
        return True

    async def get(self, device_id: str) -> Optional[S]:
        async with self._lock:
            return self._sessions.get(device_id)

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    async def device_ids(self) -> List[str]:
        async with self._lock:
            return sorted(self._sessions)
