from typing import Dict, Any, Optional, Protocol
import asyncio
import copy


class CheckpointStore(Protocol):
    """Minimal save/restore contract keyed by thread identifier"""

    async def save(self, thread_id: str, state: Dict[str, Any]) -> None:
        ...

    async def load(self, thread_id: str) -> Optional[Dict[str, Any]]:
        ...


class InMemoryCheckpointStore:
    """Process-local checkpoint store; best effort, lost on restart"""

    def __init__(self):
        self.checkpoints: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def save(self, thread_id: str, state: Dict[str, Any]) -> None:
        """Save a copy of the state for a thread"""

        async with self._lock:
            self.checkpoints[thread_id] = copy.deepcopy(state)

    async def load(self, thread_id: str) -> Optional[Dict[str, Any]]:
        """Load a copy of the state for a thread, if any"""

        async with self._lock:
            state = self.checkpoints.get(thread_id)
            return copy.deepcopy(state) if state is not None else None
