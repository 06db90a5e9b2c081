from typing import Dict, List, Optional, Set
from datetime import datetime
from collections import defaultdict
import asyncio
import secrets
import time

from support_agent.domain.context.memory.checkpoint_store import CheckpointStore, InMemoryCheckpointStore
from support_agent.domain.models.agent_state import Turn
from support_agent.infrastructure.observability.logging import agent_logger

SESSION_SUFFIX_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def generate_session_id() -> str:
    """Timestamp plus random suffix, e.g. ``session_1718000000000_k3j9x0a1b``"""

    suffix = "".join(secrets.choice(SESSION_SUFFIX_ALPHABET) for _ in range(9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


class SessionStore:
    """Append-only conversation history per thread.

    Unseen thread ids have an empty history. Nothing is evicted; sessions live
    for the lifetime of the process.
    """

    def __init__(self, checkpoint_store: Optional[CheckpointStore] = None):
        self.checkpoints = checkpoint_store or InMemoryCheckpointStore()
        self.threads: Set[str] = set()
        self._issued: Set[str] = set()
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def append(self, thread_id: str, turn: Turn):
        """Add a turn to a thread's history"""

        async with self._locks[thread_id]:
            state = await self.checkpoints.load(thread_id)
            if state is None:
                state = {
                    "thread_id": thread_id,
                    "turns": [],
                    "created_at": datetime.utcnow().isoformat(),
                }
                agent_logger.log_session_event("created", thread_id)

            state["turns"].append(turn.model_dump(mode="json"))
            state["last_updated"] = datetime.utcnow().isoformat()
            await self.checkpoints.save(thread_id, state)
            self.threads.add(thread_id)

    async def history(self, thread_id: str) -> List[Turn]:
        """Get the ordered history for a thread"""

        async with self._locks[thread_id]:
            state = await self.checkpoints.load(thread_id)

        if state is None:
            return []
        return [Turn.model_validate(turn) for turn in state["turns"]]

    def new_session_id(self) -> str:
        """Mint a session id never issued before in this process"""

        session_id = generate_session_id()
        while session_id in self._issued or session_id in self.threads:
            session_id = generate_session_id()
        self._issued.add(session_id)
        return session_id

    async def reset(self, thread_id: Optional[str] = None) -> str:
        """Detach the client from a thread; the old history is kept"""

        new_id = self.new_session_id()
        agent_logger.log_session_event("reset", new_id, data={"previous_session_id": thread_id})
        return new_id
