"""
Agent Locks - per-agent asyncio locks within one process.

Two registries exist and must not be nested the other way round:

- ``turn_locks``: one chat turn per agent at a time (optional, see
  ``settings.serialize_agent_turns``)
- ``memory_locks``: profile-memory replacement vs. retrieval, so a reader
  never observes the window between the delete and the insert

A chat turn holds its turn lock while retrieval briefly takes the memory
lock; nothing takes them in the opposite order.
"""

import asyncio
import weakref


class AgentLocks:
    """
    Lazily created lock per agent id.

    Entries are weak: a lock disappears once no holder or waiter references
    it, so deleted agents leave nothing behind.
    """

    def __init__(self, name: str):
        self.name = name
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, agent_id: str) -> asyncio.Lock:
        lock = self._locks.get(agent_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[agent_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


turn_locks = AgentLocks("turn")
memory_locks = AgentLocks("memory")
