"""
message_queue.py - Pending Message Queue

Heap-based priority queue feeding the simulation loop.

Ordering: by logical time, then by insertion order. Python ints compare with
arbitrary precision, so logical times of any size order correctly. The
insertion counter is part of the queue state, which keeps the tie-break
deterministic across snapshot and restore.
"""

from __future__ import annotations
from typing import List, Optional, Tuple
import heapq

from .core import Message


# Heap entry: (lt, insertion sequence, message)
_Entry = Tuple[int, int, Message]


class MessageQueue:
    """
    Priority queue of messages awaiting execution.

    Only messages with a destination are accepted. Outbound events are
    filtered by the caller before they ever reach the queue.
    """

    def __init__(self):
        self._heap: List[_Entry] = []
        self._next_seq: int = 0

    def enqueue(self, message: Message) -> None:
        """
        Add a message to the queue.

        Raises:
            ValueError: If the message has no destination
        """
        if message.dst is None:
            raise ValueError(f"Cannot enqueue event message {message.hash}")
        heapq.heappush(self._heap, (message.lt, self._next_seq, message))
        self._next_seq += 1

    def pop_lowest(self) -> Optional[Message]:
        """Remove and return the message with the lowest ordering key, or None if empty."""
        if not self._heap:
            return None
        return heapq.heappop(self._heap)[2]

    def peek(self) -> Optional[Message]:
        """Next message without removing it."""
        return self._heap[0][2] if self._heap else None

    def size(self) -> int:
        return len(self._heap)

    def is_empty(self) -> bool:
        return not self._heap

    def __len__(self) -> int:
        return len(self._heap)

    def __repr__(self) -> str:
        return f"MessageQueue({len(self._heap)} pending)"
