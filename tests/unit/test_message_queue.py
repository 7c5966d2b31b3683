"""
test_message_queue.py - Unit tests for MessageQueue

Tests cover:
1. Ordering by logical time
2. Insertion-order tie-break
3. Event rejection
4. Empty-queue behaviour
"""

import copy

import pytest

from localnet import Message, MessageQueue


def _msg(name: str, lt: int = 0, dst: str = "0:dst") -> Message:
    return Message(hash=name, boc=f"boc:{name}", dst=dst, lt=lt)


class TestMessageQueueOrdering:
    """Tests for pop order."""

    def test_pops_lowest_lt_first(self):
        queue = MessageQueue()
        queue.enqueue(_msg("c", 30))
        queue.enqueue(_msg("a", 10))
        queue.enqueue(_msg("b", 20))

        assert [queue.pop_lowest().hash for _ in range(3)] == ["a", "b", "c"]

    def test_equal_lt_pops_in_insertion_order(self):
        queue = MessageQueue()
        for name in ["first", "second", "third"]:
            queue.enqueue(_msg(name, 5))

        assert [queue.pop_lowest().hash for _ in range(3)] == ["first", "second", "third"]

    def test_big_logical_times_compare_numerically(self):
        """Logical times beyond 64 bits still order numerically, not lexically."""
        queue = MessageQueue()
        queue.enqueue(_msg("huge", 2 ** 80))
        queue.enqueue(_msg("nine", 9))
        queue.enqueue(_msg("ten", 10))

        assert [queue.pop_lowest().hash for _ in range(3)] == ["nine", "ten", "huge"]

    def test_peek_does_not_remove(self):
        queue = MessageQueue()
        queue.enqueue(_msg("a", 1))
        assert queue.peek().hash == "a"
        assert queue.size() == 1


class TestMessageQueueEdges:
    """Edge cases."""

    def test_pop_empty_returns_none(self):
        queue = MessageQueue()
        assert queue.pop_lowest() is None
        assert queue.peek() is None
        assert queue.is_empty()

    def test_rejects_event_message(self):
        queue = MessageQueue()
        with pytest.raises(ValueError, match="event"):
            queue.enqueue(Message(hash="ev", boc="boc", dst=None))
        assert len(queue) == 0

    def test_size_tracks_contents(self):
        queue = MessageQueue()
        queue.enqueue(_msg("a"))
        queue.enqueue(_msg("b"))
        assert queue.size() == 2
        queue.pop_lowest()
        assert len(queue) == 1

    def test_tie_break_survives_deep_copy(self):
        """A copied queue keeps numbering insertions after the original's counter."""
        queue = MessageQueue()
        queue.enqueue(_msg("a", 1))
        copied = copy.deepcopy(queue)
        copied.enqueue(_msg("b", 1))
        copied.enqueue(_msg("c", 0))

        assert [copied.pop_lowest().hash for _ in range(3)] == ["c", "a", "b"]
        assert queue.size() == 1
