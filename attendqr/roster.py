import asyncio
import json
import logging
from collections import defaultdict

logger = logging.getLogger(__name__)


class RosterBroker:
    """In-process fan-out of attendee events to lecturers watching a session."""

    def __init__(self, max_queue_size=100):
        self.max_queue_size = max_queue_size
        self._subscribers = defaultdict(set)

    def subscribe(self, session_id):
        queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[session_id].add(queue)
        return queue

    def unsubscribe(self, session_id, queue):
        queues = self._subscribers.get(session_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[session_id]

    def subscriber_count(self, session_id):
        return len(self._subscribers.get(session_id, ()))

    def publish(self, session_id, event, data):
        """Queue an (event, data) pair for every subscriber; returns how many received it."""
        delivered = 0
        for queue in list(self._subscribers.get(session_id, ())):
            try:
                queue.put_nowait((event, data))
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Dropping roster event for a slow subscriber on session %s", session_id)
        return delivered


def format_sse(event, data):
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


roster_broker = RosterBroker()
