"""Progress fan-out for open viewing sessions: WebSocket snapshots and store change notifications."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any


class ProgressHub:
    """
    Latest-wins fan-out of watch progress, keyed by channel.

    Two kinds of channel share this class: a session id, whose subscribers
    are progress WebSockets receiving tracker snapshots, and a store
    progress key, whose subscribers are open sessions rehydrating from
    documents saved elsewhere. A queue holds one payload, since only the
    newest snapshot or document matters to either consumer.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._subscribers: dict[str, set[asyncio.Queue[dict[str, Any]]]] = defaultdict(set)

    async def subscribe(self, channel: str) -> asyncio.Queue[dict[str, Any]]:
        q: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=1)
        async with self._lock:
            self._subscribers[channel].add(q)
        return q

    async def unsubscribe(self, channel: str, q: asyncio.Queue[dict[str, Any]]) -> None:
        async with self._lock:
            subs = self._subscribers.get(channel)
            if not subs:
                return
            subs.discard(q)
            if not subs:
                self._subscribers.pop(channel, None)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        async with self._lock:
            subs = list(self._subscribers.get(channel, set()))
        if not subs:
            return
        for q in subs:
            # An unread older snapshot is superseded.
            if q.full():
                try:
                    _ = q.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                # Another publisher refilled it first; its payload is as new.
                pass

    def publish_nowait(self, channel: str, payload: dict[str, Any]) -> None:
        """Publish from a tracker change callback, which runs synchronously."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside the loop no WebSocket or follower can be listening.
            return
        loop.create_task(self.publish(channel, payload))


# Snapshots streamed to progress WebSocket clients, keyed by session id.
progress_hub = ProgressHub()
