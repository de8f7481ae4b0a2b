"""
Per-game event fan-out.

Each WebSocket viewer subscribes to a game id and gets its own unbounded
asyncio.Queue. publish() never blocks the game service: a slow viewer only
grows its own queue.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from chessreview.events import GameEvent

logger = logging.getLogger(__name__)


class GameBroadcaster:
    def __init__(self) -> None:
        self._subscribers: dict[str, set[asyncio.Queue[GameEvent]]] = defaultdict(set)

    def subscribe(self, game_id: str) -> asyncio.Queue[GameEvent]:
        queue: asyncio.Queue[GameEvent] = asyncio.Queue()
        self._subscribers[game_id].add(queue)
        logger.debug("Viewer joined game %s (%d watching)", game_id, len(self._subscribers[game_id]))
        return queue

    def unsubscribe(self, game_id: str, queue: asyncio.Queue[GameEvent]) -> None:
        subs = self._subscribers.get(game_id)
        if not subs:
            return
        subs.discard(queue)
        if not subs:
            del self._subscribers[game_id]

    def subscriber_count(self, game_id: str) -> int:
        return len(self._subscribers.get(game_id, ()))

    def publish(self, game_id: str, event: GameEvent) -> None:
        for queue in self._subscribers.get(game_id, ()):
            queue.put_nowait(event)
