"""
Game events.

Each game owns its own EventBus; subscribers are passed in when the game is
created or added later with subscribe(). Events produced by a command are
delivered only after the command has been accepted, in order.
"""

import logging
from enum import IntEnum
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class EventType(IntEnum):
    MATCH_STARTED = 0
    ROUND_STARTED = 1
    TILE_DRAWN = 2
    TILE_DISCARDED = 3
    MELD_DECLARED = 4
    RIICHI_DECLARED = 5
    WIN_BY_CLAIM = 6
    WIN_BY_DRAW = 7
    ROUND_DRAWN = 8
    SCORE_TRANSFERRED = 9
    MATCH_FINISHED = 10


@dataclass(frozen=True)
class GameEvent:
    sequence: int
    event_type: EventType
    data: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {"sequence": self.sequence, "type": self.event_type.name, "data": self.data}


Subscriber = Callable[[GameEvent], None]


class EventBus:
    """Fan-out of events to the subscribers of one game"""

    def __init__(self, subscribers: Optional[Iterable[Subscriber]] = None):
        self._subscribers: List[Subscriber] = list(subscribers) if subscribers else []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.remove(subscriber)

    def publish(self, events: Iterable[GameEvent]) -> None:
        for event in events:
            for subscriber in list(self._subscribers):
                try:
                    subscriber(event)
                except Exception:
                    # A broken subscriber must not affect the game or other subscribers
                    logger.exception(f"Subscriber {subscriber!r} failed on {event.event_type.name}")

    def __len__(self) -> int:
        return len(self._subscribers)
