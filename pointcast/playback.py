"""Sequential playback queue for redeemed rewards and their effects."""

from __future__ import annotations

import copy
import logging
import random
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Protocol

from .models import Effect, Reward

log = logging.getLogger(__name__)


class _Signal:
    """A list of handlers called in order with the emitted arguments."""

    def __init__(self) -> None:
        self._handlers: list[Callable[..., Any]] = []

    def connect(self, handler: Callable[..., Any]) -> None:
        self._handlers.append(handler)

    def disconnect(self, handler: Callable[..., Any]) -> None:
        self._handlers.remove(handler)

    def emit(self, *args: Any) -> None:
        for handler in list(self._handlers):
            handler(*args)


class _UsageStore(Protocol):
    def load_rewards(self) -> Iterable[Reward]: ...

    def log_usage(self, reward_id: str, username: str, timestamp: datetime) -> None: ...


class _Chooser(Protocol):
    def randrange(self, stop: int) -> int: ...


@dataclass
class QueueItem:
    """One redemption waiting to play, with the effects it has left."""

    queue_id: str
    reward_id: str
    username: str
    timestamp: datetime
    effects: deque[Effect] = field(default_factory=deque)


class EffectQueue:
    """Plays queued redemptions one effect at a time, in arrival order."""

    def __init__(self, database: _UsageStore | None = None, rng: _Chooser | None = None) -> None:
        self._database = database
        self._rng = rng if rng is not None else random.Random()
        self._queue: deque[QueueItem] = deque()
        self._playing = False
        self._lock = threading.Lock()

        self.queue_updated = _Signal()
        self.play_effect_requested = _Signal()
        self.stop_all_requested = _Signal()
        self.clear_queue_requested = _Signal()

    @property
    def is_playing(self) -> bool:
        return self._playing

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def _find_reward(self, reward_id: str) -> Reward | None:
        if self._database is None:
            return None
        try:
            rewards = list(self._database.load_rewards())
        except Exception:
            log.exception("Failed to load rewards while enqueuing %s", reward_id)
            return None
        return next((reward for reward in rewards if reward.id == reward_id), None)

    def _build_item(self, reward: Reward, reward_id: str, username: str, timestamp: datetime) -> QueueItem:
        item = QueueItem(
            queue_id=str(uuid.uuid4()),
            reward_id=reward_id,
            username=username,
            timestamp=timestamp,
        )
        if reward.mode == "random":
            index = self._rng.randrange(len(reward.effects))
            item.effects.append(copy.deepcopy(reward.effects[index]))
            log.info("Random playback mode selected effect index: %d", index)
        else:
            item.effects.extend(copy.deepcopy(effect) for effect in reward.effects)
        return item

    def _push(self, item: QueueItem) -> None:
        with self._lock:
            self._queue.append(item)
        pending = len(self)
        log.info("Added to queue. Current queue length: %d", pending)
        self.queue_updated.emit(pending)
        if not self._playing:
            self._playing = True
            self._process_next()

    def enqueue_redemption(self, reward_id: str, username: str, timestamp: datetime) -> QueueItem | None:
        """Queue a redemption of a stored reward and log its use.

        Returns the queued item, or None when the reward has no effects.
        """
        log.info("Enqueuing redemption for Reward: %s, User: %s", reward_id, username)
        reward = self._find_reward(reward_id)
        if reward is None:
            log.warning("Reward with ID %s was not found. Using empty fallback reward.", reward_id)
            reward = Reward(id=reward_id, name="Unknown Reward", mode="sequential")
        if not reward.effects:
            log.warning("Reward '%s' has no configured effects. Skipping playback.", reward.name)
            return None

        item = self._build_item(reward, reward_id, username, timestamp)
        if self._database is not None:
            self._database.log_usage(reward_id, username, timestamp)
        self._push(item)
        return item

    def enqueue_reward(self, reward: Reward, username: str, timestamp: datetime) -> QueueItem | None:
        """Queue a reward directly, without lookup or usage logging."""
        log.info("Enqueuing test redemption for Reward: %s, User: %s", reward.id, username)
        if not reward.effects:
            log.warning("Reward '%s' has no configured effects. Skipping playback.", reward.name)
            return None
        item = self._build_item(reward, reward.id, username, timestamp)
        self._push(item)
        return item

    def clear(self) -> None:
        """Drop every pending redemption."""
        log.info("Clearing all pending events from the queue.")
        with self._lock:
            self._queue.clear()
            self._playing = False
        self.queue_updated.emit(0)
        self.clear_queue_requested.emit()

    def stop_all(self) -> None:
        """Drop everything and ask the overlay to stop what is showing."""
        log.warning("Emergency stop triggered! Stopping all active overlay effects.")
        with self._lock:
            self._queue.clear()
            self._playing = False
        self.queue_updated.emit(0)
        self.stop_all_requested.emit()

    def _process_next(self) -> None:
        with self._lock:
            while self._queue and not self._queue[0].effects:
                done = self._queue.popleft()
                log.info("Completed all effects for Queue ID: %s", done.queue_id)
            if not self._queue:
                self._playing = False
                log.info("Queue is now empty. Idle state.")
                return
            item = self._queue[0]
            effect = item.effects[0]

        self.queue_updated.emit(len(self))
        log.info("Playing next remaining effect for Queue ID: %s (%s)", item.queue_id, effect.type)
        self.play_effect_requested.emit(item, effect)

    def on_effect_completed(self, queue_id: str) -> None:
        """Advance past the current effect if it belongs to the given item."""
        log.info("Received effect completed confirmation for Queue ID: %s", queue_id)
        with self._lock:
            valid = bool(self._queue) and self._queue[0].queue_id == queue_id
            if valid and self._queue[0].effects:
                self._queue[0].effects.popleft()
        if valid:
            self._process_next()
        else:
            log.warning("Discarding stale or invalid effect completed response for Queue ID: %s", queue_id)