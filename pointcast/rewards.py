"""In-memory reward cache backed by a store, with cooldown tracking."""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Protocol

from .models import Reward

log = logging.getLogger(__name__)


class _RewardStore(Protocol):
    def load_rewards(self) -> Iterable[Reward]: ...

    def save_reward(self, reward: Reward) -> None: ...

    def delete_reward(self, reward_id: str) -> None: ...


class RedemptionRejected(Exception):
    """A redemption cannot be played; the message gives the reason."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class RewardManager:
    """Keeps rewards cached by id and in step with the store."""

    def __init__(
        self,
        database: _RewardStore | None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._database = database
        self._clock = clock or datetime.now
        self._rewards: dict[str, Reward] = {}
        self._cooldowns: dict[str, datetime] = {}

    def _store(self) -> _RewardStore:
        if self._database is None:
            raise RuntimeError("no reward database configured")
        return self._database

    def load_all(self) -> None:
        """Replace the cache with every reward from the store."""
        rewards = list(self._store().load_rewards())
        self._rewards = {reward.id: copy.deepcopy(reward) for reward in rewards}
        log.info("Cached %d rewards.", len(self._rewards))

    def all_rewards(self) -> list[Reward]:
        """Cached rewards, ordered by id."""
        return [copy.deepcopy(self._rewards[key]) for key in sorted(self._rewards)]

    def get(self, reward_id: str) -> Reward | None:
        reward = self._rewards.get(reward_id)
        return copy.deepcopy(reward) if reward is not None else None

    def save(self, reward: Reward) -> None:
        self._store().save_reward(reward)
        self._rewards[reward.id] = copy.deepcopy(reward)
        log.info("Saved reward and updated cache: %s", reward.name)

    def delete(self, reward_id: str) -> None:
        self._store().delete_reward(reward_id)
        self._rewards.pop(reward_id, None)
        self._cooldowns.pop(reward_id, None)
        log.info("Deleted reward and flushed cache: %s", reward_id)

    def validate_redemption(self, reward_id: str, username: str) -> None:
        """Raise RedemptionRejected if the reward cannot be redeemed now."""
        reward = self._rewards.get(reward_id)
        if reward is None:
            raise RedemptionRejected("設定されていない報酬IDです。")
        if not reward.enabled:
            raise RedemptionRejected(f"報酬 '{reward.name}' は無効化されています。")
        available_at = self._cooldowns.get(reward_id)
        now = self._clock()
        if available_at is not None and now < available_at:
            remaining = int((available_at - now).total_seconds())
            raise RedemptionRejected(f"クールダウン中です（残り {remaining} 秒）。")

    def trigger_cooldown(self, reward_id: str) -> None:
        reward = self._rewards.get(reward_id)
        if reward is None or reward.cooldown <= 0:
            return
        available_at = self._clock() + timedelta(seconds=reward.cooldown)
        self._cooldowns[reward_id] = available_at
        log.info(
            "Triggered cooldown for reward '%s' until %s",
            reward.name,
            available_at.strftime("%Y-%m-%d %H:%M:%S"),
        )