"""Editing helpers for the reward database viewer: table rows, filters and effect edits."""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass
from typing import Iterable, Sequence

from .models import Effect, EffectPosition, Reward

EFFECT_HEADERS = (
    "🎁 報酬名 (ポイント数)",
    "🔢 演出",
    "🎨 種類",
    "🖼️ 画像/動画アセット",
    "🔊 効果音",
    "⏱️ 秒",
    "🔉 音量",
    "💬 テキスト",
)

_TYPE_LABELS = {
    "image": ("🖼️ 画像", "#4CAF50"),
    "video": ("🎥 動画", "#FF9800"),
    "sound": ("🔊 音声", "#2196F3"),
    "text": ("💬 テキスト", "#9C27B0"),
}
_UNKNOWN_TYPE = ("不明", "#FFFFFF")

_MAX_COST = 1_000_000
_PLACEHOLDER = "-"


def _or_placeholder(value: str) -> str:
    return value if value else _PLACEHOLDER


@dataclass(frozen=True)
class EffectRow:
    """One table row: a single effect of a reward, ready for display."""

    reward_id: str
    effect_index: int
    name: str
    index_label: str
    type_label: str
    type_color: str
    file_path: str
    audio_path: str
    duration: str
    volume: str
    text: str

    @property
    def cells(self) -> tuple[str, ...]:
        """The eight displayed column texts, in header order."""
        return (
            self.name,
            self.index_label,
            self.type_label,
            self.file_path,
            self.audio_path,
            self.duration,
            self.volume,
            self.text,
        )


def effect_rows(rewards: Iterable[Reward]) -> list[EffectRow]:
    """One row per effect of every reward, in reward then effect order."""
    rows: list[EffectRow] = []
    for reward in rewards:
        for index, effect in enumerate(reward.effects):
            label, color = _TYPE_LABELS.get(effect.type, _UNKNOWN_TYPE)
            rows.append(
                EffectRow(
                    reward_id=reward.id,
                    effect_index=index,
                    name=f"{reward.name} ({reward.cost}pt)",
                    index_label=f"演出 [{index}]",
                    type_label=label,
                    type_color=color,
                    file_path=_or_placeholder(effect.file_path),
                    audio_path=_or_placeholder(effect.audio_path),
                    duration=f"{effect.duration}秒",
                    volume=f"{effect.volume}%",
                    text=_or_placeholder(effect.text),
                )
            )
    return rows


def filter_rows(rows: Iterable[EffectRow], text: str) -> list[EffectRow]:
    """Rows with any cell containing the text, ignoring case; all rows for empty text."""
    rows = list(rows)
    if not text:
        return rows
    needle = text.casefold()
    return [row for row in rows if any(needle in cell.casefold() for cell in row.cells)]


def effect_field_states(effect_type: str) -> dict[str, bool]:
    """Which editor fields are usable for an effect of the given type."""
    has_visual = effect_type in ("image", "video")
    has_audio = effect_type != "text"
    placed = effect_type != "sound"
    return {
        "file_path": has_visual,
        "scale": has_visual,
        "audio_path": has_audio,
        "volume": has_audio,
        "text": effect_type == "text",
        "position": placed,
        "animation": placed,
    }


def normalize_effect(effect: Effect) -> Effect:
    """A copy with paths the type cannot use cleared: no file for sound, no audio for text."""
    result = dataclasses.replace(effect)
    if result.type == "sound":
        result.file_path = ""
    if result.type == "text":
        result.audio_path = ""
    return result


def is_reward_empty(reward: Reward) -> bool:
    """True when no effect of the reward has a file, an audio file or text."""
    return all(
        not (effect.file_path or effect.audio_path or effect.text) for effect in reward.effects
    )


def new_reward(name: str, cost: int) -> Reward:
    """A fresh enabled reward with a generated id and one default image effect."""
    if not name:
        raise ValueError("reward name must not be empty")
    if not 0 <= cost <= _MAX_COST:
        raise ValueError(f"cost must be between 0 and {_MAX_COST}")
    effect = Effect(
        type="image",
        duration=5,
        scale=100,
        volume=80,
        animation="fade",
        position=EffectPosition(preset="center"),
    )
    return Reward(
        id=f"custom_{str(uuid.uuid4())[:12]}",
        name=name,
        cost=cost,
        cooldown=0,
        allowed_roles=["everyone"],
        enabled=True,
        mode="sequential",
        effects=[effect],
    )


def new_sound_effect() -> Effect:
    """The effect added to a reward by default: a short sound."""
    return Effect(
        type="sound",
        duration=3,
        scale=100,
        volume=80,
        animation="fade",
        position=EffectPosition(preset="center"),
    )


def remove_effect(reward: Reward, index: int) -> int | None:
    """Remove one effect from the reward.

    Returns the index of the effect to select next, or None when the reward
    has no effects left and should be deleted. Raises IndexError for an
    index outside the effect list.
    """
    if not 0 <= index < len(reward.effects):
        raise IndexError(f"effect index {index} out of range")
    del reward.effects[index]
    if not reward.effects:
        return None
    return max(0, index - 1)


def select_row(rows: Sequence[EffectRow], reward_id: str, effect_index: int) -> int | None:
    """Position of the row for the given reward and effect, or None."""
    return next(
        (
            position
            for position, row in enumerate(rows)
            if row.reward_id == reward_id and row.effect_index == effect_index
        ),
        None,
    )