"""Reward and effect records, with their JSON representation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1


def _text(obj: Mapping[str, Any], key: str, default: str = "") -> str:
    value = obj.get(key)
    return value if isinstance(value, str) else default


def _integer(obj: Mapping[str, Any], key: str, default: int) -> int:
    value = obj.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if _INT_MIN <= value <= _INT_MAX else default
    if isinstance(value, float) and value.is_integer() and _INT_MIN <= value <= _INT_MAX:
        return int(value)
    return default


def _flag(obj: Mapping[str, Any], key: str, default: bool) -> bool:
    value = obj.get(key)
    return value if isinstance(value, bool) else default


def _mapping(obj: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, Mapping) else {}


def _sequence(obj: Mapping[str, Any], key: str) -> list[Any]:
    value = obj.get(key)
    return list(value) if isinstance(value, (list, tuple)) else []


@dataclass
class EffectPosition:
    """Where an effect is placed on the overlay."""

    preset: str = "center"
    offset_x: int = 0
    offset_y: int = 0

    def to_json(self) -> dict[str, Any]:
        return {"preset": self.preset, "offsetX": self.offset_x, "offsetY": self.offset_y}

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> EffectPosition:
        return cls(
            preset=_text(obj, "preset") or "center",
            offset_x=_integer(obj, "offsetX", 0),
            offset_y=_integer(obj, "offsetY", 0),
        )


@dataclass
class TextStyle:
    """Font and outline of an effect's text."""

    font: str = "Arial"
    size: int = 32
    color: str = "#FFFFFF"
    border_color: str = "#000000"
    border_width: int = 2

    def to_json(self) -> dict[str, Any]:
        return {
            "font": self.font,
            "size": self.size,
            "color": self.color,
            "borderColor": self.border_color,
            "borderWidth": self.border_width,
        }

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> TextStyle:
        return cls(
            font=_text(obj, "font", "Arial"),
            size=_integer(obj, "size", 32),
            color=_text(obj, "color", "#FFFFFF"),
            border_color=_text(obj, "borderColor", "#000000"),
            border_width=_integer(obj, "borderWidth", 2),
        )


@dataclass
class Effect:
    """One overlay effect: image, video, sound or text."""

    type: str = ""
    file_path: str = ""
    audio_path: str = ""
    duration: int = 5
    scale: int = 100
    position: EffectPosition = field(default_factory=EffectPosition)
    animation: str = "fade"
    volume: int = 80
    text: str = ""
    text_style: TextStyle = field(default_factory=TextStyle)
    is_custom_html_only: bool = False
    html_path: str = ""

    def to_json(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "filePath": self.file_path,
            "audioPath": self.audio_path,
            "duration": self.duration,
            "scale": self.scale,
            "position": self.position.to_json(),
            "animation": self.animation,
            "volume": self.volume,
            "text": self.text,
            "textStyle": self.text_style.to_json(),
            "isCustomHtmlOnly": self.is_custom_html_only,
            "htmlPath": self.html_path,
        }

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> Effect:
        return cls(
            type=_text(obj, "type"),
            file_path=_text(obj, "filePath"),
            audio_path=_text(obj, "audioPath"),
            duration=_integer(obj, "duration", 5),
            scale=_integer(obj, "scale", 100),
            position=EffectPosition.from_json(_mapping(obj, "position")),
            animation=_text(obj, "animation", "fade"),
            volume=_integer(obj, "volume", 80),
            text=_text(obj, "text"),
            text_style=TextStyle.from_json(_mapping(obj, "textStyle")),
            is_custom_html_only=_flag(obj, "isCustomHtmlOnly", False),
            html_path=_text(obj, "htmlPath"),
        )


@dataclass
class Reward:
    """A channel-point reward and the effects it plays."""

    id: str = ""
    name: str = ""
    cost: int = 0
    cooldown: int = 0
    allowed_roles: list[str] = field(default_factory=list)
    enabled: bool = True
    mode: str = "sequential"
    effects: list[Effect] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cost": self.cost,
            "cooldown": self.cooldown,
            "allowedRoles": list(self.allowed_roles),
            "enabled": self.enabled,
            "mode": self.mode,
            "effects": [effect.to_json() for effect in self.effects],
        }

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> Reward:
        return cls(
            id=_text(obj, "id"),
            name=_text(obj, "name"),
            cost=_integer(obj, "cost", 0),
            cooldown=_integer(obj, "cooldown", 0),
            allowed_roles=[
                role if isinstance(role, str) else "" for role in _sequence(obj, "allowedRoles")
            ],
            enabled=_flag(obj, "enabled", True),
            mode=_text(obj, "mode", "sequential"),
            effects=[
                Effect.from_json(item if isinstance(item, Mapping) else {})
                for item in _sequence(obj, "effects")
            ],
        )