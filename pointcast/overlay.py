"""Messages sent to overlay clients, and the hub that fans them out."""

from __future__ import annotations

import json
import logging
import posixpath
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Protocol

from .assets import AssetRegistry
from .models import Effect
from .playback import QueueItem, _Signal

log = logging.getLogger(__name__)

_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "webm": "video/webm",
    "mp4": "video/mp4",
}


class _Client(Protocol):
    @property
    def connected(self) -> bool: ...

    def send(self, message: str) -> None: ...


def _encode(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), sort_keys=True)


def mime_type(path: str) -> str:
    """Content type for a served asset, chosen by file extension."""
    name = posixpath.basename(str(path).replace("\\", "/"))
    _, dot, suffix = name.rpartition(".")
    return _MIME_TYPES.get(suffix.lower() if dot else "", "application/octet-stream")


def _local_time(timestamp: datetime) -> datetime:
    return timestamp.astimezone() if timestamp.tzinfo is not None else timestamp


def render_effect_text(text: str, item: QueueItem) -> str:
    """Fill in the {user}, {reward_id} and {time} placeholders."""
    stamp = _local_time(item.timestamp).strftime("%Y-%m-%d %H:%M:%S")
    return (
        text.replace("{user}", item.username)
        .replace("{reward_id}", item.reward_id)
        .replace("{time}", stamp)
    )


def build_effect_message(item: QueueItem, effect: Effect, served_file: str, served_audio: str) -> str:
    """Compact JSON for a show_effect command."""
    effect_obj = effect.to_json()
    effect_obj["text"] = render_effect_text(effect.text, item)
    effect_obj["filePath"] = served_file
    effect_obj["audioPath"] = served_audio
    return _encode({"type": "show_effect", "data": {"queueId": item.queue_id, "effect": effect_obj}})


def build_custom_html_message(url: str, duration: int, queue_id: str) -> str:
    """Compact JSON for a show_custom_html command."""
    return _encode({"type": "show_custom_html", "url": url, "duration": duration, "queueId": queue_id})


def _thread_timer(delay: float, callback: Callable[[], None]) -> None:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()


class OverlayHub:
    """Tracks connected overlay clients and sends them effect commands."""

    def __init__(
        self,
        assets: AssetRegistry,
        app_dir: str | Path = ".",
        schedule: Callable[[float, Callable[[], None]], Any] | None = None,
    ) -> None:
        self.assets = assets
        self.app_dir = str(app_dir)
        self._schedule = schedule or _thread_timer
        self._clients: list[_Client] = []

        self.effect_finished = _Signal()
        self.client_count_changed = _Signal()

    @property
    def clients(self) -> tuple[_Client, ...]:
        return tuple(self._clients)

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def add_client(self, client: _Client) -> None:
        log.info("New overlay client connected.")
        self._clients.append(client)
        self.client_count_changed.emit(len(self._clients))

    def remove_client(self, client: _Client) -> None:
        log.info("Overlay client disconnected.")
        if client in self._clients:
            self._clients.remove(client)
        self.client_count_changed.emit(len(self._clients))

    def _broadcast(self, message: str) -> None:
        active = []
        for client in self._clients:
            if client.connected:
                client.send(message)
                active.append(client)
        if len(active) != len(self._clients):
            self._clients = active
            self.client_count_changed.emit(len(self._clients))

    def send_effect(self, item: QueueItem, effect: Effect) -> None:
        """Send one effect to every client, or finish it at once if nobody listens."""
        if effect.is_custom_html_only:
            if effect.html_path:
                url = self.assets.register(f"{self.app_dir}/{effect.html_path}")
                message = build_custom_html_message(url, effect.duration, item.queue_id)
                log.info("Broadcasting custom HTML overlay: %s", url)
                for client in list(self._clients):
                    client.send(message)
            queue_id = item.queue_id
            self._schedule(max(1, effect.duration), lambda: self.effect_finished.emit(queue_id))
            return

        if not self._clients:
            log.warning("No overlay clients connected. Instantly auto-completing effect.")
            self.effect_finished.emit(item.queue_id)
            return

        log.info("Broadcasting show_effect. QueueId: %s", item.queue_id)
        served_file = self.assets.register(effect.file_path)
        served_audio = self.assets.register(effect.audio_path)
        self._broadcast(build_effect_message(item, effect, served_file, served_audio))

    def broadcast_stop_all(self) -> None:
        log.info("Broadcasting stop_all command.")
        self._broadcast(_encode({"type": "stop_all"}))

    def broadcast_clear_queue(self) -> None:
        log.info("Broadcasting clear_queue command.")
        self._broadcast(_encode({"type": "clear_queue"}))

    def handle_message(self, message: str) -> None:
        """Act on a text message from a client; only effect_completed matters."""
        try:
            doc = json.loads(message)
        except ValueError as exc:
            log.warning("Failed to parse overlay message: %s", exc)
            return
        root = doc if isinstance(doc, dict) else {}
        kind = root.get("type")
        data = root.get("data")
        data = data if isinstance(data, dict) else {}
        if kind == "effect_completed":
            queue_id = data.get("queueId")
            self.effect_finished.emit(queue_id if isinstance(queue_id, str) else "")