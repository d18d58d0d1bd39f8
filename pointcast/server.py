"""HTTP asset server and WebSocket endpoint for overlay clients."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Protocol

from aiohttp import WSMsgType, web

from .assets import AssetRegistry
from .overlay import OverlayHub, mime_type

log = logging.getLogger(__name__)

_COMMON_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cache-Control": "no-cache, no-store, must-revalidate",
}

_MISSING_RANKING_PAGE = (
    "<html><body style='margin:0;padding:24px;background:#121214;color:#ffffff;"
    "font-family:sans-serif'>"
    "<h2>ranking/default.html を読み込めませんでした</h2>"
    "<p>ranking フォルダに default.html を置いてから、このページを再読み込みしてください。</p>"
    "</body></html>"
)

_OVERLAY_TEMPLATE = """<!DOCTYPE html>
<html lang="ja">
<head>
<meta charset="utf-8">
<title>OBS Twitch Overlay</title>
<style>
  html, body { margin: 0; overflow: hidden; background: transparent; }
  #overlay-container { position: relative; width: 100vw; height: 100vh; }
  .item { position: absolute; left: 0; top: 0; box-sizing: border-box;
          width: max-content; max-width: 80vw; text-align: center; }
  .item img, .item video { display: block; max-width: 80vw; max-height: 80vh; }
  .caption { display: inline-block; max-width: 600px; margin: 10px auto 0;
             font-weight: bold; overflow-wrap: break-word; text-shadow: 2px 2px 4px #000; }
  .page { position: absolute; left: 0; top: 0; width: 100vw; height: 100vh;
          border: none; background: transparent; }
</style>
</head>
<body>
<div id="overlay-container"></div>
<script>
(() => {
  const stage = document.getElementById("overlay-container");
  const socket = new WebSocket("ws://localhost:{{WS_PORT}}/overlay");
  let active = null;

  function report(queueId) {
    if (socket.readyState !== WebSocket.OPEN) return;
    try {
      socket.send(JSON.stringify({ type: "effect_completed", data: { queueId: queueId } }));
    } catch (err) {
      console.error("could not report completion", err);
    }
  }

  function silence(media) {
    try { media.pause(); media.removeAttribute("src"); media.load(); } catch (err) {}
  }

  function reset() {
    if (active) {
      clearTimeout(active.timer);
      if (active.audio) silence(active.audio);
      active = null;
    }
    stage.querySelectorAll("video").forEach(silence);
    stage.replaceChildren();
  }

  function begin(queueId, node) {
    reset();
    stage.appendChild(node);
    const state = { audio: null, timer: null, done: false };
    state.finish = () => {
      if (state.done) return;
      state.done = true;
      clearTimeout(state.timer);
      if (state.audio) { try { state.audio.pause(); } catch (err) {} }
      node.remove();
      report(queueId);
    };
    active = state;
    return state;
  }

  function showPage(msg) {
    const frame = document.createElement("iframe");
    frame.className = "page";
    frame.src = msg.url;
    const state = begin(msg.queueId, frame);
    state.timer = setTimeout(state.finish, (msg.duration || 5) * 1000);
  }

  function showEffect(data) {
    const eff = data.effect;
    const pos = eff.position || {};
    const x = pos.offsetX || 960;
    const y = pos.offsetY || 540;
    const scale = (eff.scale === undefined ? 100 : eff.scale) / 100;

    const box = document.createElement("div");
    box.className = "item";
    box.style.transform = `translate(calc(${x}px - 50%), calc(${y}px - 50%)) scale(${scale})`;
    const state = begin(data.queueId, box);

    const src = eff.filePath;
    const usable = Boolean(src) && !/\\/assets\\/?$/.test(src);
    if (usable && eff.type === "image") {
      const img = document.createElement("img");
      img.src = src;
      box.appendChild(img);
    } else if (usable && eff.type === "video") {
      const video = document.createElement("video");
      video.autoplay = true;
      video.src = src;
      video.onended = state.finish;
      video.onerror = state.finish;
      box.appendChild(video);
    }

    if (eff.text) {
      const style = eff.textStyle || {};
      const caption = document.createElement("div");
      caption.className = "caption";
      caption.innerText = eff.text;
      caption.style.fontFamily = style.font || "Arial";
      caption.style.fontSize = (style.size || 32) + "px";
      caption.style.color = style.color || "#FFFFFF";
      caption.style.webkitTextStroke =
        (style.borderWidth || 2) + "px " + (style.borderColor || "#000000");
      box.appendChild(caption);
    }

    const isSound = eff.type === "sound";
    const audioSrc = isSound ? (eff.audioPath || eff.filePath) : eff.audioPath;
    if (audioSrc) {
      try {
        const audio = new Audio(audioSrc);
        state.audio = audio;
        audio.volume = (eff.volume || 80) / 100;
        if (isSound) {
          audio.onended = state.finish;
          audio.onerror = state.finish;
        }
        audio.play().catch(err => {
          console.log("audio playback blocked", err);
          if (isSound) state.finish();
        });
      } catch (err) {
        console.error("audio playback failed", err);
        if (isSound) state.finish();
      }
    }

    if (!state.done) {
      state.timer = setTimeout(state.finish, (eff.duration || 5) * 1000);
    }
  }

  socket.onopen = () => console.log("overlay socket connected");

  socket.onmessage = event => {
    try {
      const msg = JSON.parse(event.data);
      switch (msg.type) {
        case "show_custom_html": showPage(msg); break;
        case "show_effect": showEffect(msg.data); break;
        case "stop_all": reset(); break;
      }
    } catch (err) {
      console.error("bad overlay message", err);
    }
  };
})();
</script>
</body>
</html>
"""


class _RankingSource(Protocol):
    def get_ranking(self, period: int) -> Iterable[tuple[str, int]]: ...


def overlay_page(ws_port: int) -> str:
    """The default overlay page, wired to the WebSocket port given."""
    return _OVERLAY_TEMPLATE.replace("{{WS_PORT}}", str(ws_port))


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def _html_response(html: str) -> web.Response:
    headers = {"Content-Type": "text/html; charset=utf-8", **_COMMON_HEADERS}
    return web.Response(body=html.encode("utf-8"), headers=headers)


class _SocketClient:
    """Adapts a WebSocket to the hub's client interface; sends are thread-safe."""

    def __init__(self, ws: web.WebSocketResponse, loop: asyncio.AbstractEventLoop) -> None:
        self._ws = ws
        self._loop = loop
        self._outbox: asyncio.Queue[str | None] = asyncio.Queue()

    @property
    def connected(self) -> bool:
        return not self._ws.closed

    def send(self, message: str) -> None:
        try:
            self._loop.call_soon_threadsafe(self._outbox.put_nowait, message)
        except RuntimeError:
            log.warning("Dropping message for a client whose loop has closed.")

    def finish(self) -> None:
        self._outbox.put_nowait(None)

    async def pump(self) -> None:
        while True:
            message = await self._outbox.get()
            if message is None:
                return
            try:
                await self._ws.send_str(message)
            except (ConnectionError, RuntimeError):
                return


class OverlayServer:
    """Serves overlay pages, assets and ranking data, and the overlay WebSocket.

    HTML that is served from assets or the ranking folder passes through
    ``sanitize_html`` first; it leaves the markup unchanged unless replaced.
    """

    def __init__(
        self,
        hub: OverlayHub,
        assets: AssetRegistry,
        database: _RankingSource | None = None,
        app_dir: str | Path = ".",
    ) -> None:
        self.hub = hub
        self.assets = assets
        self.database = database
        self.app_dir = Path(app_dir)
        self.ws_port = 28080
        self.http_port = 28081
        self.sanitize_html: Callable[[str], str] = lambda html: html
        self._runners: list[web.AppRunner] = []
        self._sockets: set[web.WebSocketResponse] = set()

    # -- HTTP -------------------------------------------------------------

    def build_http_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/assets/{name}", self._serve_asset)
        app.router.add_get("/overlay", self._serve_overlay)
        app.router.add_get("/api/ranking", self._serve_ranking_data)
        app.router.add_get("/ranking", self._serve_ranking_page)
        app.router.add_get("/ranking/{name}", self._serve_ranking_file)
        return app

    async def _serve_asset(self, request: web.Request) -> web.StreamResponse:
        name = request.match_info["name"].lstrip("/")
        log.info("Asset requested: %s", name)
        real_path = self.assets.resolve(name)
        if not real_path:
            log.warning("Asset not found in registry: %s", name)
            return web.Response(status=404)

        mime = mime_type(real_path)
        lowered = real_path.lower()
        if mime == "text/html" or lowered.endswith(".html") or lowered.endswith(".htm"):
            try:
                raw = Path(real_path).read_bytes()
            except OSError:
                log.error("Failed to open HTML asset file for serving: %s", real_path)
                return web.Response(status=500)
            html = self.sanitize_html(raw.decode("utf-8", errors="replace"))
            return web.Response(
                body=html.encode("utf-8"), headers={"Content-Type": mime, **_COMMON_HEADERS}
            )

        try:
            with open(real_path, "rb"):
                pass
        except OSError:
            log.error("Failed to open asset file for streaming: %s", real_path)
            return web.Response(status=500)
        return web.FileResponse(real_path, headers={"Content-Type": mime, **_COMMON_HEADERS})

    async def _serve_overlay(self, request: web.Request) -> web.Response:
        file_path = self.app_dir / "overlay.html"
        try:
            file_path.write_text(_OVERLAY_TEMPLATE, encoding="utf-8")
            log.info("Synced default overlay.html template: %s", file_path)
        except OSError:
            log.error("Failed to write default overlay.html template: %s", file_path)
        return _html_response(overlay_page(self.ws_port))

    async def _serve_ranking_data(self, request: web.Request) -> web.Response:
        period = _to_int(request.query["period"]) if "period" in request.query else 0
        entries = []
        if self.database is not None:
            entries = [
                {"name": name, "count": count} for name, count in self.database.get_ranking(period)
            ]
        body = json.dumps(entries, ensure_ascii=False, separators=(",", ":"))
        headers = {"Content-Type": "application/json; charset=utf-8", **_COMMON_HEADERS}
        return web.Response(body=body.encode("utf-8"), headers=headers)

    async def _serve_ranking_page(self, request: web.Request) -> web.Response:
        file_path = self.app_dir / "ranking" / "default.html"
        try:
            html = file_path.read_text(encoding="utf-8")
        except OSError:
            html = ""
        if not html:
            html = _MISSING_RANKING_PAGE
        return _html_response(html.replace("{{HTTP_PORT}}", str(self.http_port)))

    async def _serve_ranking_file(self, request: web.Request) -> web.Response:
        file_name = request.match_info["name"]
        ranking_dir = os.path.normpath(str(self.app_dir / "ranking"))
        requested = os.path.normpath(os.path.join(ranking_dir, file_name))
        canonical_dir = os.path.realpath(ranking_dir) if os.path.isdir(ranking_dir) else ""
        if canonical_dir and not os.path.realpath(requested).startswith(canonical_dir):
            log.warning("Path traversal attempt blocked: %s", file_name)
            return web.Response(status=403)

        if not os.path.isfile(requested):
            log.warning("Ranking file not found: %s", requested)
            return web.Response(status=404)

        _, _, ext = os.path.basename(requested).rpartition(".")
        if "." in os.path.basename(requested) and ext.lower() in ("html", "htm"):
            try:
                html = Path(requested).read_text(encoding="utf-8", errors="replace")
            except OSError:
                return web.Response(status=500)
            html = self.sanitize_html(html)
            return _html_response(html.replace("{{HTTP_PORT}}", str(self.http_port)))

        log.warning("Unsupported file type in ranking/: %s", file_name)
        return web.Response(status=404)

    # -- WebSocket ----------------------------------------------------------

    def build_ws_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/{tail:.*}", self._serve_socket)
        return app

    async def _serve_socket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        client = _SocketClient(ws, asyncio.get_running_loop())
        self._sockets.add(ws)
        self.hub.add_client(client)
        writer = asyncio.create_task(client.pump())
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    self.hub.handle_message(msg.data)
        finally:
            client.finish()
            await writer
            self._sockets.discard(ws)
            self.hub.remove_client(client)
        return ws

    # -- lifecycle ----------------------------------------------------------

    async def start(self, ws_port: int, http_port: int) -> None:
        """Listen on both ports; raises OSError if either cannot be bound."""
        await self.stop()
        self.ws_port = ws_port
        self.http_port = http_port
        self.assets.http_port = http_port

        ws_runner = web.AppRunner(self.build_ws_app())
        await ws_runner.setup()
        try:
            await web.TCPSite(ws_runner, port=ws_port).start()
        except OSError:
            log.error("Failed to start WebSocket server on port %d", ws_port)
            await ws_runner.cleanup()
            raise
        log.info("WebSocket Server listening on port %d", ws_port)

        http_runner = web.AppRunner(self.build_http_app())
        await http_runner.setup()
        try:
            await web.TCPSite(http_runner, port=http_port).start()
        except OSError:
            log.error("Failed to start HTTP server on port %d", http_port)
            await http_runner.cleanup()
            await ws_runner.cleanup()
            raise
        log.info("HTTP Asset Server listening on port %d", http_port)
        self._runners = [ws_runner, http_runner]

    async def stop(self) -> None:
        """Close every client connection and stop listening."""
        for ws in list(self._sockets):
            await ws.close()
        self._sockets.clear()
        runners, self._runners = self._runners, []
        for runner in runners:
            await runner.cleanup()
        if runners:
            log.info("Overlay servers stopped.")