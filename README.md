# pointcast

pointcast plays channel point reward effects in a browser-source overlay,
for example in OBS. A reward carries a list of effects (image, video, sound
or text). Redemptions go into a playback queue, each effect is sent to the
connected overlay pages over WebSocket, and the media files are served over
HTTP under opaque asset URLs.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `pointcast.models` holds the dataclasses `Reward`, `Effect`,
  `EffectPosition` and `TextStyle`. Each has `to_json()` and the class method
  `from_json()` for the camel-case JSON shape rewards are stored in. Missing
  or mistyped keys take the defaults: 5 seconds duration, 100 % scale,
  volume 80, `"fade"` animation, `"center"` position, Arial 32 px white text
  with a 2 px black outline, `"sequential"` mode, enabled.
- `pointcast.assets.AssetRegistry(http_port=28081)` maps local file paths to
  URLs of the form `http://localhost:<port>/assets/<uuid>.<ext>`.
  `register()` returns the same URL for a path registered twice and `""` for
  an empty path; `resolve()` turns an asset id back into its path (or
  `None`); `has_asset()` and `in` test for an id.
- `pointcast.rewards.RewardManager(database, clock=None)` caches the rewards
  of a store. `load_all()`, `save()` and `delete()` keep cache and store in
  step; `all_rewards()` returns copies ordered by id and `get()` one copy or
  `None`. `validate_redemption()` raises `RedemptionRejected` (its `reason`
  holds the message) for an unknown reward, a disabled reward, or one still in
  the cooldown started by `trigger_cooldown()`. Without a store, `load_all()`,
  `save()` and `delete()` raise `RuntimeError`.
- `pointcast.playback.EffectQueue(database=None, rng=None)` plays queued
  redemptions one effect at a time. `enqueue_redemption()` looks the reward up
  in the store and logs its use; `enqueue_reward()` queues a `Reward` given
  directly. A reward in `"random"` mode plays one of its effects, chosen with
  `rng.randrange`. `on_effect_completed(queue_id)` moves on only when the id
  belongs to the item at the head of the queue. `clear()` and `stop_all()`
  empty the queue. `len(queue)` is the number of pending items. The queue
  reports through the signals `queue_updated`, `play_effect_requested`,
  `stop_all_requested` and `clear_queue_requested`, each with `connect()`,
  `disconnect()` and `emit()`. Each queued redemption is a `QueueItem`.
- `pointcast.overlay` has `mime_type()`, `render_effect_text()` (fills in
  `{user}`, `{reward_id}` and `{time}`), `build_effect_message()` and
  `build_custom_html_message()`. `OverlayHub(assets, app_dir=".",
  schedule=None)` tracks clients (objects with a `connected` property and a
  `send(message)` method) and sends them `show_effect`, `show_custom_html`,
  `stop_all` and `clear_queue` messages. With no clients connected, an effect
  finishes at once; a custom HTML effect finishes after its duration (at least
  one second). `handle_message()` turns an `effect_completed` message from a
  client into the `effect_finished` signal.
- `pointcast.server.OverlayServer(hub, assets, database=None, app_dir=".")`
  runs two aiohttp applications. The HTTP one serves:
  - `/overlay`: the overlay page, wired to the WebSocket port. The
    template is also written to `<app_dir>/overlay.html`.
  - `/assets/<id>`: registered assets.
  - `/api/ranking?period=N`: JSON `[{"name": ..., "count": ...}]` from
    `database.get_ranking(N)`, with period 0 by default.
  - `/ranking`: `<app_dir>/ranking/default.html`.
  - `/ranking/<file>`: `.html`/`.htm` files in that folder only. Paths that
    leave the folder get 403; other files get 404.

  `{{HTTP_PORT}}` in ranking pages is replaced with the HTTP port. The
  WebSocket application accepts overlay clients on any path. `await
  start(ws_port, http_port)` raises `OSError` if a port cannot be bound;
  `await stop()` closes everything. HTML served from assets or the ranking
  folder passes through the `sanitize_html` attribute. By default it returns
  the markup unchanged. `overlay_page(ws_port)` returns the page on its own.
- `pointcast.stats` builds the rows of the ranking and per-user tables:
  `ranking_rows()`, `user_stat_rows()` over `UserUsageStat` records, and
  `user_spans()` for runs of the same user. `export_csv()` writes a table as
  UTF-8 CSV with a byte-order mark, with every field quoted, and raises
  `ValueError` when there are no rows. `table_style()` returns a Qt-style
  style sheet.
- `pointcast.viewer` helps edit rewards:
  - `effect_rows()` and `filter_rows()` build and filter `EffectRow` table
    rows; `select_row()` finds the row for a reward and effect.
  - `effect_field_states()` says which editor fields an effect type uses.
  - `normalize_effect()` clears the paths an effect type cannot use.
  - `is_reward_empty()` tells whether a reward has no files and no text.
  - `new_reward()` and `new_sound_effect()` create defaults.
  - `remove_effect()` deletes an effect. It returns the index to select next,
    or `None` when the reward is left empty.
- `pointcast.maintenance` has the `UsageLogEntry` record and the
  `CleanupPeriod` enum. `cleanup_cutoff()` gives the `YYYY-MM-DD` date before
  which logs go, or `None` for all. `filter_logs()` searches by reward name or
  username. `size_text()` and `savings_message()` give the database size
  labels.

## Example

```python
from datetime import datetime

from pointcast.assets import AssetRegistry
from pointcast.models import Reward
from pointcast.overlay import OverlayHub
from pointcast.playback import EffectQueue

reward = Reward.from_json({
    "id": "reward-1",
    "name": "Confetti",
    "cost": 500,
    "effects": [{"type": "image", "filePath": "/media/confetti.png", "text": "Thanks {user}!"}],
})

assets = AssetRegistry(28081)
hub = OverlayHub(assets)
queue = EffectQueue()

queue.play_effect_requested.connect(hub.send_effect)
queue.stop_all_requested.connect(hub.broadcast_stop_all)
queue.clear_queue_requested.connect(hub.broadcast_clear_queue)
hub.effect_finished.connect(queue.on_effect_completed)

queue.enqueue_reward(reward, "viewer", datetime.now())
```

With no overlay client connected, the effect above completes at once and the
queue goes idle. To reach real overlay pages, put `OverlayServer(hub,
assets)` in front of the hub and `await server.start(28080, 28081)`. Then
point a browser source at `http://localhost:28081/overlay`.

## What the package does not do

- It has no storage of its own. `RewardManager`, `EffectQueue` and
  `OverlayServer` take a store object that you supply. That object provides
  `load_rewards()`, `save_reward()`, `delete_reward()`, `log_usage()` and
  `get_ranking()` as needed.
- It does not connect to the streaming platform. Nothing subscribes to
  redemption events; you call `enqueue_redemption()` yourself.
- It has no HTML sanitizer, no graphical interface and no command-line
  program. The table, editor and maintenance helpers return data for a user
  interface to show.