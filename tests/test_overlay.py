import json
from datetime import datetime

import pytest

from pointcast.assets import AssetRegistry
from pointcast.models import Effect
from pointcast.overlay import (
    OverlayHub,
    build_custom_html_message,
    build_effect_message,
    mime_type,
    render_effect_text,
)
from pointcast.playback import QueueItem


class FakeClient:
    def __init__(self, connected=True):
        self.connected = connected
        self.sent = []

    def send(self, message):
        self.sent.append(message)


def make_item(queue_id="q1"):
    return QueueItem(
        queue_id=queue_id,
        reward_id="r1",
        username="alice",
        timestamp=datetime(2024, 1, 2, 3, 4, 5),
    )


def make_hub(**kwargs):
    scheduled = []
    hub = OverlayHub(
        AssetRegistry(28081),
        kwargs.get("app_dir", "/app"),
        lambda delay, callback: scheduled.append((delay, callback)),
    )
    finished = []
    counts = []
    hub.effect_finished.connect(finished.append)
    hub.client_count_changed.connect(counts.append)
    return hub, scheduled, finished, counts


def asset_id(url):
    return url.rsplit("/", 1)[1]


@pytest.mark.parametrize(
    "path, expected",
    [
        ("a.png", "image/png"),
        ("dir/b.JPG", "image/jpeg"),
        ("c.jpeg", "image/jpeg"),
        ("d.gif", "image/gif"),
        ("e.mp3", "audio/mpeg"),
        ("f.wav", "audio/wav"),
        ("g.webm", "video/webm"),
        ("h.mp4", "video/mp4"),
        ("page.html", "application/octet-stream"),
        ("noext", "application/octet-stream"),
    ],
)
def test_mime_type(path, expected):
    assert mime_type(path) == expected


def test_render_effect_text_replaces_placeholders():
    text = render_effect_text("{user} used {reward_id} at {time}", make_item())
    assert text == "alice used r1 at 2024-01-02 03:04:05"


def test_render_effect_text_leaves_plain_text():
    assert render_effect_text("hello", make_item()) == "hello"


def test_build_effect_message_structure():
    effect = Effect(type="image", file_path="/real.png", text="Hi {user}", volume=40)
    message = build_effect_message(make_item(), effect, "http://x/assets/1.png", "")
    doc = json.loads(message)

    assert doc["type"] == "show_effect"
    assert doc["data"]["queueId"] == "q1"
    sent = doc["data"]["effect"]
    assert sent["filePath"] == "http://x/assets/1.png"
    assert sent["audioPath"] == ""
    assert sent["text"] == "Hi alice"
    assert sent["volume"] == 40
    assert sent["position"] == effect.position.to_json()
    assert ": " not in message and ", " not in message


def test_build_custom_html_message():
    doc = json.loads(build_custom_html_message("http://x/assets/p.html", 7, "q9"))
    assert doc == {"type": "show_custom_html", "url": "http://x/assets/p.html", "duration": 7, "queueId": "q9"}


def test_send_effect_without_clients_finishes_at_once():
    hub, scheduled, finished, _ = make_hub()
    hub.send_effect(make_item("q5"), Effect(type="image", file_path="/a.png"))
    assert finished == ["q5"]
    assert scheduled == []


def test_send_effect_broadcasts_served_urls():
    hub, _, finished, _ = make_hub()
    client = FakeClient()
    hub.add_client(client)

    hub.send_effect(make_item(), Effect(type="video", file_path="/media/clip.mp4", audio_path="/media/ding.wav"))

    assert finished == []
    assert len(client.sent) == 1
    effect = json.loads(client.sent[0])["data"]["effect"]
    assert hub.assets.resolve(asset_id(effect["filePath"])) == "/media/clip.mp4"
    assert hub.assets.resolve(asset_id(effect["audioPath"])) == "/media/ding.wav"


def test_disconnected_clients_are_dropped_on_broadcast():
    hub, _, _, counts = make_hub()
    live, dead = FakeClient(), FakeClient(connected=False)
    hub.add_client(live)
    hub.add_client(dead)

    hub.broadcast_stop_all()

    assert hub.clients == (live,)
    assert counts == [1, 2, 1]
    assert json.loads(live.sent[0]) == {"type": "stop_all"}
    assert dead.sent == []


def test_broadcast_clear_queue():
    hub, _, _, _ = make_hub()
    client = FakeClient()
    hub.add_client(client)
    hub.broadcast_clear_queue()
    assert json.loads(client.sent[0]) == {"type": "clear_queue"}


def test_custom_html_effect_is_sent_and_finishes_after_delay():
    hub, scheduled, finished, _ = make_hub(app_dir="/app")
    client = FakeClient()
    hub.add_client(client)

    hub.send_effect(make_item("q7"), Effect(is_custom_html_only=True, html_path="custom_html/a.html", duration=4))

    doc = json.loads(client.sent[0])
    assert doc["type"] == "show_custom_html"
    assert doc["queueId"] == "q7"
    assert doc["duration"] == 4
    assert hub.assets.resolve(asset_id(doc["url"])) == "/app/custom_html/a.html"
    assert [delay for delay, _ in scheduled] == [4]
    assert finished == []

    scheduled[0][1]()
    assert finished == ["q7"]


def test_custom_html_without_path_still_waits_at_least_one_second():
    hub, scheduled, finished, _ = make_hub()
    client = FakeClient()
    hub.add_client(client)

    hub.send_effect(make_item("q8"), Effect(is_custom_html_only=True, duration=0))

    assert client.sent == []
    assert [delay for delay, _ in scheduled] == [1]
    scheduled[0][1]()
    assert finished == ["q8"]


def test_handle_effect_completed_message():
    hub, _, finished, _ = make_hub()
    hub.handle_message(json.dumps({"type": "effect_completed", "data": {"queueId": "q3"}}))
    assert finished == ["q3"]


@pytest.mark.parametrize(
    "message",
    ["not json", json.dumps({"type": "other", "data": {"queueId": "q3"}}), json.dumps([1, 2])],
)
def test_other_messages_are_ignored(message):
    hub, _, finished, _ = make_hub()
    hub.handle_message(message)
    assert finished == []


def test_add_and_remove_client_report_counts():
    hub, _, _, counts = make_hub()
    first, second = FakeClient(), FakeClient()
    hub.add_client(first)
    hub.add_client(second)
    hub.remove_client(first)
    assert counts == [1, 2, 1]
    assert hub.clients == (second,)
    assert hub.client_count == 1