import pytest

from pointcast.models import Effect, Reward
from pointcast.viewer import (
    EffectRow,
    effect_field_states,
    effect_rows,
    filter_rows,
    is_reward_empty,
    new_reward,
    new_sound_effect,
    normalize_effect,
    remove_effect,
    select_row,
)


def _rewards():
    return [
        Reward(
            id="r1",
            name="Prize",
            cost=500,
            effects=[
                Effect(type="image", file_path="/media/cat.png"),
                Effect(type="sound", audio_path="/media/ding.mp3"),
            ],
        ),
        Reward(id="r2", name="Shout", cost=100, effects=[Effect(type="text", text="Hello")]),
    ]


def test_one_row_per_effect_in_order():
    rows = effect_rows(_rewards())
    assert [(row.reward_id, row.effect_index) for row in rows] == [("r1", 0), ("r1", 1), ("r2", 0)]


def test_row_texts_follow_display_format():
    row = effect_rows(_rewards())[0]
    assert row.name == "Prize (500pt)"
    assert row.index_label == "演出 [0]"
    assert row.type_label == "🖼️ 画像"
    assert row.type_color == "#4CAF50"
    assert row.duration == "5秒"
    assert row.volume == "80%"


def test_empty_fields_show_placeholder():
    row = effect_rows(_rewards())[0]
    assert row.audio_path == "-"
    assert row.text == "-"
    assert row.file_path == "/media/cat.png"


def test_unknown_type_label():
    rows = effect_rows([Reward(id="x", effects=[Effect(type="hologram")])])
    assert rows[0].type_label == "不明"
    assert rows[0].type_color == "#FFFFFF"


def test_cells_has_eight_columns_in_order():
    row = effect_rows(_rewards())[2]
    assert len(row.cells) == 8
    assert row.cells[0] == row.name
    assert row.cells[7] == "Hello"


def test_filter_empty_text_keeps_all():
    rows = effect_rows(_rewards())
    assert filter_rows(rows, "") == rows


def test_filter_is_case_insensitive():
    rows = effect_rows(_rewards())
    found = filter_rows(rows, "PRIZE")
    assert [row.reward_id for row in found] == ["r1", "r1"]


def test_filter_matches_path_column():
    rows = effect_rows(_rewards())
    found = filter_rows(rows, "ding")
    assert [(row.reward_id, row.effect_index) for row in found] == [("r1", 1)]


def test_filter_without_match_is_empty():
    assert filter_rows(effect_rows(_rewards()), "nothing-like-this") == []


def test_select_row_finds_position():
    rows = effect_rows(_rewards())
    assert select_row(rows, "r2", 0) == 2
    assert select_row(rows, "r2", 5) is None


@pytest.mark.parametrize(
    "kind, file_path, audio, text, placed",
    [
        ("image", True, True, False, True),
        ("video", True, True, False, True),
        ("sound", False, True, False, False),
        ("text", False, False, True, True),
    ],
)
def test_field_states(kind, file_path, audio, text, placed):
    states = effect_field_states(kind)
    assert states["file_path"] is file_path
    assert states["scale"] is file_path
    assert states["audio_path"] is audio
    assert states["volume"] is audio
    assert states["text"] is text
    assert states["position"] is placed
    assert states["animation"] is placed


def test_normalize_sound_clears_file_path():
    effect = Effect(type="sound", file_path="/a.png", audio_path="/b.mp3")
    result = normalize_effect(effect)
    assert result.file_path == ""
    assert result.audio_path == "/b.mp3"
    assert effect.file_path == "/a.png"


def test_normalize_text_clears_audio_path():
    result = normalize_effect(Effect(type="text", file_path="/a.png", audio_path="/b.mp3"))
    assert result.audio_path == ""
    assert result.file_path == "/a.png"


def test_normalize_image_keeps_everything():
    effect = Effect(type="image", file_path="/a.png", audio_path="/b.mp3", text="t")
    assert normalize_effect(effect) == effect


def test_is_reward_empty():
    assert is_reward_empty(Reward(effects=[Effect(type="image"), Effect(type="sound")]))
    assert is_reward_empty(Reward())
    assert not is_reward_empty(Reward(effects=[Effect(type="image"), Effect(text="hi")]))


def test_new_reward_defaults():
    reward = new_reward("Wave", 250)
    assert reward.id.startswith("custom_")
    assert len(reward.id) == len("custom_") + 12
    assert reward.name == "Wave"
    assert reward.cost == 250
    assert reward.allowed_roles == ["everyone"]
    assert reward.mode == "sequential"
    assert reward.enabled is True
    assert len(reward.effects) == 1
    effect = reward.effects[0]
    assert (effect.type, effect.duration, effect.volume, effect.animation) == ("image", 5, 80, "fade")
    assert effect.position.preset == "center"


def test_new_reward_ids_are_unique():
    assert new_reward("a", 1).id != new_reward("a", 1).id or False is False
    ids = {new_reward("a", 1).id for _ in range(20)}
    assert len(ids) == 20


def test_new_reward_rejects_empty_name():
    with pytest.raises(ValueError):
        new_reward("", 100)


@pytest.mark.parametrize("cost", [-1, 1_000_001])
def test_new_reward_rejects_cost_out_of_range(cost):
    with pytest.raises(ValueError):
        new_reward("Wave", cost)


def test_new_sound_effect():
    effect = new_sound_effect()
    assert effect.type == "sound"
    assert effect.duration == 3
    assert effect.scale == 100
    assert effect.volume == 80


def test_remove_middle_effect_selects_previous():
    reward = Reward(effects=[Effect(text="a"), Effect(text="b"), Effect(text="c")])
    assert remove_effect(reward, 2) == 1
    assert [effect.text for effect in reward.effects] == ["a", "b"]


def test_remove_first_effect_selects_first():
    reward = Reward(effects=[Effect(text="a"), Effect(text="b")])
    assert remove_effect(reward, 0) == 0
    assert [effect.text for effect in reward.effects] == ["b"]


def test_remove_last_effect_returns_none():
    reward = Reward(effects=[Effect(text="a")])
    assert remove_effect(reward, 0) is None
    assert reward.effects == []


def test_remove_out_of_range_raises():
    reward = Reward(effects=[Effect(text="a")])
    with pytest.raises(IndexError):
        remove_effect(reward, 3)
    assert len(reward.effects) == 1


def test_effect_row_is_frozen():
    row = effect_rows(_rewards())[0]
    with pytest.raises(AttributeError):
        row.name = "other"  # type: ignore[misc]
    assert isinstance(row, EffectRow) and row.name == "Prize (500pt)"