import json

import pytest

from tests.support.stubs import (
    FakePlayerHandle,
    FakePlaylistApi,
    FakeSearchClient,
    ManualScheduler,
)
from vibeflo.errors import ExternalServiceError
from vibeflo.player import (
    FALLBACK_RESULTS,
    ApiError,
    MusicPlayer,
    Notifier,
    SharedStorage,
    StorageArea,
    track_from_search_result,
    track_from_song,
)
from vibeflo.settings import PlayerSettings


def _track(track_id, title=None):
    return {
        "id": str(track_id),
        "title": title or f"Track {track_id}",
        "artist": "Artist",
        "url": f"https://www.youtube.com/watch?v=vid{track_id:08d}",
        "source": "youtube",
    }


A, B, C = _track(1, "A"), _track(2, "B"), _track(3, "C")


@pytest.fixture
def shared():
    return SharedStorage()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_player(shared, scheduler):
    def _make(**kwargs):
        kwargs.setdefault("storage", StorageArea(shared))
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("settings", PlayerSettings(player_retry_delay_seconds=0.5))
        return MusicPlayer(**kwargs)

    return _make


@pytest.fixture
def player(make_player):
    return make_player()


@pytest.mark.unit
def test_first_added_track_becomes_current_and_is_persisted(player):
    player.add_track(A)
    player.add_track(B)

    assert player.tracks == [A, B]
    assert player.current_track == A
    assert json.loads(player.storage.get_item("playlist")) == [A, B]
    assert json.loads(player.storage.get_item("current_track")) == A
    assert player.notifier.last.level == "success"


@pytest.mark.unit
@pytest.mark.parametrize("action", ["play_next", "play_previous"])
def test_step_controls_on_empty_list_are_noops(player, action):
    getattr(player, action)()
    assert player.current_track is None
    assert player.is_playing is False


@pytest.mark.unit
def test_play_track_on_empty_list_is_noop(player):
    player.play_track(A)
    assert player.current_track is None


@pytest.mark.unit
def test_play_track_does_not_require_membership(player):
    player.add_track(A)
    outsider = _track(99, "Outsider")

    player.play_track(outsider)

    assert player.current_track == outsider
    assert player.is_playing is True
    assert outsider not in player.tracks


@pytest.mark.unit
def test_next_and_previous_wrap_around(player):
    for track in (A, B, C):
        player.add_track(track)

    player.play_previous()
    assert player.current_track == C
    player.play_next()
    assert player.current_track == A
    player.play_next()
    assert player.current_track == B


@pytest.mark.unit
def test_removing_current_track_reassigns_to_first_remaining(player):
    player.add_track(A)
    player.add_track(B)

    player.remove_track(A["id"])
    assert player.current_track == B
    assert json.loads(player.storage.get_item("current_track")) == B

    player.remove_track(B["id"])
    assert player.tracks == []
    assert player.current_track is None
    assert player.storage.get_item("current_track") is None


@pytest.mark.unit
def test_removing_other_track_keeps_current(player):
    player.add_track(A)
    player.add_track(B)
    player.remove_track(B["id"])
    assert player.current_track == A


@pytest.mark.unit
@pytest.mark.parametrize("requested, stored", [(150, 100), (-10, 0), (75, 75), ("42", 42)])
def test_volume_is_clamped(player, requested, stored):
    handle = FakePlayerHandle()
    player.slot.attach(handle)

    assert player.set_volume(requested) == stored
    assert player.volume == stored
    assert handle.calls == [("set_volume", (stored,))]


@pytest.mark.unit
def test_play_and_pause_drive_the_handle(player):
    handle = FakePlayerHandle()
    player.slot.attach(handle)

    player.toggle_play()
    assert player.is_playing is True
    player.toggle_play()
    assert player.is_playing is False
    player.seek(-5)
    assert handle.calls == [("play", ()), ("pause", ()), ("seek", (0.0,))]


@pytest.mark.unit
def test_play_retries_once_when_handle_not_ready(player, scheduler):
    handle = FakePlayerHandle(ready=False)
    player.slot.attach(handle)

    player.play()
    assert handle.calls == []
    assert scheduler.pending[0][0] == 0.5

    handle.ready = True
    scheduler.run_pending()
    assert handle.calls == [("play", ())]
    assert scheduler.pending == []


@pytest.mark.unit
def test_give_up_advances_when_more_than_one_track(player, scheduler):
    player.add_track(A)
    player.add_track(B)

    player.play()
    scheduler.run_pending()

    assert player.current_track == B
    assert scheduler.pending == []


@pytest.mark.unit
def test_give_up_with_single_track_stays_put(player, scheduler):
    player.add_track(A)

    player.play()
    scheduler.run_pending()

    assert player.current_track == A


@pytest.mark.unit
def test_broken_handle_never_raises(player, scheduler):
    player.slot.attach(FakePlayerHandle(fail_with=RuntimeError("iframe gone")))

    player.pause()
    scheduler.run_pending()

    assert player.is_playing is False


@pytest.mark.unit
def test_visibility_flags_are_persisted(player, make_player):
    assert player.toggle_open() is True
    assert player.toggle_minimize() is True

    reloaded = make_player()
    assert reloaded.is_open is True
    assert reloaded.is_minimized is True


@pytest.mark.unit
def test_search_without_credentials_uses_fallback(player):
    results = player.handle_search("lofi")

    assert len(results) == 3
    assert results == list(FALLBACK_RESULTS)
    assert player.is_searching is False
    assert player.notifier.last.level == "warning"


@pytest.mark.unit
@pytest.mark.parametrize(
    "error",
    [ExternalServiceError("YouTube returned an error"), RuntimeError("unexpected")],
)
def test_search_failure_uses_fallback(make_player, error):
    player = make_player(search_client=FakeSearchClient(error=error))

    results = player.handle_search("lofi")

    assert len(results) == 3
    assert player.is_searching is False


@pytest.mark.unit
def test_search_success_keeps_raw_items(make_player):
    items = [{"id": {"videoId": "abcdefghijk"}, "snippet": {"title": "x", "channelTitle": "y", "thumbnails": {}}}]
    client = FakeSearchClient(items=items)
    player = make_player(search_client=client, settings=PlayerSettings(search_max_results=7))

    assert player.handle_search("  chill  ") == items
    assert client.queries == [("chill", 7)]
    assert player.notifier.notifications == []


@pytest.mark.unit
def test_fallback_results_are_not_shared_between_searches(player):
    first = player.handle_search("a")
    first[0]["snippet"]["title"] = "mutated"
    second = player.handle_search("b")
    assert second[0]["snippet"]["title"] != "mutated"


@pytest.mark.unit
def test_save_playlist_submits_queue_without_mutating_it(make_player):
    api = FakePlaylistApi(result={"id": 12, "name": "Mine"})
    player = make_player(api=api)
    player.add_track(A)
    player.add_track(B)

    result = player.save_playlist_to_account("Mine", "desc")

    assert result == {"id": 12, "name": "Mine"}
    assert api.created == [{"name": "Mine", "tracks": [A, B], "description": "desc"}]
    assert player.tracks == [A, B]
    assert player.current_track == A
    assert player.is_saving is False
    assert player.notifier.last.level == "success"


@pytest.mark.unit
def test_save_playlist_failures_notify(make_player):
    player = make_player(api=FakePlaylistApi(error=ApiError(500, "Server error")))

    assert player.save_playlist_to_account("Mine") is None
    assert player.notifier.last.level == "error"

    player.add_track(A)
    assert player.save_playlist_to_account("   ") is None
    assert player.save_playlist_to_account("Mine") is None
    assert "Server error" in player.notifier.last.message
    assert player.is_saving is False


@pytest.mark.unit
def test_malformed_persisted_state_falls_back_to_defaults(shared, make_player):
    shared.write("vibeflo_playlist", "{not json")
    shared.write("vibeflo_current_track", '"just a string"')

    player = make_player()

    assert player.tracks == []
    assert player.current_track is None


@pytest.mark.unit
def test_track_from_search_result_uses_client_side_id():
    track = track_from_search_result(FALLBACK_RESULTS[0])
    video_id = FALLBACK_RESULTS[0]["id"]["videoId"]

    assert track["id"] == f"yt-{video_id}"
    assert track["url"] == f"https://www.youtube.com/watch?v={video_id}"
    assert track["artwork"].endswith("hqdefault.jpg")
    assert track["source"] == "youtube"


@pytest.mark.unit
def test_track_from_song_handles_both_namings():
    saved = track_from_song({"id": 7, "title": "T", "artist": "A", "audio_url": "https://youtu.be/dQw4w9WgXcQ", "cover_url": "c.jpg"})
    draft = track_from_song({"youtube_id": "dQw4w9WgXcQ"})

    assert saved["id"] == "7"
    assert saved["artwork"] == "c.jpg"
    assert draft["title"] == "Unknown Title"
    assert draft["url"] == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert draft["id"]


@pytest.mark.unit
def test_notifier_records_in_order():
    notifier = Notifier()
    notifier.info("one")
    notifier.error("two")
    assert [n.level for n in notifier.notifications] == ["info", "error"]
    notifier.clear()
    assert notifier.last is None
