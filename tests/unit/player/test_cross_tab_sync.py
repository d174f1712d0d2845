import json
import threading

import pytest

from tests.support.stubs import ManualScheduler
from vibeflo.player import MusicPlayer, SharedStorage, StorageArea, SyncChannel
from vibeflo.player.events import KIND_PLAYLIST_LOADED, KIND_STORAGE
from vibeflo.settings import PlayerSettings


def _track(n):
    return {"id": str(n), "title": f"Song {n}", "artist": "Artist", "url": "", "source": "youtube"}


@pytest.fixture
def shared():
    return SharedStorage()


def _tab(shared, scheduler=None):
    return MusicPlayer(
        storage=StorageArea(shared),
        scheduler=scheduler or ManualScheduler(),
        settings=PlayerSettings(poll_interval_seconds=1.0),
    )


@pytest.mark.unit
def test_storage_event_reaches_other_areas_but_not_writer(shared):
    writer, reader = StorageArea(shared), StorageArea(shared)
    seen_by_writer, seen_by_reader = [], []
    writer.add_listener(seen_by_writer.append)
    reader.add_listener(seen_by_reader.append)

    writer.set_item("player_open", "true")
    writer.set_item("player_open", "true")

    assert seen_by_writer == []
    assert [(c.key, c.old_value, c.new_value) for c in seen_by_reader] == [("player_open", None, "true")]


@pytest.mark.unit
def test_storage_areas_ignore_foreign_prefixes(shared):
    area = StorageArea(shared)
    seen = []
    area.add_listener(seen.append)

    shared.write("other_app_key", "1")

    assert seen == []


@pytest.mark.unit
def test_shared_storage_persists_to_file(tmp_path):
    path = tmp_path / "player" / "storage.json"
    StorageArea(SharedStorage(str(path))).json_set("playlist", [_track(1)])

    restored = StorageArea(SharedStorage(str(path)))

    assert restored.json_get("playlist") == [_track(1)]


@pytest.mark.unit
def test_unreadable_storage_file_starts_empty(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{broken", encoding="utf-8")

    assert SharedStorage(str(path)).keys() == []


@pytest.mark.unit
def test_other_tab_adopts_queue_changes(shared):
    first, second = _tab(shared), _tab(shared)

    first.add_track(_track(1))
    first.add_track(_track(2))

    assert second.tracks == [_track(1), _track(2)]
    assert second.current_track == _track(1)

    first.remove_track("1")
    assert second.tracks == [_track(2)]
    assert second.current_track == _track(2)


@pytest.mark.unit
def test_last_writer_wins_across_tabs(shared):
    first, second = _tab(shared), _tab(shared)
    first.add_track(_track(1))
    second.add_track(_track(2))

    assert first.tracks == [_track(1), _track(2)]
    assert second.tracks == [_track(1), _track(2)]


@pytest.mark.unit
def test_channel_funnels_both_event_kinds(shared):
    area = StorageArea(shared)
    channel = SyncChannel(area)
    received = []
    channel.subscribe(received.append)

    StorageArea(shared).set_item("player_minimized", "true")
    channel.publish_playlist_loaded([_track(1)], _track(1), keep_open=False)

    assert [change.kind for change in received] == [KIND_STORAGE, KIND_PLAYLIST_LOADED]
    assert received[0].payload["key"] == "player_minimized"
    assert received[1].payload == {"tracks": [_track(1)], "currentTrack": _track(1), "keepOpen": False}


@pytest.mark.unit
def test_failing_subscriber_does_not_block_others(shared):
    channel = SyncChannel()
    received = []

    def _broken(change):
        raise RuntimeError("listener bug")

    channel.subscribe(_broken)
    channel.subscribe(received.append)
    channel.publish_playlist_loaded([])

    assert len(received) == 1


@pytest.mark.unit
def test_load_playlist_hands_off_to_same_page_and_other_tabs(shared):
    area = StorageArea(shared)
    detail_view = MusicPlayer(storage=area, channel=SyncChannel(area), scheduler=ManualScheduler())
    other_tab = _tab(shared)
    tracks = [_track(1), _track(2)]

    assert detail_view.load_playlist(tracks) is True

    assert detail_view.tracks == tracks
    assert detail_view.current_track == tracks[0]
    assert detail_view.is_open is True
    assert other_tab.tracks == tracks
    assert other_tab.current_track == tracks[0]
    assert other_tab.is_open is True
    assert json.loads(shared.get("vibeflo_player_open")) is True
    assert shared.get("vibeflo_playlist_updated")


@pytest.mark.unit
def test_load_playlist_with_no_tracks_notifies_and_keeps_state(shared):
    player = _tab(shared)
    player.add_track(_track(1))

    assert player.load_playlist([]) is False
    assert player.tracks == [_track(1)]
    assert player.notifier.last.level == "info"


@pytest.mark.unit
@pytest.mark.parametrize("bad_tracks", [None, "tracks", {"0": "x"}, 3])
def test_malformed_hand_off_is_ignored(shared, bad_tracks):
    area = StorageArea(shared)
    channel = SyncChannel(area)
    player = MusicPlayer(storage=area, channel=channel, scheduler=ManualScheduler())
    player.add_track(_track(1))

    channel.publish_playlist_loaded(bad_tracks, None, True)

    assert player.tracks == [_track(1)]
    assert player.current_track == _track(1)


@pytest.mark.unit
def test_poll_reloads_when_update_flag_moves(shared):
    scheduler = ManualScheduler()
    player = _tab(shared, scheduler)
    assert player.poll_for_updates() is False

    # Simulates a write whose storage event was missed
    shared._data["vibeflo_playlist"] = json.dumps([_track(5)])
    shared._data["vibeflo_playlist_updated"] = "1700000000000"

    player.start_polling()
    assert scheduler.pending[0][0] == 1.0
    scheduler.run_pending()

    assert player.tracks == [_track(5)]
    assert player.poll_for_updates() is False

    player.stop_polling()
    scheduler.run_pending()
    assert scheduler.pending == []


@pytest.mark.unit
def test_deferred_notifications_are_delivered_when_outermost_block_exits(shared):
    writer, reader = StorageArea(shared), StorageArea(shared)
    seen = []
    reader.add_listener(seen.append)

    with shared.deferred_notifications():
        with shared.deferred_notifications():
            writer.set_item("player_open", "true")
        assert shared.get("vibeflo_player_open") == "true"
        assert seen == []

    assert [(c.key, c.new_value) for c in seen] == [("player_open", "true")]


@pytest.mark.unit
def test_tabs_mutating_from_separate_threads_do_not_deadlock(shared):
    def _never_runs(delay, callback):
        return None

    first, second = _tab(shared, _never_runs), _tab(shared, _never_runs)
    start = threading.Barrier(2)

    def _add_many(player, offset):
        start.wait()
        for n in range(300):
            player.add_track(_track(offset + n))

    workers = [
        threading.Thread(target=_add_many, args=(first, 0), daemon=True),
        threading.Thread(target=_add_many, args=(second, 1000), daemon=True),
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(10)

    assert not any(worker.is_alive() for worker in workers)
    stored = json.loads(shared.get("vibeflo_playlist"))
    assert first.tracks == stored
    assert second.tracks == stored
