import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from pitchside.lineup import create_player, create_session
from pitchside.models import NewsItem, SessionConfig, SessionStatus
from pitchside.storage import RemoteSync, SessionStore


def _session(day: int):
    players = [create_player(name) for name in ("ana", "bo", "cy", "dee")]
    session = create_session(
        SessionConfig(num_teams=2, players_per_team=2),
        players,
        date=datetime(2026, 4, day, 18, 0, tzinfo=timezone.utc),
        session_name=f"Thursday {day}",
    )
    session.status = SessionStatus.COMPLETED
    return session


@pytest.mark.regression
def test_players_round_trip_and_upsert(tmp_path) -> None:
    store = SessionStore(tmp_path)
    ana, bo = create_player("ana"), create_player("bo")
    ana.badges = {"mvp": 2}
    ana.session_history = [50, 100]
    assert store.save_players([ana, bo]).success

    ana.total_goals = 7
    store.save_players([ana])
    loaded = {p.nickname: p for p in store.load_players()}
    assert set(loaded) == {"ana", "bo"}
    assert loaded["ana"].total_goals == 7
    assert loaded["ana"].badges == {"mvp": 2}
    assert loaded["ana"].session_history == [50, 100]


@pytest.mark.regression
def test_loads_legacy_bare_list_of_players(tmp_path) -> None:
    (tmp_path / "players.json").write_text(
        json.dumps([{"player_id": "p1", "nickname": "Old Timer", "rating": 60, "initial_rating": 65}]),
        encoding="utf-8",
    )
    players = SessionStore(tmp_path).load_players()
    assert len(players) == 1
    assert players[0].nickname == "Old Timer"
    assert players[0].rating == 65


@pytest.mark.regression
def test_drops_unknown_badges_and_junk_rows(tmp_path) -> None:
    (tmp_path / "players.json").write_text(
        json.dumps({"save_version": 1, "players": [{"nickname": "ana", "badges": {"mvp": 1, "hat_trick": 3}}, "junk"]}),
        encoding="utf-8",
    )
    players = SessionStore(tmp_path).load_players()
    assert len(players) == 1
    assert players[0].badges == {"mvp": 1}


@pytest.mark.regression
def test_rejects_future_save_version_with_clear_error(tmp_path) -> None:
    (tmp_path / "players.json").write_text(
        json.dumps({"save_version": 999, "players": [{"nickname": "ana"}]}),
        encoding="utf-8",
    )
    store = SessionStore(tmp_path)
    assert store.load_players() == []
    assert "Unsupported players version 999" in store.last_load_error


@pytest.mark.regression
def test_second_save_keeps_backup(tmp_path) -> None:
    store = SessionStore(tmp_path)
    store.save_players([create_player("ana")])
    assert not (tmp_path / "players.json.bak").exists()
    store.save_players([create_player("bo")])
    backup = json.loads((tmp_path / "players.json.bak").read_text(encoding="utf-8"))
    assert [row["nickname"] for row in backup["players"]] == ["ana"]


def test_session_history_is_newest_first(tmp_path) -> None:
    store = SessionStore(tmp_path)
    older, newer = _session(2), _session(9)
    store.save_session(older)
    store.save_session(newer)
    older.session_name = "Renamed"
    store.save_session(older)

    history = store.load_session_history()
    assert [s.session_id for s in history] == [newer.session_id, older.session_id]
    assert history[1].session_name == "Renamed"
    assert len(store.load_session_history(limit=1)) == 1


def test_active_session_save_and_clear(tmp_path) -> None:
    store = SessionStore(tmp_path)
    assert store.load_active_session() is None
    session = _session(5)
    session.status = SessionStatus.ACTIVE
    store.save_active_session(session)
    loaded = store.load_active_session()
    assert loaded is not None
    assert loaded.session_id == session.session_id
    assert [p.nickname for p in loaded.player_pool] == ["ana", "bo", "cy", "dee"]

    assert store.save_active_session(None).success
    assert store.load_active_session() is None
    assert not (tmp_path / "active_session.json.bak").exists()


def test_news_feed_round_trip(tmp_path) -> None:
    store = SessionStore(tmp_path)
    now = datetime(2026, 4, 12, 20, 0, tzinfo=timezone.utc)
    items = [
        NewsItem(news_id="old", player_id="p", player_name="ana", kind="badge", timestamp=now - timedelta(hours=3)),
        NewsItem(
            news_id="new",
            player_id="p",
            player_name="ana",
            kind="milestone",
            timestamp=now,
            priority=52,
            params={"label": "goals", "milestone": 100},
        ),
    ]
    store.save_news_feed(items)
    loaded = store.load_news_feed()
    assert [item.news_id for item in loaded] == ["new", "old"]
    assert loaded[0].params == {"label": "goals", "milestone": 100}
    assert loaded[0].timestamp == now
    assert len(store.load_news_feed(limit=1)) == 1


def test_remote_sync_reports_cloud_status(tmp_path) -> None:
    seen: list[str] = []

    def ok(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"ok": True})

    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    synced = SessionStore(tmp_path, RemoteSync("http://sync.test", transport=httpx.MockTransport(ok)))
    result = synced.save_players([create_player("ana")])
    assert result.success and result.cloud_synced
    assert seen == ["/sync/players"]

    offline = SessionStore(tmp_path, RemoteSync("http://sync.test", transport=httpx.MockTransport(broken)))
    result = offline.save_players([create_player("bo")])
    assert result.success
    assert result.cloud_synced is False
    assert len(offline.load_players()) == 2
