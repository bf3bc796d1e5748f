import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import interactive_interface as interface


class FakeApi:
    def __init__(self, info=None):
        self.info = info or {"title": "Sample", "url": "https://media.example/22", "author": "Someone"}
        self.history = []
        self.started = []
        self.waited = []
        self.cleared = False

    def search_youtube(self, query, search_type="video"):
        if search_type == "channel":
            return {"channels": [{"id": "UCchannel", "title": "Chan", "subscriber_count": "1K subscribers"}]}
        return {"videos": [
            {"id": "abcdefghijk", "title": f"{query} one", "author": "A", "duration": "1:00"},
            {"id": "bbbbbbbbbbb", "title": f"{query} two", "author": "B", "duration": ""},
        ]}

    def get_channel_videos(self, channel_id):
        return {"videos": [{"id": "ccccccccccc", "title": f"video of {channel_id}", "author": "Chan"}]}

    def get_playlist_videos(self, playlist_id):
        return {"error": "playlist is private"}

    def get_video_info(self, video_id):
        return self.info

    def add_to_history(self, video):
        self.history.append(video)
        return video

    def start_download(self, video_id, title=None):
        self.started.append((video_id, title))
        return {"download_id": f"{video_id}-1", "filepath": f"/downloads/{title}.mp4"}

    def wait_for_download(self, download_id, timeout=None):
        self.waited.append(download_id)
        return {"status": "completed"}

    def resolve_reference(self, text):
        if "list=" in text:
            return {"kind": "playlist", "id": "PLx"}
        return {"kind": "video", "id": "abcdefghijk"}

    def get_history_stats(self):
        return {"total_videos": 1, "total_watch_time": 3660, "most_watched_channels": [{"name": "A", "count": 2}]}

    def get_history(self, query=None):
        return {"history": [{"id": "abcdefghijk", "title": "seen", "author": "A", "duration": "1:00"}]}

    def clear_history(self):
        self.cleared = True
        return {"cleared": True}

    def list_downloads(self):
        return {"downloads": [{
            "title": "Sample",
            "status": "failed",
            "progress": {"progress": 42.5},
            "error": "HTTP 403: Forbidden",
        }]}


def make_session(api=None):
    opened = []
    session = interface.ShellSession(args=SimpleNamespace(), api=api or FakeApi(), open_url=opened.append)
    return session, opened


def feed_input(monkeypatch, answers):
    iterator = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(iterator))


def test_search_and_play_adds_history(monkeypatch, capsys):
    session, opened = make_session()
    feed_input(monkeypatch, ["1", "cats", "2", "p", "q"])

    interface.run_menu(session)

    assert opened == ["https://media.example/22"]
    assert session.api.history[0]["id"] == "bbbbbbbbbbb"
    assert session.api.history[0]["author"] == "Someone"
    out = capsys.readouterr().out
    assert "1. cats one - A [1:00]" in out
    assert "Playing: Sample (Someone)" in out
    assert "Goodbye!" in out


def test_play_error_shows_hint_and_falls_back_to_embed(monkeypatch, capsys):
    session, opened = make_session(FakeApi(info={"error": "Sign in to confirm your age"}))
    feed_input(monkeypatch, ["1", "cats", "1", "p", "q"])

    interface.run_menu(session)

    assert opened == ["https://www.youtube.com/embed/abcdefghijk"]
    assert "age-restricted" in capsys.readouterr().out
    assert session.api.history[0]["id"] == "abcdefghijk"


def test_download_from_search(monkeypatch, capsys):
    session, _ = make_session()
    feed_input(monkeypatch, ["1", "cats", "1", "d", "q"])

    interface.run_menu(session)

    assert session.api.started == [("abcdefghijk", "cats one")]
    assert session.api.waited == ["abcdefghijk-1"]
    assert "Downloading to /downloads/cats one.mp4" in capsys.readouterr().out


def test_channel_search_lists_channel_videos(monkeypatch, capsys):
    session, _ = make_session()
    feed_input(monkeypatch, ["2", "music", "1", "b", "q"])

    interface.run_menu(session)

    out = capsys.readouterr().out
    assert "1. Chan 1K subscribers" in out
    assert "video of UCchannel" in out


def test_open_link_reports_listing_errors(monkeypatch, capsys):
    session, _ = make_session()
    feed_input(monkeypatch, ["4", "https://www.youtube.com/playlist?list=PLx", "q"])

    interface.run_menu(session)

    assert "Listing failed: playlist is private" in capsys.readouterr().err


def test_history_menu_shows_stats_and_can_clear(monkeypatch, capsys):
    session, _ = make_session()
    feed_input(monkeypatch, ["5", "", "b", "5", "clear", "q"])

    interface.run_menu(session)

    out = capsys.readouterr().out
    assert "1 videos watched, 1h 1m in total" in out
    assert "A: 2 views" in out
    assert "History cleared." in out
    assert session.api.cleared is True


def test_downloads_menu_lists_status(monkeypatch, capsys):
    session, _ = make_session()
    feed_input(monkeypatch, ["6", "q"])

    interface.run_menu(session)

    assert "1. Sample -> failed 42% (HTTP 403: Forbidden)" in capsys.readouterr().out


def test_unrecognized_option(monkeypatch, capsys):
    session, _ = make_session()
    feed_input(monkeypatch, ["9", "q"])

    interface.run_menu(session)

    assert "Unrecognized option" in capsys.readouterr().out


def test_prompt_choice_retries_until_valid(monkeypatch, capsys):
    feed_input(monkeypatch, ["x", "5", "2"])

    assert interface._prompt_choice(3) == 2
    assert capsys.readouterr().out.count("Please enter a number between 1 and 3") == 2


def test_progress_events_print_whole_percent_changes(capsys):
    session, _ = make_session()
    for progress in (10.2, 10.8, 55.0):
        interface.print_download_event(
            session, "download-progress",
            {"download_id": "x-1", "progress": progress, "total_bytes": 1048576},
        )
    interface.print_download_event(session, "download-status", {"status": "failed", "error": "Download timeout"})

    captured = capsys.readouterr()
    assert captured.out.count("%") == 2
    assert " 55% of 1.0 MB" in captured.out
    assert "Download failed: Download timeout" in captured.err


@pytest.mark.parametrize("answer", ["b", "q"])
def test_prompt_choice_back(monkeypatch, answer):
    feed_input(monkeypatch, [answer])
    assert interface._prompt_choice(3) is None


def test_build_session_routes_download_events_to_terminal(monkeypatch, tmp_path, capsys):
    built = {}

    def fake_create_api(args, on_event=None):
        built["args"] = args
        built["on_event"] = on_event
        return FakeApi()

    monkeypatch.setattr(interface, "create_api", fake_create_api)
    args = SimpleNamespace(data_dir=str(tmp_path / "data"))

    session = interface.build_session(args)
    built["on_event"]("download-status", {"status": "completed", "filepath": "/downloads/a.mp4"})

    assert isinstance(session.api, FakeApi)
    assert built["args"] is args
    assert (tmp_path / "data").is_dir()
    assert "Saved to /downloads/a.mp4" in capsys.readouterr().out
