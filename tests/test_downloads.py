import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from liutube import downloads as dl
from liutube.models import DownloadInfo, DownloadProgress, DownloadResult, DownloadStatus


class EventLog:
    def __init__(self):
        self.events = []
        self.lock = threading.Lock()

    def __call__(self, event, payload):
        with self.lock:
            self.events.append((event, payload))

    def statuses(self):
        return [payload["status"] for event, payload in self.events if event == "download-status"]


def info(filename="video.mp4"):
    return DownloadInfo(title="Sample", download_url="https://media.example/18", filename=filename, filesize=4)


def writing_strategy(job):
    Path(job.filepath).parent.mkdir(parents=True, exist_ok=True)
    Path(job.filepath).write_bytes(b"data")
    job.progress(DownloadProgress.from_bytes(4, 4))
    return DownloadResult(success=True, filepath=job.filepath)


def failing_strategy(job):
    raise RuntimeError("HTTP 403: Forbidden")


def test_download_completes_through_fallback(tmp_path):
    log = EventLog()
    manager = dl.DownloadManager(
        client=None,
        downloads_dir=str(tmp_path),
        on_event=log,
        strategies=[("broken", failing_strategy), ("working", writing_strategy)],
    )

    download = manager.start("abcdefghijk", info=info(), wait=True)

    assert download.title == "Sample"
    assert download.filepath == str(tmp_path / "video.mp4")
    assert download.status is DownloadStatus.COMPLETED
    assert (tmp_path / "video.mp4").read_bytes() == b"data"
    assert log.statuses() == ["downloading", "completed"]
    progress_events = [payload for event, payload in log.events if event == "download-progress"]
    assert progress_events == [{
        "download_id": download.download_id,
        "progress": 100.0,
        "downloaded_bytes": 4,
        "total_bytes": 4,
    }]


def test_download_failure_records_last_error(tmp_path, capsys):
    log = EventLog()
    manager = dl.DownloadManager(None, str(tmp_path), on_event=log, strategies=[("broken", failing_strategy)])

    download = manager.start("abcdefghijk", "My video", info=info(), wait=True)

    assert download.status is DownloadStatus.FAILED
    assert download.error == "HTTP 403: Forbidden"
    assert log.statuses()[-1] == "failed"
    assert "My video failed" in capsys.readouterr().err


def test_download_resolves_info_when_not_given(monkeypatch, tmp_path):
    prepared = []

    def fake_prepare(client, video_id):
        prepared.append(video_id)
        return info("resolved.mp4")

    monkeypatch.setattr(dl, "prepare_download", fake_prepare)
    manager = dl.DownloadManager(None, str(tmp_path), strategies=[("working", writing_strategy)])

    download = manager.start("abcdefghijk", wait=True)

    assert prepared == ["abcdefghijk"]
    assert download.filepath == str(tmp_path / "resolved.mp4")
    assert download.status is DownloadStatus.COMPLETED


def test_cancel_marks_entry_and_keeps_it_cancelled(tmp_path):
    started = threading.Event()
    release = threading.Event()

    def slow_strategy(job):
        started.set()
        release.wait(5)
        return DownloadResult(success=True, filepath=job.filepath)

    manager = dl.DownloadManager(None, str(tmp_path), strategies=[("slow", slow_strategy)])
    download = manager.start("abcdefghijk", info=info())
    assert started.wait(5)

    assert manager.cancel(download.download_id) is True
    release.set()
    manager.join(download.download_id, 5)

    assert manager.get(download.download_id).status is DownloadStatus.CANCELLED
    assert manager.cancel(download.download_id) is False


def test_ids_are_unique_per_download(monkeypatch, tmp_path):
    monkeypatch.setattr(dl, "make_download_id", lambda video_id: f"{video_id}-1000")
    manager = dl.DownloadManager(None, str(tmp_path), strategies=[("working", writing_strategy)])

    first = manager.start("abcdefghijk", info=info("a.mp4"), wait=True)
    second = manager.start("abcdefghijk", info=info("b.mp4"), wait=True)

    assert first.download_id == "abcdefghijk-1000"
    assert second.download_id == "abcdefghijk-1000-2"
    assert len(manager.list()) == 2


def test_remove_download(tmp_path):
    manager = dl.DownloadManager(None, str(tmp_path), strategies=[("working", writing_strategy)])
    download = manager.start("abcdefghijk", info=info(), wait=True)

    assert manager.remove(download.download_id) is True
    assert manager.remove(download.download_id) is False
    assert manager.get(download.download_id) is None


def test_finished_downloads_release_their_worker_thread(tmp_path, capsys):
    manager = dl.DownloadManager(None, str(tmp_path), strategies=[("working", writing_strategy)])

    done = manager.start("abcdefghijk", info=info("a.mp4"), wait=True)
    failed = dl.DownloadManager(None, str(tmp_path), strategies=[("broken", failing_strategy)])
    broken = failed.start("bbbbbbbbbbb", info=info("b.mp4"), wait=True)

    assert manager._threads == {}
    assert failed._threads == {}
    assert manager.get(done.download_id).status is DownloadStatus.COMPLETED
    assert broken.status is DownloadStatus.FAILED
    manager.join(done.download_id, 1)
    assert "] [download] Finished Sample" in capsys.readouterr().out


def test_make_download_id_format():
    download_id = dl.make_download_id("abcdefghijk")
    prefix, stamp = download_id.rsplit("-", 1)
    assert prefix == "abcdefghijk"
    assert stamp.isdigit()
