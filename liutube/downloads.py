"""Track downloads that run side by side, one thread each."""

import os
import sys
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from .client import YouTubeClient
from .downloader import DownloadJob, Strategy, download_with_fallback, prepare_download
from .logger import log_with_timestamp
from .models import ActiveDownload, DownloadInfo, DownloadProgress, DownloadStatus, DOWNLOAD_TIMEOUT

EventCallback = Callable[[str, dict], None]


def make_download_id(video_id: str) -> str:
    return f"{video_id}-{int(time.time() * 1000)}"


class DownloadManager:
    """Launches independent downloads and keeps their state by id.

    The map of downloads is the only shared state; each download runs the
    fallback chain on its own and never waits for another one.
    """

    def __init__(
        self,
        client: YouTubeClient,
        downloads_dir: str,
        on_event: Optional[EventCallback] = None,
        timeout: float = DOWNLOAD_TIMEOUT,
        strategies: Optional[Sequence[Strategy]] = None,
    ) -> None:
        self.client = client
        self.downloads_dir = downloads_dir
        self.timeout = timeout
        self.strategies = strategies
        self._on_event = on_event
        self._downloads: Dict[str, ActiveDownload] = {}
        self._threads: Dict[str, threading.Thread] = {}
        self.lock = threading.Lock()

    def set_event_callback(self, callback: Optional[EventCallback]) -> None:
        self._on_event = callback

    def _emit(self, event: str, payload: dict) -> None:
        if self._on_event:
            self._on_event(event, payload)

    def start(
        self,
        video_id: str,
        title: Optional[str] = None,
        info: Optional[DownloadInfo] = None,
        wait: bool = False,
    ) -> ActiveDownload:
        """Register a download and run it in a background thread.

        When *info* is given the target file is known before the thread starts;
        otherwise the thread resolves it first.
        """
        download = ActiveDownload(
            download_id=make_download_id(video_id),
            video_id=video_id,
            title=title or (info.title if info else None) or video_id,
            filepath=os.path.join(self.downloads_dir, info.filename) if info else None,
        )
        with self.lock:
            suffix = 1
            base_id = download.download_id
            while download.download_id in self._downloads:
                suffix += 1
                download.download_id = f"{base_id}-{suffix}"
            self._downloads[download.download_id] = download

            thread = threading.Thread(
                target=self._run,
                args=(download.download_id, info),
                name=f"download-{download.download_id}",
                daemon=True,
            )
            self._threads[download.download_id] = thread
        thread.start()
        if wait:
            thread.join()
        return download

    def join(self, download_id: str, timeout: Optional[float] = None) -> None:
        with self.lock:
            thread = self._threads.get(download_id)
        if thread:
            thread.join(timeout)

    def _run(self, download_id: str, info: Optional[DownloadInfo] = None) -> None:
        download = self.get(download_id)
        if download is None:
            return

        def report(progress: DownloadProgress) -> None:
            with self.lock:
                download.progress = progress
            payload = {"download_id": download_id}
            payload.update(progress.to_dict())
            self._emit("download-progress", payload)

        try:
            if info is None:
                info = prepare_download(self.client, download.video_id)
            filepath = os.path.join(self.downloads_dir, info.filename)
            with self.lock:
                download.filepath = filepath
            self._emit("download-status", download.to_dict())
            log_with_timestamp(f"[download] Started {download.title} -> {filepath}")

            job = DownloadJob(
                client=self.client,
                video_id=download.video_id,
                filepath=filepath,
                download_url=info.download_url,
                progress=report,
                timeout=self.timeout,
            )
            download_with_fallback(job, self.strategies)
        except Exception as exc:
            log_with_timestamp(f"[download] {download.title} failed: {exc}", file=sys.stderr)
            self._finish(download, DownloadStatus.FAILED, str(exc) or "Download failed")
            return

        log_with_timestamp(f"[download] Finished {download.title}")
        self._finish(download, DownloadStatus.COMPLETED)

    def _finish(self, download: ActiveDownload, status: DownloadStatus, error: Optional[str] = None) -> None:
        with self.lock:
            cancelled = download.status is DownloadStatus.CANCELLED
            if not cancelled:
                download.status = status
                download.error = error
        if not cancelled:
            self._emit("download-status", download.to_dict())
        # Last step of the worker; join() treats a missing thread as finished
        with self.lock:
            self._threads.pop(download.download_id, None)

    def get(self, download_id: str) -> Optional[ActiveDownload]:
        with self.lock:
            return self._downloads.get(download_id)

    def list(self) -> List[ActiveDownload]:
        with self.lock:
            return list(self._downloads.values())

    def cancel(self, download_id: str) -> bool:
        """Mark a download as cancelled; the transfer itself is not interrupted."""
        with self.lock:
            download = self._downloads.get(download_id)
            if download is None or download.status is not DownloadStatus.DOWNLOADING:
                return False
            download.status = DownloadStatus.CANCELLED
        self._emit("download-status", download.to_dict())
        return True

    def remove(self, download_id: str) -> bool:
        with self.lock:
            removed = self._downloads.pop(download_id, None)
            self._threads.pop(download_id, None)
        return removed is not None
