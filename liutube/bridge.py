"""The object whose public methods the desktop window calls."""

import functools
import json
import os
import random
import sys
from typing import Any, Callable, Dict, Optional

from . import downloader
from .client import YouTubeClient, create_client
from .config import history_path
from .downloads import DownloadManager
from .errors import NotInitializedError
from .formats import choose_format
from .history import HistoryManager, JsonStore
from .models import (
    DOWNLOAD_TIMEOUT,
    TRENDING_QUERIES,
    DownloadProgress,
    ReferenceKind,
    SearchType,
    embed_url,
    watch_url,
)
from .sources import parse_reference


def bridge_call(requires_client: bool = True) -> Callable:
    """Turn exceptions raised by a bridge method into ``{"error": message}``."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                if requires_client and self._client is None:
                    raise NotInitializedError()
                return func(self, *args, **kwargs)
            except Exception as exc:
                message = str(exc) or exc.__class__.__name__
                print(f"[bridge] {func.__name__} failed: {message}", file=sys.stderr)
                return {"error": message}

        return wrapper

    return decorator


class Api:
    """Request/response calls plus window controls exposed to the page.

    pywebview exposes every public attribute of this object to JavaScript,
    so collaborators are kept in underscore attributes.
    """

    def __init__(
        self,
        client: Optional[YouTubeClient],
        history: HistoryManager,
        downloads: Optional[DownloadManager],
        downloads_dir: str,
        always_on_top: bool = True,
        timeout: float = DOWNLOAD_TIMEOUT,
        on_event: Optional[Callable[[str, Dict[str, Any]], None]] = None,
    ) -> None:
        self._client = client
        self._history = history
        self._downloads = downloads
        self._downloads_dir = downloads_dir
        self._always_on_top = always_on_top
        self._timeout = timeout
        self._on_event = on_event
        self._window = None
        if downloads is not None:
            downloads.set_event_callback(self.emit)

    def attach_window(self, window) -> None:
        self._window = window

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """Dispatch ``liutube:<event>`` on the page; dropped when no window is attached.

        An *on_event* callback given at construction receives events instead.
        """
        if self._on_event is not None:
            self._on_event(event, payload)
            return
        if self._window is None:
            return
        script = (
            f"window.dispatchEvent(new CustomEvent({json.dumps('liutube:' + event)}, "
            f"{{detail: {json.dumps(payload)}}}))"
        )
        try:
            self._window.evaluate_js(script)
        except Exception as exc:
            print(f"[bridge] Failed to deliver {event}: {exc}", file=sys.stderr)

    def _progress_emitter(self, download_id: Optional[str]) -> Callable[[DownloadProgress], None]:
        def report(progress: DownloadProgress) -> None:
            payload: Dict[str, Any] = {"download_id": download_id}
            payload.update(progress.to_dict())
            self.emit("download-progress", payload)

        return report

    def _resolve_path(self, filepath: str) -> str:
        if not filepath:
            raise ValueError("missing file path")
        filepath = os.path.expanduser(filepath)
        if os.path.isabs(filepath):
            return filepath
        return os.path.join(self._downloads_dir, filepath)

    # Search and metadata

    @bridge_call()
    def search_youtube(self, query: str, search_type: str = "video") -> Dict[str, Any]:
        return self._client.search(query, search_type).to_dict()

    @bridge_call()
    def get_video_info(self, video_id: str) -> Dict[str, Any]:
        info = self._client.get_info(video_id)
        fmt = choose_format(info.formats, "best", "video+audio")
        return {"title": info.title, "url": fmt.url, "author": info.author}

    @bridge_call()
    def get_channel_videos(self, channel_id: str) -> Dict[str, Any]:
        videos = self._client.get_channel_videos(channel_id)
        return {"videos": [video.to_dict() for video in videos]}

    @bridge_call()
    def get_playlist_videos(self, playlist_id: str) -> Dict[str, Any]:
        videos = self._client.get_playlist_videos(playlist_id)
        return {"videos": [video.to_dict() for video in videos]}

    @bridge_call()
    def get_trending_videos(self) -> Dict[str, Any]:
        query = random.choice(TRENDING_QUERIES)
        print(f"[search] Home feed query: {query}")
        return self._client.search(query, SearchType.VIDEO.value).to_dict()

    @bridge_call(requires_client=False)
    def resolve_reference(self, text: str) -> Dict[str, Any]:
        reference = parse_reference(text)
        payload = {"kind": reference.kind.value, "id": reference.id}
        if reference.kind is ReferenceKind.VIDEO:
            payload["watch_url"] = watch_url(reference.id)
            payload["embed_url"] = embed_url(reference.id)
        return payload

    # Downloads

    @bridge_call(requires_client=False)
    def get_downloads_path(self) -> str:
        return self._downloads_dir

    @bridge_call()
    def download_video(self, video_id: str) -> Dict[str, Any]:
        return downloader.prepare_download(self._client, video_id).to_dict()

    @bridge_call()
    def download_file_simple(self, video_id: str, filepath: str, download_id: Optional[str] = None) -> Dict[str, Any]:
        result = downloader.download_file_simple(
            self._client, video_id, self._resolve_path(filepath),
            self._progress_emitter(download_id), self._timeout,
        )
        return result.to_dict()

    @bridge_call(requires_client=False)
    def download_file_pytube(self, video_id: str, filepath: str, download_id: Optional[str] = None) -> Dict[str, Any]:
        result = downloader.download_file_pytube(
            video_id, self._resolve_path(filepath), self._progress_emitter(download_id),
        )
        return result.to_dict()

    @bridge_call(requires_client=False)
    def download_file(self, url: str, filepath: str, download_id: Optional[str] = None) -> Dict[str, Any]:
        result = downloader.download_file(
            url, self._resolve_path(filepath), self._progress_emitter(download_id), self._timeout,
        )
        return result.to_dict()

    @bridge_call()
    def download_file_stream(self, video_id: str, filepath: str, download_id: Optional[str] = None) -> Dict[str, Any]:
        result = downloader.download_file_stream(
            self._client, video_id, self._resolve_path(filepath), self._progress_emitter(download_id),
        )
        return result.to_dict()

    @bridge_call()
    def start_download(self, video_id: str, title: Optional[str] = None) -> Dict[str, Any]:
        if self._downloads is None:
            raise NotInitializedError()
        info = downloader.prepare_download(self._client, video_id)
        download = self._downloads.start(video_id, title, info=info)
        return {"download_id": download.download_id, "filepath": download.filepath}

    @bridge_call(requires_client=False)
    def list_downloads(self) -> Dict[str, Any]:
        downloads = self._downloads.list() if self._downloads else []
        return {"downloads": [download.to_dict() for download in downloads]}

    @bridge_call(requires_client=False)
    def cancel_download(self, download_id: str) -> Dict[str, Any]:
        cancelled = bool(self._downloads and self._downloads.cancel(download_id))
        return {"cancelled": cancelled}

    @bridge_call(requires_client=False)
    def remove_download(self, download_id: str) -> Dict[str, Any]:
        removed = bool(self._downloads and self._downloads.remove(download_id))
        return {"removed": removed}

    @bridge_call(requires_client=False)
    def wait_for_download(self, download_id: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        download = self._downloads.get(download_id) if self._downloads else None
        if download is None:
            raise ValueError(f"Unknown download: {download_id}")
        self._downloads.join(download_id, timeout)
        return download.to_dict()

    # History

    @bridge_call(requires_client=False)
    def add_to_history(self, video: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(video, dict) or not video.get("id"):
            raise ValueError("video id is required")
        entry = self._history.add_video(video)
        print(f"[history] Added {entry.id} ({entry.watch_count} views)")
        return entry.to_dict()

    @bridge_call(requires_client=False)
    def get_history(self, query: Optional[str] = None) -> Dict[str, Any]:
        entries = self._history.search_history(query)
        return {"history": [entry.to_dict() for entry in entries]}

    @bridge_call(requires_client=False)
    def remove_from_history(self, video_id: str) -> Dict[str, Any]:
        return {"removed": self._history.remove_video(video_id)}

    @bridge_call(requires_client=False)
    def clear_history(self) -> Dict[str, Any]:
        return {"cleared": self._history.clear_history()}

    @bridge_call(requires_client=False)
    def get_history_stats(self) -> Dict[str, Any]:
        return self._history.get_stats()

    # Window controls

    def minimize_window(self) -> None:
        if self._window is not None:
            self._window.minimize()

    def close_window(self) -> None:
        if self._window is not None:
            self._window.destroy()

    def toggle_always_on_top(self) -> bool:
        self._always_on_top = not self._always_on_top
        if self._window is not None:
            self._window.on_top = self._always_on_top
        return self._always_on_top


def create_api(args, on_event: Optional[Callable[[str, Dict[str, Any]], None]] = None) -> Api:
    """Wire the client, history store and download manager behind one Api."""
    client = create_client(args)
    history = HistoryManager(JsonStore(history_path(args)))
    downloads = None
    if client is not None:
        downloads = DownloadManager(client, args.downloads_dir, timeout=args.timeout)
    return Api(
        client,
        history,
        downloads,
        args.downloads_dir,
        always_on_top=getattr(args, "always_on_top", True),
        timeout=args.timeout,
        on_event=on_event,
    )
