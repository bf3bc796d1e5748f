"""Download preparation, the four retrieval strategies and their fallback chain."""

import contextlib
import os
import re
import sys
import time
import urllib.parse
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import requests
from pytubefix import YouTube

from .client import ProgressCallback, YouTubeClient
from .errors import DownloadTimeoutError, HttpStatusError, LiuTubeError, NoFormatError
from .formats import extension_for, muxed_first, ordered_direct_formats, select_download_format
from .models import (
    BROWSER_HEADERS,
    CHUNK_SIZE,
    DEFAULT_USER_AGENT,
    DOWNLOAD_TIMEOUT,
    MAX_REDIRECTS,
    YOUTUBE_ORIGIN,
    DownloadInfo,
    DownloadProgress,
    DownloadResult,
    watch_url,
)


def sanitize_filename(filename: Optional[str]) -> str:
    """Make a video title safe to use as a file name on every platform."""
    cleaned = re.sub(r'[<>:"/\\|?*#%\[\]]', "-", filename or "")
    cleaned = re.sub(r"[\u0000-\u001f\u007f-\u009f]", "", cleaned)
    cleaned = re.sub(r"^\.+", "", cleaned)
    cleaned = re.sub(r"\.+$", "", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned)
    cleaned = re.sub(r"[-_]+", "-", cleaned)
    cleaned = cleaned.strip()[:200]
    return cleaned or f"Video_{int(time.time() * 1000)}"


def prepare_download(client: YouTubeClient, video_id: str) -> DownloadInfo:
    """Resolve the format, URL and file name offered for downloading a video."""
    info = client.get_info(video_id)
    print(f"[download] Video info loaded for: {info.title}")

    fmt = select_download_format(info.formats)
    if not fmt.url:
        raise NoFormatError("No downloadable format available for this video")
    print(f"[download] Selected format: {fmt.describe()}")

    clean_title = sanitize_filename(info.title or "Unknown Video")
    return DownloadInfo(
        title=info.title,
        download_url=fmt.url,
        filename=f"{clean_title}.{extension_for(fmt)}",
        filesize=fmt.content_length or 0,
    )


def _remove_partial(filepath: str) -> None:
    with contextlib.suppress(OSError):
        os.remove(filepath)


def write_chunks(
    chunks: Iterable[bytes],
    filepath: str,
    total_bytes: int,
    progress: Optional[ProgressCallback] = None,
) -> int:
    """Write *chunks* to *filepath*, reporting progress; removes the file on failure."""
    downloaded = 0
    try:
        with open(filepath, "wb") as handle:
            for chunk in chunks:
                if not chunk:
                    continue
                handle.write(chunk)
                downloaded += len(chunk)
                if progress:
                    progress(DownloadProgress.from_bytes(downloaded, total_bytes))
    except BaseException:
        _remove_partial(filepath)
        raise
    return downloaded


def _ensure_parent(filepath: str) -> None:
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)


def download_file_simple(
    client: YouTubeClient,
    video_id: str,
    filepath: str,
    progress: Optional[ProgressCallback] = None,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> DownloadResult:
    """Resolve a direct URL with yt-dlp and stream it with requests."""
    print(f"[download] Attempting simple download for: {video_id}")
    info = client.get_info(video_id)

    candidates = ordered_direct_formats(info.formats)
    print(f"[download] Valid formats found: {len(candidates)}")
    if not candidates:
        raise NoFormatError("No downloadable formats available")

    fmt = candidates[0]
    print(f"[download] Using simple format: {fmt.describe()}")

    headers = {"User-Agent": DEFAULT_USER_AGENT, "Referer": YOUTUBE_ORIGIN + "/"}
    headers.update(fmt.http_headers)

    _ensure_parent(filepath)
    with requests.get(fmt.url, headers=headers, stream=True, timeout=timeout) as response:
        if not response.ok:
            raise HttpStatusError(response.status_code, response.reason or "")
        total_bytes = int(response.headers.get("content-length") or 0)
        write_chunks(response.iter_content(chunk_size=CHUNK_SIZE), filepath, total_bytes, progress)

    print("[download] Simple download completed")
    return DownloadResult(success=True, filepath=filepath)


def _pick_pytube_stream(yt: YouTube):
    streams = yt.streams
    return (
        streams.filter(progressive=True).order_by("resolution").first()
        or streams.order_by("resolution").first()
        or streams.first()
    )


def download_file_pytube(
    video_id: str,
    filepath: str,
    progress: Optional[ProgressCallback] = None,
) -> DownloadResult:
    """Download through pytubefix's own stream pipeline."""
    print(f"[download] Attempting pytubefix download for: {video_id}")

    def on_progress(stream, _chunk, bytes_remaining) -> None:
        total = int(getattr(stream, "filesize", 0) or 0)
        progress(DownloadProgress.from_bytes(max(total - bytes_remaining, 0), total))

    yt = YouTube(watch_url(video_id), on_progress_callback=on_progress if progress else None)
    print(f"[download] pytubefix info loaded: {yt.title}")

    stream = _pick_pytube_stream(yt)
    if stream is None:
        raise NoFormatError("No suitable format found with pytubefix")
    print(f"[download] pytubefix selected format: {stream.itag} {getattr(stream, 'resolution', None) or ''}".rstrip())

    directory, filename = os.path.split(filepath)
    _ensure_parent(filepath)
    try:
        stream.download(output_path=directory or None, filename=filename, skip_existing=False)
    except BaseException:
        _remove_partial(filepath)
        raise

    print("[download] pytubefix download completed")
    return DownloadResult(success=True, filepath=filepath)


def download_file(
    url: Optional[str],
    filepath: str,
    progress: Optional[ProgressCallback] = None,
    timeout: float = DOWNLOAD_TIMEOUT,
    max_redirects: int = MAX_REDIRECTS,
) -> DownloadResult:
    """Fetch an already resolved *url* with browser headers, following redirects by hand."""
    if not url:
        raise NoFormatError("No resolved download URL")

    print(f"[download] Downloading to: {filepath}")
    _ensure_parent(filepath)

    current = url
    with requests.Session() as session:
        session.trust_env = False
        for _ in range(max_redirects + 1):
            try:
                response = session.get(
                    current,
                    headers=BROWSER_HEADERS,
                    stream=True,
                    timeout=timeout,
                    allow_redirects=False,
                )
            except requests.exceptions.Timeout as exc:
                raise DownloadTimeoutError() from exc

            with response:
                if 300 <= response.status_code < 400 and "Location" in response.headers:
                    current = urllib.parse.urljoin(current, response.headers["Location"])
                    print(f"[download] Redirecting to: {current}")
                    continue

                if response.status_code != 200:
                    raise HttpStatusError(response.status_code, response.reason or "")

                total_bytes = int(response.headers.get("Content-Length") or 0)
                print(f"[download] Download size: {total_bytes} bytes")
                try:
                    write_chunks(response.iter_content(chunk_size=CHUNK_SIZE), filepath, total_bytes, progress)
                except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
                    # iter_content reports a read timeout on the body as ConnectionError
                    raise DownloadTimeoutError() from exc

            print(f"[download] Download completed: {filepath}")
            return DownloadResult(success=True, filepath=filepath)

    raise LiuTubeError(f"Too many redirects (more than {max_redirects})")


def download_file_stream(
    client: YouTubeClient,
    video_id: str,
    filepath: str,
    progress: Optional[ProgressCallback] = None,
) -> DownloadResult:
    """Hand one resolved format to yt-dlp's own downloader."""
    print(f"[download] Attempting stream download for: {video_id}")
    info = client.get_info(video_id)

    fmt = next((f for f in muxed_first(info.formats) if f.url and f.has_video), None)
    if fmt is None:
        raise NoFormatError("No streamable format with URL found")
    print(f"[download] Using format for streaming: {fmt.describe()}")

    try:
        client.download_format(video_id, fmt, filepath, progress)
    except BaseException:
        _remove_partial(filepath)
        raise

    print("[download] Stream download completed")
    return DownloadResult(success=True, filepath=filepath)


@dataclass
class DownloadJob:
    """Everything a strategy needs to fetch one video."""
    client: YouTubeClient
    video_id: str
    filepath: str
    download_url: Optional[str] = None
    progress: Optional[ProgressCallback] = None
    timeout: float = DOWNLOAD_TIMEOUT


Strategy = Tuple[str, Callable[[DownloadJob], DownloadResult]]

STRATEGIES: List[Strategy] = [
    ("simple", lambda job: download_file_simple(job.client, job.video_id, job.filepath, job.progress, job.timeout)),
    ("pytube", lambda job: download_file_pytube(job.video_id, job.filepath, job.progress)),
    ("url", lambda job: download_file(job.download_url, job.filepath, job.progress, job.timeout)),
    ("stream", lambda job: download_file_stream(job.client, job.video_id, job.filepath, job.progress)),
]


def download_with_fallback(
    job: DownloadJob,
    strategies: Optional[Sequence[Strategy]] = None,
) -> DownloadResult:
    """Try each strategy in order; re-raise the last error when all of them fail."""
    if strategies is None:
        strategies = STRATEGIES
    if not strategies:
        raise ValueError("no download strategies configured")

    last_error: Optional[Exception] = None
    for index, (name, run) in enumerate(strategies, start=1):
        print(f"[download] Method {index}/{len(strategies)} ({name}) for {job.video_id}")
        try:
            result = run(job)
        except Exception as exc:
            last_error = exc
            print(f"[download] Method {index} ({name}) failed: {exc}", file=sys.stderr)
            continue

        result.strategy = name
        print(f"[download] Finished with method {index} ({name}): {result.filepath}")
        return result

    raise last_error
