"""YouTube access through yt-dlp: search, video info, listings and downloads."""

import os
import sys
import urllib.parse
from typing import Callable, List, Optional, Set

import yt_dlp

from .errors import LiuTubeError
from .formats import parse_formats
from .logger import YtDlpLogger
from .models import (
    UNKNOWN_CHANNEL,
    YOUTUBE_ORIGIN,
    ChannelSummary,
    DownloadProgress,
    Format,
    PlaylistSummary,
    SearchResults,
    SearchType,
    VideoInfo,
    VideoSummary,
    watch_url,
)
from .sources import channel_url, playlist_url
from .ytdlp_options import build_ydl_options

CHANNEL_PAGE_SIZE = 30
PLAYLIST_PAGE_SIZE = 100

# Results page filters ("sp" parameter) for non-video searches
SEARCH_FILTERS = {
    SearchType.CHANNEL: "EgIQAg==",
    SearchType.PLAYLIST: "EgIQAw==",
}

PLAYLIST_ID_PREFIXES = ("PL", "OL", "UU", "FL", "RD", "LL")

ProgressCallback = Callable[[DownloadProgress], None]


def format_duration(seconds: object) -> str:
    """Render a duration in seconds as M:SS or H:MM:SS."""
    try:
        total = int(float(seconds))
    except (TypeError, ValueError):
        return ""
    if total <= 0:
        return ""
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_count(value: object, noun: str) -> str:
    """Render a count like '1.2M subscribers'."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        return ""
    for threshold, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if count >= threshold:
            scaled = f"{count / threshold:.1f}".rstrip("0").rstrip(".")
            return f"{scaled}{suffix} {noun}"
    return f"{count} {noun}"


def _text(*values: object) -> str:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def first_thumbnail(entry: dict) -> str:
    thumbnails = entry.get("thumbnails")
    url = ""
    if isinstance(thumbnails, list) and thumbnails:
        first = thumbnails[0]
        if isinstance(first, dict):
            url = first.get("url") or ""
    if not url:
        url = entry.get("thumbnail") or ""
    if url.startswith("//"):
        url = "https:" + url
    return url


def entry_kind(entry: dict) -> SearchType:
    """Classify a flat search entry as video, channel or playlist."""
    entry_id = str(entry.get("id") or "")
    url = str(entry.get("url") or "")
    if entry.get("ie_key") == "Youtube" or "watch?v=" in url or "/shorts/" in url:
        return SearchType.VIDEO
    if "list=" in url or (len(entry_id) > 11 and entry_id.startswith(PLAYLIST_ID_PREFIXES)):
        return SearchType.PLAYLIST
    if "/channel/" in url or "/@" in url or (len(entry_id) == 24 and entry_id.startswith("UC")):
        return SearchType.CHANNEL
    return SearchType.VIDEO


def video_summary(entry: dict) -> VideoSummary:
    return VideoSummary(
        id=str(entry.get("id")),
        title=_text(entry.get("title"), entry.get("fulltitle")) or str(entry.get("id")),
        author=_text(entry.get("channel"), entry.get("uploader"), entry.get("creator")) or UNKNOWN_CHANNEL,
        duration=_text(entry.get("duration_string")) or format_duration(entry.get("duration")),
        thumbnail=first_thumbnail(entry),
    )


def channel_summary(entry: dict) -> ChannelSummary:
    return ChannelSummary(
        id=str(entry.get("channel_id") or entry.get("id")),
        title=_text(entry.get("title"), entry.get("channel"), entry.get("uploader")) or str(entry.get("id")),
        subscriber_count=format_count(entry.get("channel_follower_count"), "subscribers"),
        thumbnail=first_thumbnail(entry),
    )


def playlist_summary(entry: dict) -> PlaylistSummary:
    return PlaylistSummary(
        id=str(entry.get("id")),
        title=_text(entry.get("title")) or str(entry.get("id")),
        video_count=format_count(entry.get("playlist_count") or entry.get("video_count"), "videos"),
        thumbnail=first_thumbnail(entry),
    )


def collect_video_entries(
    info: object,
    dest: List[VideoSummary],
    seen: Optional[Set[str]] = None,
) -> int:
    """
    Recursively extract video entries from yt-dlp metadata objects.
    Returns the number of new videos found in this call.
    """

    if seen is None:
        seen = set()

    if info is None:
        return 0

    if isinstance(info, list):
        count = 0
        for entry in info:
            count += collect_video_entries(entry, dest, seen)
        return count

    if not isinstance(info, dict):
        return 0

    info_type = info.get("_type")

    if info_type in {"playlist", "multi_video", "compat_list"}:
        entries = info.get("entries") or []
        return collect_video_entries(list(entries), dest, seen)

    if info_type == "url" and "entries" in info:
        return collect_video_entries(info.get("entries"), dest, seen)

    if entry_kind(info) is not SearchType.VIDEO:
        return 0

    video_id = info.get("id")
    if not video_id or str(video_id) in seen:
        return 0

    seen.add(str(video_id))
    dest.append(video_summary(info))
    return 1


class YouTubeClient:
    """Thin facade over yt-dlp used by every shell."""

    def __init__(self, args) -> None:
        self.args = args
        self.verbose = bool(getattr(args, "verbose", False))
        self.version = getattr(getattr(yt_dlp, "version", None), "__version__", "unknown")

    def make_logger(self, video_id: Optional[str] = None) -> YtDlpLogger:
        # One logger per yt-dlp call; downloads run on separate threads
        return YtDlpLogger(verbose=self.verbose, video_id=video_id)

    def _extract(self, url: str, **option_overrides) -> dict:
        ydl_opts = build_ydl_options(self.args, self.make_logger(), **option_overrides)
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(url, download=False)
        if not isinstance(info, dict):
            raise LiuTubeError(f"No information returned for {url}")
        return info

    def search(self, query: str, search_type: str = "video") -> SearchResults:
        """Search YouTube, returning only results of the requested kind."""
        kind = SearchType(search_type)
        query = (query or "").strip()
        if not query:
            raise ValueError("search query is empty")

        limit = getattr(self.args, "max_results", None) or 20
        if kind is SearchType.VIDEO:
            url = f"ytsearch{limit}:{query}"
        else:
            params = urllib.parse.urlencode({"search_query": query, "sp": SEARCH_FILTERS[kind]})
            url = f"{YOUTUBE_ORIGIN}/results?{params}"

        print(f"[search] {kind.value}: {query!r}")
        info = self._extract(url, extract_flat=True, max_entries=limit)
        entries = [entry for entry in info.get("entries") or [] if isinstance(entry, dict) and entry.get("id")]
        matching = [entry for entry in entries if entry_kind(entry) is kind]

        if kind is SearchType.VIDEO:
            return SearchResults(videos=[video_summary(entry) for entry in matching])
        if kind is SearchType.CHANNEL:
            return SearchResults(channels=[channel_summary(entry) for entry in matching])
        return SearchResults(playlists=[playlist_summary(entry) for entry in matching])

    def get_info(self, video_id: str) -> VideoInfo:
        """Resolve metadata and formats for a single video."""
        info = self._extract(watch_url(video_id))
        formats = parse_formats(info.get("formats"))
        if not formats and info.get("url"):
            formats = parse_formats([info])
        print(f"[info] {video_id}: {len(formats)} formats, {sum(1 for f in formats if f.url)} with URLs")
        return VideoInfo(
            id=str(info.get("id") or video_id),
            title=_text(info.get("title"), info.get("fulltitle")),
            author=_text(info.get("channel"), info.get("uploader")) or UNKNOWN_CHANNEL,
            duration=format_duration(info.get("duration")),
            thumbnail=_text(info.get("thumbnail")) or first_thumbnail(info),
            formats=formats,
        )

    def get_channel_videos(self, channel_id: str) -> List[VideoSummary]:
        info = self._extract(channel_url(channel_id), extract_flat=True, max_entries=CHANNEL_PAGE_SIZE)
        videos: List[VideoSummary] = []
        collect_video_entries(info, videos)
        return videos

    def get_playlist_videos(self, playlist_id: str) -> List[VideoSummary]:
        info = self._extract(playlist_url(playlist_id), extract_flat=True, max_entries=PLAYLIST_PAGE_SIZE)
        videos: List[VideoSummary] = []
        collect_video_entries(info, videos)
        return videos

    def download_format(
        self,
        video_id: str,
        fmt: Format,
        filepath: str,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Let yt-dlp download exactly *fmt* of *video_id* to *filepath*."""

        def hook(d: dict) -> None:
            if d.get("status") != "downloading" or progress is None:
                return
            total = d.get("total_bytes") or d.get("total_bytes_estimate") or fmt.content_length
            progress(DownloadProgress.from_bytes(int(d.get("downloaded_bytes") or 0), total))

        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        ydl_opts = build_ydl_options(
            self.args,
            self.make_logger(video_id),
            progress_hook=hook,
            format_selector=fmt.format_id,
            outtmpl=filepath.replace("%", "%%"),
        )
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            retcode = ydl.download([watch_url(video_id)])

        if retcode:
            raise LiuTubeError(f"yt-dlp exited with status {retcode}")
        if not os.path.exists(filepath):
            raise LiuTubeError(f"yt-dlp finished without writing {filepath}")
        return filepath


def create_client(args) -> Optional[YouTubeClient]:
    """Create the shared client, or return None when that is impossible."""
    try:
        client = YouTubeClient(args)
    except Exception as exc:
        print(f"Failed to initialize YouTube client: {exc}", file=sys.stderr)
        return None
    print(f"[client] YouTube client initialized (yt-dlp {client.version})")
    return client
