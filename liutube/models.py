"""Data models, enums, and constants for the LiuTube client."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Optional


# Constants
MAX_HISTORY_ITEMS = 100
HISTORY_STORAGE_KEY = "liutube-history"
DEFAULT_MAX_RESULTS = 20
DOWNLOAD_TIMEOUT = 30.0
MAX_REDIRECTS = 5
CHUNK_SIZE = 1024 * 256
UNKNOWN_CHANNEL = "Unknown Channel"

YOUTUBE_ORIGIN = "https://www.youtube.com"

# Fixed browser identity used for direct media fetches
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# User-Agent rotation pool used for yt-dlp metadata requests
USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0',
]

# Headers sent by the raw HTTP strategy
BROWSER_HEADERS: Dict[str, str] = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "identity",
    "Connection": "keep-alive",
    "Sec-Fetch-Dest": "video",
    "Sec-Fetch-Mode": "no-cors",
    "Sec-Fetch-Site": "cross-site",
    "Sec-Ch-Ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Referer": YOUTUBE_ORIGIN + "/",
    "Origin": YOUTUBE_ORIGIN,
}

# Queries used to fill the home feed
TRENDING_QUERIES = (
    "popular videos today",
    "most viewed this week",
    "trending now",
    "hot videos right now",
    "viral videos",
    "top videos",
)


class SearchType(Enum):
    """Kind of result requested from a search."""
    VIDEO = "video"
    CHANNEL = "channel"
    PLAYLIST = "playlist"


class ReferenceKind(Enum):
    """Kind of object a pasted YouTube link points at."""
    VIDEO = "video"
    CHANNEL = "channel"
    PLAYLIST = "playlist"


class DownloadStatus(Enum):
    """Lifecycle of a tracked download."""
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def watch_url(video_id: str) -> str:
    return f"{YOUTUBE_ORIGIN}/watch?v={video_id}"


def embed_url(video_id: str) -> str:
    return f"{YOUTUBE_ORIGIN}/embed/{video_id}"


@dataclass(frozen=True)
class Reference:
    """A video, channel or playlist identified from user input."""
    kind: ReferenceKind
    id: str


@dataclass
class Format:
    """A single stream variant offered for a video."""
    format_id: str
    url: Optional[str] = None
    ext: Optional[str] = None
    protocol: Optional[str] = None
    has_audio: bool = False
    has_video: bool = False
    height: Optional[int] = None
    quality_label: Optional[str] = None
    bitrate: Optional[float] = None
    content_length: Optional[int] = None
    http_headers: Dict[str, str] = field(default_factory=dict)

    @property
    def container(self) -> Optional[str]:
        return self.ext

    def describe(self) -> str:
        parts = [self.format_id]
        if self.quality_label:
            parts.append(self.quality_label)
        elif self.height:
            parts.append(f"{self.height}p")
        if self.ext:
            parts.append(self.ext)
        if self.has_video and self.has_audio:
            parts.append("audio+video")
        elif self.has_video:
            parts.append("video only")
        elif self.has_audio:
            parts.append("audio only")
        return " ".join(parts)


@dataclass
class VideoSummary:
    id: str
    title: str
    author: str = UNKNOWN_CHANNEL
    duration: str = ""
    thumbnail: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ChannelSummary:
    id: str
    title: str
    subscriber_count: str = ""
    thumbnail: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PlaylistSummary:
    id: str
    title: str
    video_count: str = ""
    thumbnail: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SearchResults:
    """Search outcome; only the list matching the requested type is filled."""
    videos: Optional[List[VideoSummary]] = None
    channels: Optional[List[ChannelSummary]] = None
    playlists: Optional[List[PlaylistSummary]] = None

    def to_dict(self) -> dict:
        payload = {}
        if self.videos is not None:
            payload["videos"] = [video.to_dict() for video in self.videos]
        if self.channels is not None:
            payload["channels"] = [channel.to_dict() for channel in self.channels]
        if self.playlists is not None:
            payload["playlists"] = [playlist.to_dict() for playlist in self.playlists]
        return payload


@dataclass
class VideoInfo:
    """Resolved metadata and formats for one video."""
    id: str
    title: str
    author: str = UNKNOWN_CHANNEL
    duration: str = ""
    thumbnail: str = ""
    formats: List[Format] = field(default_factory=list)


@dataclass
class DownloadInfo:
    title: str
    download_url: str
    filename: str
    filesize: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DownloadProgress:
    """Incremental progress of a single download."""
    progress: float
    downloaded_bytes: int
    total_bytes: int

    @classmethod
    def from_bytes(cls, downloaded_bytes: int, total_bytes: Optional[int]) -> "DownloadProgress":
        total = int(total_bytes or 0)
        percent = (downloaded_bytes / total) * 100 if total > 0 else 0.0
        return cls(progress=percent, downloaded_bytes=downloaded_bytes, total_bytes=total)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DownloadResult:
    success: bool
    filepath: str
    strategy: Optional[str] = None

    def to_dict(self) -> dict:
        return {"success": self.success, "filepath": self.filepath}


@dataclass
class ActiveDownload:
    """A download tracked by the download manager."""
    download_id: str
    video_id: str
    title: str
    filepath: Optional[str] = None
    status: DownloadStatus = DownloadStatus.DOWNLOADING
    progress: Optional[DownloadProgress] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "download_id": self.download_id,
            "video_id": self.video_id,
            "title": self.title,
            "filepath": self.filepath,
            "status": self.status.value,
            "progress": self.progress.to_dict() if self.progress else None,
            "error": self.error,
        }


@dataclass
class HistoryEntry:
    """One watched video in the history log."""
    id: str
    title: str
    author: str = UNKNOWN_CHANNEL
    thumbnail: str = ""
    duration: str = ""
    watched_at: str = ""
    watch_count: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            author=str(data.get("author") or UNKNOWN_CHANNEL),
            thumbnail=str(data.get("thumbnail") or ""),
            duration=str(data.get("duration") or ""),
            watched_at=str(data.get("watched_at") or ""),
            watch_count=int(data.get("watch_count") or 1),
        )

    def to_dict(self) -> dict:
        return asdict(self)
