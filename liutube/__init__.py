"""LiuTube: search, play and download YouTube videos."""

# Import main components for easier access
from .bridge import Api, create_api
from .client import YouTubeClient, create_client
from .config import parse_args, positive_int
from .downloader import (
    STRATEGIES,
    DownloadJob,
    download_file,
    download_file_pytube,
    download_file_simple,
    download_file_stream,
    download_with_fallback,
    prepare_download,
    sanitize_filename,
)
from .downloads import DownloadManager
from .errors import (
    DownloadTimeoutError,
    HttpStatusError,
    LiuTubeError,
    NoFormatError,
    NotInitializedError,
    describe_playback_error,
)
from .formats import choose_format, select_download_format
from .history import HistoryManager, JsonStore
from .logger import YtDlpLogger
from .models import (
    MAX_HISTORY_ITEMS,
    DownloadStatus,
    HistoryEntry,
    Reference,
    ReferenceKind,
    SearchType,
    VideoInfo,
)
from .sources import parse_reference

__all__ = [
    # Entry points
    "parse_args",
    "create_api",
    "create_client",
    "Api",
    "YouTubeClient",
    # Downloads
    "STRATEGIES",
    "DownloadJob",
    "DownloadManager",
    "download_file",
    "download_file_pytube",
    "download_file_simple",
    "download_file_stream",
    "download_with_fallback",
    "prepare_download",
    "sanitize_filename",
    "choose_format",
    "select_download_format",
    # History
    "HistoryManager",
    "JsonStore",
    # Models and errors
    "DownloadStatus",
    "HistoryEntry",
    "Reference",
    "ReferenceKind",
    "SearchType",
    "VideoInfo",
    "LiuTubeError",
    "NotInitializedError",
    "NoFormatError",
    "HttpStatusError",
    "DownloadTimeoutError",
    "describe_playback_error",
    "YtDlpLogger",
    "parse_reference",
    # Configuration
    "positive_int",
    "MAX_HISTORY_ITEMS",
]
